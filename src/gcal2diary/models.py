from __future__ import annotations
from dataclasses import dataclass, field
from datetime import date
from typing import List, Optional

@dataclass(frozen=True)
class Event:
    summary: str
    start: str                  # RFC3339, e.g. 2024-01-01T09:00:00-05:00
    end: str                    # RFC3339
    location: str = ""          # "" means absent
    description: str = ""       # may contain newlines

@dataclass(frozen=True)
class DaySubRange:
    day: date
    start_label: str            # HH:MM
    end_label: str              # HH:MM, or "24:00" when the event runs past midnight

@dataclass(frozen=True)
class EventPage:
    events: List[Event] = field(default_factory=list)
    next_page_token: Optional[str] = None
