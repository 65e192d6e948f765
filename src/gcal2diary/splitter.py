from __future__ import annotations
from datetime import date, datetime, time, timedelta
from typing import List

from .formatting import format_time
from .models import DaySubRange

END_OF_DAY = "24:00"


def _next_midnight(t: datetime) -> datetime:
    return datetime.combine(t.date() + timedelta(days=1), time(0, 0), tzinfo=t.tzinfo)


def split_range(start: datetime, end: datetime) -> List[DaySubRange]:
    """Split ``[start, end)`` into one sub-range per calendar day it touches.

    Days other than the last end at the ``24:00`` marker, days other than the
    first begin at ``00:00``. An ``end`` landing exactly on midnight does not
    produce an entry for the day it starts.
    """
    if start.tzinfo is None or end.tzinfo is None:
        raise ValueError("start and end must be timezone-aware")
    if start > end:
        raise ValueError(f"start {start.isoformat()} is after end {end.isoformat()}")

    # Compare calendar days in one zone.
    end = end.astimezone(start.tzinfo)
    end_day: date = end.date()

    ranges: List[DaySubRange] = []
    cursor = start
    while True:
        if cursor.date() == end_day:
            ranges.append(DaySubRange(cursor.date(), format_time(cursor), format_time(end)))
            break

        ranges.append(DaySubRange(cursor.date(), format_time(cursor), END_OF_DAY))
        cursor = _next_midnight(cursor)
        if cursor == end:
            break

    return ranges
