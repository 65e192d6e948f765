from __future__ import annotations
from dataclasses import dataclass
from datetime import datetime, tzinfo
import logging
import re
from typing import BinaryIO, List, Optional

from .errors import SinkWriteError, TimestampParseError
from .formatting import DateStyle, format_date, indent_text
from .models import DaySubRange, Event
from .splitter import split_range

log = logging.getLogger(__name__)

_RFC3339_RE = re.compile(
    r"^(\d{4}-\d{2}-\d{2})[Tt](\d{2}:\d{2}:\d{2})(?:\.(\d+))?([Zz]|[+-]\d{2}:\d{2})$"
)


@dataclass(frozen=True)
class DiaryConfig:
    date_style: DateStyle = DateStyle.ISO
    tz: Optional[tzinfo] = None     # zone days are split in; None keeps each start's own offset


def parse_timestamp(value: str, field: str) -> datetime:
    """Parse an RFC3339 timestamp such as ``2024-01-01T09:00:00-05:00``.

    Only the RFC3339 profile is accepted: a ``T`` separator, seconds, and a
    ``Z`` or ``+HH:MM`` offset. Fractional seconds are cut to microseconds.
    """
    m = _RFC3339_RE.match((value or "").strip())
    if m is None:
        raise TimestampParseError(
            f"event {field} time {value!r} is not an RFC3339 timestamp", field=field, value=value
        )

    day, clock, fraction, offset = m.groups()
    if offset in ("Z", "z"):
        offset = "+00:00"
    fraction = "." + fraction[:6].ljust(6, "0") if fraction else ""
    try:
        return datetime.fromisoformat(f"{day}T{clock}{fraction}{offset}")
    except ValueError as exc:
        raise TimestampParseError(f"parsing event {field} time {value!r}: {exc}", field=field, value=value) from exc


class DiaryWriter:
    def __init__(self, sink: BinaryIO, config: DiaryConfig | None = None):
        self.sink = sink
        self.config = config or DiaryConfig()

    def split(self, event: Event) -> List[DaySubRange]:
        start = parse_timestamp(event.start, "start")
        end = parse_timestamp(event.end, "end")
        if start > end:
            raise TimestampParseError(
                f"event end time {event.end!r} is before start time {event.start!r}",
                field="end",
                value=event.end,
            )
        if self.config.tz is not None:
            # Offsets in the feed change across DST; days are counted in one zone.
            start = start.astimezone(self.config.tz)
            end = end.astimezone(self.config.tz)
        return split_range(start, end)

    def _render_ranges(self, event: Event, ranges: List[DaySubRange]) -> str:
        parts: List[str] = []
        for r in ranges:
            parts.append(f"{format_date(r.day, self.config.date_style)} {r.start_label}-{r.end_label} {event.summary}\n")
            if event.location:
                parts.append(f" Location: {indent_text(event.location)}\n")
            if event.description:
                parts.append(f" Description: {indent_text(event.description)}\n")
        return "".join(parts)

    def write(self, event: Event) -> int:
        """Write every diary line for ``event`` in a single sink write.

        Returns the number of days written. Nothing reaches the sink if the
        event's timestamps are invalid.
        """
        ranges = self.split(event)
        data = self._render_ranges(event, ranges).encode("utf-8")
        try:
            self.sink.write(data)
        except OSError as exc:
            raise SinkWriteError(f"writing diary entry for {event.summary!r}: {exc}") from exc

        log.debug("Wrote %d day(s) for %r", len(ranges), event.summary)
        return len(ranges)
