from __future__ import annotations
from datetime import date, datetime
from enum import Enum

from .errors import ConfigurationError


class DateStyle(str, Enum):
    ISO = "iso"
    US = "us"
    EU = "eu"


# US and EU keep the digit orders existing diaries were written with.
_DATE_FORMATS = {
    DateStyle.ISO: "%Y/%m/%d",
    DateStyle.US: "%d/%m/%Y",
    DateStyle.EU: "%m/%d/%Y",
}


def parse_date_style(value: str) -> DateStyle:
    normalized = (value or "").strip().lower()
    try:
        return DateStyle(normalized)
    except ValueError:
        raise ConfigurationError(
            f"Invalid date style '{value}'. iso, us, and eu are supported",
            key="date_style",
            value=value,
        ) from None


def format_date(day: date, style: DateStyle) -> str:
    return day.strftime(_DATE_FORMATS[style])


def format_time(t: datetime) -> str:
    return t.strftime("%H:%M")


def indent_text(text: str) -> str:
    # Continuation lines get one leading space so they sit under " Label: ".
    if not text:
        return ""
    lines = text.split("\n")
    return "\n".join([lines[0], *(" " + line for line in lines[1:])])
