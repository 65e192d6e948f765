"""Error types raised while turning calendar events into diary text."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass
class DiaryError(Exception):
    message: str
    code: str = "DIARY_ERROR"
    details: Any | None = None

    def __str__(self) -> str:
        return self.message


class TimestampParseError(DiaryError):
    def __init__(self, message: str, field: str | None = None, value: Any | None = None) -> None:
        super().__init__(message, code="TIMESTAMP_ERROR", details={"field": field, "value": value})
        self.field = field
        self.value = value


class ConfigurationError(DiaryError):
    def __init__(self, message: str, key: str | None = None, value: Any | None = None) -> None:
        super().__init__(message, code="CONFIG_ERROR", details={"key": key, "value": value})
        self.key = key
        self.value = value


class SinkWriteError(DiaryError):
    def __init__(self, message: str) -> None:
        super().__init__(message, code="SINK_ERROR")


def format_error_for_user(error: Exception) -> str:
    if isinstance(error, TimestampParseError):
        return f"Timestamp Error: {error.message}"
    if isinstance(error, ConfigurationError):
        return f"Configuration Error: {error.message}"
    if isinstance(error, SinkWriteError):
        return f"Output Error: {error.message}"
    return f"Error: {str(error)}"
