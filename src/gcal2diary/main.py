from __future__ import annotations

import logging
import os
import sys
from dataclasses import replace
from datetime import datetime, timedelta, tzinfo
from typing import BinaryIO, Callable, Optional

from dotenv import load_dotenv
from google.auth.exceptions import GoogleAuthError
from googleapiclient.errors import HttpError

from .calendar_google import EventSource, GoogleCalendarSource, build_service, iter_events
from .config import AppConfig, load_config
from .diary import DiaryWriter
from .errors import ConfigurationError, SinkWriteError, TimestampParseError, format_error_for_user

log = logging.getLogger("gcal2diary")

EXIT_OK = 0
EXIT_SINK_ERROR = 1
EXIT_CONFIG_ERROR = 2
EXIT_FETCH_ERROR = 3
EXIT_AUTH_ERROR = 4

SourceFactory = Callable[[AppConfig, str, datetime, datetime, tzinfo], EventSource]


def google_source_factory(
    cfg: AppConfig, calendar_id: str, time_min: datetime, time_max: datetime, tz: tzinfo
) -> EventSource:
    service = build_service(cfg.credentials_path, cfg.token_path)
    return GoogleCalendarSource(service, calendar_id, time_min, time_max, tz)


def _time_window(now: datetime, days_back: int, days_ahead: int):
    return now - timedelta(days=days_back), now + timedelta(days=days_ahead)


def run(
    cfg: AppConfig,
    sink: BinaryIO,
    source_factory: SourceFactory = google_source_factory,
    now: Optional[datetime] = None,
) -> int:
    try:
        cfg.validate()
        tz = cfg.tz()
        writer = DiaryWriter(sink, cfg.diary_config())
    except ConfigurationError as e:
        log.error(format_error_for_user(e))
        return EXIT_CONFIG_ERROR

    now = now or datetime.now(tz=tz)
    time_min, time_max = _time_window(now, cfg.days_back, cfg.days_ahead)
    log.debug("Fetching events between %s and %s", time_min.isoformat(), time_max.isoformat())

    written = skipped = 0
    for calendar_id in cfg.calendar_ids:
        try:
            source = source_factory(cfg, calendar_id, time_min, time_max, tz)
        except ConfigurationError as e:
            log.error(format_error_for_user(e))
            return EXIT_CONFIG_ERROR
        except GoogleAuthError as e:
            log.error("Failed to auth: %s", e)
            return EXIT_AUTH_ERROR

        events = iter_events(source)
        while True:
            try:
                event = next(events, None)
            except HttpError as e:
                log.error("Failed to retrieve events from %s: %s", calendar_id, e)
                return EXIT_FETCH_ERROR
            except GoogleAuthError as e:
                log.error("Failed to auth while retrieving events from %s: %s", calendar_id, e)
                return EXIT_AUTH_ERROR
            if event is None:
                break

            try:
                writer.write(event)
            except TimestampParseError as e:
                skipped += 1
                log.warning("Skipping event %r: %s", event.summary, format_error_for_user(e))
                continue
            except SinkWriteError as e:
                log.error(format_error_for_user(e))
                return EXIT_SINK_ERROR
            written += 1

    log.debug("Wrote %d events, skipped %d", written, skipped)
    return EXIT_OK


def build_arg_parser():
    import argparse

    ap = argparse.ArgumentParser(description="Export Google Calendar events as plain-text diary entries")
    ap.add_argument("--config", default=None, help="Path to a YAML config file.")
    ap.add_argument("--credentials", default=None, help="Path to the credentials file.")
    ap.add_argument("--token", default=None, help="Path to the oauth token to use.")
    ap.add_argument("--date-style", default=None, help="Date style to use (iso, us, eu).")
    ap.add_argument("--calendar-id", action="append", default=None, help="Calendar to export (repeatable).")
    ap.add_argument("--days-back", type=int, default=None)
    ap.add_argument("--days-ahead", type=int, default=None)
    ap.add_argument("--timezone", default=None, help="IANA zone used for all-day events and the time window.")
    ap.add_argument("--debug", action="store_true", help="Print debug information to stderr.")
    return ap


def apply_args(cfg: AppConfig, args) -> AppConfig:
    overrides = {
        "credentials_path": args.credentials,
        "token_path": args.token,
        "date_style": args.date_style,
        "calendar_ids": args.calendar_id,
        "days_back": args.days_back,
        "days_ahead": args.days_ahead,
        "timezone": args.timezone,
    }
    cfg = replace(cfg, **{k: v for k, v in overrides.items() if v is not None})
    if args.debug:
        cfg = replace(cfg, debug=True)
    return cfg


def main(argv=None):
    args = build_arg_parser().parse_args(argv)

    logging.basicConfig(
        stream=sys.stderr,
        level=logging.DEBUG if args.debug else logging.WARNING,
        format="%(message)s",
    )

    load_dotenv()
    try:
        cfg = apply_args(load_config(args.config), args)
    except ConfigurationError as e:
        log.error(format_error_for_user(e))
        sys.exit(EXIT_CONFIG_ERROR)

    if cfg.debug:
        logging.getLogger().setLevel(logging.DEBUG)

    code = run(cfg, sys.stdout.buffer)
    try:
        sys.stdout.flush()
    except BrokenPipeError:
        # Python would otherwise report the broken pipe again at exit.
        os.dup2(os.open(os.devnull, os.O_WRONLY), sys.stdout.fileno())
        code = EXIT_SINK_ERROR
    sys.exit(code)


if __name__ == "__main__":
    main()
