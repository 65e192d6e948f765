from __future__ import annotations
from datetime import datetime, tzinfo
import json
import logging
import os
from typing import Any, Dict, Iterator, Optional, Protocol

from google.auth.exceptions import RefreshError
from google.auth.transport.requests import Request
from google.oauth2.credentials import Credentials
from google_auth_oauthlib.flow import InstalledAppFlow
from googleapiclient.discovery import build

from .errors import ConfigurationError
from .models import Event, EventPage

SCOPES = ["https://www.googleapis.com/auth/calendar.readonly"]

log = logging.getLogger(__name__)


class EventSource(Protocol):
    def fetch_page(self, page_token: Optional[str]) -> EventPage:
        ...


def iter_events(source: EventSource) -> Iterator[Event]:
    page_token: Optional[str] = None
    while True:
        page = source.fetch_page(page_token)
        yield from page.events
        if not page.next_page_token:
            return
        page_token = page.next_page_token


def _load_token(token_path: str) -> Optional[Credentials]:
    if not os.path.exists(token_path):
        log.debug("No auth token at %s", token_path)
        return None
    try:
        return Credentials.from_authorized_user_file(token_path, SCOPES)
    except (OSError, ValueError) as e:
        log.debug("Could not reuse existing auth token: %s", e)
        return None


def _save_token(token_path: str, creds: Credentials) -> None:
    log.debug("Saving credential file to: %s", token_path)
    try:
        parent = os.path.dirname(token_path)
        if parent:
            os.makedirs(parent, mode=0o700, exist_ok=True)
        fd = os.open(token_path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(creds.to_json())
    except OSError as e:
        log.warning("Failed to save auth token for reuse: %s", e)


def get_credentials(credentials_path: str, token_path: str) -> Credentials:
    creds = _load_token(token_path)
    if creds is not None and creds.valid:
        return creds

    if creds is not None and creds.expired and creds.refresh_token:
        try:
            creds.refresh(Request())
            _save_token(token_path, creds)
            return creds
        except RefreshError as e:
            log.debug("Could not refresh auth token: %s", e)

    if not os.path.exists(credentials_path):
        raise ConfigurationError(
            f"Failed to read credentials file ({credentials_path})", key="credentials_path", value=credentials_path
        )
    try:
        flow = InstalledAppFlow.from_client_secrets_file(credentials_path, SCOPES)
    except ValueError as e:
        raise ConfigurationError(
            f"Failed to parse credentials file ({credentials_path}): {e}", key="credentials_path", value=credentials_path
        ) from e
    creds = flow.run_local_server(port=0)
    _save_token(token_path, creds)
    return creds


def _item_time(obj: Dict[str, Any], tz: tzinfo) -> str:
    if obj.get("dateTime"):
        return obj["dateTime"]
    # All-day events have "date" not "dateTime"; treat them as local midnight.
    if obj.get("date"):
        return datetime.fromisoformat(obj["date"]).replace(tzinfo=tz).isoformat()
    return ""


def event_from_item(item: Dict[str, Any], tz: tzinfo) -> Event:
    return Event(
        summary=item.get("summary", ""),
        start=_item_time(item.get("start", {}), tz),
        end=_item_time(item.get("end", {}), tz),
        location=item.get("location", ""),
        description=item.get("description", ""),
    )


class GoogleCalendarSource:
    """Pages through single (already expanded) events of one calendar."""

    def __init__(self, service, calendar_id: str, time_min: datetime, time_max: datetime, tz: tzinfo):
        self.service = service
        self.calendar_id = calendar_id
        self.time_min = time_min
        self.time_max = time_max
        self.tz = tz

    def fetch_page(self, page_token: Optional[str]) -> EventPage:
        resp = self.service.events().list(
            calendarId=self.calendar_id,
            timeMin=self.time_min.isoformat(),
            timeMax=self.time_max.isoformat(),
            showDeleted=False,
            singleEvents=True,
            orderBy="startTime",
            pageToken=page_token,
        ).execute()

        events = []
        for item in resp.get("items", []):
            if log.isEnabledFor(logging.DEBUG):
                log.debug(json.dumps(item, ensure_ascii=False))
            events.append(event_from_item(item, self.tz))
        return EventPage(events=events, next_page_token=resp.get("nextPageToken"))


def build_service(credentials_path: str, token_path: str):
    creds = get_credentials(credentials_path, token_path)
    return build("calendar", "v3", credentials=creds, cache_discovery=False)
