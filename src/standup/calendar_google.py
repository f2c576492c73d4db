from __future__ import annotations
from datetime import datetime
from typing import Any, Dict, List
from zoneinfo import ZoneInfo
import logging
import os

from google.oauth2.credentials import Credentials
from google_auth_oauthlib.flow import InstalledAppFlow
from googleapiclient.discovery import build
import httplib2
from googleapiclient.errors import HttpError
from google.auth.exceptions import GoogleAuthError

from .models import RawEvent, Window
from .sources import FetchError

logger = logging.getLogger(__name__)

SCOPES = [
    "https://www.googleapis.com/auth/calendar.readonly",
    "https://www.googleapis.com/auth/calendar.events.readonly",
]

def _get_creds(credentials_path: str, token_path: str) -> Credentials:
    if os.path.exists(token_path):
        return Credentials.from_authorized_user_file(token_path, SCOPES)

    flow = InstalledAppFlow.from_client_secrets_file(credentials_path, SCOPES)
    creds = flow.run_local_server(port=0)
    token_dir = os.path.dirname(token_path)
    if token_dir:
        os.makedirs(token_dir, exist_ok=True)
    with open(token_path, "w", encoding="utf-8") as f:
        f.write(creds.to_json())
    return creds

def _start_of(item: Dict[str, Any], tz: ZoneInfo) -> datetime | None:
    start_obj = item.get("start", {})
    # All-day events have "date" not "dateTime"
    if "date" in start_obj:
        return datetime.fromisoformat(start_obj["date"]).replace(tzinfo=tz)
    if "dateTime" in start_obj:
        # fromisoformat only accepts a trailing "Z" from Python 3.11
        return datetime.fromisoformat(start_obj["dateTime"].replace("Z", "+00:00")).astimezone(tz)
    return None

def _response_status(item: Dict[str, Any]) -> str:
    for attendee in item.get("attendees", []):
        if attendee.get("self") and attendee.get("responseStatus") == "declined":
            return "declined"
    return item.get("status", "")

def to_raw_event(calendar_id: str, item: Dict[str, Any], tz: ZoneInfo) -> RawEvent:
    return RawEvent(
        source="google",
        origin=calendar_id,
        kind=item.get("kind", "calendar#event"),
        action=_response_status(item),
        title=item.get("summary"),
        url=None,
        timestamp=_start_of(item, tz),
        subject_id=item.get("id"),
    )

class GoogleCalendarSource:
    name = "google"

    def __init__(self, calendar_ids: List[str], credentials_path: str, token_path: str, tz: ZoneInfo) -> None:
        self.calendar_ids = calendar_ids
        self.credentials_path = credentials_path
        self.token_path = token_path
        self.tz = tz

    def fetch(self, window: Window) -> List[RawEvent]:
        try:
            creds = _get_creds(self.credentials_path, self.token_path)
            service = build("calendar", "v3", credentials=creds, cache_discovery=False)
        except (OSError, ValueError, GoogleAuthError) as e:
            raise FetchError(self.name, f"can not authorize Google Calendar: {e}") from e

        events: List[RawEvent] = []
        for cal_id in self.calendar_ids:
            page_token = None
            while True:
                try:
                    resp = service.events().list(
                        calendarId=cal_id,
                        timeMin=window.since.isoformat(),
                        timeMax=window.until.isoformat(),
                        singleEvents=True,
                        orderBy="startTime",
                        pageToken=page_token,
                    ).execute()
                except (HttpError, GoogleAuthError, httplib2.HttpLib2Error, OSError) as e:
                    raise FetchError(self.name, f"listing calendar {cal_id!r} failed: {e}") from e

                events.extend(to_raw_event(cal_id, item, self.tz) for item in resp.get("items", []))
                page_token = resp.get("nextPageToken")
                if not page_token:
                    break

        logger.info("Fetched %d Google Calendar events from %d calendar(s)", len(events), len(self.calendar_ids))
        return events
