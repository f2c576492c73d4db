from __future__ import annotations
from datetime import date, datetime
import logging
from typing import Any, List, Optional
from zoneinfo import ZoneInfo

import caldav
from caldav.elements import dav
from caldav.lib.error import DAVError

from .models import RawEvent, Window
from .sources import FetchError

logger = logging.getLogger(__name__)

ICLOUD_CALDAV_URL = "https://caldav.icloud.com/"
_ICAL_COMPAT_MSG = "Ical data was modified to avoid compatibility issues"


class _IcalCompatibilityFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        return _ICAL_COMPAT_MSG not in record.getMessage()


def _install_ical_compatibility_filter() -> None:
    root_logger = logging.getLogger()
    if any(isinstance(f, _IcalCompatibilityFilter) for f in root_logger.filters):
        return
    root_logger.addFilter(_IcalCompatibilityFilter())


def _as_datetime(value: Any, tz: ZoneInfo) -> Optional[datetime]:
    if isinstance(value, datetime):
        return value.astimezone(tz) if value.tzinfo else value.replace(tzinfo=tz)
    if isinstance(value, date):
        # date-only all-day event
        return datetime.combine(value, datetime.min.time(), tzinfo=tz)
    return None


def _text(component: Any, name: str) -> Optional[str]:
    value = component.get(name)
    if value is None:
        return None
    return str(value)


def to_raw_event(calendar_name: str, component: Any, tz: ZoneInfo) -> RawEvent:
    """Build a raw event from an icalendar VEVENT component."""
    dtstart = component.get("DTSTART")
    return RawEvent(
        source="icloud",
        origin=calendar_name,
        kind="VEVENT",
        action=(_text(component, "STATUS") or "confirmed").lower(),
        title=_text(component, "SUMMARY"),
        url=None,
        timestamp=_as_datetime(dtstart.dt, tz) if dtstart is not None else None,
        subject_id=_text(component, "UID"),
    )


class ICloudCalendarSource:
    name = "icloud"

    def __init__(
        self,
        username: str,
        app_password: str,
        calendar_name_allowlist: List[str],
        tz: ZoneInfo,
    ) -> None:
        self.username = username
        self.app_password = app_password
        self.calendar_name_allowlist = calendar_name_allowlist
        self.tz = tz

    def fetch(self, window: Window) -> List[RawEvent]:
        _install_ical_compatibility_filter()
        try:
            return self._fetch(window)
        except (DAVError, OSError) as e:
            # transport errors from caldav's HTTP client subclass OSError
            raise FetchError(self.name, f"CalDAV request failed: {e}") from e

    def _fetch(self, window: Window) -> List[RawEvent]:
        client = caldav.DAVClient(
            url=ICLOUD_CALDAV_URL,
            username=self.username,
            password=self.app_password,
        )
        calendars = client.principal().calendars()

        events: List[RawEvent] = []
        for cal in calendars:
            name = getattr(cal, "name", None) or cal.get_properties([dav.DisplayName()]).get(dav.DisplayName(), "")
            if self.calendar_name_allowlist and name not in self.calendar_name_allowlist:
                continue

            results = cal.search(start=window.since, end=window.until, event=True, expand=True)
            for r in results:
                component = r.icalendar_component
                if component is None or component.name != "VEVENT":
                    continue
                events.append(to_raw_event(name, component, self.tz))

        logger.info("Fetched %d iCloud events", len(events))
        return events
