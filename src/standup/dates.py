from __future__ import annotations

from datetime import date, datetime, time, timedelta
from typing import Optional

from .models import ValidationError, Window

_WEEKDAYS = ["monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday"]


def resolve_date(value: str, today: date) -> date:
    """Resolve "today", "yesterday", a weekday name or an ISO date.

    Weekday names mean the most recent such day strictly before ``today``,
    so "friday" on a Friday is the previous week's Friday.
    """
    word = value.strip().lower()
    if word == "today":
        return today
    if word == "yesterday":
        return today - timedelta(days=1)

    for weekday, name in enumerate(_WEEKDAYS):
        if word in (name, name[:3]):
            days_back = (today.weekday() - weekday) % 7 or 7
            return today - timedelta(days=days_back)

    try:
        return date.fromisoformat(word)
    except ValueError:
        raise ValidationError(f"Unrecognized date: {value!r}") from None


def _local_midnight(day: date, now: datetime) -> datetime:
    return datetime.combine(day, time.min, tzinfo=now.tzinfo)


def resolve_window(since: str, until: Optional[str], now: datetime) -> Window:
    if now.tzinfo is None:
        raise ValidationError("Current time must be timezone-aware")
    today = now.date()
    start = _local_midnight(resolve_date(since, today), now)
    end = _local_midnight(resolve_date(until, today), now) if until else now
    window = Window(since=start, until=end)
    window.validate()
    return window
