from __future__ import annotations
from typing import List, Protocol

from .models import RawEvent, Window


class FetchError(RuntimeError):
    """An event source could not deliver its complete batch."""

    def __init__(self, source: str, message: str) -> None:
        super().__init__(f"{source}: {message}")
        self.source = source


class EventSource(Protocol):
    name: str

    def fetch(self, window: Window) -> List[RawEvent]:
        ...


def fetch_all(sources: List[EventSource], window: Window) -> List[RawEvent]:
    """Collect every source's batch; any FetchError aborts the whole run."""
    events: List[RawEvent] = []
    for source in sources:
        events.extend(source.fetch(window))
    return events
