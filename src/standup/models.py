from __future__ import annotations
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional, Tuple

MEETINGS_ORIGIN = "meetings"


class ValidationError(ValueError):
    """Raised when the caller hands the report engine an invalid request."""


class EventKind(str, Enum):
    PULL_REQUEST = "PR"
    ISSUE = "Issue"
    MEETING = "Meeting"


@dataclass(frozen=True)
class RawEvent:
    source: str                 # "github" / "google" / "icloud"
    origin: str                 # repository or calendar name
    kind: str                   # upstream type label, e.g. "PullRequestEvent"
    action: str                 # upstream action label, e.g. "closed"
    title: Optional[str] = None
    url: Optional[str] = None
    timestamp: Optional[datetime] = None
    subject_id: Optional[str] = None
    merged: bool = False
    author: Optional[str] = None


@dataclass(frozen=True)
class Event:
    origin: str
    kind: EventKind
    action: str
    title: str
    url: Optional[str]
    timestamp: datetime         # timezone-aware


@dataclass(frozen=True)
class ReportItem:
    origin: str
    kind: EventKind
    title: str
    url: Optional[str]
    actions: Tuple[str, ...]
    timestamp: datetime

    @property
    def key(self) -> tuple:
        if self.url:
            return (self.origin, self.url)
        return (self.origin, self.title, self.timestamp)

    @classmethod
    def from_event(cls, event: Event) -> "ReportItem":
        return cls(
            origin=event.origin,
            kind=event.kind,
            title=event.title,
            url=event.url,
            actions=(event.action,),
            timestamp=event.timestamp,
        )


@dataclass(frozen=True)
class ReportGroup:
    origin: str
    items: Tuple[ReportItem, ...]


@dataclass(frozen=True)
class ReportModel:
    groups: Tuple[ReportGroup, ...] = ()

    @property
    def is_empty(self) -> bool:
        return not self.groups


@dataclass(frozen=True)
class Window:
    since: datetime             # inclusive
    until: datetime             # exclusive

    def validate(self) -> None:
        if self.since.tzinfo is None or self.until.tzinfo is None:
            raise ValidationError("Report window bounds must be timezone-aware")
        if self.since >= self.until:
            raise ValidationError(
                f"Empty report window: since {self.since.isoformat()} is not before until {self.until.isoformat()}"
            )

    def contains(self, moment: datetime) -> bool:
        return self.since <= moment < self.until


@dataclass(frozen=True)
class ReportConfig:
    include_issue_comments: bool = False
    login: Optional[str] = None  # reviews on this user's own pull requests are skipped
