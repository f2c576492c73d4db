"""Turn source-specific raw events into canonical report events."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Iterable, List, Optional, Tuple

from .models import Event, EventKind, RawEvent, ReportConfig, Window

logger = logging.getLogger(__name__)

OPENED = "opened"
MERGED = "merged"
REVIEWED = "reviewed"
COMMENTED = "commented"
ATTENDED = "attended"

# (upstream kind, upstream action) -> (canonical kind, canonical action)
_VOCABULARY = {
    ("PullRequestEvent", "opened"): (EventKind.PULL_REQUEST, OPENED),
    ("PullRequestEvent", "closed"): (EventKind.PULL_REQUEST, MERGED),
    ("PullRequestReviewEvent", "submitted"): (EventKind.PULL_REQUEST, REVIEWED),
    ("PullRequestReviewEvent", "created"): (EventKind.PULL_REQUEST, REVIEWED),
    ("PullRequestReviewCommentEvent", "created"): (EventKind.PULL_REQUEST, REVIEWED),
    ("IssuesEvent", "opened"): (EventKind.ISSUE, OPENED),
    ("IssuesEvent", "created"): (EventKind.ISSUE, OPENED),
    ("IssueCommentEvent", "created"): (EventKind.ISSUE, COMMENTED),
    ("calendar#event", "confirmed"): (EventKind.MEETING, ATTENDED),
    ("VEVENT", "confirmed"): (EventKind.MEETING, ATTENDED),
}


@dataclass
class NormalizeStats:
    accepted: int = 0
    out_of_window: int = 0
    unsupported: int = 0
    incomplete: int = 0
    excluded: int = 0

    @property
    def dropped(self) -> int:
        return self.out_of_window + self.unsupported + self.incomplete + self.excluded


def _as_aware(moment: datetime) -> datetime:
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment


def _classify(raw: RawEvent, config: ReportConfig) -> Tuple[Optional[Tuple[EventKind, str]], str]:
    """Return the canonical (kind, action) and a drop reason when there is none."""
    mapped = _VOCABULARY.get((raw.kind, (raw.action or "").lower()))
    if mapped is None:
        return None, "unsupported"

    kind, action = mapped
    if raw.kind == "PullRequestEvent" and action == MERGED and not raw.merged:
        # closed without merging is not worth reporting
        return None, "unsupported"
    if action == COMMENTED and kind is EventKind.ISSUE and not config.include_issue_comments:
        return None, "excluded"
    if action == REVIEWED and config.login and (raw.author or "").casefold() == config.login.casefold():
        return None, "excluded"
    return mapped, ""


def normalize(
    raw_events: Iterable[RawEvent],
    window: Window,
    config: ReportConfig,
    stats: Optional[NormalizeStats] = None,
) -> List[Event]:
    window.validate()
    stats = stats if stats is not None else NormalizeStats()

    events: List[Event] = []
    for raw in raw_events:
        mapped, reason = _classify(raw, config)
        if mapped is None:
            if reason == "excluded":
                stats.excluded += 1
            else:
                stats.unsupported += 1
            continue

        title = (raw.title or "").strip()
        if raw.timestamp is None or not title:
            stats.incomplete += 1
            continue

        timestamp = _as_aware(raw.timestamp)
        if not window.contains(timestamp):
            stats.out_of_window += 1
            continue

        kind, action = mapped
        events.append(Event(
            origin=raw.origin,
            kind=kind,
            action=action,
            title=title,
            url=raw.url or None,
            timestamp=timestamp,
        ))
        stats.accepted += 1

    logger.debug(
        "Normalized %d events; dropped %d (out_of_window=%d unsupported=%d incomplete=%d excluded=%d)",
        stats.accepted,
        stats.dropped,
        stats.out_of_window,
        stats.unsupported,
        stats.incomplete,
        stats.excluded,
    )
    return events
