"""Merge, group and order normalized events into a report."""
from __future__ import annotations

import logging
from typing import Dict, Iterable, List, Optional, Sequence

from .models import (
    MEETINGS_ORIGIN,
    Event,
    EventKind,
    RawEvent,
    ReportConfig,
    ReportGroup,
    ReportItem,
    ReportModel,
    ValidationError,
    Window,
)
from .normalize import ATTENDED, COMMENTED, MERGED, OPENED, REVIEWED, NormalizeStats, normalize

logger = logging.getLogger(__name__)

# Only consulted when two actions on one item share a timestamp.
ACTION_PRIORITY = {
    OPENED: 0,
    REVIEWED: 1,
    COMMENTED: 2,
    MERGED: 3,
    ATTENDED: 4,
}

# A pull request commented on through the issues API shares the PR's url.
_KIND_RANK = {
    EventKind.PULL_REQUEST: 0,
    EventKind.ISSUE: 1,
    EventKind.MEETING: 2,
}


def _fold_order(item: ReportItem):
    first = item.actions[0]
    return (
        item.timestamp,
        ACTION_PRIORITY.get(first, len(ACTION_PRIORITY)),
        item.actions,
        item.title,
        item.url or "",
        _KIND_RANK[item.kind],
        item.origin,
    )


def _unique(actions: Iterable[str]) -> tuple:
    return tuple(dict.fromkeys(actions))


def _fold(current: ReportItem, later: ReportItem) -> ReportItem:
    kind = min(current.kind, later.kind, key=_KIND_RANK.__getitem__)
    return ReportItem(
        origin=current.origin,
        kind=kind,
        title=later.title,
        url=current.url,
        actions=_unique(current.actions + later.actions),
        timestamp=max(current.timestamp, later.timestamp),
    )


def merge_items(items: Sequence[ReportItem]) -> List[ReportItem]:
    """Fold items sharing a key into one, most recently active item first.

    Contributors are folded oldest first, so the action tuple lists actions
    in the order they first happened and the surviving title is the newest.
    """
    merged: Dict[tuple, ReportItem] = {}
    for item in sorted(items, key=_fold_order):
        if not item.actions:
            raise ValidationError(f"Report item without actions: {item.title!r}")
        current = merged.get(item.key)
        if current is None:
            merged[item.key] = ReportItem(
                origin=item.origin,
                kind=item.kind,
                title=item.title,
                url=item.url,
                actions=_unique(item.actions),
                timestamp=item.timestamp,
            )
        else:
            merged[item.key] = _fold(current, item)

    ordered = sorted(merged.values(), key=lambda i: (i.origin, i.url or i.title))
    ordered.sort(key=lambda i: i.timestamp, reverse=True)
    return ordered


def merge(events: Sequence[Event]) -> List[ReportItem]:
    return merge_items([ReportItem.from_event(e) for e in events])


def group(items: Sequence[ReportItem]) -> List[ReportGroup]:
    meetings: List[ReportItem] = []
    buckets: Dict[str, List[ReportItem]] = {}
    for item in items:
        if item.kind is EventKind.MEETING:
            meetings.append(item)
        else:
            buckets.setdefault(item.origin, []).append(item)

    groups: List[ReportGroup] = []
    if meetings:
        groups.append(ReportGroup(origin=MEETINGS_ORIGIN, items=tuple(meetings)))
    for origin, bucket in buckets.items():
        groups.append(ReportGroup(origin=origin, items=tuple(bucket)))
    return groups


def _item_sort_key(item: ReportItem):
    return (item.timestamp, item.url or item.title, item.origin)


def sort_group(report_group: ReportGroup) -> ReportGroup:
    return ReportGroup(
        origin=report_group.origin,
        items=tuple(sorted(report_group.items, key=_item_sort_key)),
    )


def build_report(
    raw_events: Iterable[RawEvent],
    window: Window,
    config: ReportConfig,
    stats: Optional[NormalizeStats] = None,
) -> ReportModel:
    window.validate()
    events = normalize(raw_events, window, config, stats)
    items = merge(events)
    groups = tuple(sort_group(g) for g in group(items))
    logger.info("Report built: %d events -> %d items in %d groups", len(events), len(items), len(groups))
    return ReportModel(groups=groups)
