import random
from datetime import datetime, timezone

import pytest

from standup.models import (
    Event,
    EventKind,
    RawEvent,
    ReportConfig,
    ReportGroup,
    ReportItem,
    ValidationError,
    Window,
)
from standup.report import build_report, group, merge, merge_items, sort_group

UTC = timezone.utc
WINDOW = Window(since=datetime(2026, 2, 5, 0, 0, tzinfo=UTC), until=datetime(2026, 2, 6, 0, 0, tzinfo=UTC))


def _at(hour: int, minute: int = 0) -> datetime:
    return datetime(2026, 2, 5, hour, minute, tzinfo=UTC)


def _event(
    action: str,
    hour: int,
    url: str | None = "https://github.com/a/a/pull/1",
    origin: str = "a/a",
    kind: EventKind = EventKind.PULL_REQUEST,
    title: str = "Add parser",
) -> Event:
    return Event(origin=origin, kind=kind, action=action, title=title, url=url, timestamp=_at(hour))


def _raw(kind: str, action: str, hour: int, origin: str = "a/a", url: str | None = None, title: str = "Thing", **kwargs) -> RawEvent:
    return RawEvent(
        source="github",
        origin=origin,
        kind=kind,
        action=action,
        title=title,
        url=url,
        timestamp=_at(hour),
        **kwargs,
    )


def test_opened_then_merged_folds_into_one_item_with_latest_timestamp():
    items = merge([_event("merged", 10), _event("opened", 9)])

    assert len(items) == 1
    assert items[0].actions == ("opened", "merged")
    assert items[0].timestamp == _at(10)


def test_repeated_comment_with_same_timestamp_collapses():
    url = "https://github.com/a/a/issues/5"
    items = merge([
        _event("commented", 11, url=url, kind=EventKind.ISSUE),
        _event("commented", 11, url=url, kind=EventKind.ISSUE),
    ])

    assert len(items) == 1
    assert items[0].actions == ("commented",)


def test_same_timestamp_actions_use_canonical_priority():
    items = merge([_event("merged", 9), _event("commented", 9), _event("opened", 9), _event("reviewed", 9)])

    assert items[0].actions == ("opened", "reviewed", "commented", "merged")


def test_action_order_follows_first_occurrence_not_alphabet():
    items = merge([_event("reviewed", 9), _event("commented", 10), _event("reviewed", 11), _event("merged", 12)])

    assert items[0].actions == ("reviewed", "commented", "merged")
    assert items[0].timestamp == _at(12)


def test_latest_title_wins_when_renamed():
    items = merge([_event("opened", 9, title="WIP parser"), _event("merged", 10, title="Add parser")])

    assert items[0].title == "Add parser"


def test_issue_comment_on_pull_request_keeps_pull_request_kind():
    items = merge([_event("opened", 9), _event("commented", 10, kind=EventKind.ISSUE)])

    assert len(items) == 1
    assert items[0].kind is EventKind.PULL_REQUEST


def test_same_url_in_different_origins_stays_separate():
    items = merge([_event("opened", 9, origin="a/a"), _event("opened", 9, origin="b/b")])

    assert len(items) == 2


def test_meetings_without_url_merge_only_when_identical():
    standup = _event("attended", 9, url=None, origin="primary", kind=EventKind.MEETING, title="Standup")
    retro = _event("attended", 9, url=None, origin="primary", kind=EventKind.MEETING, title="Retro")

    items = merge([standup, standup, retro])

    assert sorted(i.title for i in items) == ["Retro", "Standup"]


def test_merge_is_idempotent():
    events = [
        _event("opened", 9),
        _event("merged", 10),
        _event("reviewed", 11, url="https://github.com/b/b/pull/2", origin="b/b"),
        _event("attended", 8, url=None, origin="primary", kind=EventKind.MEETING, title="Standup"),
    ]
    once = merge(events)

    assert merge_items(once) == once
    assert merge_items(merge_items(once)) == once


def test_merge_items_rejects_items_without_actions():
    item = ReportItem(origin="a/a", kind=EventKind.PULL_REQUEST, title="x", url="u", actions=(), timestamp=_at(9))

    with pytest.raises(ValidationError):
        merge_items([item])


def test_merged_items_are_ordered_by_most_recent_activity():
    items = merge([
        _event("opened", 9, url="https://github.com/a/a/pull/1", origin="a/a"),
        _event("opened", 12, url="https://github.com/b/b/pull/1", origin="b/b"),
        _event("opened", 10, url="https://github.com/c/c/pull/1", origin="c/c"),
    ])

    assert [i.origin for i in items] == ["b/b", "c/c", "a/a"]


def test_group_puts_meetings_first_then_origins_in_first_seen_order():
    items = merge([
        _event("opened", 9, url="https://github.com/a/a/pull/1", origin="a/a"),
        _event("opened", 12, url="https://github.com/b/b/pull/1", origin="b/b"),
        _event("merged", 13, url="https://github.com/a/a/pull/2", origin="a/a"),
        _event("attended", 8, url=None, origin="primary", kind=EventKind.MEETING, title="Standup"),
    ])

    groups = group(items)

    assert [g.origin for g in groups] == ["meetings", "a/a", "b/b"]
    assert [len(g.items) for g in groups] == [1, 2, 1]


def test_group_of_nothing_is_empty():
    assert group([]) == []


def test_sort_group_orders_by_time_then_url():
    first = ReportItem("a/a", EventKind.PULL_REQUEST, "z", "https://x/2", ("opened",), _at(9))
    second = ReportItem("a/a", EventKind.PULL_REQUEST, "a", "https://x/3", ("opened",), _at(9))
    earliest = ReportItem("a/a", EventKind.PULL_REQUEST, "m", "https://x/9", ("opened",), _at(8))

    ordered = sort_group(ReportGroup(origin="a/a", items=(second, first, earliest)))

    assert [i.url for i in ordered.items] == ["https://x/9", "https://x/2", "https://x/3"]


def test_sort_group_falls_back_to_title_without_url():
    b = ReportItem("primary", EventKind.MEETING, "Beta", None, ("attended",), _at(9))
    a = ReportItem("primary", EventKind.MEETING, "Alpha", None, ("attended",), _at(9))

    ordered = sort_group(ReportGroup(origin="meetings", items=(b, a)))

    assert [i.title for i in ordered.items] == ["Alpha", "Beta"]


def test_build_report_scenario_opened_and_merged():
    url = "https://github.com/a/a/pull/1"
    model = build_report(
        [
            _raw("PullRequestEvent", "opened", 9, url=url),
            _raw("PullRequestEvent", "closed", 10, url=url, merged=True),
        ],
        WINDOW,
        ReportConfig(),
    )

    assert len(model.groups) == 1
    (item,) = model.groups[0].items
    assert item.actions == ("opened", "merged")
    assert item.timestamp == _at(10)


def test_build_report_is_empty_when_only_disabled_issue_comments():
    url = "https://github.com/a/a/issues/4"
    model = build_report(
        [_raw("IssueCommentEvent", "created", 9, url=url), _raw("IssueCommentEvent", "created", 10, url=url)],
        WINDOW,
        ReportConfig(include_issue_comments=False),
    )

    assert model.is_empty
    assert model.groups == ()


def test_build_report_lists_meetings_before_repositories():
    model = build_report(
        [
            _raw("PullRequestEvent", "opened", 9, url="https://github.com/a/a/pull/1"),
            _raw("calendar#event", "confirmed", 14, origin="primary", title="Planning"),
        ],
        WINDOW,
        ReportConfig(),
    )

    assert [g.origin for g in model.groups] == ["meetings", "a/a"]
    assert model.groups[0].items[0].url is None


def test_build_report_output_does_not_depend_on_input_order():
    raw = [
        _raw("PullRequestEvent", "opened", 9, url="https://github.com/a/a/pull/1", title="One"),
        _raw("PullRequestEvent", "closed", 15, url="https://github.com/a/a/pull/1", title="One", merged=True),
        _raw("PullRequestReviewEvent", "submitted", 11, origin="b/b", url="https://github.com/b/b/pull/7", title="Two"),
        _raw("PullRequestReviewCommentEvent", "created", 11, origin="b/b", url="https://github.com/b/b/pull/7", title="Two"),
        _raw("IssuesEvent", "opened", 11, origin="c/c", url="https://github.com/c/c/issues/3", title="Three"),
        _raw("IssueCommentEvent", "created", 11, origin="c/c", url="https://github.com/c/c/issues/3", title="Three"),
        _raw("calendar#event", "confirmed", 10, origin="primary", title="Standup"),
        _raw("VEVENT", "confirmed", 10, origin="Work", title="Standup"),
    ]
    config = ReportConfig(include_issue_comments=True)
    expected = build_report(raw, WINDOW, config)

    rng = random.Random(7)
    for _ in range(10):
        shuffled = raw[:]
        rng.shuffle(shuffled)
        assert build_report(shuffled, WINDOW, config) == expected


def test_build_report_keeps_url_keys_unique_and_actions_non_empty():
    raw = [
        _raw("PullRequestEvent", "opened", h, url=f"https://github.com/a/a/pull/{h % 3}", title=f"PR {h % 3}")
        for h in range(0, 24)
    ]
    model = build_report(raw, WINDOW, ReportConfig())

    keys = [(g.origin, i.url) for g in model.groups for i in g.items]
    assert len(keys) == len(set(keys)) == 3
    assert all(i.actions for g in model.groups for i in g.items)


def test_build_report_rejects_empty_window():
    window = Window(since=WINDOW.since, until=WINDOW.since)

    with pytest.raises(ValidationError):
        build_report([], window, ReportConfig())
