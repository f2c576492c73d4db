from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

import requests

from .models import RawEvent, Window
from .sources import FetchError

logger = logging.getLogger(__name__)

GITHUB_API_URL = "https://api.github.com"
PER_PAGE = 100


def _parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None


def _subject(payload: Dict[str, Any]) -> Dict[str, Any]:
    # Pull request events carry "pull_request", issue events carry "issue".
    return payload.get("pull_request") or payload.get("issue") or {}


def to_raw_event(item: Dict[str, Any]) -> RawEvent:
    payload = item.get("payload") or {}
    subject = _subject(payload)
    subject_id = subject.get("id")
    return RawEvent(
        source="github",
        origin=(item.get("repo") or {}).get("name", ""),
        kind=item.get("type", ""),
        action=payload.get("action", ""),
        title=subject.get("title"),
        url=subject.get("html_url"),
        timestamp=_parse_timestamp(item.get("created_at")),
        subject_id=str(subject_id) if subject_id is not None else None,
        merged=bool(subject.get("merged", False)),
        author=(subject.get("user") or {}).get("login"),
    )


class GitHubSource:
    """Reads the user's public activity feed from the GitHub events API."""

    name = "github"

    def __init__(self, user: str, token: str, session: Optional[requests.Session] = None) -> None:
        self.user = user
        self._session = session or requests.Session()
        self._session.headers.update({
            "Authorization": f"token {token}",
            "Accept": "application/vnd.github+json",
            "User-Agent": "standup/1.0",
        })

    def fetch(self, window: Window) -> List[RawEvent]:
        events: List[RawEvent] = []
        page = 1
        # The feed is newest first: stop at the first page reaching past `since`.
        while True:
            items, has_next = self._page(page)
            batch = [to_raw_event(item) for item in items]
            events.extend(batch)

            stamps = [e.timestamp for e in batch if e.timestamp is not None]
            reached_since = any(t < window.since for t in stamps)
            if not has_next:
                if stamps and not reached_since:
                    logger.warning(
                        "Events since requested date are unavailable. Last event date: %s",
                        min(stamps).isoformat(),
                    )
                break
            if reached_since:
                break
            page += 1

        logger.info("Fetched %d GitHub events for %s over %d page(s)", len(events), self.user, page)
        return events

    def _page(self, page: int) -> Tuple[List[Dict[str, Any]], bool]:
        try:
            resp = self._session.get(
                f"{GITHUB_API_URL}/users/{self.user}/events",
                params={"page": page, "per_page": PER_PAGE},
                timeout=15,
            )
            resp.raise_for_status()
            items = resp.json()
        except requests.RequestException as e:
            raise FetchError(self.name, f"request for page {page} failed: {e}") from e
        except ValueError as e:
            raise FetchError(self.name, f"can not parse response for page {page}: {e}") from e

        if not isinstance(items, list):
            raise FetchError(self.name, f"unexpected response for page {page}")
        return items, "next" in resp.links
