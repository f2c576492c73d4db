from __future__ import annotations

import logging
import sys
from datetime import datetime
from typing import List, Optional
from zoneinfo import ZoneInfo

from dotenv import load_dotenv

from .calendar_google import GoogleCalendarSource
from .calendar_icloud import ICloudCalendarSource
from .config import CONFIG_PATH_DEFAULT, AppConfig, load_config
from .dates import resolve_window
from .github import GitHubSource
from .models import ValidationError
from .render import render_report
from .report import build_report
from .sources import EventSource, FetchError, fetch_all

logger = logging.getLogger(__name__)


def _build_sources(cfg: AppConfig, tz: ZoneInfo) -> List[EventSource]:
    sources: List[EventSource] = []
    if cfg.github.enabled:
        if not cfg.github.username or not cfg.github.token:
            raise FetchError("github", "set STANDUP_USER (or github.username) and STANDUP_GITHUB_TOKEN")
        sources.append(GitHubSource(cfg.github.username, cfg.github.token))

    if cfg.google.enabled:
        if not cfg.google.credentials_path or not cfg.google.token_path:
            raise FetchError("google", "set GOOGLE_CREDENTIALS_JSON and GOOGLE_TOKEN_JSON")
        sources.append(
            GoogleCalendarSource(cfg.google.calendar_ids, cfg.google.credentials_path, cfg.google.token_path, tz)
        )

    if cfg.icloud.enabled:
        if not cfg.icloud.username or not cfg.icloud.app_password:
            raise FetchError("icloud", "set ICLOUD_USERNAME and ICLOUD_APP_PASSWORD")
        sources.append(
            ICloudCalendarSource(cfg.icloud.username, cfg.icloud.app_password, cfg.icloud.calendar_name_allowlist, tz)
        )
    return sources


def run_once(
    config_path: str = CONFIG_PATH_DEFAULT,
    since: str = "yesterday",
    until: Optional[str] = None,
    user: Optional[str] = None,
    issue_comments: Optional[bool] = None,
    now: Optional[datetime] = None,
) -> int:
    load_dotenv()
    cfg = load_config(config_path)
    if user:
        cfg.github.username = user
    tz = ZoneInfo(cfg.timezone)

    window = resolve_window(since, until, now or datetime.now(tz=tz))
    logger.info("Collecting activity from %s to %s", window.since.isoformat(), window.until.isoformat())

    # Every source must deliver before anything is reported.
    try:
        raw_events = fetch_all(_build_sources(cfg, tz), window)
    except FetchError as e:
        logger.error("Fetch failed; no report generated. Error: %s", e)
        return 1

    model = build_report(raw_events, window, cfg.report_config(issue_comments))
    print(render_report(model))
    return 0


def main():
    import argparse

    ap = argparse.ArgumentParser(prog="standup", description="Generate a report for morning standup.")
    ap.add_argument("--config", default=CONFIG_PATH_DEFAULT)
    ap.add_argument("-s", "--since", default="yesterday", help="today, yesterday, a weekday name or YYYY-MM-DD")
    ap.add_argument("--until", default=None, help="same forms as --since; defaults to now")
    ap.add_argument("-u", "--user", default=None, help="GitHub login (overrides STANDUP_USER)")
    ap.add_argument("--issue-comments", action="store_const", const=True, default=None)
    ap.add_argument("-v", "--verbose", action="store_true")
    args = ap.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stderr,
    )

    try:
        code = run_once(
            config_path=args.config,
            since=args.since,
            until=args.until,
            user=args.user,
            issue_comments=args.issue_comments,
        )
    except ValidationError as e:
        ap.error(str(e))
    sys.exit(code)


if __name__ == "__main__":
    main()
