from __future__ import annotations
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional
import os
import yaml

from .models import ReportConfig

CONFIG_PATH_DEFAULT = "~/.standup.yaml"

@dataclass
class GitHubConfig:
    enabled: bool
    username: str
    token: str

@dataclass
class GoogleConfig:
    enabled: bool
    calendar_ids: List[str]
    credentials_path: str
    token_path: str

@dataclass
class ICloudConfig:
    enabled: bool
    calendar_name_allowlist: List[str]
    username: str
    app_password: str

@dataclass
class AppConfig:
    timezone: str
    include_issue_comments: bool
    github: GitHubConfig
    google: GoogleConfig
    icloud: ICloudConfig

    def report_config(self, include_issue_comments: Optional[bool] = None) -> ReportConfig:
        return ReportConfig(
            include_issue_comments=(
                self.include_issue_comments if include_issue_comments is None else include_issue_comments
            ),
            login=self.github.username or None,
        )

def load_config(path: str = CONFIG_PATH_DEFAULT) -> AppConfig:
    p = Path(path).expanduser()
    data: Dict[str, Any] = {}
    if p.exists():
        data = yaml.safe_load(p.read_text(encoding="utf-8")) or {}

    github = data.get("github", {})
    report = data.get("report", {})
    calendars = data.get("calendars", {})

    google = calendars.get("google", {})
    icloud = calendars.get("icloud", {})

    return AppConfig(
        timezone=data.get("timezone", "UTC"),
        include_issue_comments=bool(report.get("include_issue_comments", False)),
        github=GitHubConfig(
            enabled=bool(github.get("enabled", True)),
            username=os.environ.get("STANDUP_USER") or str(github.get("username", "")),
            token=os.environ.get("STANDUP_GITHUB_TOKEN", ""),
        ),
        google=GoogleConfig(
            enabled=bool(google.get("enabled", False)),
            calendar_ids=list(google.get("calendar_ids", ["primary"])),
            credentials_path=os.environ.get("GOOGLE_CREDENTIALS_JSON", ""),
            token_path=os.environ.get("GOOGLE_TOKEN_JSON", ""),
        ),
        icloud=ICloudConfig(
            enabled=bool(icloud.get("enabled", False)),
            calendar_name_allowlist=list(icloud.get("calendar_name_allowlist", [])),
            username=os.environ.get("ICLOUD_USERNAME", ""),
            app_password=os.environ.get("ICLOUD_APP_PASSWORD", ""),
        ),
    )
