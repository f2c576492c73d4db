from __future__ import annotations
from typing import List

from .models import ReportItem, ReportModel

EMPTY_REPORT_TEXT = "Nothing to report."

def format_item(item: ReportItem) -> str:
    # Example: [PR] (opened, merged) Fix flaky test https://github.com/o/r/pull/1
    parts = [f"[{item.kind.value}]"]
    if item.actions:
        parts.append(f"({', '.join(item.actions)})")
    parts.append(item.title)
    if item.url:
        parts.append(item.url)
    return " ".join(parts)

def render_report(model: ReportModel) -> str:
    if model.is_empty:
        return EMPTY_REPORT_TEXT

    lines: List[str] = []
    for group in model.groups:
        lines.append(f"- {group.origin}:")
        lines.extend(f"  * {format_item(item)}" for item in group.items)
    return "\n".join(lines)
