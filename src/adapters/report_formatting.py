"""Shared report formatting helpers.

Keeping formatting here prevents drift between notifiers and the CLI and
keeps reports consistent regardless of delivery channel.
"""

from __future__ import annotations

import html
from dataclasses import asdict
from datetime import datetime
from enum import Enum
from typing import Any

from core.models import AggregateReport, LinkCheckResult
from core.recommendations import build_recommendations

DIVIDER = "──────────────"


def to_jsonable(value: Any) -> Any:
    """Convert dataclass output into JSON-friendly values."""

    if isinstance(value, Enum):
        return value.value
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, dict):
        return {key: to_jsonable(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_jsonable(item) for item in value]
    return value


def link_result_payload(result: LinkCheckResult) -> dict:
    return to_jsonable(asdict(result))


def report_payload(report: AggregateReport) -> dict:
    """Return the report as a plain dict with recommendations attached."""

    payload = to_jsonable(asdict(report))
    payload["recommendations"] = build_recommendations(report.dead_links)
    return payload


def summary_line(report: AggregateReport) -> str:
    return (
        f"Found {len(report.dead_links)} dead links across {report.posts_checked} posts "
        f"({report.working_links} working, {report.skipped_links} skipped)"
    )


def _status_label(result: LinkCheckResult) -> str:
    if result.status is not None:
        return str(result.status)
    return result.error or "unreachable"


def _format_markdown(report: AggregateReport, max_items: int) -> str:
    """Create the Markdown report body."""

    def escape_md(value: str) -> str:
        for ch in r"*[`_":
            value = value.replace(ch, f"\\{ch}")
        return value

    lines = ["**Dead link report**", escape_md(summary_line(report)), DIVIDER]
    for result in report.dead_links[:max_items]:
        lines.append(f"- {escape_md(result.url)} ({escape_md(_status_label(result))}) in {escape_md(result.post_slug)}")
        if result.archive_url:
            lines.append(f"  archive: {escape_md(result.archive_url)}")
    hidden = len(report.dead_links) - max_items
    if hidden > 0:
        lines.append(f"... and {hidden} more")
    lines.append(DIVIDER)
    lines.extend(escape_md(line) for line in build_recommendations(report.dead_links))
    return "\n".join(lines)


def _format_html(report: AggregateReport, max_items: int) -> str:
    """Create the HTML report body used by the Bot API adapter."""

    parts = ["<b>Dead link report</b>", html.escape(summary_line(report)), DIVIDER]
    for result in report.dead_links[:max_items]:
        safe_url = html.escape(result.url)
        line = (
            f"• <a href=\"{safe_url}\">{safe_url}</a> ({html.escape(_status_label(result))})"
            f" in {html.escape(result.post_slug)}"
        )
        if result.archive_url:
            safe_archive = html.escape(result.archive_url)
            line += f" · <a href=\"{safe_archive}\">archive</a>"
        parts.append(line)
    hidden = len(report.dead_links) - max_items
    if hidden > 0:
        parts.append(f"… and {hidden} more")
    parts.append(DIVIDER)
    parts.extend(html.escape(line) for line in build_recommendations(report.dead_links))
    return "\n".join(parts)


def format_report(report: AggregateReport, mode: str, max_items: int = 20) -> str:
    """Return the report formatted for the requested mode."""

    if mode == "markdown":
        return _format_markdown(report, max_items)
    if mode == "html":
        return _format_html(report, max_items)
    raise ValueError(f"Unsupported report format: {mode}")
