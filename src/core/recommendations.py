"""Operator-facing summary lines for a dead link report (core domain)."""

from __future__ import annotations

from collections import Counter
from typing import Iterable, List
from urllib.parse import urlparse

from core.models import LinkCheckResult

TOP_DOMAINS = 5


def build_recommendations(dead_links: Iterable[LinkCheckResult]) -> List[str]:
    """Return human-readable triage hints for the given dead links."""

    dead_links = list(dead_links)
    if not dead_links:
        return ["No dead links found. Content is in good shape."]

    recommendations: List[str] = []

    domains = Counter(urlparse(link.url).hostname for link in dead_links if urlparse(link.url).hostname)
    # Ties keep first-seen order so output is stable.
    top = domains.most_common(TOP_DOMAINS)
    if top:
        listed = ", ".join(f"{domain} ({count} links)" for domain, count in top)
        recommendations.append(f"Most problematic domains: {listed}")

    archived = sum(1 for link in dead_links if link.archive_url)
    if archived:
        recommendations.append(f"{archived} dead links have archive snapshots available")

    unreachable = sum(1 for link in dead_links if link.status is None or link.status >= 500)
    if unreachable:
        recommendations.append(f"{unreachable} links are completely unreachable (high priority for fixing)")

    client_errors = sum(1 for link in dead_links if link.status is not None and 400 <= link.status < 500)
    if client_errors:
        recommendations.append(f"{client_errors} links return 4xx errors (may have moved or been deleted)")

    recommendations.append("Consider replacing dead links with archived versions or alternative sources")
    return recommendations
