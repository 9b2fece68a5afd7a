"""Archive enrichment for dead links (core domain)."""

from __future__ import annotations

import logging
from typing import List
from urllib.parse import urlparse

from core.models import Enrichment
from core.ports import SnapshotIndexPort

LOGGER = logging.getLogger(__name__)

ARCHIVE_SUGGESTION = "Archive snapshot found — consider this replacement"


def generic_suggestions(url: str) -> List[str]:
    """Manual triage hints for a dead link with no archived capture."""

    parsed = urlparse(url)
    if not parsed.scheme or not parsed.hostname:
        return ["Manually verify the URL"]

    domain = parsed.hostname
    suggestions = [
        f"Check domain root: {parsed.scheme}://{domain}",
        f'Search for "{domain}" on the web',
    ]
    path_parts = [part for part in parsed.path.split("/") if part]
    if path_parts:
        last = path_parts[-1].rsplit(".", 1)[0] if "." in path_parts[-1] else path_parts[-1]
        term = last.replace("-", " ").replace("_", " ").strip()
        if term:
            suggestions.append(f'Search for "{term}" on the site')
    suggestions.append(f"Check if {domain} has moved or rebranded")
    return suggestions


class ArchiveEnricher:
    """Looks up the nearest archived capture for a dead URL.

    Lookup failures are logged and reported as "no snapshot" so enrichment
    can never fail a link check.
    """

    def __init__(self, snapshots: SnapshotIndexPort, fallback_suggestions: bool = False) -> None:
        self._snapshots = snapshots
        self._fallback_suggestions = fallback_suggestions

    async def enrich(self, url: str) -> Enrichment:
        try:
            snapshot = await self._snapshots.find_nearest_snapshot(url)
        except Exception:
            LOGGER.warning("Snapshot lookup failed for %s", url, exc_info=True)
            snapshot = None

        if snapshot:
            return Enrichment(archive_url=snapshot, suggestions=(ARCHIVE_SUGGESTION,))
        if self._fallback_suggestions:
            return Enrichment(suggestions=tuple(generic_suggestions(url)))
        return Enrichment()
