"""Wayback Machine snapshot index adapter.

Implements the core SnapshotIndexPort with the public availability API,
which returns the capture closest to the requested time.
"""

from __future__ import annotations

import logging
from typing import Optional

import httpx

LOGGER = logging.getLogger(__name__)

AVAILABILITY_API = "https://archive.org/wayback/available"


class WaybackSnapshotIndex:
    """Finds the nearest archived capture of a URL, if any."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        api_url: str = AVAILABILITY_API,
        timeout: float = 10.0,
    ) -> None:
        self._client = client
        self._api_url = api_url
        self._timeout = timeout

    async def find_nearest_snapshot(self, url: str) -> Optional[str]:
        try:
            response = await self._client.get(self._api_url, params={"url": url}, timeout=self._timeout)
            response.raise_for_status()
            data = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            LOGGER.debug("Wayback lookup failed for %s: %s", url, exc)
            return None

        closest = (data.get("archived_snapshots") or {}).get("closest") or {}
        if not closest.get("available") or not closest.get("url"):
            return None
        snapshot = str(closest["url"])
        # The API still hands out plain http addresses for captures.
        if snapshot.startswith("http://web.archive.org/"):
            snapshot = "https://" + snapshot[len("http://") :]
        return snapshot
