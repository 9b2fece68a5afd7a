"""Ports (interfaces) used by the core.

Ports define the minimal contracts for the content backend, the archive
index, link probing and report delivery so that the core can be reused with
different backends and tested with in-memory fakes.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional, Protocol

from core.models import AggregateReport, Enrichment, Post, ProbeResult


class PostLookupPort(Protocol):
    """Read access to posts in the content backend."""

    async def get_post_by_slug(self, slug: str) -> Optional[Post]:
        ...

    async def get_post_by_id(self, post_id: int) -> Optional[Post]:
        ...

    async def get_posts_published_between(self, start: datetime, end: datetime) -> list[Post]:
        ...

    async def search_posts(self, query: str) -> list[Post]:
        ...

    async def list_recent_posts(self, count: int) -> list[Post]:
        ...


class SnapshotIndexPort(Protocol):
    """Lookup of archived captures for a URL."""

    async def find_nearest_snapshot(self, url: str) -> Optional[str]:
        ...


class ProberPort(Protocol):
    """A single liveness attempt; retries are the caller's concern."""

    async def check(self, url: str) -> ProbeResult:
        ...


class EnricherPort(Protocol):
    """Replacement hints for a link that is finally dead."""

    async def enrich(self, url: str) -> Enrichment:
        ...


class ReportNotifierPort(Protocol):
    """Delivery of a finished batch report to operators."""

    async def send(self, report: AggregateReport) -> None:
        ...
