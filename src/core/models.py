"""Core domain models.

These dataclasses are shared across the core and adapters to avoid tight
coupling to the content backend's raw response shapes.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from typing import Optional, Tuple


@dataclass(frozen=True)
class Post:
    """Read-only view of a post owned by the content backend."""

    id: int
    slug: str
    title: str
    published_at: datetime
    body_html: str


@dataclass(frozen=True)
class LegacyUrlKey:
    """Date and slug parsed from a legacy `/YYYY/MM/DD/slug/` permalink.

    The fields are stored as given; `to_date()` tells whether they form a
    real calendar date.
    """

    year: int
    month: int
    day: int
    slug: str

    def to_date(self) -> Optional[date]:
        """Return the encoded date, or None when it is out of calendar range."""

        try:
            return date(self.year, self.month, self.day)
        except (TypeError, ValueError):
            return None


class Strategy(str, Enum):
    """Resolution strategies, in the order the resolver tries them."""

    EXACT_MAPPING = "exact_mapping"
    EXACT_SLUG = "exact_slug"
    SLUG_VARIANT = "slug_variant"
    DATE_PROXIMITY = "date_proximity"
    FULL_TEXT_SEARCH = "full_text_search"


@dataclass(frozen=True)
class MatchResult:
    """A post proposed by one resolution strategy with its confidence (0-100)."""

    post: Post
    confidence: int
    strategy: Strategy

    def meets(self, threshold: int) -> bool:
        return self.confidence >= threshold


@dataclass(frozen=True)
class LegacyResolution:
    """Plain resolution result handed to the route layer."""

    current_slug: str
    confidence: int
    strategy: Strategy
    redirect: bool


class ProbeOutcome(str, Enum):
    """Tagged classification of one liveness attempt."""

    ALIVE = "alive"
    RETRYABLE_FAILURE = "retryable_failure"
    PERMANENT_FAILURE = "permanent_failure"


@dataclass(frozen=True)
class ProbeResult:
    """Outcome of a single liveness check against one URL."""

    status: Optional[int]
    error: Optional[str]
    retryable: bool

    @classmethod
    def from_status(cls, status: int, reason: str = "") -> "ProbeResult":
        """Classify an HTTP status: 2xx/3xx alive, 4xx permanent, 5xx retryable."""

        if status < 400:
            return cls(status=status, error=None, retryable=False)
        error = f"HTTP {status} {reason}".strip()
        return cls(status=status, error=error, retryable=status >= 500)

    @property
    def outcome(self) -> ProbeOutcome:
        if self.error is None:
            return ProbeOutcome.ALIVE
        if self.retryable:
            return ProbeOutcome.RETRYABLE_FAILURE
        return ProbeOutcome.PERMANENT_FAILURE

    @property
    def alive(self) -> bool:
        return self.outcome is ProbeOutcome.ALIVE

    @property
    def timed_out(self) -> bool:
        return self.status is None and bool(self.error) and "timeout" in self.error.lower()


@dataclass(frozen=True)
class Enrichment:
    """Replacement hints for a dead link."""

    archive_url: Optional[str] = None
    suggestions: Tuple[str, ...] = ()


@dataclass(frozen=True)
class ExtractedLink:
    """An outbound link found in a post body, with a short excerpt around it."""

    url: str
    context: str


@dataclass(frozen=True)
class LinkCheckResult:
    """Final outcome for one dead link found in one post."""

    url: str
    status: Optional[int]
    error: Optional[str]
    context: str
    post_id: int
    post_title: str
    post_slug: str
    archive_url: Optional[str]
    suggestions: Tuple[str, ...]
    retryable: bool
    checked_at: datetime


@dataclass(frozen=True)
class AggregateReport:
    """Summary of a batch check across one or more posts."""

    total_links: int
    dead_links: Tuple[LinkCheckResult, ...]
    working_links: int
    processing_time_ms: int
    checked_links: int = 0
    skipped_links: int = 0
    retryable_errors: int = 0
    forbidden_errors: int = 0
    timeout_errors: int = 0
    posts_checked: int = 0
    truncated: bool = False
    deadline_exceeded: bool = False
