"""Core configuration dataclasses.

We keep config parsing outside the core, but these dataclasses define the
shape the core expects so adapters and app layers can build safely.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Tuple

from core.errors import InvalidLimitError


def require_positive(name: str, value: Optional[float]) -> None:
    """Reject zero or negative values; None means "no limit"."""

    if value is not None and value <= 0:
        raise InvalidLimitError(f"{name} must be positive, got {value}")


@dataclass(frozen=True)
class ResolverConfig:
    """Tunable defaults for the legacy URL strategy cascade."""

    acceptance_threshold: int = 60
    date_window_days: int = 3
    search_confidence: int = 55
    slug_variants: bool = False

    def __post_init__(self) -> None:
        if not 0 <= self.acceptance_threshold <= 100:
            raise InvalidLimitError("acceptance_threshold must be within 0..100")
        if self.date_window_days < 0:
            raise InvalidLimitError("date_window_days must not be negative")
        if not 0 <= self.search_confidence < 100:
            raise InvalidLimitError("search_confidence must be within 0..99")


@dataclass(frozen=True)
class RetryPolicy:
    """Extra attempts for retryable failures, with doubling backoff."""

    max_retries: int = 2
    backoff_base_seconds: float = 0.5

    def __post_init__(self) -> None:
        if self.max_retries < 0:
            raise InvalidLimitError("max_retries must not be negative")
        if self.backoff_base_seconds < 0:
            raise InvalidLimitError("backoff_base_seconds must not be negative")

    @property
    def max_attempts(self) -> int:
        return self.max_retries + 1

    def delay_before(self, attempt: int) -> float:
        """Return the backoff before the given 1-based attempt number."""

        if attempt <= 1:
            return 0.0
        return self.backoff_base_seconds * (2 ** (attempt - 2))


@dataclass(frozen=True)
class LinkCheckConfig:
    """Settings for link extraction and the shared worker pool."""

    concurrency: int = 5
    context_chars: int = 50
    internal_hosts: Tuple[str, ...] = ()
    scan_plain_urls: bool = False
    deadline_seconds: Optional[float] = None
    cache_ttl_seconds: float = 0

    def __post_init__(self) -> None:
        require_positive("concurrency", self.concurrency)
        require_positive("deadline_seconds", self.deadline_seconds)
        if self.context_chars < 0:
            raise InvalidLimitError("context_chars must not be negative")
        if self.cache_ttl_seconds < 0:
            raise InvalidLimitError("cache_ttl_seconds must not be negative")


@dataclass(frozen=True)
class BatchLimits:
    """Caller-supplied caps for one batch invocation. None means unbounded."""

    max_posts: Optional[int] = None
    max_links_per_post: Optional[int] = None
    max_links: Optional[int] = None

    def __post_init__(self) -> None:
        require_positive("max_posts", self.max_posts)
        require_positive("max_links_per_post", self.max_links_per_post)
        require_positive("max_links", self.max_links)


@dataclass(frozen=True)
class RateLimitConfig:
    """Fixed-window budget for batch-check invocations per caller."""

    window_seconds: float = 3600
    max_requests: int = 10

    def __post_init__(self) -> None:
        require_positive("window_seconds", self.window_seconds)
        require_positive("max_requests", self.max_requests)


@dataclass(frozen=True)
class ScheduleConfig:
    """Recurring batch check settings."""

    enabled: bool = False
    frequency: str = "weekly"
    time: str = "09:00"
    posts_to_check: int = 10
    next_run: Optional[str] = None
