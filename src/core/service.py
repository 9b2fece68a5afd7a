"""Facade exposed to the route and CLI layers.

Validates caller input up front, applies the per-caller rate limit and hands
plain results back, so callers never deal with ports directly.
"""

from __future__ import annotations

import logging
from typing import List, Optional, Union

from core.config import BatchLimits
from core.errors import InvalidLimitError, ValidationError
from core.legacy_urls import make_legacy_key, parse_legacy_path
from core.link_checker import DeadLinkChecker
from core.models import AggregateReport, LegacyResolution, LegacyUrlKey, LinkCheckResult
from core.ports import PostLookupPort
from core.rate_limit import FixedWindowRateLimiter
from core.resolver import LegacyUrlResolver

LOGGER = logging.getLogger(__name__)

DEFAULT_CALLER = "anonymous"


class IntegrityService:
    """Entry points for legacy URL resolution and dead link checks."""

    def __init__(
        self,
        posts: PostLookupPort,
        resolver: LegacyUrlResolver,
        checker: DeadLinkChecker,
        *,
        rate_limiter: Optional[FixedWindowRateLimiter] = None,
        default_limits: Optional[BatchLimits] = None,
    ) -> None:
        self._posts = posts
        self._resolver = resolver
        self._checker = checker
        self._rate_limiter = rate_limiter
        self._default_limits = default_limits or BatchLimits()

    async def resolve_legacy_url(
        self,
        year: Union[int, str],
        month: Union[int, str],
        day: Union[int, str],
        slug: str,
    ) -> Optional[LegacyResolution]:
        """Resolve route segments; invalid segments raise InvalidLegacyUrlError."""

        return await self._resolve(make_legacy_key(year, month, day, slug))

    async def resolve_legacy_path(self, path: str) -> Optional[LegacyResolution]:
        return await self._resolve(parse_legacy_path(path))

    async def _resolve(self, key: LegacyUrlKey) -> Optional[LegacyResolution]:
        match = await self._resolver.resolve(key)
        if match is None:
            return None
        return LegacyResolution(
            current_slug=match.post.slug,
            confidence=match.confidence,
            strategy=match.strategy,
            redirect=match.meets(self._resolver.config.acceptance_threshold),
        )

    async def check_single_post(self, post_id: int) -> Optional[List[LinkCheckResult]]:
        """Return dead links for one post, or None when the post does not exist."""

        if isinstance(post_id, bool) or not isinstance(post_id, int) or post_id <= 0:
            raise ValidationError(f"post_id must be a positive integer, got {post_id!r}")
        post = await self._posts.get_post_by_id(post_id)
        if post is None:
            LOGGER.info("Post %s not found", post_id)
            return None
        return await self._checker.check_post(post, max_links=self._default_limits.max_links_per_post)

    async def check_post_batch(
        self,
        max_posts: Optional[int] = None,
        max_links_per_post: Optional[int] = None,
        *,
        caller: Optional[str] = None,
        max_links: Optional[int] = None,
        deadline_seconds: Optional[float] = None,
    ) -> AggregateReport:
        """Check the most recent posts under caller-supplied caps."""

        defaults = self._default_limits
        limits = BatchLimits(
            max_posts=max_posts if max_posts is not None else defaults.max_posts,
            max_links_per_post=max_links_per_post if max_links_per_post is not None else defaults.max_links_per_post,
            max_links=max_links if max_links is not None else defaults.max_links,
        )
        if limits.max_posts is None:
            raise ValidationError("max_posts is required for batch checks")
        if deadline_seconds is not None and deadline_seconds <= 0:
            raise InvalidLimitError("deadline_seconds must be positive")

        if self._rate_limiter is not None:
            remaining = self._rate_limiter.check(caller or DEFAULT_CALLER)
            LOGGER.debug("Batch check budget for %s: %s remaining", caller or DEFAULT_CALLER, remaining)

        posts = await self._posts.list_recent_posts(limits.max_posts)
        return await self._checker.check_posts(posts, limits, deadline_seconds=deadline_seconds)
