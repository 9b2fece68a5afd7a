"""Legacy permalink resolution (core domain).

Maps `/YYYY/MM/DD/slug/` keys from the previous platform to current posts
through a cascade of strategies, each scoring its proposal with a confidence:

1) Curated known mappings (always 100, never overridden)
2) The legacy slug as an exact current slug (95)
3) Optional slug variants as exact slugs (80)
4) Posts published within a window around the legacy date, scored by token
   overlap (at most 90)
5) Full-text search on the slug words (fixed, below the acceptance threshold)

The first strategy whose confidence meets the acceptance threshold wins. The
search fallback is returned even when it is weak so callers can offer a
search page instead of redirecting.
"""

from __future__ import annotations

import logging
from datetime import date, datetime, time, timedelta
from typing import Awaitable, Callable, List, Optional, Tuple

from core.config import ResolverConfig
from core.errors import PostLookupError
from core.known_mappings import KnownMappingTable
from core.models import LegacyUrlKey, MatchResult, Post, Strategy
from core.ports import PostLookupPort
from core.similarity import candidate_ratio, proximity_confidence, slug_variants

LOGGER = logging.getLogger(__name__)

EXACT_MAPPING_CONFIDENCE = 100
EXACT_SLUG_CONFIDENCE = 95
SLUG_VARIANT_CONFIDENCE = 80

_StrategyFn = Callable[[LegacyUrlKey, date], Awaitable[Optional[MatchResult]]]


class LegacyUrlResolver:
    """Runs the strategy cascade against an injected post lookup."""

    def __init__(
        self,
        posts: PostLookupPort,
        known_mappings: KnownMappingTable,
        config: Optional[ResolverConfig] = None,
    ) -> None:
        self._posts = posts
        self._known_mappings = known_mappings
        self._config = config or ResolverConfig()

    @property
    def config(self) -> ResolverConfig:
        return self._config

    def _cascade(self) -> List[Tuple[Strategy, _StrategyFn]]:
        cascade: List[Tuple[Strategy, _StrategyFn]] = [
            (Strategy.EXACT_MAPPING, self._exact_mapping),
            (Strategy.EXACT_SLUG, self._exact_slug),
        ]
        if self._config.slug_variants:
            cascade.append((Strategy.SLUG_VARIANT, self._slug_variant))
        cascade.append((Strategy.DATE_PROXIMITY, self._date_proximity))
        return cascade

    async def resolve(self, key: LegacyUrlKey) -> Optional[MatchResult]:
        """Resolve a legacy key to a current post, or None when nothing fits."""

        target = key.to_date()
        # Out-of-range dates are rejected before any lookup.
        if target is None or not key.slug.strip():
            LOGGER.info("Rejected legacy key %s/%s/%s/%s", key.year, key.month, key.day, key.slug)
            return None

        threshold = self._config.acceptance_threshold
        for strategy, attempt in self._cascade():
            try:
                result = await attempt(key, target)
            except PostLookupError as exc:
                LOGGER.warning("Strategy %s failed for %s: %s", strategy.value, key.slug, exc)
                continue
            if result is None:
                LOGGER.debug("Strategy %s found nothing for %s", strategy.value, key.slug)
                continue
            if result.meets(threshold):
                self._log_match(key, result)
                return result
            LOGGER.debug(
                "Strategy %s below threshold for %s (%s < %s)",
                strategy.value,
                key.slug,
                result.confidence,
                threshold,
            )

        try:
            result = await self._full_text_search(key, target)
        except PostLookupError as exc:
            LOGGER.warning("Search fallback failed for %s: %s", key.slug, exc)
            return None
        if result is None:
            LOGGER.info("No match for legacy slug %s", key.slug)
            return None
        self._log_match(key, result)
        return result

    @staticmethod
    def _log_match(key: LegacyUrlKey, result: MatchResult) -> None:
        LOGGER.info(
            "Legacy slug %s resolved to %s via %s (confidence %s)",
            key.slug,
            result.post.slug,
            result.strategy.value,
            result.confidence,
        )

    async def _exact_mapping(self, key: LegacyUrlKey, target: date) -> Optional[MatchResult]:
        mapped_slug = self._known_mappings.lookup(key.slug)
        if mapped_slug is None:
            return None
        post = await self._posts.get_post_by_slug(mapped_slug)
        if post is None:
            LOGGER.warning("Known mapping %s -> %s points to a missing post", key.slug, mapped_slug)
            return None
        return MatchResult(post=post, confidence=EXACT_MAPPING_CONFIDENCE, strategy=Strategy.EXACT_MAPPING)

    async def _exact_slug(self, key: LegacyUrlKey, target: date) -> Optional[MatchResult]:
        post = await self._posts.get_post_by_slug(key.slug)
        if post is None:
            return None
        return MatchResult(post=post, confidence=EXACT_SLUG_CONFIDENCE, strategy=Strategy.EXACT_SLUG)

    async def _slug_variant(self, key: LegacyUrlKey, target: date) -> Optional[MatchResult]:
        for variant in slug_variants(key.slug):
            post = await self._posts.get_post_by_slug(variant)
            if post is not None:
                return MatchResult(post=post, confidence=SLUG_VARIANT_CONFIDENCE, strategy=Strategy.SLUG_VARIANT)
        return None

    async def _date_proximity(self, key: LegacyUrlKey, target: date) -> Optional[MatchResult]:
        window = timedelta(days=self._config.date_window_days)
        start = datetime.combine(target - window, time.min)
        end = datetime.combine(target + window, time.max)
        candidates = await self._posts.get_posts_published_between(start, end)
        return best_proximity_match(key.slug, target, candidates)

    async def _full_text_search(self, key: LegacyUrlKey, target: date) -> Optional[MatchResult]:
        query = " ".join(part for part in key.slug.split("-") if part)
        if not query:
            return None
        results = await self._posts.search_posts(query)
        if not results:
            return None
        return MatchResult(
            post=results[0],
            confidence=self._config.search_confidence,
            strategy=Strategy.FULL_TEXT_SEARCH,
        )


def best_proximity_match(legacy_slug: str, target: date, candidates: List[Post]) -> Optional[MatchResult]:
    """Pick the highest-confidence candidate, deterministically.

    Ties on confidence go to the smallest date distance, then the lowest id.
    Candidates sharing no tokens with the legacy slug are ignored.
    """

    best: Optional[Tuple[Tuple[int, int, int], Post, int]] = None
    for post in candidates:
        confidence = proximity_confidence(candidate_ratio(legacy_slug, post.slug, post.title))
        if confidence <= 0:
            continue
        distance = abs((post.published_at.date() - target).days)
        # Sorting key: higher confidence first, then closer date, then lower id.
        rank = (-confidence, distance, post.id)
        if best is None or rank < best[0]:
            best = (rank, post, confidence)

    if best is None:
        return None
    _, post, confidence = best
    return MatchResult(post=post, confidence=confidence, strategy=Strategy.DATE_PROXIMITY)
