from __future__ import annotations

import asyncio
from datetime import datetime
from typing import Optional

import settings
from core.config import ResolverConfig
from core.errors import PostLookupError
from core.known_mappings import KnownMappingTable
from core.models import LegacyUrlKey, Post, Strategy
from core.resolver import LegacyUrlResolver


class FakePostLookup:
    def __init__(self, posts: list[Post], search_results: Optional[list[Post]] = None) -> None:
        self.posts = posts
        self.search_results = search_results or []
        self.calls: list[str] = []
        self.fail_window = False

    async def get_post_by_slug(self, slug: str) -> Optional[Post]:
        self.calls.append(f"slug:{slug}")
        return next((post for post in self.posts if post.slug == slug), None)

    async def get_post_by_id(self, post_id: int) -> Optional[Post]:
        self.calls.append(f"id:{post_id}")
        return next((post for post in self.posts if post.id == post_id), None)

    async def get_posts_published_between(self, start: datetime, end: datetime) -> list[Post]:
        self.calls.append(f"between:{start.date()}:{end.date()}")
        if self.fail_window:
            raise PostLookupError("backend down")
        return [post for post in self.posts if start <= post.published_at <= end]

    async def search_posts(self, query: str) -> list[Post]:
        self.calls.append(f"search:{query}")
        return list(self.search_results)

    async def list_recent_posts(self, count: int) -> list[Post]:
        return self.posts[:count]


def _post(post_id: int, slug: str, published: datetime, title: str = "Unrelated") -> Post:
    return Post(id=post_id, slug=slug, title=title, published_at=published, body_html="")


def _resolver(lookup: FakePostLookup, mappings: Optional[dict] = None, **config) -> LegacyUrlResolver:
    return LegacyUrlResolver(lookup, KnownMappingTable(mappings or {}), ResolverConfig(**config))


def test_exact_slug_example_scenario() -> None:
    post = _post(
        42,
        "apartheid-the-nazis-and-mcebo-dlamini",
        datetime(2015, 5, 8, 9, 30),
        title="Apartheid, the Nazis and Mcebo Dlamini",
    )
    resolver = _resolver(FakePostLookup([post]))

    key = LegacyUrlKey(2015, 5, 8, "apartheid-the-nazis-and-mcebo-dlamini")
    result = asyncio.run(resolver.resolve(key))

    assert result is not None
    assert result.post.slug == "apartheid-the-nazis-and-mcebo-dlamini"
    assert result.confidence == 95
    assert result.strategy is Strategy.EXACT_SLUG


def test_known_mapping_wins_over_other_strategies() -> None:
    legacy = _post(1, "old-story", datetime(2016, 3, 2), title="Old story")
    current = _post(2, "new-story", datetime(2016, 3, 2), title="New story")
    lookup = FakePostLookup([legacy, current], search_results=[legacy])
    resolver = _resolver(lookup, {"old-story": "new-story"})

    result = asyncio.run(resolver.resolve(LegacyUrlKey(2016, 3, 2, "old-story")))

    assert result is not None
    assert result.strategy is Strategy.EXACT_MAPPING
    assert result.confidence == 100
    assert result.post.id == 2
    assert lookup.calls == ["slug:new-story"]


def test_known_mapping_to_missing_post_falls_through() -> None:
    legacy = _post(1, "old-story", datetime(2016, 3, 2))
    resolver = _resolver(FakePostLookup([legacy]), {"old-story": "gone-story"})

    result = asyncio.run(resolver.resolve(LegacyUrlKey(2016, 3, 2, "old-story")))

    assert result is not None
    assert result.strategy is Strategy.EXACT_SLUG


def test_out_of_range_dates_make_no_lookups() -> None:
    lookup = FakePostLookup([_post(1, "story", datetime(2015, 1, 1))], search_results=[])
    resolver = _resolver(lookup)

    for key in (
        LegacyUrlKey(2015, 13, 1, "story"),
        LegacyUrlKey(2015, 1, 32, "story"),
        LegacyUrlKey(2015, 2, 30, "story"),
        LegacyUrlKey(2015, 0, 10, "story"),
    ):
        assert asyncio.run(resolver.resolve(key)) is None

    assert lookup.calls == []


def test_date_proximity_scores_token_overlap() -> None:
    candidate = _post(5, "big-news-today-updated", datetime(2020, 1, 11))
    lookup = FakePostLookup([candidate])
    resolver = _resolver(lookup)

    result = asyncio.run(resolver.resolve(LegacyUrlKey(2020, 1, 10, "big-news-today")))

    assert result is not None
    assert result.strategy is Strategy.DATE_PROXIMITY
    # 3 shared tokens of 4 -> 0.75 * 90 = 67.5, rounded half up.
    assert result.confidence == 68
    assert "between:2020-01-07:2020-01-13" in lookup.calls


def test_date_proximity_is_capped_below_exact_matches() -> None:
    candidate = _post(5, "today-news-big", datetime(2020, 1, 10))
    resolver = _resolver(FakePostLookup([candidate]))

    result = asyncio.run(resolver.resolve(LegacyUrlKey(2020, 1, 10, "big-news-today")))

    assert result is not None
    assert result.strategy is Strategy.DATE_PROXIMITY
    assert result.confidence == 90


def test_date_proximity_uses_title_tokens() -> None:
    candidate = _post(8, "p-1234", datetime(2020, 1, 10), title="Big News Today!")
    resolver = _resolver(FakePostLookup([candidate]))

    result = asyncio.run(resolver.resolve(LegacyUrlKey(2020, 1, 10, "big-news-today")))

    assert result is not None
    assert result.post.id == 8
    assert result.confidence == 90


def test_date_proximity_tie_breaks_on_distance_then_id() -> None:
    posts = [
        _post(9, "big-news-today-a", datetime(2020, 1, 12)),
        _post(7, "big-news-today-b", datetime(2020, 1, 11)),
        _post(4, "big-news-today-c", datetime(2020, 1, 9)),
    ]
    resolver = _resolver(FakePostLookup(posts))
    key = LegacyUrlKey(2020, 1, 10, "big-news-today")

    first = asyncio.run(resolver.resolve(key))
    second = asyncio.run(resolver.resolve(key))

    assert first is not None and second is not None
    # 7 and 4 are both one day away; the lower id wins.
    assert first.post.id == 4
    assert second.post.id == first.post.id


def test_weak_candidates_fall_through_to_search() -> None:
    weak = _post(3, "alpha-zeta", datetime(2019, 6, 1))
    found = _post(11, "alpha-beta-gamma-delta-revisited", datetime(2021, 1, 1))
    lookup = FakePostLookup([weak], search_results=[found, weak])
    resolver = _resolver(lookup)

    result = asyncio.run(resolver.resolve(LegacyUrlKey(2019, 6, 1, "alpha-beta-gamma-delta")))

    assert result is not None
    assert result.strategy is Strategy.FULL_TEXT_SEARCH
    assert result.confidence == 55
    assert result.post.id == 11
    assert not result.meets(resolver.config.acceptance_threshold)
    assert lookup.calls[-1] == "search:alpha beta gamma delta"


def test_no_match_returns_none() -> None:
    resolver = _resolver(FakePostLookup([]))
    assert asyncio.run(resolver.resolve(LegacyUrlKey(2018, 4, 4, "missing-post"))) is None


def test_slug_variants_are_opt_in() -> None:
    post = _post(6, "big-story-2015", datetime(2010, 1, 1), title="Elsewhere")

    disabled = _resolver(FakePostLookup([post]))
    assert asyncio.run(disabled.resolve(LegacyUrlKey(2015, 7, 7, "the-big-story-2015"))) is None

    enabled = _resolver(FakePostLookup([post]), slug_variants=True)
    result = asyncio.run(enabled.resolve(LegacyUrlKey(2015, 7, 7, "the-big-story-2015")))
    assert result is not None
    assert result.strategy is Strategy.SLUG_VARIANT
    assert result.confidence == 80


def test_backend_failure_in_one_strategy_does_not_stop_cascade() -> None:
    found = _post(12, "storm-warning-issued", datetime(2017, 2, 2))
    lookup = FakePostLookup([], search_results=[found])
    lookup.fail_window = True
    resolver = _resolver(lookup)

    result = asyncio.run(resolver.resolve(LegacyUrlKey(2017, 2, 2, "storm-warning")))

    assert result is not None
    assert result.strategy is Strategy.FULL_TEXT_SEARCH


def test_tunable_threshold_accepts_search_result_as_confident() -> None:
    found = _post(12, "storm-warning-issued", datetime(2017, 2, 2))
    resolver = _resolver(FakePostLookup([], search_results=[found]), acceptance_threshold=50)

    result = asyncio.run(resolver.resolve(LegacyUrlKey(2017, 2, 2, "storm-warning")))

    assert result is not None
    assert result.meets(50)


def test_shipped_mappings_keep_exact_slug_scenario() -> None:
    post = _post(42, "apartheid-the-nazis-and-mcebo-dlamini", datetime(2015, 5, 8, 9, 30))
    resolver = LegacyUrlResolver(FakePostLookup([post]), KnownMappingTable(settings.KNOWN_MAPPINGS))

    result = asyncio.run(resolver.resolve(LegacyUrlKey(2015, 5, 8, "apartheid-the-nazis-and-mcebo-dlamini")))

    assert result is not None
    assert result.strategy is Strategy.EXACT_SLUG
    assert result.confidence == 95
    # Curated entries must rewrite to a different slug.
    assert all(legacy != current for legacy, current in KnownMappingTable(settings.KNOWN_MAPPINGS).items())
