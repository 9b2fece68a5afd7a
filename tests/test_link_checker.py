from __future__ import annotations

import asyncio
from datetime import datetime
from typing import Optional

import pytest

from core.config import BatchLimits, LinkCheckConfig, RetryPolicy
from core.errors import InvalidLimitError
from core.link_checker import DeadLinkChecker
from core.models import Enrichment, Post, ProbeResult
from core.result_cache import ResultCache


class FakeProber:
    def __init__(self, responses: Optional[dict[str, ProbeResult]] = None, delay: float = 0.0) -> None:
        self.responses = responses or {}
        self.delay = delay
        self.calls: dict[str, int] = {}
        self.in_flight = 0
        self.max_in_flight = 0

    async def check(self, url: str) -> ProbeResult:
        self.calls[url] = self.calls.get(url, 0) + 1
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if self.delay:
                await asyncio.sleep(self.delay)
            return self.responses.get(url, ProbeResult.from_status(200, "OK"))
        finally:
            self.in_flight -= 1


class SlowProber(FakeProber):
    def __init__(self, slow_urls: set[str]) -> None:
        super().__init__()
        self.slow_urls = slow_urls

    async def check(self, url: str) -> ProbeResult:
        if url in self.slow_urls:
            await asyncio.sleep(30)
        return await super().check(url)


class FakeEnricher:
    def __init__(self, archive: Optional[dict[str, str]] = None, fail: bool = False) -> None:
        self.archive = archive or {}
        self.fail = fail
        self.calls: list[str] = []

    async def enrich(self, url: str) -> Enrichment:
        self.calls.append(url)
        if self.fail:
            raise RuntimeError("archive offline")
        snapshot = self.archive.get(url)
        return Enrichment(archive_url=snapshot, suggestions=("use the archive",) if snapshot else ())


async def _no_sleep(delay: float) -> None:
    return None


def _post(post_id: int, *urls: str) -> Post:
    body = " ".join(f'<p>Item {index} <a href="{url}">link</a></p>' for index, url in enumerate(urls))
    return Post(id=post_id, slug=f"post-{post_id}", title=f"Post {post_id}", published_at=datetime(2020, 1, 1), body_html=body)


def _checker(prober: FakeProber, enricher: Optional[FakeEnricher] = None, **kwargs) -> DeadLinkChecker:
    config = kwargs.pop("config", LinkCheckConfig())
    return DeadLinkChecker(prober, enricher or FakeEnricher(), config, RetryPolicy(), sleep=_no_sleep, **kwargs)


def test_server_error_example_scenario() -> None:
    prober = FakeProber({"https://dead.example/x": ProbeResult.from_status(500, "Internal Server Error")})
    post = Post(42, "example", "Example", datetime(2020, 1, 1), '<a href="https://dead.example/x">x</a>')

    report = asyncio.run(_checker(prober).check_posts([post]))

    assert prober.calls == {"https://dead.example/x": 3}
    assert len(report.dead_links) == 1
    dead = report.dead_links[0]
    assert dead.status == 500
    assert dead.retryable is True
    assert dead.post_id == 42
    assert report.working_links == 0
    assert report.total_links == 1
    assert report.retryable_errors == 1


def test_alive_and_not_found_links() -> None:
    prober = FakeProber({"https://gone.example/": ProbeResult.from_status(404, "Not Found")})
    post = _post(1, "https://ok.example/", "https://gone.example/")

    dead = asyncio.run(_checker(prober).check_post(post))

    assert [link.url for link in dead] == ["https://gone.example/"]
    assert dead[0].retryable is False
    assert dead[0].error == "HTTP 404 Not Found"
    assert "Item 1" in dead[0].context
    assert prober.calls == {"https://ok.example/": 1, "https://gone.example/": 1}


def test_timeout_on_every_attempt_is_retryable() -> None:
    timeout = ProbeResult(status=None, error="Request timeout", retryable=True)
    prober = FakeProber({"https://slow.example/": timeout})

    report = asyncio.run(_checker(prober).check_posts([_post(1, "https://slow.example/")]))

    assert prober.calls["https://slow.example/"] == 3
    assert report.dead_links[0].retryable is True
    assert report.dead_links[0].status is None
    assert report.timeout_errors == 1


def test_empty_batch_report() -> None:
    report = asyncio.run(_checker(FakeProber()).check_posts([]))

    assert report.total_links == 0
    assert report.dead_links == ()
    assert report.working_links == 0
    assert report.processing_time_ms >= 0
    assert not report.truncated


def test_concurrency_never_exceeds_cap() -> None:
    prober = FakeProber(delay=0.01)
    posts = [
        _post(1, *[f"https://a.example/{index}" for index in range(8)]),
        _post(2, *[f"https://b.example/{index}" for index in range(8)]),
    ]
    checker = _checker(prober, config=LinkCheckConfig(concurrency=3))

    report = asyncio.run(checker.check_posts(posts))

    assert report.working_links == 16
    assert prober.max_in_flight == 3


def test_dead_links_are_enriched() -> None:
    prober = FakeProber({"https://gone.example/": ProbeResult.from_status(410, "Gone")})
    enricher = FakeEnricher({"https://gone.example/": "https://web.archive.org/web/2019/https://gone.example/"})

    dead = asyncio.run(_checker(prober, enricher).check_post(_post(1, "https://gone.example/", "https://ok.example/")))

    assert enricher.calls == ["https://gone.example/"]
    assert dead[0].archive_url == "https://web.archive.org/web/2019/https://gone.example/"
    assert dead[0].suggestions == ("use the archive",)


def test_enrichment_failure_keeps_dead_result() -> None:
    prober = FakeProber({"https://gone.example/": ProbeResult.from_status(404)})

    dead = asyncio.run(_checker(prober, FakeEnricher(fail=True)).check_post(_post(1, "https://gone.example/")))

    assert len(dead) == 1
    assert dead[0].archive_url is None
    assert dead[0].suggestions == ()


def test_forbidden_links_are_counted() -> None:
    prober = FakeProber({"https://private.example/": ProbeResult.from_status(403, "Forbidden")})

    report = asyncio.run(_checker(prober).check_posts([_post(1, "https://private.example/")]))

    assert report.forbidden_errors == 1
    assert report.retryable_errors == 0


def test_post_and_link_caps_truncate_the_batch() -> None:
    prober = FakeProber()
    posts = [_post(index, *[f"https://p{index}.example/{n}" for n in range(4)]) for index in range(1, 5)]

    report = asyncio.run(
        _checker(prober).check_posts(posts, BatchLimits(max_posts=3, max_links_per_post=2, max_links=5))
    )

    # post 1: 2 links, post 2: 2 links, post 3: 1 link left in the budget
    assert report.working_links == 5
    assert report.posts_checked == 3
    assert report.truncated is True
    assert report.skipped_links == 2 + 2 + 3
    assert sum(prober.calls.values()) == 5


def test_total_link_cap_skips_remaining_posts() -> None:
    prober = FakeProber()
    posts = [_post(1, "https://a.example/1", "https://a.example/2"), _post(2, "https://b.example/1")]

    report = asyncio.run(_checker(prober).check_posts(posts, BatchLimits(max_links=2)))

    assert report.working_links == 2
    assert report.posts_checked == 1
    assert report.skipped_links == 1
    assert report.truncated is True


def test_deadline_returns_partial_results() -> None:
    prober = SlowProber({"https://slow.example/"})
    posts = [
        _post(1, "https://fast.example/", "https://slow.example/"),
        _post(2, "https://later.example/"),
    ]

    report = asyncio.run(_checker(prober).check_posts(posts, deadline_seconds=0.2))

    assert report.deadline_exceeded is True
    assert report.working_links == 1
    assert report.skipped_links == 2
    assert "https://later.example/" not in prober.calls


def test_invalid_deadline_is_rejected() -> None:
    with pytest.raises(InvalidLimitError):
        asyncio.run(_checker(FakeProber()).check_posts([], deadline_seconds=0))


def test_cache_avoids_repeat_probes() -> None:
    prober = FakeProber({"https://gone.example/": ProbeResult.from_status(404)})
    checker = _checker(prober, cache=ResultCache(ttl_seconds=60))
    posts = [_post(1, "https://gone.example/"), _post(2, "https://gone.example/#again")]

    report = asyncio.run(checker.check_posts(posts))

    assert prober.calls == {"https://gone.example/": 1}
    assert [link.post_id for link in report.dead_links] == [1, 2]


def test_unexpected_prober_error_is_skipped() -> None:
    class BrokenProber(FakeProber):
        async def check(self, url: str) -> ProbeResult:
            raise RuntimeError("boom")

    report = asyncio.run(_checker(BrokenProber()).check_posts([_post(1, "https://x.example/")]))

    assert report.dead_links == ()
    assert report.skipped_links == 1
    assert report.total_links == 0


def test_internal_hosts_are_not_checked() -> None:
    prober = FakeProber()
    config = LinkCheckConfig(internal_hosts=("medialternatives.com",))
    post = _post(1, "https://medialternatives.com/about", "https://ext.example/")

    asyncio.run(_checker(prober, config=config).check_post(post))

    assert list(prober.calls) == ["https://ext.example/"]


def test_skipped_counts_every_unchecked_link() -> None:
    prober = FakeProber()
    posts = [
        _post(1, *[f"https://a.example/{n}" for n in range(4)]),
        _post(2, *[f"https://b.example/{n}" for n in range(4)]),
    ]

    report = asyncio.run(_checker(prober).check_posts(posts, BatchLimits(max_links_per_post=2, max_links=2)))

    # 2 cut from post 1 by the per-post cap, all 4 of post 2 once the budget is spent
    assert report.checked_links == 2
    assert report.skipped_links == 6
    assert report.checked_links + report.skipped_links == 8
