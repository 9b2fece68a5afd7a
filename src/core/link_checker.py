"""Dead link checking across posts (core domain).

This module is integration-agnostic. It only relies on ports for probing and
archive lookups. One invocation (a single post or a batch) owns one bounded
worker pool:

1) Extract unique outbound links from each post body
2) Apply the caller's post and link caps
3) Probe every link under the shared semaphore, retrying transient failures
4) Enrich links that are finally dead with archive hints
5) Aggregate dead results and the alive count, stopping at the deadline
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, List, Optional, Sequence

from core.config import BatchLimits, LinkCheckConfig, RetryPolicy, require_positive
from core.links import extract_links, link_key
from core.models import AggregateReport, Enrichment, ExtractedLink, LinkCheckResult, Post, ProbeResult
from core.ports import EnricherPort, ProberPort
from core.result_cache import ResultCache
from core.retry import Sleep, check_with_retry

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class _LinkOutcome:
    link: ExtractedLink
    result: ProbeResult
    enrichment: Optional[Enrichment]


class _Run:
    """Mutable state for one invocation; only touched between awaits."""

    def __init__(
        self,
        concurrency: int,
        limits: BatchLimits,
        deadline_at: Optional[float],
        clock: Callable[[], float],
    ) -> None:
        self.semaphore = asyncio.Semaphore(concurrency)
        self.limits = limits
        self.deadline_at = deadline_at
        self._clock = clock
        self.dead: List[LinkCheckResult] = []
        self.working = 0
        self.skipped = 0
        self.retryable_errors = 0
        self.forbidden_errors = 0
        self.timeout_errors = 0
        self.posts_checked = 0
        self.links_enqueued = 0
        self.truncated = False
        self.deadline_exceeded = False

    def remaining_time(self) -> Optional[float]:
        if self.deadline_at is None:
            return None
        return self.deadline_at - self._clock()

    def link_budget(self) -> Optional[int]:
        if self.limits.max_links is None:
            return None
        return max(self.limits.max_links - self.links_enqueued, 0)

    def record(self, post: Post, outcome: _LinkOutcome) -> Optional[LinkCheckResult]:
        result = outcome.result
        if result.alive:
            self.working += 1
            return None

        if result.retryable:
            self.retryable_errors += 1
        if result.status == 403:
            self.forbidden_errors += 1
        if result.timed_out:
            self.timeout_errors += 1

        enrichment = outcome.enrichment or Enrichment()
        dead = LinkCheckResult(
            url=outcome.link.url,
            status=result.status,
            error=result.error,
            context=outcome.link.context,
            post_id=post.id,
            post_title=post.title,
            post_slug=post.slug,
            archive_url=enrichment.archive_url,
            suggestions=tuple(enrichment.suggestions),
            retryable=result.retryable,
            checked_at=datetime.now(timezone.utc),
        )
        self.dead.append(dead)
        return dead


class DeadLinkChecker:
    """Checks outbound links in posts under a shared concurrency cap."""

    def __init__(
        self,
        prober: ProberPort,
        enricher: EnricherPort,
        config: Optional[LinkCheckConfig] = None,
        retry_policy: Optional[RetryPolicy] = None,
        *,
        cache: Optional[ResultCache] = None,
        sleep: Sleep = asyncio.sleep,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._prober = prober
        self._enricher = enricher
        self._config = config or LinkCheckConfig()
        self._retry = retry_policy or RetryPolicy()
        self._cache = cache
        self._sleep = sleep
        self._clock = clock

    def extract(self, post: Post) -> List[ExtractedLink]:
        return extract_links(
            post.body_html,
            internal_hosts=self._config.internal_hosts,
            context_chars=self._config.context_chars,
            scan_plain_urls=self._config.scan_plain_urls,
        )

    def _start_run(self, limits: BatchLimits, deadline_seconds: Optional[float]) -> _Run:
        require_positive("deadline_seconds", deadline_seconds)
        if deadline_seconds is None:
            deadline_seconds = self._config.deadline_seconds
        deadline_at = self._clock() + deadline_seconds if deadline_seconds is not None else None
        return _Run(self._config.concurrency, limits, deadline_at, self._clock)

    async def check_post(
        self,
        post: Post,
        *,
        max_links: Optional[int] = None,
        deadline_seconds: Optional[float] = None,
    ) -> List[LinkCheckResult]:
        """Return the dead links of one post; alive links are only counted."""

        run = self._start_run(BatchLimits(max_links_per_post=max_links), deadline_seconds)
        return await self._check_post(run, post)

    async def check_posts(
        self,
        posts: Sequence[Post],
        limits: Optional[BatchLimits] = None,
        *,
        deadline_seconds: Optional[float] = None,
    ) -> AggregateReport:
        """Check posts one after another and aggregate a report.

        Posts run sequentially so the worker pool bounds outstanding requests
        across the whole batch. Hitting a cap or the deadline stops new checks
        and returns the partial report with `truncated` or
        `deadline_exceeded` set.
        """

        started = time.monotonic()
        limits = limits or BatchLimits()
        run = self._start_run(limits, deadline_seconds)

        selected = list(posts)
        if limits.max_posts is not None and len(selected) > limits.max_posts:
            LOGGER.warning("Batch capped at %s of %s posts", limits.max_posts, len(selected))
            selected = selected[: limits.max_posts]
            run.truncated = True

        for index, post in enumerate(selected):
            if run.deadline_exceeded or run.link_budget() == 0:
                # Remaining posts are reported as skipped, not silently dropped.
                pending_links = sum(len(self.extract(rest)) for rest in selected[index:])
                if pending_links and run.link_budget() == 0:
                    run.truncated = True
                run.skipped += pending_links
                break
            await self._check_post(run, post)

        report = AggregateReport(
            total_links=len(run.dead) + run.working,
            dead_links=tuple(run.dead),
            working_links=run.working,
            processing_time_ms=max(int((time.monotonic() - started) * 1000), 0),
            checked_links=len(run.dead) + run.working,
            skipped_links=run.skipped,
            retryable_errors=run.retryable_errors,
            forbidden_errors=run.forbidden_errors,
            timeout_errors=run.timeout_errors,
            posts_checked=run.posts_checked,
            truncated=run.truncated,
            deadline_exceeded=run.deadline_exceeded,
        )
        LOGGER.info(
            "Checked %s posts: %s links, %s dead, %s working, %s skipped in %sms",
            report.posts_checked,
            report.total_links,
            len(report.dead_links),
            report.working_links,
            report.skipped_links,
            report.processing_time_ms,
        )
        return report

    async def _check_post(self, run: _Run, post: Post) -> List[LinkCheckResult]:
        links = self.extract(post)
        LOGGER.info("Checking %s links in post %s (%s)", len(links), post.id, post.slug)

        allowed = len(links)
        if run.limits.max_links_per_post is not None:
            allowed = min(allowed, run.limits.max_links_per_post)
        budget = run.link_budget()
        if budget is not None:
            allowed = min(allowed, budget)
        if allowed < len(links):
            LOGGER.warning("Post %s capped at %s of %s links", post.id, allowed, len(links))
            run.skipped += len(links) - allowed
            run.truncated = True
            links = links[:allowed]

        remaining = run.remaining_time()
        if remaining is not None and remaining <= 0:
            self._mark_deadline(run, len(links))
            return []

        run.posts_checked += 1
        if not links:
            return []

        run.links_enqueued += len(links)
        tasks = [asyncio.ensure_future(self._check_link(run, link)) for link in links]
        done, pending = await asyncio.wait(tasks, timeout=remaining)
        if pending:
            for task in pending:
                task.cancel()
            await asyncio.gather(*pending, return_exceptions=True)
            self._mark_deadline(run, len(pending))

        dead: List[LinkCheckResult] = []
        for task in tasks:
            if task not in done:
                continue
            outcome = task.result()
            if outcome is None:
                run.skipped += 1
                continue
            recorded = run.record(post, outcome)
            if recorded is not None:
                LOGGER.info("Dead link in post %s: %s (%s)", post.id, recorded.url, recorded.error)
                dead.append(recorded)
        return dead

    @staticmethod
    def _mark_deadline(run: _Run, unchecked: int) -> None:
        if not run.deadline_exceeded:
            LOGGER.warning("Deadline reached; returning partial results")
        run.deadline_exceeded = True
        run.skipped += unchecked

    async def _check_link(self, run: _Run, link: ExtractedLink) -> Optional[_LinkOutcome]:
        key = link_key(link.url)
        try:
            result = self._cache.get(key) if self._cache is not None else None
            if result is None:
                outcome = await check_with_retry(
                    self._prober,
                    link.url,
                    self._retry,
                    sleep=self._sleep,
                    slot=lambda: run.semaphore,
                )
                result = outcome.result
                if self._cache is not None:
                    self._cache.put(key, result)

            enrichment = None if result.alive else await self._enrich(run, link.url)
            return _LinkOutcome(link=link, result=result, enrichment=enrichment)
        except asyncio.CancelledError:
            raise
        except Exception:
            LOGGER.exception("Error while checking %s", link.url)
            return None

    async def _enrich(self, run: _Run, url: str) -> Optional[Enrichment]:
        # A failed lookup still reports the link as dead, just without hints.
        try:
            async with run.semaphore:
                return await self._enricher.enrich(url)
        except Exception:
            LOGGER.warning("Enrichment failed for %s", url, exc_info=True)
            return None
