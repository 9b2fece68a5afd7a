"""Explicit attempt loop around a single-attempt prober (core domain)."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from dataclasses import dataclass
from typing import AsyncContextManager, Awaitable, Callable, Optional

from core.config import RetryPolicy
from core.models import ProbeResult
from core.ports import ProberPort

LOGGER = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[None]]


@dataclass(frozen=True)
class RetryOutcome:
    """Final probe result and how many attempts produced it."""

    result: ProbeResult
    attempts: int


async def check_with_retry(
    prober: ProberPort,
    url: str,
    policy: RetryPolicy,
    *,
    sleep: Sleep = asyncio.sleep,
    slot: Optional[Callable[[], AsyncContextManager]] = None,
) -> RetryOutcome:
    """Probe a URL, retrying retryable failures with doubling backoff.

    `slot` returns an async context manager held only while a request is in
    flight, so backoff waits do not occupy a worker.
    """

    attempt = 1
    while True:
        async with (slot() if slot else contextlib.nullcontext()):
            result = await prober.check(url)
        if not result.retryable or attempt >= policy.max_attempts:
            return RetryOutcome(result=result, attempts=attempt)

        attempt += 1
        delay = policy.delay_before(attempt)
        LOGGER.debug("Retrying %s in %.2fs (attempt %s, last error: %s)", url, delay, attempt, result.error)
        await sleep(delay)
