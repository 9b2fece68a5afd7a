"""Fixed-window rate limiting for batch checks, keyed by caller (core domain)."""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass
from typing import Callable, Optional

from core.config import RateLimitConfig
from core.errors import RateLimitExceededError

# Expired windows are dropped during check() once this many callers are tracked.
DEFAULT_SWEEP_THRESHOLD = 1000


@dataclass
class _Window:
    count: int
    resets_at: float


class FixedWindowRateLimiter:
    """Allows `max_requests` per caller within each window.

    A caller's window opens on its first request and resets once it expires.
    State is in-memory only and guarded by a lock so route handlers on other
    threads can share one limiter. The budget only holds for the lifetime of
    the limiter, so it is meant for long-lived embedders such as a web app.
    """

    def __init__(
        self,
        config: Optional[RateLimitConfig] = None,
        clock: Callable[[], float] = time.monotonic,
        sweep_threshold: int = DEFAULT_SWEEP_THRESHOLD,
    ) -> None:
        self._config = config or RateLimitConfig()
        self._clock = clock
        self._sweep_threshold = max(sweep_threshold, 1)
        self._windows: dict[str, _Window] = {}
        self._lock = threading.Lock()

    def _current(self, key: str, now: float) -> Optional[_Window]:
        window = self._windows.get(key)
        if window is not None and now >= window.resets_at:
            del self._windows[key]
            return None
        return window

    def _drop_expired(self, now: float) -> int:
        expired = [key for key, window in self._windows.items() if now >= window.resets_at]
        for key in expired:
            del self._windows[key]
        return len(expired)

    def check(self, key: str) -> int:
        """Consume one request for `key` and return how many remain.

        Raises RateLimitExceededError without consuming when the budget is spent.
        """

        with self._lock:
            now = self._clock()
            if len(self._windows) >= self._sweep_threshold:
                self._drop_expired(now)
            window = self._current(key, now)
            if window is None:
                window = _Window(count=0, resets_at=now + self._config.window_seconds)
                self._windows[key] = window
            if window.count >= self._config.max_requests:
                raise RateLimitExceededError(key, retry_after_seconds=window.resets_at - now)
            window.count += 1
            return self._config.max_requests - window.count

    def remaining(self, key: str) -> int:
        with self._lock:
            window = self._current(key, self._clock())
            used = window.count if window else 0
            return self._config.max_requests - used

    def tracked_callers(self) -> int:
        with self._lock:
            return len(self._windows)

    def cleanup(self) -> int:
        """Drop expired windows and return how many were removed."""

        with self._lock:
            return self._drop_expired(self._clock())
