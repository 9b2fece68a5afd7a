"""In-memory TTL cache of final link outcomes (core domain)."""

from __future__ import annotations

import threading
import time
from typing import Callable, Optional

from core.models import ProbeResult

DEFAULT_MAX_ENTRIES = 10_000


class ResultCache:
    """Keeps final probe results for a while, shorter for retryable failures.

    Entries live only as long as the process; nothing is persisted. Expired
    entries are swept on writes at most once per quarter TTL, and the oldest
    entries are evicted once `max_entries` is reached.
    """

    def __init__(
        self,
        ttl_seconds: float,
        clock: Callable[[], float] = time.monotonic,
        max_entries: int = DEFAULT_MAX_ENTRIES,
    ) -> None:
        self._ttl = ttl_seconds
        self._clock = clock
        self._max_entries = max(max_entries, 1)
        self._entries: dict[str, tuple[ProbeResult, float]] = {}
        self._next_sweep = 0.0
        self._lock = threading.Lock()

    def _ttl_for(self, result: ProbeResult) -> float:
        return self._ttl / 4 if result.retryable else self._ttl

    def _sweep(self, now: float) -> None:
        expired = [url for url, (_, expires_at) in self._entries.items() if now >= expires_at]
        for url in expired:
            del self._entries[url]
        self._next_sweep = now + self._ttl / 4

    def get(self, url: str) -> Optional[ProbeResult]:
        with self._lock:
            entry = self._entries.get(url)
            if entry is None:
                return None
            result, expires_at = entry
            if self._clock() >= expires_at:
                del self._entries[url]
                return None
            return result

    def put(self, url: str, result: ProbeResult) -> None:
        if self._ttl <= 0:
            return
        with self._lock:
            now = self._clock()
            if now >= self._next_sweep:
                self._sweep(now)
            # Re-insert so dict order tracks write age.
            self._entries.pop(url, None)
            self._entries[url] = (result, now + self._ttl_for(result))
            while len(self._entries) > self._max_entries:
                del self._entries[next(iter(self._entries))]

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
