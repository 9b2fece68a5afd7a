"""Error types raised by the core.

Only caller misuse and backend failures surface as exceptions. Conditions
caused by the outside world (dead links, missing posts) are returned as data.
"""

from __future__ import annotations

from typing import Optional


class IntegrityError(Exception):
    """Base class for all errors raised by this package."""


class ValidationError(IntegrityError, ValueError):
    """Input has an invalid shape and was rejected before any network work."""


class InvalidLegacyUrlError(ValidationError):
    """A legacy permalink or its date fields could not be parsed."""


class InvalidLimitError(ValidationError):
    """A cap, timeout or concurrency value is zero or negative."""


class PostLookupError(IntegrityError):
    """The content backend failed for a reason other than "not found"."""


class RateLimitExceededError(IntegrityError):
    """A caller exhausted its batch-check budget for the current window."""

    def __init__(self, key: str, retry_after_seconds: float, message: Optional[str] = None) -> None:
        self.key = key
        self.retry_after_seconds = retry_after_seconds
        super().__init__(
            message
            or f"Dead link check rate limit exceeded for {key}; retry in {int(retry_after_seconds)}s"
        )
