"""httpx link prober adapter.

Implements the core ProberPort with a single attempt per call: HEAD first,
falling back to a streamed GET when the server refuses HEAD.
"""

from __future__ import annotations

import logging

import httpx

from core.models import ProbeResult

LOGGER = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 10.0
# Servers that answer these to HEAD often serve GET just fine.
_HEAD_REFUSED = {403, 405}


class HttpProber:
    """Single-attempt liveness check over a shared httpx.AsyncClient."""

    def __init__(self, client: httpx.AsyncClient, timeout: float = DEFAULT_TIMEOUT) -> None:
        self._client = client
        self._timeout = timeout

    async def _get_status(self, url: str) -> httpx.Response:
        # Streaming avoids downloading the body; only the status line matters.
        async with self._client.stream("GET", url, timeout=self._timeout, follow_redirects=True) as response:
            return response

    async def check(self, url: str) -> ProbeResult:
        try:
            response = await self._client.head(url, timeout=self._timeout, follow_redirects=True)
            if response.status_code in _HEAD_REFUSED:
                LOGGER.debug("HEAD refused for %s (%s), retrying with GET", url, response.status_code)
                response = await self._get_status(url)
        except httpx.TimeoutException:
            return ProbeResult(status=None, error="Request timeout", retryable=True)
        except httpx.TooManyRedirects:
            return ProbeResult(status=None, error="Too many redirects", retryable=False)
        except httpx.UnsupportedProtocol as exc:
            return ProbeResult(status=None, error=f"Unsupported protocol: {exc}", retryable=False)
        except httpx.TransportError as exc:
            return ProbeResult(status=None, error=f"Network error: {str(exc) or type(exc).__name__}", retryable=True)
        except httpx.HTTPError as exc:
            return ProbeResult(status=None, error=f"Request failed: {str(exc) or type(exc).__name__}", retryable=True)
        except httpx.InvalidURL as exc:
            return ProbeResult(status=None, error=f"Invalid URL: {exc}", retryable=False)

        return ProbeResult.from_status(response.status_code, response.reason_phrase)
