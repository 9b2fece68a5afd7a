"""HTTP client factory for the integrity tools.

One httpx.AsyncClient is shared by every adapter in a process so connection
pooling also bounds the number of open sockets. The caller owns its
lifecycle and closes it with `aclose()`.
"""

from __future__ import annotations

import logging
import os

import httpx
from dotenv import load_dotenv

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/124.0 Safari/537.36"
)


def build_client(user_agent: str = "", max_connections: int = 10, timeout: float = 10.0) -> httpx.AsyncClient:
    """Create the shared async HTTP client.

    The User-Agent can be overridden with INTEGRITY_USER_AGENT (read via
    python-dotenv) because some hosts block anything that looks automated.
    """

    load_dotenv()

    agent = os.getenv("INTEGRITY_USER_AGENT") or user_agent or DEFAULT_USER_AGENT
    headers = {
        "User-Agent": agent,
        "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
        "Accept-Language": "en-US,en;q=0.5",
    }

    logging.getLogger(__name__).info("Initializing HTTP client (max %s connections)", max_connections)

    return httpx.AsyncClient(
        headers=headers,
        timeout=timeout,
        limits=httpx.Limits(max_connections=max_connections, max_keepalive_connections=max_connections),
    )
