"""WordPress REST API post lookup adapter.

Implements the core PostLookupPort and owns the translation from the raw
`wp/v2/posts` response shape to core Post objects.
"""

from __future__ import annotations

import html
import logging
import re
from datetime import datetime
from typing import Any, Optional

import httpx

from core.errors import PostLookupError
from core.models import Post

LOGGER = logging.getLogger(__name__)

DEFAULT_API_BASE = "https://public-api.wordpress.com/wp/v2/sites/medialternatives.wordpress.com"
# The REST API refuses larger pages.
MAX_PER_PAGE = 100

_TAG = re.compile(r"<[^>]+>")


def _rendered(raw: Any) -> str:
    if isinstance(raw, dict):
        return str(raw.get("rendered") or "")
    return str(raw or "")


def _parse_date(raw: dict) -> datetime:
    # Legacy permalinks and the after/before filters use the site's local date.
    value = raw.get("date") or raw.get("date_gmt")
    if not value:
        raise PostLookupError(f"Post {raw.get('id')} has no publish date")
    try:
        return datetime.fromisoformat(str(value))
    except ValueError as exc:
        raise PostLookupError(f"Post {raw.get('id')} has an invalid date: {value!r}") from exc


def post_from_api(raw: dict) -> Post:
    """Translate one `wp/v2/posts` item into a core Post."""

    try:
        post_id = int(raw["id"])
        slug = str(raw["slug"])
    except (KeyError, TypeError, ValueError) as exc:
        raise PostLookupError(f"Unexpected post payload: {exc}") from exc

    title = html.unescape(_TAG.sub("", _rendered(raw.get("title")))).strip()
    return Post(
        id=post_id,
        slug=slug,
        title=title,
        published_at=_parse_date(raw),
        body_html=_rendered(raw.get("content")),
    )


class WordPressPostLookup:
    """Reads posts from a WordPress (or WordPress.com) REST endpoint."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        api_base: str = DEFAULT_API_BASE,
        per_page: int = 10,
        timeout: float = 15.0,
    ) -> None:
        self._client = client
        self._api_base = api_base.rstrip("/")
        self._per_page = min(max(per_page, 1), MAX_PER_PAGE)
        self._timeout = timeout

    async def _get(self, path: str, params: Optional[dict] = None) -> Optional[Any]:
        url = f"{self._api_base}{path}"
        try:
            response = await self._client.get(url, params=params, timeout=self._timeout)
        except httpx.HTTPError as exc:
            raise PostLookupError(f"Post lookup failed for {url}: {exc}") from exc
        if response.status_code == 404:
            return None
        if response.status_code >= 400:
            raise PostLookupError(f"Post lookup failed for {url}: HTTP {response.status_code}")
        try:
            return response.json()
        except ValueError as exc:
            raise PostLookupError(f"Post lookup returned invalid JSON for {url}") from exc

    async def _list(self, params: dict) -> list[Post]:
        data = await self._get("/posts", params)
        if not data:
            return []
        if not isinstance(data, list):
            raise PostLookupError("Post listing did not return a list")
        return [post_from_api(item) for item in data]

    async def get_post_by_slug(self, slug: str) -> Optional[Post]:
        posts = await self._list({"slug": slug})
        return posts[0] if posts else None

    async def get_post_by_id(self, post_id: int) -> Optional[Post]:
        data = await self._get(f"/posts/{post_id}")
        if not data:
            return None
        return post_from_api(data)

    async def get_posts_published_between(self, start: datetime, end: datetime) -> list[Post]:
        return await self._list(
            {
                "after": start.isoformat(timespec="seconds"),
                "before": end.isoformat(timespec="seconds"),
                "per_page": MAX_PER_PAGE,
                "orderby": "date",
                "order": "asc",
            }
        )

    async def search_posts(self, query: str) -> list[Post]:
        LOGGER.debug("Searching posts for %r", query)
        return await self._list({"search": query, "per_page": self._per_page})

    async def list_recent_posts(self, count: int) -> list[Post]:
        return await self._list(
            {"per_page": min(max(count, 1), MAX_PER_PAGE), "orderby": "date", "order": "desc"}
        )
