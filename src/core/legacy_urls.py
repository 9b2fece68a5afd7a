"""Helpers for working with legacy date-structured permalinks."""

from __future__ import annotations

import re
from typing import Union
from urllib.parse import unquote, urlparse

from core.errors import InvalidLegacyUrlError
from core.models import LegacyUrlKey

_LEGACY_PATH = re.compile(r"^/?(\d{4})/(\d{1,2})/(\d{1,2})/([^/]+)/?$")


def build_legacy_path(key: LegacyUrlKey) -> str:
    """Return the canonical `/YYYY/MM/DD/slug/` path for a key."""

    return f"/{key.year:04d}/{key.month:02d}/{key.day:02d}/{key.slug}/"


def parse_legacy_path(path_or_url: str) -> LegacyUrlKey:
    """Parse a legacy permalink (path or absolute URL) into a validated key."""

    path = urlparse(path_or_url.strip()).path if "://" in path_or_url else path_or_url.strip()
    match = _LEGACY_PATH.match(path)
    if not match:
        raise InvalidLegacyUrlError(f"Not a legacy permalink: {path_or_url!r}")
    year, month, day, slug = match.groups()
    return make_legacy_key(year, month, day, unquote(slug))


def make_legacy_key(
    year: Union[int, str],
    month: Union[int, str],
    day: Union[int, str],
    slug: str,
) -> LegacyUrlKey:
    """Build a key from raw route segments, rejecting invalid shapes."""

    try:
        key = LegacyUrlKey(year=int(year), month=int(month), day=int(day), slug=slug.strip().strip("/"))
    except (TypeError, ValueError) as exc:
        raise InvalidLegacyUrlError(f"Date segments must be numeric: {year}/{month}/{day}") from exc

    if not key.slug:
        raise InvalidLegacyUrlError("Legacy slug is required")
    if key.to_date() is None:
        raise InvalidLegacyUrlError(f"Date out of range: {key.year}/{key.month}/{key.day}")
    return key
