"""Curated legacy slug overrides (core domain)."""

from __future__ import annotations

from types import MappingProxyType
from typing import Iterator, Mapping, Optional


class KnownMappingTable(Mapping[str, str]):
    """Read-only legacySlug -> currentSlug table.

    Built once from configuration and injected into the resolver. The backing
    dict is copied and wrapped so nothing can mutate it after construction,
    which keeps concurrent reads safe without locking.
    """

    def __init__(self, mappings: Optional[Mapping[str, str]] = None) -> None:
        cleaned: dict[str, str] = {}
        for legacy_slug, current_slug in (mappings or {}).items():
            legacy_slug = legacy_slug.strip().strip("/").lower()
            current_slug = current_slug.strip().strip("/")
            if not legacy_slug or not current_slug:
                raise ValueError("Known mappings need a non-empty legacy and current slug")
            cleaned[legacy_slug] = current_slug
        self._mappings = MappingProxyType(cleaned)

    def lookup(self, slug: str) -> Optional[str]:
        """Return the curated current slug for a legacy slug, if any."""

        return self._mappings.get(slug.strip().strip("/").lower())

    def __getitem__(self, slug: str) -> str:
        return self._mappings[slug]

    def __iter__(self) -> Iterator[str]:
        return iter(self._mappings)

    def __len__(self) -> int:
        return len(self._mappings)
