"""Outbound link extraction from rendered post bodies (core domain)."""

from __future__ import annotations

import re
from html.parser import HTMLParser
from typing import Iterable, List, Optional, Sequence, Tuple
from urllib.parse import urldefrag, urlparse

from core.models import ExtractedLink

_SKIPPED_PREFIXES = ("#", "/", "mailto:", "tel:", "javascript:", "data:")
_PLAIN_URL = re.compile(r"https?://[^\s<>\"']+", re.IGNORECASE)
# Trailing punctuation that usually belongs to the sentence, not the URL.
_TRAILING = ".,;:!?)]}"


def _collapse_whitespace(text: str) -> str:
    return re.sub(r"\s+", " ", text).strip()


def link_key(url: str) -> str:
    """Normalize a URL for de-duplication within a post."""

    return urldefrag(url.strip())[0]


def is_internal_host(host: str, internal_hosts: Iterable[str]) -> bool:
    host = host.lower()
    for internal in internal_hosts:
        internal = internal.lower()
        if host == internal or host.endswith(f".{internal}"):
            return True
    return False


def is_checkable(url: str, internal_hosts: Iterable[str] = ()) -> bool:
    """Return True for absolute http(s) links pointing outside the site."""

    url = url.strip()
    if not url or url.lower().startswith(_SKIPPED_PREFIXES):
        return False
    parsed = urlparse(url)
    if parsed.scheme.lower() not in ("http", "https") or not parsed.hostname:
        return False
    return not is_internal_host(parsed.hostname, internal_hosts)


class _AnchorParser(HTMLParser):
    """Collect anchor targets with their position in the visible text."""

    def __init__(self, scan_plain_urls: bool) -> None:
        super().__init__(convert_charrefs=True)
        self._scan_plain_urls = scan_plain_urls
        self._chunks: List[str] = []
        self._length = 0
        self._open: List[Tuple[str, int]] = []
        # (url, start offset, end offset) into the visible text
        self.spans: List[Tuple[str, int, int]] = []

    @property
    def text(self) -> str:
        return "".join(self._chunks)

    def handle_starttag(self, tag: str, attrs: Sequence[Tuple[str, Optional[str]]]) -> None:
        if tag != "a":
            return
        href = dict(attrs).get("href")
        if href:
            self._open.append((href, self._length))

    def handle_endtag(self, tag: str) -> None:
        if tag == "a" and self._open:
            href, start = self._open.pop()
            self.spans.append((href, start, self._length))

    def handle_data(self, data: str) -> None:
        if self._scan_plain_urls:
            for match in _PLAIN_URL.finditer(data):
                url = match.group(0).rstrip(_TRAILING)
                start = self._length + match.start()
                self.spans.append((url, start, start + len(url)))
        self._chunks.append(data)
        self._length += len(data)

    def close(self) -> None:
        super().close()
        # Unclosed anchors run to the end of the body.
        while self._open:
            href, start = self._open.pop()
            self.spans.append((href, start, self._length))


def extract_links(
    body_html: str,
    *,
    internal_hosts: Iterable[str] = (),
    context_chars: int = 50,
    scan_plain_urls: bool = False,
) -> List[ExtractedLink]:
    """Return unique outbound links in document order with a text excerpt.

    Anchors are always scanned; bare URLs in text are included when
    `scan_plain_urls` is set. Fragment-only, root-relative, non-http and
    internal-host links are skipped.
    """

    parser = _AnchorParser(scan_plain_urls)
    parser.feed(body_html or "")
    parser.close()
    text = parser.text
    internal_hosts = tuple(internal_hosts)

    links: List[ExtractedLink] = []
    seen: set[str] = set()
    for url, start, end in sorted(parser.spans, key=lambda span: span[1]):
        url = url.strip()
        if not is_checkable(url, internal_hosts):
            continue
        key = link_key(url)
        if key in seen:
            continue
        seen.add(key)
        excerpt = text[max(0, start - context_chars) : end + context_chars]
        links.append(ExtractedLink(url=url, context=_collapse_whitespace(excerpt)))
    return links
