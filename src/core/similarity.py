"""Token overlap scoring used by the legacy URL resolver (core domain)."""

from __future__ import annotations

import math
import re
from typing import Iterable, List

# Confidence headroom kept below the exact strategies.
MAX_PROXIMITY_CONFIDENCE = 90

_WORD = re.compile(r"[^\W_]+", re.UNICODE)

_STOP_WORDS = {"the", "and", "or", "but", "in", "on", "at", "to", "for", "of", "with", "by"}


def slug_tokens(slug: str) -> set[str]:
    """Split a slug on hyphens into lowercase tokens."""

    return {token for token in slug.strip().strip("/").lower().split("-") if token}


def title_tokens(title: str) -> set[str]:
    """Lowercase word tokens from a post title, punctuation dropped."""

    return set(_WORD.findall(title.lower()))


def overlap_ratio(left: Iterable[str], right: Iterable[str]) -> float:
    """Jaccard overlap of two token sets, 0.0 when both are empty."""

    left_set, right_set = set(left), set(right)
    union = left_set | right_set
    if not union:
        return 0.0
    return len(left_set & right_set) / len(union)


def candidate_ratio(legacy_slug: str, candidate_slug: str, candidate_title: str) -> float:
    """Best overlap of the legacy slug against a candidate's slug or title."""

    legacy = slug_tokens(legacy_slug)
    return max(
        overlap_ratio(legacy, slug_tokens(candidate_slug)),
        overlap_ratio(legacy, title_tokens(candidate_title)),
    )


def proximity_confidence(ratio: float) -> int:
    """Map an overlap ratio to a 0-90 confidence, rounding half up."""

    ratio = min(max(ratio, 0.0), 1.0)
    return min(int(math.floor(ratio * MAX_PROXIMITY_CONFIDENCE + 0.5)), MAX_PROXIMITY_CONFIDENCE)


def slug_variants(slug: str) -> List[str]:
    """Common rewrites of a legacy slug, most specific first, original excluded."""

    words = [word for word in slug.split("-") if word]
    variants: List[str] = []

    filtered = [word for word in words if word.lower() not in _STOP_WORDS]
    if filtered and len(filtered) != len(words):
        variants.append("-".join(filtered))

    without_numbers = re.sub(r"-?\d+", "", slug)
    without_numbers = re.sub(r"-{2,}", "-", without_numbers).strip("-")
    variants.append(without_numbers)

    if len(words) > 5:
        variants.append("-".join(words[:5]))

    variants.append(re.sub(r"-and-", "-", slug))
    variants.append(re.sub(r"(^|-)the-", r"\1", slug))

    seen = {slug}
    unique: List[str] = []
    for variant in variants:
        if variant and variant not in seen:
            seen.add(variant)
            unique.append(variant)
    return unique
