"""Fuzzy matching between spreadsheet category names and template row labels."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Iterable, Optional, Set, Tuple, TypeVar

from config import DeckConfig

T = TypeVar("T")

_NON_ALNUM_RE = re.compile(r"[^a-z0-9]+")


@dataclass(frozen=True)
class CategoryMatch:
    score: float
    is_match: bool
    method: Optional[str] = None


def normalize_category(text: str) -> str:
    """Lowercase, '&' -> 'and', punctuation stripped, common abbreviations expanded."""
    lowered = (text or "").lower().replace("&", " and ")
    words = _NON_ALNUM_RE.sub(" ", lowered).split()
    return " ".join(DeckConfig.CATEGORY_ABBREVIATIONS.get(word, word) for word in words)


def category_tokens(text: str) -> Set[str]:
    return {word for word in normalize_category(text).split() if len(word) > 2}


def calculate_category_match_score(
    template_category: str,
    data_category: str,
    threshold: Optional[float] = None,
) -> CategoryMatch:
    """
    Jaccard similarity over word tokens, with two fallbacks for wording drift:
    the first characters of one name contained in the other, or identical
    first three words.
    """
    threshold = DeckConfig.CATEGORY_MATCH_THRESHOLD if threshold is None else threshold
    left = normalize_category(template_category)
    right = normalize_category(data_category)
    if not left or not right:
        return CategoryMatch(0.0, False)

    left_tokens = category_tokens(left)
    right_tokens = category_tokens(right)
    union = left_tokens | right_tokens
    if union:
        score = len(left_tokens & right_tokens) / len(union)
    else:
        score = 1.0 if left == right else 0.0

    if score >= threshold:
        return CategoryMatch(score, True, "jaccard")

    prefix_chars = DeckConfig.CATEGORY_PREFIX_CHARS
    left_prefix, right_prefix = left[:prefix_chars], right[:prefix_chars]
    if min(len(left_prefix), len(right_prefix)) >= 5 and (left_prefix in right or right_prefix in left):
        return CategoryMatch(score, True, "prefix")

    if left.split()[:3] == right.split()[:3]:
        return CategoryMatch(score, True, "leading_words")

    return CategoryMatch(score, False)


def find_matching_category(label: str, candidates: Iterable[T], key=lambda item: item) -> Optional[Tuple[T, CategoryMatch]]:
    """First candidate, in supplied order, whose category matches the label."""
    for candidate in candidates:
        match = calculate_category_match_score(label, key(candidate))
        if match.is_match:
            return candidate, match
    return None
