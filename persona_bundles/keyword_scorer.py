"""
keyword_scorer.py - Keyword and phrase counting over normalized text

Keywords count every whole-word occurrence; phrases count once each when
present as a substring. Matching is case-insensitive. Empty inputs score 0.
"""

import re
from functools import lru_cache
from typing import Iterable, Optional

_WHITESPACE = re.compile(r"\s+")


def normalize_text(text: Optional[str]) -> str:
    if not text:
        return ""
    return _WHITESPACE.sub(" ", text).strip().lower()


@lru_cache(maxsize=1024)
def _word_pattern(term: str) -> re.Pattern:
    return re.compile(rf"\b{re.escape(term)}\b", re.IGNORECASE)


def count_keywords(text: Optional[str], terms: Iterable[str]) -> int:
    """Sum of whole-word occurrences of each term in text."""
    text = normalize_text(text)
    if not text:
        return 0
    score = 0
    for term in terms or ():
        term = normalize_text(term)
        if term:
            score += len(_word_pattern(term).findall(text))
    return score


def count_phrases(text: Optional[str], phrases: Iterable[str]) -> int:
    """Number of phrases contained in text (presence, not occurrences)."""
    text = normalize_text(text)
    if not text:
        return 0
    normalized = (normalize_text(p) for p in phrases or ())
    return sum(1 for phrase in normalized if phrase and phrase in text)


def matched_terms(text: Optional[str], terms: Iterable[str]) -> list[str]:
    """Terms with at least one whole-word match, in the order given."""
    text = normalize_text(text)
    if not text:
        return []
    return [t for t in terms or () if normalize_text(t) and _word_pattern(normalize_text(t)).search(text)]
