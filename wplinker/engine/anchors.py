"""Anchor text synthesis."""

from __future__ import annotations

import re
from typing import Iterable, List, Tuple

from .config import EngineConfig

# "Title - Site Name", "Title | Site Name", "Title — Site Name"
_SITE_SUFFIX_RE = re.compile(r"\s*\|.*$|\s+[-–—]\s+.*$")
_DISALLOWED_RE = re.compile(r"[^\w\s,:']")


def clean_title(title: str | None) -> str:
    """Drop the site-name suffix and stray punctuation from a page title."""

    if not title:
        return ""
    cleaned = _SITE_SUFFIX_RE.sub("", title)
    cleaned = _DISALLOWED_RE.sub("", cleaned)
    return cleaned.strip()


def synthesize_anchor(
    title: str | None,
    matched_terms: Iterable[str],
    target_keyword: str | None,
    config: EngineConfig | None = None,
) -> str:
    """Turn a candidate title into a concise, keyword-rich anchor."""

    max_chars = int(config.get("anchor_max_chars", 50)) if config else 50
    fallback_words = int(config.get("anchor_fallback_words", 6)) if config else 6

    anchor = clean_title(title)
    if len(anchor) <= max_chars:
        return anchor

    words = anchor.split()
    segment, score = best_window(words, matched_terms, target_keyword, config)
    if segment and score > 0:
        return segment
    return " ".join(words[:fallback_words])


def best_window(
    words: List[str],
    matched_terms: Iterable[str],
    target_keyword: str | None,
    config: EngineConfig | None = None,
) -> Tuple[str, int]:
    """Return the highest scoring word window and its score.

    Windows span 3 to 6 consecutive words. Each matched term found in a
    window is worth 2 points and each target keyword word 3 points. Ties
    keep the earliest, shortest window.
    """

    min_len, max_len = config.get("anchor_window", [3, 6]) if config else (3, 6)
    terms = list(matched_terms)
    keyword_words = (target_keyword or "").lower().split()

    best_segment = ""
    best_score = 0
    for start in range(len(words)):
        for length in range(min_len, max_len + 1):
            if start + length > len(words):
                break
            segment = " ".join(words[start:start + length])
            lowered = segment.lower()
            score = 2 * sum(1 for term in terms if term in lowered)
            score += 3 * sum(1 for word in keyword_words if word in lowered)
            if score > best_score:
                best_score = score
                best_segment = segment
    return best_segment, best_score
