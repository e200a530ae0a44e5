"""Shared text utilities for the linking engine."""

from __future__ import annotations

import math
import re
from collections import Counter
from typing import Dict, Iterable, List, Sequence

from .types import LinkCandidate

_TAG_RE = re.compile(r"<[^>]*>")
_PUNCT_RE = re.compile(r"[^\w\s]")

STOP_WORDS = frozenset({
    "the", "a", "an", "and", "or", "but", "in", "on", "at", "to", "for", "of", "with",
    "by", "from", "as", "is", "was", "are", "were", "been", "be", "have", "has", "had",
    "do", "does", "did", "will", "would", "could", "should", "may", "might", "must",
    "shall", "can", "this", "that", "these", "those", "it", "its", "they", "them",
    "their", "what", "which", "who", "whom", "whose", "when", "where", "why", "how",
    "all", "each", "every", "both", "few", "more", "most", "other", "some", "such",
    "no", "nor", "not", "only", "own", "same", "so", "than", "too", "very", "just",
    "your", "you", "our", "we", "my", "i", "me", "he", "she", "him", "her", "his",
})


def tokenize(text: str | None, min_length: int = 3) -> List[str]:
    """Return filtered, lower-cased word tokens from text or HTML."""

    if not text:
        return []
    stripped = _TAG_RE.sub(" ", text).lower()
    stripped = _PUNCT_RE.sub(" ", stripped)
    return [
        token
        for token in stripped.split()
        if len(token) >= min_length and token not in STOP_WORDS
    ]


def compute_tf(tokens: Sequence[str]) -> Dict[str, float]:
    """Return term frequencies normalised by document length."""

    total = len(tokens)
    if not total:
        return {}
    return {term: count / total for term, count in Counter(tokens).items()}


def document_frequencies(documents: Iterable[Sequence[str]]) -> Dict[str, int]:
    """Count how many documents contain each term at least once."""

    df: Dict[str, int] = {}
    for doc in documents:
        for term in set(doc):
            df[term] = df.get(term, 0) + 1
    return df


def compute_idf(documents: Sequence[Sequence[str]]) -> Dict[str, float]:
    """Smoothed inverse document frequency over the whole corpus."""

    total_docs = len(documents)
    df = document_frequencies(documents)
    return {term: math.log((total_docs + 1) / (count + 1)) + 1 for term, count in df.items()}


def candidate_document(candidate: LinkCandidate, min_length: int = 3) -> List[str]:
    """Tokens describing a candidate: title, slug words, categories and tags."""

    parts = [
        candidate.title,
        candidate.slug.replace("-", " "),
        " ".join(candidate.categories),
        " ".join(candidate.tags),
    ]
    return tokenize(" ".join(parts), min_length=min_length)
