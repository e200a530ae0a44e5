"""Scoring and ranking logic for the linking engine."""

from __future__ import annotations

from typing import Dict, Sequence

from .config import EngineConfig
from .text import compute_tf
from .types import POSITIONS, LinkCandidate, ScoreResult


def score_candidate(
    content_tokens: Sequence[str],
    candidate_tokens: Sequence[str],
    idf: Dict[str, float],
) -> ScoreResult:
    """Return the TF-IDF overlap between the content and a candidate.

    Every term present in both documents contributes
    ``tf_content * tf_candidate * idf ** 2``. Squaring the IDF weight
    sharpens rare, corpus-distinctive terms; terms found on one side only
    contribute nothing.
    """

    content_tf = compute_tf(content_tokens)
    candidate_tf = compute_tf(candidate_tokens)

    score = 0.0
    matched = set()
    for term, content_weight in content_tf.items():
        candidate_weight = candidate_tf.get(term)
        if candidate_weight is None:
            continue
        idf_weight = idf.get(term, 1.0)
        score += content_weight * candidate_weight * idf_weight * idf_weight
        matched.add(term)
    return ScoreResult(score=score, matched_terms=frozenset(matched))


def apply_boosts(
    score: float,
    candidate: LinkCandidate,
    candidate_tokens: Sequence[str],
    keyword_tokens: Sequence[str],
    target_keyword: str,
    config: EngineConfig,
) -> float:
    """Multiply the base score by keyword, category and tag boosts, in that order."""

    boosted = score
    token_set = set(candidate_tokens)
    for token in keyword_tokens:
        if token in token_set:
            boosted *= config.boost("keyword")

    keyword_lower = (target_keyword or "").lower()
    if any(category.lower() in keyword_lower for category in candidate.categories):
        boosted *= config.boost("category")
    if any(tag.lower() in keyword_lower for tag in candidate.tags):
        boosted *= config.boost("tag")
    return boosted


def is_relevant(score: float, config: EngineConfig) -> bool:
    """Return True when the boosted score clears the relevance floor."""

    return score > float(config.get("relevance_floor", 0.001))


def determine_position(index: int, total: int, config: EngineConfig | None = None) -> str:
    """Bucket a candidate by its index in the original, unsorted pool."""

    cutoffs = config.get("position_cutoffs", [0.33, 0.66]) if config else [0.33, 0.66]
    ratio = index / total if total else 0.0
    if ratio < cutoffs[0]:
        return POSITIONS[0]
    if ratio < cutoffs[1]:
        return POSITIONS[1]
    return POSITIONS[2]
