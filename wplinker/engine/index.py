"""Coordinator for the internal linking pipeline."""

from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass
from typing import Dict, List, Sequence

from . import anchors as anchors_module
from . import placement as placement_module
from . import rank as rank_module
from .config import EngineConfig, load_config
from .text import candidate_document, compute_idf, tokenize
from .types import POSITIONS, LinkCandidate, LinkingResult, ScoredLink

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ScoringRun:
    """Scored pool for one document, before selection."""

    candidates_analyzed: int
    scored: List[ScoredLink]


def link_content(
    content: str,
    candidates: Sequence[LinkCandidate],
    target_keyword: str,
    max_links: int | None = None,
    config: EngineConfig | None = None,
) -> LinkingResult:
    """Score, select and insert internal links into ``content``."""

    engine_config = config or load_config(None)
    limit = engine_config.get("max_links", 5) if max_links is None else max_links

    if not candidates:
        logger.info("No link candidates found")
        return LinkingResult(
            content=content,
            links=[],
            candidates_analyzed=0,
            links_inserted=0,
            avg_relevance_score=0.0,
        )

    run = score_pool(content, candidates, target_keyword, engine_config)
    selected = placement_module.select_links(run.scored, limit)
    insertion = placement_module.insert_links(content, selected, engine_config)

    avg_score = sum(link.score for link in selected) / len(selected) if selected else 0.0
    logger.info(
        "Internal linking complete: candidates=%d relevant=%d selected=%d inserted=%d",
        run.candidates_analyzed,
        len(run.scored),
        len(selected),
        insertion.inserted_count,
    )
    return LinkingResult(
        content=insertion.content,
        links=selected,
        candidates_analyzed=run.candidates_analyzed,
        links_inserted=insertion.inserted_count,
        avg_relevance_score=avg_score,
    )


def score_pool(
    content: str,
    candidates: Sequence[LinkCandidate],
    target_keyword: str,
    config: EngineConfig,
) -> ScoringRun:
    """Score every candidate against the content on a shared IDF basis.

    Candidates below the relevance floor are dropped. Survivors keep the
    order of the input pool and carry a position bucket derived from their
    index in that pool.
    """

    min_length = int(config.get("min_token_length", 3))
    content_tokens = tokenize(content, min_length=min_length)
    keyword_tokens = tokenize(target_keyword, min_length=min_length)
    documents = [candidate_document(candidate, min_length=min_length) for candidate in candidates]
    idf = compute_idf([content_tokens, *documents])

    total = len(candidates)
    scored: List[ScoredLink] = []
    for index, (candidate, candidate_tokens) in enumerate(zip(candidates, documents)):
        result = rank_module.score_candidate(content_tokens, candidate_tokens, idf)
        boosted = rank_module.apply_boosts(
            result.score,
            candidate,
            candidate_tokens,
            keyword_tokens,
            target_keyword,
            config,
        )
        if not rank_module.is_relevant(boosted, config):
            logger.debug("Dropping %s below relevance floor (%.6f)", candidate.url, boosted)
            continue
        anchor = anchors_module.synthesize_anchor(
            candidate.title,
            result.matched_terms,
            target_keyword,
            config,
        )
        if not anchor or not candidate.url:
            logger.debug("Dropping %r: no anchor or URL to link", candidate.id)
            continue
        scored.append(
            ScoredLink(
                url=candidate.url,
                title=candidate.title,
                anchor=anchor,
                score=boosted,
                matched_terms=result.matched_terms,
                position=rank_module.determine_position(index, total, config),
            )
        )

    top_score = max((link.score for link in scored), default=0.0)
    logger.info("Scored links: total=%d relevant=%d top=%.6f", total, len(scored), top_score)
    return ScoringRun(candidates_analyzed=total, scored=scored)


def dry_run(
    content: str,
    candidates: Sequence[LinkCandidate],
    target_keyword: str,
    max_links: int | None = None,
    config: EngineConfig | None = None,
) -> Dict[str, float | int | Dict[str, int]]:
    """Return diagnostic metrics for a linking pass without touching content."""

    engine_config = config or load_config(None)
    limit = engine_config.get("max_links", 5) if max_links is None else max_links

    run = score_pool(content, candidates, target_keyword, engine_config) if candidates else ScoringRun(0, [])
    selected = placement_module.select_links(run.scored, limit)
    selected_ids = {id(link) for link in selected}
    rejected = [link for link in run.scored if id(link) not in selected_ids]

    selected_anchors = {link.anchor.lower() for link in selected}
    duplicate_anchor_rejects = sum(1 for link in rejected if link.anchor.lower() in selected_anchors)
    distribution = Counter(link.position for link in selected)

    return {
        "candidates_analyzed": run.candidates_analyzed,
        "relevant_candidates": len(run.scored),
        "selected": len(selected),
        "top_score": max((link.score for link in run.scored), default=0.0),
        "mean_score_selected": _mean([link.score for link in selected]),
        "mean_score_rejected": _mean([link.score for link in rejected]),
        "duplicate_anchor_rejects": duplicate_anchor_rejects,
        "position_distribution": {position: distribution.get(position, 0) for position in POSITIONS},
    }


def _mean(values: Sequence[float]) -> float:
    return sum(values) / len(values) if values else 0.0
