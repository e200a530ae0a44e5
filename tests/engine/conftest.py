"""Shared fixtures for linking engine tests."""

from __future__ import annotations

from typing import Iterable

import pytest

from wplinker.engine.config import load_config
from wplinker.engine.types import LinkCandidate, ScoredLink


@pytest.fixture()
def engine_config():
    """Provide a mutable copy of the default engine configuration."""

    return load_config(None)


def make_candidate(
    title: str,
    slug: str | None = None,
    *,
    id: str | None = None,
    categories: Iterable[str] | None = None,
    tags: Iterable[str] | None = None,
) -> LinkCandidate:
    slug = slug if slug is not None else "-".join(title.lower().split())
    return LinkCandidate(
        id=id or slug,
        url=f"https://example.com/{slug}/",
        slug=slug,
        title=title,
        categories=list(categories or []),
        tags=list(tags or []),
    )


def make_link(
    anchor: str,
    score: float,
    position: str = "early",
    *,
    url: str | None = None,
    title: str | None = None,
) -> ScoredLink:
    return ScoredLink(
        url=url or f"https://example.com/{'-'.join(anchor.lower().split())}/",
        title=title or anchor,
        anchor=anchor,
        score=score,
        matched_terms=frozenset(),
        position=position,
    )
