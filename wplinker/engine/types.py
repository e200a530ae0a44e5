"""Typed data structures used by the linking engine."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, List, Mapping

POSITIONS = ("early", "middle", "late")


@dataclass(frozen=True)
class LinkCandidate:
    """A published page that may receive an internal link."""

    id: str
    url: str
    slug: str
    title: str
    categories: List[str] = field(default_factory=list)
    tags: List[str] = field(default_factory=list)
    post_type: str = "post"

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "LinkCandidate":
        """Build a candidate from a store row, tolerating missing fields."""

        return cls(
            id=str(data.get("id") or ""),
            url=str(data.get("url") or ""),
            slug=str(data.get("slug") or ""),
            title=str(data.get("title") or ""),
            categories=[str(item) for item in data.get("categories") or []],
            tags=[str(item) for item in data.get("tags") or []],
            post_type=str(data.get("post_type") or "post"),
        )


@dataclass(frozen=True)
class ScoreResult:
    """Raw TF-IDF overlap between the content and one candidate."""

    score: float
    matched_terms: FrozenSet[str]


@dataclass(frozen=True)
class ScoredLink:
    """Candidate evaluated against the content, ready for selection."""

    url: str
    title: str
    anchor: str
    score: float
    matched_terms: FrozenSet[str]
    position: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "url": self.url,
            "anchor": self.anchor,
            "title": self.title,
            "score": self.score,
            "position": self.position,
        }


@dataclass(frozen=True)
class InsertionResult:
    """Content after link insertion plus the number of links spliced in."""

    content: str
    inserted_count: int


@dataclass(frozen=True)
class LinkingResult:
    """Outcome of a full linking pass over one document."""

    content: str
    links: List[ScoredLink]
    candidates_analyzed: int
    links_inserted: int
    avg_relevance_score: float

    def stats(self) -> Dict[str, Any]:
        return {
            "candidatesAnalyzed": self.candidates_analyzed,
            "linksInserted": self.links_inserted,
            "avgRelevanceScore": self.avg_relevance_score,
        }
