"""Link selection and placement within the content."""

from __future__ import annotations

import html
import logging
import math
import re
from typing import Dict, List, Sequence, Tuple

from .config import EngineConfig
from .types import POSITIONS, InsertionResult, ScoredLink

logger = logging.getLogger(__name__)

_PARAGRAPH_END_RE = re.compile(r"</p>", flags=re.IGNORECASE)
_EXISTING_LINK_RE = re.compile(r"<a\s+[^>]*href", flags=re.IGNORECASE)
_WORD_EDGE_CHARS = ",:'"


def select_links(scored: Sequence[ScoredLink], max_links: int) -> List[ScoredLink]:
    """Greedily pick the best links with unique anchors and balanced buckets.

    Links are taken in descending score order. A link is skipped when its
    anchor (case-insensitive) was already used, or when its position bucket
    already holds ``ceil(max_links / 3) + 1`` links.
    """

    if max_links <= 0:
        return []

    ranked = sorted(scored, key=lambda link: link.score, reverse=True)
    per_position = math.ceil(max_links / 3) + 1
    counts: Dict[str, int] = {position: 0 for position in POSITIONS}
    used_anchors: set[str] = set()
    selected: List[ScoredLink] = []

    for link in ranked:
        if len(selected) >= max_links:
            break
        anchor_key = link.anchor.lower()
        if anchor_key in used_anchors:
            continue
        if counts.get(link.position, 0) >= per_position:
            continue
        selected.append(link)
        used_anchors.add(anchor_key)
        counts[link.position] = counts.get(link.position, 0) + 1

    return selected


def paragraph_ranges(total: int) -> List[Tuple[int, int]]:
    """Split ``total`` paragraph indexes into early/middle/late ranges."""

    return [
        (0, total // 3),
        (total // 3, 2 * total // 3),
        (2 * total // 3, total),
    ]


def render_link(link: ScoredLink, config: EngineConfig | None = None) -> str:
    """Render ``link`` as an escaped anchor tag."""

    css_class = config.get("link_class", "wp-opt-internal") if config else "wp-opt-internal"
    return (
        f'<a href="{html.escape(link.url)}" class="{html.escape(css_class)}" '
        f'title="{html.escape(link.title)}">{html.escape(link.anchor, quote=False)}</a>'
    )


def insert_links(
    content: str,
    links: Sequence[ScoredLink],
    config: EngineConfig | None = None,
) -> InsertionResult:
    """Splice the selected links into the content's paragraphs.

    Content is split on closing ``</p>`` tags. Each link is placed in the
    third of the paragraphs matching its position bucket: after the first
    paragraph that mentions one of the anchor's words and carries no link
    yet, or, failing that, after the bucket's middle paragraph with a
    "Read more:" prefix. Paragraphs that already hold a link are never
    touched, so fewer links than requested may end up in the content.
    """

    if not content or not links:
        return InsertionResult(content=content, inserted_count=0)

    min_word = int(config.get("min_anchor_word_length", 4)) if config else 4
    prefix = config.get("read_more_prefix", "Read more:") if config else "Read more:"

    paragraphs = _PARAGRAPH_END_RE.split(content)
    total = len(paragraphs)
    inserted = 0

    for position, (start, end) in zip(POSITIONS, paragraph_ranges(total)):
        for link in (item for item in links if item.position == position):
            link_html = render_link(link, config)
            words = _anchor_words(link.anchor, min_word)

            target = _natural_paragraph(paragraphs, start, end, words)
            if target is not None:
                paragraphs[target] = f"{paragraphs[target]} {link_html}"
                inserted += 1
                continue

            if start < total:
                fallback = min(start + (end - start) // 2, total - 1)
                paragraph = paragraphs[fallback]
                if paragraph and not _EXISTING_LINK_RE.search(paragraph):
                    paragraphs[fallback] = f"{paragraph} {prefix} {link_html}"
                    inserted += 1
                else:
                    logger.debug("No room for link %s in %s section", link.url, position)

    logger.info("Links inserted into content: requested=%d inserted=%d", len(links), inserted)
    return InsertionResult(content="</p>".join(paragraphs), inserted_count=inserted)


def _anchor_words(anchor: str, min_length: int) -> List[str]:
    words = []
    for word in anchor.lower().split():
        word = word.strip(_WORD_EDGE_CHARS)
        if len(word) >= min_length:
            words.append(word)
    return words


def _natural_paragraph(
    paragraphs: List[str],
    start: int,
    end: int,
    words: Sequence[str],
) -> int | None:
    """Return the first paragraph in range that mentions an anchor word."""

    for index in range(start, min(end, len(paragraphs))):
        paragraph = paragraphs[index]
        if not paragraph:
            continue
        if _EXISTING_LINK_RE.search(paragraph):
            continue
        for word in words:
            escaped = re.escape(word)
            if not re.search(rf"\b{escaped}\b", paragraph, flags=re.IGNORECASE):
                continue
            if re.search(rf"<a[^>]*>[^<]*{escaped}", paragraph, flags=re.IGNORECASE):
                continue
            return index
    return None
