"""Citation marker extraction.

Recognizes ``[@key]``, ``\\cite{key}`` and ``#cite(key)`` in a block's text
slots and in the rich text bodies of its footnotes. Every recognized key
with a bibliography entry becomes a marker run; unknown keys stay as text.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from pagecraft_core.bibliography.formatting import build_citation
from pagecraft_core.config import CitationsConfig
from pagecraft_core.markers.richtext_ops import (
    join_plain_text,
    range_is_scannable,
    replace_range,
)
from pagecraft_core.schemas.blocks import Block
from pagecraft_core.schemas.citations import (
    BibliographyStyle,
    Citation,
    ParsedCitationEntry,
)
from pagecraft_core.schemas.richtext import RichText
from pagecraft_core.utils.logging import get_logger

logger = get_logger(__name__)


@dataclass
class CitationMatch:
    key: str
    full_match: str
    start: int
    end: int


@dataclass
class CitationExtractionResult:
    """Citations found in a block, one per key, in first-appearance order."""

    citations: list[Citation] = field(default_factory=list)
    processed_rich_texts: bool = False


def find_citation_matches(
    rich_texts: list[RichText], config: CitationsConfig
) -> list[CitationMatch]:
    """Find citations of every enabled format, ordered by position.

    Overlapping matches keep the one that starts first.
    """
    text = join_plain_text(rich_texts)
    found: list[CitationMatch] = []
    for citation_format in config.formats:
        for match in citation_format.pattern.finditer(text):
            if range_is_scannable(rich_texts, match.start(), match.end()):
                found.append(
                    CitationMatch(match.group(1), match.group(0), match.start(), match.end())
                )

    found.sort(key=lambda m: m.start)
    matches: list[CitationMatch] = []
    for candidate in found:
        if matches and candidate.start < matches[-1].end:
            continue
        matches.append(candidate)
    return matches


def mark_citations(
    rich_texts: list[RichText],
    config: CitationsConfig,
    entries: dict[str, ParsedCitationEntry],
) -> tuple[list[RichText], list[str]]:
    """Replace known citation keys with marker runs.

    Returns:
        Tuple of (rewritten runs, cited keys in order of appearance)
    """
    known: list[CitationMatch] = []
    for match in find_citation_matches(rich_texts, config):
        if match.key in entries:
            known.append(match)
        else:
            logger.debug(f"Citation key '{match.key}' has no bibliography entry")

    rewritten = list(rich_texts)
    for match in reversed(known):
        marker_run = RichText.citation_marker(match.key, match.full_match)
        rewritten = replace_range(rewritten, match.start, match.end, [marker_run])
    return rewritten, [match.key for match in known]


def extract_citations_from_block(
    block: Block,
    config: CitationsConfig,
    entries: dict[str, ParsedCitationEntry],
    style: BibliographyStyle | None = None,
) -> CitationExtractionResult:
    """Mark citations in a block and in its already-extracted footnotes.

    Footnote extraction must have run first so that footnote bodies are
    scanned too. Citations only seen inside footnote bodies are flagged
    ``is_in_footnote_content``.

    Args:
        block: Block to rewrite in place
        config: Citation configuration
        entries: Bibliography map keyed by citation key
        style: Bibliography style, defaults to the configured one

    Returns:
        Citation extraction result
    """
    if not config.enabled or not entries:
        return CitationExtractionResult()

    style = style or config.style
    main_keys: list[str] = []
    footnote_keys: list[str] = []

    for location in block.rich_text_locations():
        rewritten, keys = mark_citations(location.rich_texts, config, entries)
        if keys:
            location.setter(rewritten)
            main_keys.extend(keys)

    for footnote in block.footnotes or []:
        content = footnote.content
        if content.type != "rich_text" or not content.rich_texts:
            continue
        rewritten, keys = mark_citations(content.rich_texts, config, entries)
        if keys:
            content.rich_texts = rewritten
            footnote_keys.extend(keys)

    if not main_keys and not footnote_keys:
        return CitationExtractionResult()

    citations: dict[str, Citation] = {}
    for key in main_keys + footnote_keys:
        if key not in citations:
            citation = build_citation(entries[key], style)
            citation.is_in_footnote_content = key not in main_keys
            citation.source_block_ids = [block.id]
            citations[key] = citation

    return CitationExtractionResult(
        citations=list(citations.values()), processed_rich_texts=True
    )
