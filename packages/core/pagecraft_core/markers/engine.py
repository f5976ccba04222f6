"""Marker extraction over a whole block tree.

Runs footnote extraction, then citation extraction, on every block of a
page. A failure in one block restores that block and moves on; it never
aborts the page.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field

from pagecraft_core.config import FootnoteSource, PipelineConfig
from pagecraft_core.markers.citations import extract_citations_from_block
from pagecraft_core.markers.footnotes import (
    extract_footnotes_from_block,
    has_footnote_markers,
)
from pagecraft_core.schemas.blocks import Block, BlockComment, iter_blocks
from pagecraft_core.schemas.citations import ParsedCitationEntry
from pagecraft_core.schemas.richtext import RichText
from pagecraft_core.utils.logging import get_logger

logger = get_logger(__name__)


@dataclass
class MarkerReport:
    """Counts of what the marker pass did for one page."""

    blocks_processed: int = 0
    footnotes_found: int = 0
    citations_found: int = 0
    failed_block_ids: list[str] = field(default_factory=list)


@dataclass
class _BlockSnapshot:
    """The parts of a block the extractors replace, held by reference.

    Extractors assign new run lists and children lists instead of editing them,
    so references are enough to undo a failed block. Direct children are
    included because child-block footnotes strip the child's leading marker.
    """

    slots: list[tuple[Callable[[list[RichText]], None], list[RichText]]]
    children: list[Block] | None
    has_children: bool

    @classmethod
    def take(cls, block: Block) -> _BlockSnapshot:
        slots = [
            (location.setter, location.rich_texts)
            for owner in (block, *block.child_blocks())
            for location in owner.rich_text_locations(include_code=True)
        ]
        children = block.get_children()
        return cls(
            slots=slots,
            children=list(children) if children is not None else None,
            has_children=block.has_children,
        )

    def restore(self, block: Block) -> None:
        for setter, rich_texts in self.slots:
            setter(rich_texts)
        if self.children is not None:
            block.set_children(self.children)
        block.has_children = self.has_children


def collect_comment_targets(blocks: list[Block], config: PipelineConfig) -> list[str]:
    """Ids of blocks whose comments must be fetched before marker extraction.

    Only blocks that contain footnote markers qualify, and only when comments
    are the active footnote source.
    """
    footnotes = config.footnotes
    if not footnotes.enabled or footnotes.active_source != FootnoteSource.BLOCK_COMMENTS:
        return []
    return [block.id for block in iter_blocks(blocks) if has_footnote_markers(block, footnotes)]


def _process_block(
    block: Block,
    config: PipelineConfig,
    entries: dict[str, ParsedCitationEntry],
    comments: dict[str, list[BlockComment]],
    in_footnote: bool,
    report: MarkerReport,
) -> None:
    snapshot = _BlockSnapshot.take(block)
    try:
        footnote_result = extract_footnotes_from_block(
            block, config.footnotes, comments.get(block.id)
        )
        if footnote_result.footnotes:
            block.footnotes = footnote_result.footnotes
            report.footnotes_found += len(footnote_result.footnotes)

        citation_result = extract_citations_from_block(
            block, config.citations, entries, config.citations.style
        )
        if citation_result.citations:
            if in_footnote:
                for citation in citation_result.citations:
                    citation.is_in_footnote_content = True
            block.citations = citation_result.citations
            report.citations_found += len(citation_result.citations)
    except Exception as e:
        logger.exception(f"Marker extraction failed for block {block.id}: {e}")
        snapshot.restore(block)
        block.footnotes = None
        block.citations = None
        report.failed_block_ids.append(block.id)

    report.blocks_processed += 1


def _walk(
    blocks: list[Block],
    config: PipelineConfig,
    entries: dict[str, ParsedCitationEntry],
    comments: dict[str, list[BlockComment]],
    in_footnote: bool,
    report: MarkerReport,
) -> None:
    for block in blocks:
        _process_block(block, config, entries, comments, in_footnote, report)

        for footnote in block.footnotes or []:
            if footnote.content.type == "blocks" and footnote.content.blocks:
                _walk(footnote.content.blocks, config, entries, comments, True, report)

        _walk(block.child_blocks(), config, entries, comments, in_footnote, report)


def apply_markers(
    blocks: list[Block],
    config: PipelineConfig,
    entries: dict[str, ParsedCitationEntry] | None = None,
    comments: dict[str, list[BlockComment]] | None = None,
) -> MarkerReport:
    """Extract footnote and citation markers from every block, in place.

    Args:
        blocks: Top-level blocks of a page
        config: Effective pipeline configuration
        entries: Bibliography map shared by the build
        comments: Prefetched comments keyed by block id

    Returns:
        Report of what was extracted
    """
    report = MarkerReport()
    _walk(blocks, config, entries or {}, comments or {}, False, report)

    if report.failed_block_ids:
        logger.warning(
            f"Marker extraction skipped {len(report.failed_block_ids)} block(s): "
            f"{', '.join(report.failed_block_ids)}"
        )
    return report
