"""Unified page-content extraction.

A single pre-order walk over a page's block tree collects footnotes,
citations and interlinked content. The walk visits the same blocks no
matter which of the three extractions are enabled.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from pagecraft_core.bibliography.formatting import prepare_bibliography
from pagecraft_core.extraction.interlinks import extract_interlinked_content_in_block
from pagecraft_core.schemas.blocks import Block, Footnote
from pagecraft_core.schemas.citations import BibliographyStyle, Citation
from pagecraft_core.schemas.interlinks import InterlinkedContentInPage


@dataclass(frozen=True)
class ExtractionOptions:
    """Which collections to build during the walk."""

    extract_footnotes: bool = True
    extract_citations: bool = True
    extract_interlinked_content: bool = True
    style: BibliographyStyle = BibliographyStyle.IEEE


@dataclass
class PageContentExtractionResult:
    """Collections produced by one walk over a page."""

    footnotes: list[Footnote] = field(default_factory=list)
    citations: list[Citation] = field(default_factory=list)
    interlinked_content: list[InterlinkedContentInPage] = field(default_factory=list)
    visited_blocks: int = 0


class _Walker:
    def __init__(self, page_id: str, options: ExtractionOptions):
        self.page_id = page_id
        self.options = options
        self.result = PageContentExtractionResult()

        self.footnote_index = 0
        self.footnote_indices: dict[str, int] = {}
        self.footnotes: dict[str, Footnote] = {}

        self.citations: dict[str, Citation] = {}
        self.first_appearance_counter = 0
        self.main_content_counter = 0

    def visit(self, block: Block) -> None:
        self.result.visited_blocks += 1

        if self.options.extract_footnotes and block.footnotes:
            self._collect_footnotes(block)
        if self.options.extract_citations and block.citations:
            self._collect_citations(block)
        if self.options.extract_interlinked_content:
            item = extract_interlinked_content_in_block(self.page_id, block)
            if item is not None:
                self.result.interlinked_content.append(item)

        for child in block.child_blocks():
            self.visit(child)
        for footnote in block.footnotes or []:
            if footnote.content.type == "blocks":
                for footnote_block in footnote.content.blocks or []:
                    self.visit(footnote_block)

    def _collect_footnotes(self, block: Block) -> None:
        for footnote in block.footnotes or []:
            if footnote.marker not in self.footnote_indices:
                self.footnote_index += 1
                self.footnote_indices[footnote.marker] = self.footnote_index
                self.footnotes[footnote.marker] = footnote
            footnote.index = self.footnote_indices[footnote.marker]
            footnote.source_block_id = block.id

    def _collect_citations(self, block: Block) -> None:
        ieee = self.options.style == BibliographyStyle.IEEE

        for citation in block.citations or []:
            existing = self.citations.get(citation.key)

            if existing is None:
                self.first_appearance_counter += 1
                citation.index = self.first_appearance_counter if ieee else None
                citation.first_appearance_index = self.first_appearance_counter
                citation.first_appearance_in_main_content_index = None
                if not citation.is_in_footnote_content:
                    self.main_content_counter += 1
                    citation.first_appearance_in_main_content_index = self.main_content_counter
                citation.source_block_ids = [block.id]
                self.citations[citation.key] = citation
                continue

            citation.index = existing.index
            citation.first_appearance_index = None
            citation.first_appearance_in_main_content_index = None
            if (
                existing.first_appearance_in_main_content_index is None
                and not citation.is_in_footnote_content
            ):
                self.main_content_counter += 1
                citation.first_appearance_in_main_content_index = self.main_content_counter
                existing.first_appearance_in_main_content_index = self.main_content_counter
            if block.id not in existing.source_block_ids:
                existing.source_block_ids.append(block.id)

    def finish(self) -> PageContentExtractionResult:
        if self.options.extract_footnotes:
            self.result.footnotes = sorted(self.footnotes.values(), key=lambda f: f.index or 0)
        if self.options.extract_citations:
            self.result.citations = prepare_bibliography(
                list(self.citations.values()), self.options.style
            )
        return self.result


def extract_page_content(
    page_id: str,
    blocks: list[Block],
    options: ExtractionOptions | None = None,
) -> PageContentExtractionResult:
    """Walk a page's blocks once and collect footnotes, citations and links.

    Blocks must already have been through marker extraction. Footnote
    indices (1..k) and citation numbering follow the walk order and are
    written back onto the blocks' footnotes and citations.

    Args:
        page_id: Page being extracted; links to it count as same-page
        blocks: Top-level blocks of the page
        options: Which collections to build

    Returns:
        Extraction result
    """
    walker = _Walker(page_id, options or ExtractionOptions())
    for block in blocks:
        walker.visit(block)
    return walker.finish()
