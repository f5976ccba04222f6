"""Heading extraction and table-of-contents nesting."""

from pagecraft_core.schemas.blocks import (
    Block,
    CalloutContent,
    ColumnListContent,
    HeadingContent,
    ToggleContent,
)
from pagecraft_core.schemas.pages import Heading, TocItem
from pagecraft_core.utils.logging import get_logger
from pagecraft_core.utils.text import slugify

logger = get_logger(__name__)


def _heading(block: Block) -> Heading | None:
    content = block.content
    if not isinstance(content, HeadingContent):
        return None
    # Marker glyphs are not part of the heading's visible title
    text = "".join(rt.plain_text for rt in content.rich_texts if not rt.is_marker).strip()
    return Heading(text=text, slug=slugify(text), depth=content.depth, block_id=block.id)


def _nested_candidates(block: Block) -> list[Block]:
    content = block.content
    if isinstance(content, (ToggleContent, CalloutContent, ColumnListContent)):
        return block.child_blocks()
    if isinstance(content, HeadingContent) and content.is_toggleable:
        return block.child_blocks()
    return []


def extract_headings(blocks: list[Block]) -> list[Heading]:
    """Page-level headings plus headings one level inside toggles, callouts and columns.

    Args:
        blocks: Top-level blocks of a page

    Returns:
        Headings in document order
    """
    headings: list[Heading] = []
    for block in blocks:
        heading = _heading(block)
        if heading is not None:
            headings.append(heading)
        for child in _nested_candidates(block):
            nested = _heading(child)
            if nested is not None:
                headings.append(nested)
    return headings


def _dive(item: TocItem, gap: int) -> list[TocItem]:
    if gap <= 1 or not item.subheadings:
        return item.subheadings
    return _dive(item.subheadings[-1], gap - 1)


def build_toc(headings: list[Heading]) -> list[TocItem]:
    """Nest headings by depth. Headings without a shallower parent are dropped."""
    toc: list[TocItem] = []
    for heading in headings:
        item = TocItem(heading=heading)
        if heading.depth == 1:
            toc.append(item)
            continue
        if not toc or heading.depth < toc[-1].heading.depth:
            logger.info(f"Orphan heading found: {heading.text}")
            continue
        _dive(toc[-1], heading.depth - toc[-1].heading.depth).append(item)
    return toc
