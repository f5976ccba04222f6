"""Interlinked content: which pages, blocks and URLs a block points at."""

from __future__ import annotations

from pagecraft_core.schemas.blocks import (
    Block,
    EmbedContent,
    LinkToPageContent,
    MediaContent,
    iter_blocks,
)
from pagecraft_core.schemas.interlinks import (
    InterlinkedContentInPage,
    InterlinkedContentToPage,
)
from pagecraft_core.schemas.richtext import RichText


def classify_rich_text(rich_text: RichText, page_id: str) -> str | None:
    """Bucket a run as ``other_pages``, ``same_page`` or ``external_hrefs``.

    Internal links and page mentions are compared with the page being
    extracted; links to the page itself go to ``same_page``.

    Returns:
        Bucket name, or None for runs without a link
    """
    target = rich_text.target_page_id
    if target is not None:
        return "same_page" if target == page_id else "other_pages"
    if rich_text.external_url:
        return "external_hrefs"
    return None


def extract_interlinked_content_in_block(
    page_id: str, block: Block
) -> InterlinkedContentInPage | None:
    """Collect the cross-references of a single block (not its children).

    Args:
        page_id: Page being extracted
        block: Block to inspect

    Returns:
        Entry for the block, or None when it references nothing
    """
    buckets: dict[str, list[RichText]] = {
        "other_pages": [],
        "same_page": [],
        "external_hrefs": [],
    }
    for location in block.rich_text_locations(include_code=True):
        for rich_text in location.rich_texts:
            bucket = classify_rich_text(rich_text, page_id)
            if bucket is not None:
                buckets[bucket].append(rich_text)

    content = block.content
    direct_media_link = None
    direct_nonmedia_link = None
    link_to_page_id = None
    if isinstance(content, MediaContent):
        direct_media_link = content.external_url or content.file_url
    elif isinstance(content, EmbedContent):
        direct_nonmedia_link = content.url
    elif isinstance(content, LinkToPageContent) and content.page_id != page_id:
        link_to_page_id = content.page_id

    if not any(buckets.values()) and not (
        direct_media_link or direct_nonmedia_link or link_to_page_id
    ):
        return None

    return InterlinkedContentInPage(
        block=block,
        direct_media_link=direct_media_link,
        direct_nonmedia_link=direct_nonmedia_link,
        link_to_page_id=link_to_page_id,
        **buckets,
    )


def build_interlinked_content_to_pages(
    interlinked: dict[str, list[InterlinkedContentInPage]],
) -> dict[str, list[InterlinkedContentToPage]]:
    """Invert per-page interlinked content into a backlink index.

    Args:
        interlinked: Interlinked content keyed by the entry that contains it

    Returns:
        Map of target entry id to the blocks on other entries linking to it
    """
    backlinks: dict[str, list[InterlinkedContentToPage]] = {}
    for entry_id, items in interlinked.items():
        for item in items:
            for target_id in sorted(item.linked_page_ids()):
                if target_id == entry_id:
                    continue
                links = backlinks.setdefault(target_id, [])
                if any(link.entry_id == entry_id and link.block.id == item.block.id for link in links):
                    continue
                links.append(InterlinkedContentToPage(entry_id=entry_id, block=item.block))
    return backlinks


def linked_page_ids(blocks: list[Block], page_id: str) -> set[str]:
    """Other pages referenced anywhere in a block tree."""
    page_ids: set[str] = set()
    for block in iter_blocks(blocks):
        item = extract_interlinked_content_in_block(page_id, block)
        if item is not None:
            page_ids |= item.linked_page_ids()
    return page_ids
