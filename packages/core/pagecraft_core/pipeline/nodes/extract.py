"""Extract node: unified extraction of the stale kinds."""

from collections.abc import Callable
from typing import Any

from pagecraft_core.cache.build_cache import CacheKind
from pagecraft_core.extraction.headings import extract_headings
from pagecraft_core.extraction.page_content import ExtractionOptions, extract_page_content
from pagecraft_core.pipeline.context import BuildContext
from pagecraft_core.utils.logging import get_logger

logger = get_logger(__name__)

# Kinds that rewrite data held inside the block tree
_BLOCK_MUTATING_KINDS = (CacheKind.FOOTNOTES, CacheKind.CITATIONS)


def create_extract_node(context: BuildContext) -> Callable[[dict[str, Any]], dict[str, Any]]:
    """Create the node that recomputes stale kinds with one walk over the tree.

    Only stale kinds are enabled for the walk. Blocks are marked for
    persistence when the walk rewrote footnote or citation data on them.
    """

    def extract_node(state: dict[str, Any]) -> dict[str, Any]:
        page = state["page"]
        stale = list(state.get("stale_kinds", []))
        blocks = state.get("blocks", [])

        options = ExtractionOptions(
            extract_footnotes=CacheKind.FOOTNOTES in stale,
            extract_citations=CacheKind.CITATIONS in stale,
            extract_interlinked_content=CacheKind.INTERLINKED_CONTENT in stale,
            style=context.config.citations.style,
        )
        updates: dict[str, Any] = {}
        if options.extract_footnotes or options.extract_citations or options.extract_interlinked_content:
            result = extract_page_content(page.page_id, blocks, options)
            if options.extract_footnotes:
                updates["footnotes"] = result.footnotes
            if options.extract_citations:
                updates["citations"] = result.citations
            if options.extract_interlinked_content:
                updates["interlinked_content"] = result.interlinked_content
        if CacheKind.HEADINGS in stale:
            updates["headings"] = extract_headings(blocks)

        recomputed = list(stale)
        if CacheKind.BLOCKS not in recomputed and any(
            kind in stale for kind in _BLOCK_MUTATING_KINDS
        ):
            recomputed.insert(0, CacheKind.BLOCKS)

        logger.info(
            f"Extracted {page.page_id}: "
            f"{', '.join(kind.value for kind in stale) or 'nothing stale'}"
        )
        return {
            **state,
            **updates,
            "recomputed": recomputed,
            "current_step": "extract",
        }

    return extract_node
