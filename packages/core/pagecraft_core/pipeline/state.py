"""State passed through the per-page graph."""

from typing import TypedDict

from pagecraft_core.cache.build_cache import CacheKind
from pagecraft_core.markers.engine import MarkerReport
from pagecraft_core.schemas.blocks import Block, BlockComment, Footnote
from pagecraft_core.schemas.citations import Citation
from pagecraft_core.schemas.interlinks import InterlinkedContentInPage
from pagecraft_core.schemas.pages import Heading, Post

# Cache decisions
FULL_HIT = "full"
PARTIAL_HIT = "partial"
MISS = "miss"


class PageState(TypedDict, total=False):
    """State of one page build."""

    # Input
    page: Post

    # Cache decision
    decision: str
    stale_kinds: list[CacheKind]

    # Content
    blocks: list[Block]
    comments: dict[str, list[BlockComment]]
    footnotes: list[Footnote]
    citations: list[Citation]
    interlinked_content: list[InterlinkedContentInPage]
    headings: list[Heading]

    # Output
    recomputed: list[CacheKind]
    marker_report: MarkerReport

    # Metadata
    current_step: str
    errors: list[str]
