"""Footnote and citation marker extraction."""

from pagecraft_core.markers.citations import (
    CitationExtractionResult,
    extract_citations_from_block,
)
from pagecraft_core.markers.engine import (
    MarkerReport,
    apply_markers,
    collect_comment_targets,
)
from pagecraft_core.markers.footnotes import (
    FootnoteExtractionResult,
    extract_footnotes_from_block,
    has_footnote_markers,
)

__all__ = [
    "CitationExtractionResult",
    "extract_citations_from_block",
    "MarkerReport",
    "apply_markers",
    "collect_comment_targets",
    "FootnoteExtractionResult",
    "extract_footnotes_from_block",
    "has_footnote_markers",
]
