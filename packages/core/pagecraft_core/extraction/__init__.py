"""Single-pass extraction of page content."""

from pagecraft_core.extraction.headings import build_toc, extract_headings
from pagecraft_core.extraction.interlinks import (
    build_interlinked_content_to_pages,
    classify_rich_text,
    extract_interlinked_content_in_block,
)
from pagecraft_core.extraction.page_content import (
    ExtractionOptions,
    PageContentExtractionResult,
    extract_page_content,
)

__all__ = [
    "build_toc",
    "extract_headings",
    "build_interlinked_content_to_pages",
    "classify_rich_text",
    "extract_interlinked_content_in_block",
    "ExtractionOptions",
    "PageContentExtractionResult",
    "extract_page_content",
]
