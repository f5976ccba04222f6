"""pagecraft-core: Content extraction and caching for static site builds.

This package turns page block trees into render-ready artifacts: footnotes
and citations tagged in place, interlinked-content edges, headings, and a
per-page cache that is reused across builds.

Extraction:
    Markers are tagged first, then one walk over the tree collects
    footnotes, citations and links.

    >>> from pagecraft_core.markers import apply_markers
    >>> from pagecraft_core.extraction import extract_page_content
    >>> apply_markers(blocks, config, entries=bibliography)
    >>> result = extract_page_content(page_id, blocks)

Site build:
    Every page runs through a graph that reuses valid cache entries and
    recomputes only what is stale.

    >>> from pagecraft_core.pipeline import build_site, create_build_context
    >>> context = await create_build_context(config, source)
    >>> report = await build_site(context, source)
"""

from pagecraft_core.config import (
    CitationsConfig,
    ConfigurationError,
    FootnotesConfig,
    PipelineConfig,
)
from pagecraft_core.extraction import extract_page_content
from pagecraft_core.markers import apply_markers
from pagecraft_core.pipeline import build_site, create_build_context
from pagecraft_core.schemas import Block, Citation, Footnote, RichText

__version__ = "0.1.0"

__all__ = [
    # Configuration
    "CitationsConfig",
    "ConfigurationError",
    "FootnotesConfig",
    "PipelineConfig",
    # Extraction
    "apply_markers",
    "extract_page_content",
    # Site build
    "build_site",
    "create_build_context",
    # Schemas
    "Block",
    "Citation",
    "Footnote",
    "RichText",
]
