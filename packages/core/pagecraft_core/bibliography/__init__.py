"""Bibliography loading and formatting."""

from pagecraft_core.bibliography.formatting import (
    build_citation,
    format_author_short,
    format_entry,
    format_in_text,
    prepare_bibliography,
    render_bibliography_section,
)
from pagecraft_core.bibliography.parsing import parse_bibliography
from pagecraft_core.bibliography.resolver import BibliographyResolver, merge_entries
from pagecraft_core.bibliography.sources import (
    BibliographyFetchError,
    BibliographyFetcher,
    BibSourceInfo,
    get_bib_source_info,
)

__all__ = [
    "build_citation",
    "format_author_short",
    "format_entry",
    "format_in_text",
    "prepare_bibliography",
    "render_bibliography_section",
    "parse_bibliography",
    "BibliographyResolver",
    "merge_entries",
    "BibliographyFetchError",
    "BibliographyFetcher",
    "BibSourceInfo",
    "get_bib_source_info",
]
