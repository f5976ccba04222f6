"""Configuration for the content pipeline.

Frozen dataclasses describe what the pipeline extracts and how. They are
built once per build (from settings, then adjusted by capability negotiation)
and passed explicitly to every extraction call.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field, replace
from enum import Enum
from pathlib import Path

from pagecraft_core.schemas.citations import BibliographyStyle


class ConfigurationError(Exception):
    """Invalid or missing configuration. Aborts the build before extraction."""

    pass


class FootnoteSource(str, Enum):
    """Where footnote definitions are read from."""

    BLOCK_COMMENTS = "block-comments"
    CHILD_BLOCKS = "start-of-child-blocks"
    END_OF_BLOCK = "end-of-block"
    INLINE_COMMAND = "inline-latex-footnote-command"


# Highest priority first; the first enabled source is the active one
FOOTNOTE_SOURCE_PRIORITY = (
    FootnoteSource.BLOCK_COMMENTS,
    FootnoteSource.CHILD_BLOCKS,
    FootnoteSource.END_OF_BLOCK,
    FootnoteSource.INLINE_COMMAND,
)


class CitationFormat(str, Enum):
    """In-text citation syntaxes."""

    PANDOC = "[@key]"
    LATEX = "\\cite{key}"
    TYPST = "#cite(key)"

    @property
    def pattern(self) -> re.Pattern[str]:
        return _CITATION_PATTERNS[self]


_CITATION_KEY = r"([A-Za-z0-9_\-:]+)"
_CITATION_PATTERNS = {
    CitationFormat.PANDOC: re.compile(rf"\[@{_CITATION_KEY}\]"),
    CitationFormat.LATEX: re.compile(rf"\\cite\{{{_CITATION_KEY}\}}"),
    CitationFormat.TYPST: re.compile(rf"#cite\({_CITATION_KEY}\)"),
}


@dataclass(frozen=True)
class FootnotesConfig:
    """In-page footnote settings."""

    enabled: bool = True
    sources: frozenset[FootnoteSource] = frozenset({FootnoteSource.END_OF_BLOCK})
    marker_prefix: str = "ft_"

    @property
    def active_source(self) -> FootnoteSource | None:
        """The enabled source with the highest priority."""
        for source in FOOTNOTE_SOURCE_PRIORITY:
            if source in self.sources:
                return source
        return None

    def with_source(self, source: FootnoteSource) -> FootnotesConfig:
        """Copy of this config with a single active source."""
        return replace(self, sources=frozenset({source}))


@dataclass(frozen=True)
class CitationsConfig:
    """BibTeX citation settings."""

    enabled: bool = False
    source_urls: tuple[str, ...] = ()
    formats: tuple[CitationFormat, ...] = tuple(CitationFormat)
    style: BibliographyStyle = BibliographyStyle.IEEE

    # On duplicate keys across sources, the later source replaces the earlier one
    last_source_wins: bool = True


@dataclass(frozen=True)
class PipelineConfig:
    """Top-level pipeline configuration."""

    footnotes: FootnotesConfig = field(default_factory=FootnotesConfig)
    citations: CitationsConfig = field(default_factory=CitationsConfig)
    extract_interlinked_content: bool = True

    # Concurrency control across pages
    max_page_concurrency: int = 5
    # Requests in flight to the content source and bibliography hosts;
    # None follows max_page_concurrency
    max_network_concurrency: int | None = None

    cache_root: Path = Path("tmp")

    @property
    def network_concurrency(self) -> int:
        if self.max_network_concurrency is None:
            return self.max_page_concurrency
        return self.max_network_concurrency

    def validate(self) -> None:
        """Check settings that would make every page build fail.

        Raises:
            ConfigurationError: On an unusable combination of settings
        """
        if self.footnotes.enabled:
            if self.footnotes.active_source is None:
                raise ConfigurationError(
                    "Footnotes are enabled but no footnote source is selected"
                )
            if not self.footnotes.marker_prefix.strip():
                raise ConfigurationError("Footnote marker prefix must not be empty")
        if self.citations.enabled and not self.citations.formats:
            raise ConfigurationError(
                "Citations are enabled but no in-text citation format is selected"
            )
        if self.max_page_concurrency < 1:
            raise ConfigurationError("max_page_concurrency must be at least 1")
        if self.network_concurrency < 1:
            raise ConfigurationError("max_network_concurrency must be at least 1")
