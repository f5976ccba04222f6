"""Runner configuration settings."""

from pathlib import Path

from pagecraft_core.config import (
    CitationFormat,
    CitationsConfig,
    ConfigurationError,
    FootnoteSource,
    FootnotesConfig,
    PipelineConfig,
)
from pagecraft_core.schemas.citations import BibliographyStyle
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Runner configuration loaded from PAGECRAFT_* environment variables."""

    # Content source
    content_dir: str | None = None
    comments_enabled: bool = True

    # Cache
    cache_root: str = "tmp"

    # Footnotes
    footnotes_enabled: bool = True
    footnote_source: str = FootnoteSource.END_OF_BLOCK.value
    footnote_marker_prefix: str = "ft_"

    # Citations
    citations_enabled: bool = False
    bibliography_urls: list[str] = []
    citation_style: str = BibliographyStyle.IEEE.value
    citation_formats: list[str] = [fmt.value for fmt in CitationFormat]
    bibliography_last_source_wins: bool = True

    # Extraction
    extract_interlinked_content: bool = True

    # Runner
    max_page_concurrency: int = 5
    max_network_concurrency: int | None = None
    log_level: str = "INFO"

    model_config = {
        "env_prefix": "PAGECRAFT_",
        "env_file": ".env",
        "env_file_encoding": "utf-8",
    }


def _enum_value(enum_type, value: str, setting: str):
    try:
        return enum_type(value)
    except ValueError as e:
        allowed = ", ".join(member.value for member in enum_type)
        raise ConfigurationError(f"{setting}={value!r} is not one of: {allowed}") from e


def to_pipeline_config(settings: "Settings") -> PipelineConfig:
    """Translate runner settings into the pipeline configuration.

    Raises:
        ConfigurationError: If a required setting is missing or invalid
    """
    if not settings.content_dir:
        raise ConfigurationError("PAGECRAFT_CONTENT_DIR is not set")
    if not Path(settings.content_dir).is_dir():
        raise ConfigurationError(f"Content directory {settings.content_dir} does not exist")

    footnote_source = _enum_value(FootnoteSource, settings.footnote_source, "footnote_source")
    formats = tuple(
        _enum_value(CitationFormat, value, "citation_formats")
        for value in settings.citation_formats
    )

    config = PipelineConfig(
        footnotes=FootnotesConfig(
            enabled=settings.footnotes_enabled,
            sources=frozenset({footnote_source}),
            marker_prefix=settings.footnote_marker_prefix,
        ),
        citations=CitationsConfig(
            enabled=settings.citations_enabled,
            source_urls=tuple(settings.bibliography_urls),
            formats=formats,
            style=_enum_value(BibliographyStyle, settings.citation_style, "citation_style"),
            last_source_wins=settings.bibliography_last_source_wins,
        ),
        extract_interlinked_content=settings.extract_interlinked_content,
        max_page_concurrency=settings.max_page_concurrency,
        max_network_concurrency=settings.max_network_concurrency,
        cache_root=Path(settings.cache_root),
    )
    config.validate()
    return config


settings = Settings()
