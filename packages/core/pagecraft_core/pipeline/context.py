"""Per-build context shared by every page task."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from datetime import datetime

import httpx

from pagecraft_core.bibliography.resolver import BibliographyResolver
from pagecraft_core.bibliography.sources import BibliographyFetcher
from pagecraft_core.cache.block_index import INDEX_FILE, BlockPageIndex
from pagecraft_core.cache.build_cache import BuildCache
from pagecraft_core.cache.build_clock import (
    BUILD_START_FILE,
    read_last_build_time,
    record_build_start,
)
from pagecraft_core.config import PipelineConfig
from pagecraft_core.pipeline.capabilities import negotiate_footnotes_config
from pagecraft_core.pipeline.sources import ContentSource
from pagecraft_core.schemas.citations import ParsedCitationEntry
from pagecraft_core.schemas.pages import Post
from pagecraft_core.utils.logging import get_logger, log_exceptions

logger = get_logger(__name__)

BIB_CACHE_DIR = "bib-files-cache"


@dataclass
class BuildContext:
    """Everything computed once per build and read by every page.

    The bibliography map and the effective configuration are never
    modified after construction.
    """

    config: PipelineConfig
    cache: BuildCache
    block_index: BlockPageIndex
    registry: dict[str, Post] = field(default_factory=dict)
    bibliography: dict[str, ParsedCitationEntry] = field(default_factory=dict)
    last_build_time: datetime | None = None
    build_started: datetime | None = None
    # Bounds block, comment and bibliography requests across the whole build
    network_semaphore: asyncio.Semaphore | None = None


@log_exceptions(logger)
async def create_build_context(
    config: PipelineConfig,
    source: ContentSource,
    client: httpx.AsyncClient | None = None,
    record_start: bool = True,
) -> BuildContext:
    """Validate configuration and prepare the shared build state.

    Reads the previous build time before recording the new one, negotiates
    capabilities, loads the page registry and the bibliography.

    Args:
        config: Pipeline configuration
        source: Content source
        client: HTTP client for bibliography downloads
        record_start: Persist this build's start time

    Returns:
        Build context

    Raises:
        ConfigurationError: On unusable configuration, before any extraction
    """
    config.validate()

    cache_root = config.cache_root
    clock_path = cache_root / BUILD_START_FILE
    last_build_time = read_last_build_time(clock_path)
    logger.info(f"Last build start time: {last_build_time}")
    build_started = record_build_start(clock_path) if record_start else None

    network_semaphore = asyncio.Semaphore(config.network_concurrency)
    effective = await negotiate_footnotes_config(config, source)

    pages = await source.get_all_pages()
    registry = {page.page_id: page for page in pages}
    logger.info(f"Loaded page registry with {len(registry)} pages")

    bibliography: dict[str, ParsedCitationEntry] = {}
    citations = effective.citations
    if citations.enabled and citations.source_urls:
        fetcher = BibliographyFetcher(
            cache_root / BIB_CACHE_DIR,
            client=client,
            last_build_time=last_build_time,
            semaphore=network_semaphore,
        )
        resolver = BibliographyResolver(citations, fetcher)
        bibliography = await resolver.load_sources()

    return BuildContext(
        config=effective,
        cache=BuildCache(cache_root),
        block_index=BlockPageIndex(cache_root / INDEX_FILE),
        registry=registry,
        bibliography=bibliography,
        last_build_time=last_build_time,
        build_started=build_started,
        network_semaphore=network_semaphore,
    )
