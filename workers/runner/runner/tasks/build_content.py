"""Task for building the content artifacts of every page.

The build runs in this order:

- capability negotiation and page registry load
- bibliography load (once, shared by every page)
- per-page graph with cache reuse, bounded by max_page_concurrency
- backlink index and block index
"""

from __future__ import annotations

from pathlib import Path

import httpx
import structlog
from pagecraft_core.config import PipelineConfig
from pagecraft_core.pipeline import (
    BuildReport,
    JsonDirectorySource,
    build_site,
    create_build_context,
)

from runner.config import Settings

logger = structlog.get_logger()


async def run_content_build(settings: Settings, config: PipelineConfig) -> BuildReport:
    """Build all pages from the configured content directory.

    Args:
        settings: Runner settings
        config: Validated pipeline configuration

    Returns:
        Build report
    """
    source = JsonDirectorySource(
        Path(settings.content_dir), comments_enabled=settings.comments_enabled
    )

    async with httpx.AsyncClient(follow_redirects=True) as client:
        context = await create_build_context(config, source, client=client)

    logger.info(
        "build_context_ready",
        pages=len(context.registry),
        bibliography_entries=len(context.bibliography),
        footnote_source=(
            context.config.footnotes.active_source.value
            if context.config.footnotes.active_source
            else None
        ),
        last_build_time=context.last_build_time.isoformat() if context.last_build_time else None,
    )

    report = await build_site(context, source)

    for page_id, error in report.failed.items():
        logger.warning("page_failed", page_id=page_id, error=error)
    for page_id, result in report.results.items():
        if result.errors:
            logger.warning("page_built_with_errors", page_id=page_id, errors=result.errors)

    logger.info("build_complete", **report.summary)
    return report
