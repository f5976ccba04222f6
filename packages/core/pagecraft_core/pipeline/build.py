"""Site build: every page through the page graph, then cross-page indexes."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Any

from pagecraft_core.cache.build_cache import MISS as CACHE_MISS
from pagecraft_core.cache.build_cache import CacheKind
from pagecraft_core.extraction.interlinks import build_interlinked_content_to_pages
from pagecraft_core.pipeline.context import BuildContext
from pagecraft_core.pipeline.page_graph import build_page_graph
from pagecraft_core.pipeline.sources import ContentSource
from pagecraft_core.pipeline.state import FULL_HIT, MISS, PARTIAL_HIT
from pagecraft_core.schemas.blocks import Block, Footnote
from pagecraft_core.schemas.citations import Citation
from pagecraft_core.schemas.interlinks import (
    InterlinkedContentInPage,
    InterlinkedContentToPage,
)
from pagecraft_core.schemas.pages import Heading, Post
from pagecraft_core.utils.logging import get_logger

logger = get_logger(__name__)


@dataclass
class PageBuildResult:
    """Artifacts of one page, fresh or reused."""

    page_id: str
    decision: str
    blocks: list[Block] = field(default_factory=list)
    footnotes: list[Footnote] = field(default_factory=list)
    citations: list[Citation] = field(default_factory=list)
    interlinked_content: list[InterlinkedContentInPage] = field(default_factory=list)
    headings: list[Heading] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)


@dataclass
class BuildReport:
    """Outcome of a site build."""

    results: dict[str, PageBuildResult] = field(default_factory=dict)
    failed: dict[str, str] = field(default_factory=dict)
    skipped: list[str] = field(default_factory=list)
    backlinks: dict[str, list[InterlinkedContentToPage]] = field(default_factory=dict)

    def pages_with(self, decision: str) -> list[str]:
        return [page_id for page_id, result in self.results.items() if result.decision == decision]

    @property
    def summary(self) -> dict[str, int]:
        return {
            "built": len(self.pages_with(MISS)),
            "partial": len(self.pages_with(PARTIAL_HIT)),
            "cached": len(self.pages_with(FULL_HIT)),
            "failed": len(self.failed),
            "skipped": len(self.skipped),
        }


def _result_from_state(page: Post, state: dict[str, Any]) -> PageBuildResult:
    return PageBuildResult(
        page_id=page.page_id,
        decision=state.get("decision", MISS),
        blocks=state.get("blocks") or [],
        footnotes=state.get("footnotes") or [],
        citations=state.get("citations") or [],
        interlinked_content=state.get("interlinked_content") or [],
        headings=state.get("headings") or [],
        errors=state.get("errors") or [],
    )


def _interlinked_content_of_all_pages(
    context: BuildContext, report: BuildReport
) -> dict[str, list[InterlinkedContentInPage]]:
    interlinked: dict[str, list[InterlinkedContentInPage]] = {}
    for page_id, page in context.registry.items():
        result = report.results.get(page_id)
        if result is not None:
            interlinked[page_id] = result.interlinked_content
            continue
        if page.is_external:
            continue
        # Failed pages keep contributing what the previous build cached
        cached = context.cache.get(page_id, CacheKind.INTERLINKED_CONTENT)
        if cached is not CACHE_MISS:
            interlinked[page_id] = cached
    return interlinked


def write_cross_page_indexes(context: BuildContext, report: BuildReport) -> None:
    """Write the backlink index and the block index from the page results."""
    if context.config.extract_interlinked_content:
        report.backlinks = build_interlinked_content_to_pages(
            _interlinked_content_of_all_pages(context, report)
        )
        for page_id, page in context.registry.items():
            if page.is_external:
                continue
            context.cache.put(
                page_id,
                CacheKind.INTERLINKED_CONTENT_TO_PAGE,
                report.backlinks.get(page_id, []),
                page.last_updated,
            )

    for page_id, result in report.results.items():
        context.block_index.update(page_id, result.blocks)
    context.block_index.save()


async def build_site(context: BuildContext, source: ContentSource) -> BuildReport:
    """Build every non-external page with bounded concurrency.

    A page that fails is logged and reported; the others are unaffected.

    Args:
        context: Shared build context
        source: Content source

    Returns:
        Build report
    """
    graph = build_page_graph(context, source)
    semaphore = asyncio.Semaphore(context.config.max_page_concurrency)
    report = BuildReport()

    async def _build_page(page: Post) -> None:
        async with semaphore:
            try:
                state = await graph.ainvoke({"page": page, "errors": []})
            except Exception as e:
                logger.exception(f"Build of page {page.page_id} failed: {e}")
                report.failed[page.page_id] = str(e) or type(e).__name__
                return
            report.results[page.page_id] = _result_from_state(page, state)

    pages = []
    for page in context.registry.values():
        if page.is_external:
            report.skipped.append(page.page_id)
        else:
            pages.append(page)

    logger.info(
        f"Building {len(pages)} pages "
        f"(max_page_concurrency={context.config.max_page_concurrency})"
    )
    await asyncio.gather(*(_build_page(page) for page in pages))

    write_cross_page_indexes(context, report)
    logger.info(f"Build finished: {report.summary}")
    return report
