"""Fetch nodes: block tree and block comments from the content source."""

import asyncio
from collections.abc import Awaitable, Callable
from typing import Any

from pagecraft_core.markers.engine import collect_comment_targets
from pagecraft_core.pipeline.context import BuildContext
from pagecraft_core.pipeline.sources import CommentsPermissionError, ContentSource
from pagecraft_core.schemas.blocks import BlockComment
from pagecraft_core.utils.logging import get_logger
from pagecraft_core.utils.retry import with_retry

logger = get_logger(__name__)


def create_fetch_node(
    context: BuildContext,
    source: ContentSource,
) -> Callable[[dict[str, Any]], Awaitable[dict[str, Any]]]:
    """Create the node that fetches a page's block tree."""

    async def fetch_node(state: dict[str, Any]) -> dict[str, Any]:
        page = state["page"]
        blocks = await with_retry(
            source.fetch_page_blocks,
            page.page_id,
            operation_name=f"fetch blocks of {page.page_id}",
            semaphore=context.network_semaphore,
        )
        logger.info(f"Fetched {len(blocks)} top-level blocks for {page.page_id}")
        return {
            **state,
            "blocks": blocks,
            "current_step": "fetch",
        }

    return fetch_node


def create_fetch_comments_node(
    context: BuildContext,
    source: ContentSource,
) -> Callable[[dict[str, Any]], Awaitable[dict[str, Any]]]:
    """Create the node that prefetches comments of blocks holding footnote markers.

    Comments are only fetched when block comments are the effective footnote
    source, and only for blocks that contain a marker.
    """

    async def fetch_comments_node(state: dict[str, Any]) -> dict[str, Any]:
        targets = collect_comment_targets(state.get("blocks", []), context.config)
        comments: dict[str, list[BlockComment]] = {}
        errors = list(state.get("errors", []))

        async def _fetch(block_id: str) -> None:
            try:
                comments[block_id] = await with_retry(
                    source.list_comments,
                    block_id,
                    operation_name=f"list comments of {block_id}",
                    semaphore=context.network_semaphore,
                )
            except CommentsPermissionError as e:
                errors.append(f"comments of {block_id}: {e}")
                logger.error(f"Comments of block {block_id} are not readable: {e}")

        if targets:
            await asyncio.gather(*(_fetch(block_id) for block_id in targets))
            logger.debug(f"Fetched comments for {len(comments)} block(s)")

        return {
            **state,
            "comments": comments,
            "errors": errors,
            "current_step": "fetch_comments",
        }

    return fetch_comments_node
