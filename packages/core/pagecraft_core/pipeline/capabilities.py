"""One-time capability negotiation at pipeline start."""

from dataclasses import replace

from pagecraft_core.config import FootnoteSource, PipelineConfig
from pagecraft_core.pipeline.sources import CommentsPermissionError, ContentSource
from pagecraft_core.utils.logging import get_logger

logger = get_logger(__name__)


async def negotiate_footnotes_config(
    config: PipelineConfig, source: ContentSource
) -> PipelineConfig:
    """Resolve the footnote source the build can actually use.

    When block comments are the active source, comment access is probed
    once. If it is denied, the build falls back to end-of-block footnotes
    and the downgrade is logged here and nowhere else.

    Args:
        config: Configuration as loaded
        source: Content source to probe

    Returns:
        Effective configuration for the rest of the build
    """
    footnotes = config.footnotes
    if not footnotes.enabled or footnotes.active_source != FootnoteSource.BLOCK_COMMENTS:
        return config

    try:
        await source.probe_comments_permission()
    except CommentsPermissionError as e:
        logger.warning(
            f"Block comments are not readable ({e}); "
            f"falling back to {FootnoteSource.END_OF_BLOCK.value} footnotes"
        )
        return replace(config, footnotes=footnotes.with_source(FootnoteSource.END_OF_BLOCK))

    return config
