"""Entry point for a content build."""

import asyncio
import logging
import sys

import structlog
from pagecraft_core.config import ConfigurationError
from pagecraft_core.utils.logging import configure_logging

from runner.config import settings, to_pipeline_config
from runner.tasks.build_content import run_content_build

logger = structlog.get_logger()


def main() -> int:
    """Run one build. Configuration errors abort before any extraction.

    Returns:
        Process exit code
    """
    structlog.configure(
        wrapper_class=structlog.make_filtering_bound_logger(
            getattr(logging, settings.log_level.upper(), logging.INFO)
        )
    )
    configure_logging(settings.log_level)

    try:
        config = to_pipeline_config(settings)
    except ConfigurationError as exc:
        logger.error("invalid_configuration", error=str(exc))
        return 2

    logger.info(
        "starting_build",
        content_dir=settings.content_dir,
        cache_root=settings.cache_root,
        max_page_concurrency=config.max_page_concurrency,
    )

    try:
        report = asyncio.run(run_content_build(settings, config))
    except ConfigurationError as exc:
        logger.error("invalid_configuration", error=str(exc))
        return 2

    return 1 if report.failed else 0


if __name__ == "__main__":
    sys.exit(main())
