"""Logging utilities.

Every core module logs through a child of the ``pagecraft_core`` logger. The
package logger owns the stream handler and the level, so ``configure_logging``
changes the verbosity of the whole core at once.
"""

import asyncio
import logging
import os
import sys
from functools import wraps
from typing import Any, Callable, TypeVar

PACKAGE_LOGGER = "pagecraft_core"
_LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

F = TypeVar("F", bound=Callable[..., Any])


def _resolve_level(level: int | str) -> int:
    if isinstance(level, int):
        return level
    resolved = logging.getLevelName(level.upper())
    return resolved if isinstance(resolved, int) else logging.INFO


def _package_logger() -> logging.Logger:
    logger = logging.getLogger(PACKAGE_LOGGER)
    if not logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(_LOG_FORMAT))
        logger.addHandler(handler)
        # Library use without a runner still honours the environment
        logger.setLevel(_resolve_level(os.environ.get("PAGECRAFT_LOG_LEVEL", "INFO")))
    return logger


def configure_logging(level: int | str) -> None:
    """Set the level of every core logger.

    Args:
        level: Level name such as ``"DEBUG"`` or a ``logging`` constant;
            unknown names fall back to INFO
    """
    _package_logger().setLevel(_resolve_level(level))


def get_logger(name: str, level: int | None = None) -> logging.Logger:
    """Get a core logger.

    Args:
        name: Logger name (typically __name__)
        level: Optional level override for this logger only

    Returns:
        Logger inheriting the package level unless overridden
    """
    _package_logger()
    logger = logging.getLogger(name)
    if level is not None:
        logger.setLevel(level)
    return logger


def log_exceptions(logger: logging.Logger) -> Callable[[F], F]:
    """Decorator to log exceptions from a function.

    Args:
        logger: Logger to use for exception logging

    Returns:
        Decorated function that logs exceptions before re-raising
    """

    def decorator(func: F) -> F:
        @wraps(func)
        def sync_wrapper(*args: Any, **kwargs: Any) -> Any:
            try:
                return func(*args, **kwargs)
            except Exception as e:
                logger.exception(f"Exception in {func.__name__}: {e}")
                raise

        @wraps(func)
        async def async_wrapper(*args: Any, **kwargs: Any) -> Any:
            try:
                return await func(*args, **kwargs)
            except Exception as e:
                logger.exception(f"Exception in {func.__name__}: {e}")
                raise

        if asyncio.iscoroutinefunction(func):
            return async_wrapper  # type: ignore
        return sync_wrapper  # type: ignore

    return decorator
