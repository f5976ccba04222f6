"""Retry utilities for network-bound build steps."""

import asyncio
from collections.abc import Callable
from typing import Any, TypeVar

import httpx
from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from pagecraft_core.utils.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")

DEFAULT_MAX_ATTEMPTS = 3
DEFAULT_MIN_WAIT = 1  # seconds
DEFAULT_MAX_WAIT = 30  # seconds


class RateLimitError(Exception):
    """Raised when a remote host answers with HTTP 429."""

    def __init__(
        self, message: str = "Rate limit exceeded", retry_after: float | None = None
    ):
        super().__init__(message)
        self.retry_after = retry_after


RETRYABLE_EXCEPTIONS = (
    ConnectionError,
    TimeoutError,
    asyncio.TimeoutError,
    httpx.TransportError,
    RateLimitError,
)


def get_async_retry(
    max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    min_wait: float = DEFAULT_MIN_WAIT,
    max_wait: float = DEFAULT_MAX_WAIT,
) -> AsyncRetrying:
    """Create an async retry context manager.

    Args:
        max_attempts: Maximum number of attempts
        min_wait: Minimum wait time in seconds
        max_wait: Maximum wait time in seconds

    Returns:
        AsyncRetrying context manager
    """
    return AsyncRetrying(
        stop=stop_after_attempt(max_attempts),
        wait=wait_exponential(multiplier=1, min=min_wait, max=max_wait),
        retry=retry_if_exception_type(RETRYABLE_EXCEPTIONS),
        reraise=True,
    )


def _format_exception(e: Exception) -> str:
    """Format exception for logging, handling nested/empty exceptions."""
    msg = str(e).strip()

    if not msg:
        msg = type(e).__name__

    if e.__cause__:
        cause_msg = str(e.__cause__).strip()
        if cause_msg:
            msg = f"{msg} (caused by: {cause_msg})"

    if isinstance(e, httpx.HTTPStatusError):
        msg = f"HTTP {e.response.status_code}: {msg}"

    return msg or "Unknown error"


async def with_retry(
    func: Callable[..., Any],
    *args: Any,
    max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    operation_name: str = "operation",
    semaphore: asyncio.Semaphore | None = None,
    min_wait: float = DEFAULT_MIN_WAIT,
    **kwargs: Any,
) -> Any:
    """Execute an async function with retry logic and optional concurrency limiting.

    The semaphore is held per attempt, so backoff waits do not occupy a slot.

    Args:
        func: Async function to execute
        *args: Positional arguments for the function
        max_attempts: Maximum number of attempts
        operation_name: Name for logging purposes
        semaphore: Build-wide limit on requests in flight, if any
        min_wait: Minimum backoff between attempts in seconds
        **kwargs: Keyword arguments for the function

    Returns:
        Result of the function

    Raises:
        The last exception if all retries fail
    """
    attempt = 0
    last_exception = None

    async def _execute() -> Any:
        if semaphore is not None:
            async with semaphore:
                return await func(*args, **kwargs)
        return await func(*args, **kwargs)

    async for attempt_ctx in get_async_retry(
        max_attempts=max_attempts, min_wait=min_wait
    ):
        with attempt_ctx:
            attempt += 1
            if attempt > 1:
                logger.info(
                    f"Retrying {operation_name} (attempt {attempt}/{max_attempts})"
                )
            try:
                return await _execute()
            except RETRYABLE_EXCEPTIONS as e:
                last_exception = e
                logger.warning(
                    f"{operation_name} failed (attempt {attempt}/{max_attempts}): {_format_exception(e)}"
                )
                raise
            except Exception as e:
                logger.error(
                    f"{operation_name} failed with non-retryable error: {_format_exception(e)}"
                )
                raise

    if last_exception:
        raise last_exception
    raise RuntimeError(f"{operation_name} failed after {max_attempts} attempts")
