"""Utility functions."""

from pagecraft_core.utils.hashing import short_md5
from pagecraft_core.utils.logging import configure_logging, get_logger, log_exceptions
from pagecraft_core.utils.retry import RateLimitError, with_retry
from pagecraft_core.utils.text import slugify

__all__ = [
    "short_md5",
    "configure_logging",
    "get_logger",
    "log_exceptions",
    "RateLimitError",
    "with_retry",
    "slugify",
]
