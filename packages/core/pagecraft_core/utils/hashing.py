"""Hashing utilities."""

import hashlib
from typing import Union


def short_md5(content: Union[str, bytes], length: int | None = None) -> str:
    """MD5 hex digest used for cache file names and generated markers.

    Args:
        content: String or bytes to hash
        length: Optional number of leading hex characters to keep

    Returns:
        Hex-encoded MD5 digest, truncated when length is given
    """
    if isinstance(content, str):
        content = content.encode("utf-8")
    digest = hashlib.md5(content).hexdigest()
    return digest[:length] if length else digest
