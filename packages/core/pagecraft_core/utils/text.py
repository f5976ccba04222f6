"""Text helpers shared by heading and anchor generation."""

import re
import unicodedata

_NON_WORD = re.compile(r"[^\w\s-]", re.UNICODE)
_SEPARATORS = re.compile(r"[\s_-]+")


def slugify(text: str) -> str:
    """Turn heading text into a URL fragment.

    Args:
        text: Arbitrary display text

    Returns:
        Lowercase, hyphen-separated slug
    """
    normalized = unicodedata.normalize("NFKC", text).strip().lower()
    normalized = _NON_WORD.sub("", normalized)
    return _SEPARATORS.sub("-", normalized).strip("-")
