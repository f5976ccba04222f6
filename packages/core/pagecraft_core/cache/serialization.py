"""Typed JSON serialization for cache files.

Payloads go through ``pydantic.TypeAdapter`` so datetimes, maps and nested
models come back with their original types.
"""

from datetime import datetime, timezone
from functools import lru_cache
from typing import Any, Generic, TypeVar

from pydantic import BaseModel, Field, TypeAdapter

T = TypeVar("T")


class CacheEntry(BaseModel, Generic[T]):
    """One cached artifact of one page."""

    payload: T
    page_last_updated: datetime = Field(..., description="Page edit time when written")
    written_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


@lru_cache(maxsize=None)
def entry_adapter(payload_type: Any) -> TypeAdapter:
    """TypeAdapter for ``CacheEntry[payload_type]``, built once per type."""
    return TypeAdapter(CacheEntry[payload_type])


def dump_entry(entry: CacheEntry, payload_type: Any) -> bytes:
    """Serialize a cache entry to JSON bytes."""
    return entry_adapter(payload_type).dump_json(entry, indent=2)


def load_entry(data: str | bytes, payload_type: Any) -> CacheEntry:
    """Parse a cache entry from JSON.

    Raises:
        pydantic.ValidationError: If the data does not match the payload type
    """
    return entry_adapter(payload_type).validate_json(data)
