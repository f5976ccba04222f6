"""Build cache, build clock and cross-page indexes."""

from pagecraft_core.cache.block_index import BlockPageIndex, format_uuid
from pagecraft_core.cache.build_cache import MISS, PAGE_KINDS, BuildCache, CacheKind
from pagecraft_core.cache.build_clock import (
    as_utc,
    read_last_build_time,
    record_build_start,
)
from pagecraft_core.cache.serialization import CacheEntry, dump_entry, load_entry

__all__ = [
    "BlockPageIndex",
    "format_uuid",
    "MISS",
    "PAGE_KINDS",
    "BuildCache",
    "CacheKind",
    "as_utc",
    "read_last_build_time",
    "record_build_start",
    "CacheEntry",
    "dump_entry",
    "load_entry",
]
