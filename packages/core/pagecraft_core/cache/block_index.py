"""Persistent block-id to page-id index."""

from __future__ import annotations

import os
import re
import tempfile
from pathlib import Path

from pydantic import TypeAdapter, ValidationError

from pagecraft_core.cache.build_cache import MISS, BuildCache, CacheKind
from pagecraft_core.schemas.blocks import Block, iter_blocks
from pagecraft_core.utils.logging import get_logger

logger = get_logger(__name__)

INDEX_FILE = "block-id-page-id-map.json"

_UNDASHED_UUID = re.compile(r"^([0-9a-fA-F]{8})([0-9a-fA-F]{4})([0-9a-fA-F]{4})([0-9a-fA-F]{4})([0-9a-fA-F]{12})$")
_MAP_ADAPTER = TypeAdapter(dict[str, str])


def format_uuid(value: str) -> str:
    """Dashed 8-4-4-4-12 form of a 32-character hex id; other ids are unchanged."""
    match = _UNDASHED_UUID.match(value)
    if not match:
        return value
    return "-".join(match.groups())


class BlockPageIndex:
    """Maps every known block id to the page that contains it."""

    def __init__(self, path: Path):
        self.path = Path(path)
        self._map: dict[str, str] | None = None

    @property
    def mapping(self) -> dict[str, str]:
        if self._map is None:
            self._map = self._load()
        return self._map

    def _load(self) -> dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            return _MAP_ADAPTER.validate_json(self.path.read_bytes())
        except (OSError, ValidationError) as e:
            logger.warning(f"Starting a new block index, {self.path} is unreadable: {e}")
            return {}

    def update(self, page_id: str, blocks: list[Block]) -> None:
        """Record every block of a page's tree, column and nested children included."""
        owner = format_uuid(page_id)
        for block in iter_blocks(blocks):
            self.mapping[format_uuid(block.id)] = owner

    def find_page_for_block(self, block_id: str) -> str | None:
        return self.mapping.get(format_uuid(block_id))

    def find_block(self, block_id: str, cache: BuildCache) -> Block | None:
        """Look a block up in the cached block tree of its page."""
        page_id = self.find_page_for_block(block_id)
        if page_id is None:
            return None
        blocks = cache.get(page_id, CacheKind.BLOCKS)
        if blocks is MISS:
            return None
        wanted = format_uuid(block_id)
        for block in iter_blocks(blocks):
            if format_uuid(block.id) == wanted:
                return block
        return None

    def save(self) -> bool:
        """Write the index atomically. Failures are logged, not raised."""
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with tempfile.NamedTemporaryFile(dir=self.path.parent, suffix=".tmp", delete=False) as tmp:
                tmp.write(_MAP_ADAPTER.dump_json(self.mapping, indent=2))
            os.replace(tmp.name, self.path)
            return True
        except OSError as e:
            logger.error(f"Failed to write block index {self.path}: {e}")
            return False
