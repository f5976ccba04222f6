"""Content sources feeding the pipeline.

A content source lists the page registry and returns block trees and block
comments. ``JsonDirectorySource`` reads them from a directory of JSON files
exported by an upstream fetcher or translator:

    <root>/pages.json                 page registry (list of Post)
    <root>/<page_id>.json             block tree of a page (list of Block)
    <root>/comments/<block_id>.json   comments of a block (list of BlockComment)
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Protocol, runtime_checkable

from pydantic import TypeAdapter

from pagecraft_core.schemas.blocks import Block, BlockComment
from pagecraft_core.schemas.pages import Post
from pagecraft_core.utils.logging import get_logger

logger = get_logger(__name__)

_POSTS = TypeAdapter(list[Post])
_BLOCKS = TypeAdapter(list[Block])
_COMMENTS = TypeAdapter(list[BlockComment])


class CommentsPermissionError(Exception):
    """The integration is not allowed to read block comments."""

    pass


@runtime_checkable
class ContentSource(Protocol):
    """What the pipeline needs from the content backend."""

    async def get_all_pages(self) -> list[Post]:
        """Return the page registry."""
        ...

    async def fetch_page_blocks(self, page_id: str) -> list[Block]:
        """Return the full block tree of a page."""
        ...

    async def list_comments(self, block_id: str) -> list[BlockComment]:
        """Return the comments attached to a block."""
        ...

    async def probe_comments_permission(self) -> None:
        """Raise CommentsPermissionError if comments cannot be read."""
        ...


class JsonDirectorySource:
    """Reads pages, block trees and comments from JSON files."""

    def __init__(self, root: Path, comments_enabled: bool = True):
        """Initialize the source.

        Args:
            root: Directory holding pages.json and the block files
            comments_enabled: Whether comment access is granted
        """
        self.root = Path(root)
        self.comments_enabled = comments_enabled

    async def _read(self, path: Path) -> bytes:
        return await asyncio.to_thread(path.read_bytes)

    async def get_all_pages(self) -> list[Post]:
        pages = _POSTS.validate_json(await self._read(self.root / "pages.json"))
        logger.debug(f"Read {len(pages)} pages from {self.root}")
        return pages

    async def fetch_page_blocks(self, page_id: str) -> list[Block]:
        return _BLOCKS.validate_json(await self._read(self.root / f"{page_id}.json"))

    async def list_comments(self, block_id: str) -> list[BlockComment]:
        if not self.comments_enabled:
            raise CommentsPermissionError("Comment access is disabled for this source")
        path = self.root / "comments" / f"{block_id}.json"
        if not path.exists():
            return []
        return _COMMENTS.validate_json(await self._read(path))

    async def probe_comments_permission(self) -> None:
        if not self.comments_enabled:
            raise CommentsPermissionError("Comment access is disabled for this source")
