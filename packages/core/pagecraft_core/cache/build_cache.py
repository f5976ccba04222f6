"""Per-page, per-artifact build cache.

Every (page, kind) pair is one JSON file, so kinds are invalidated and
rewritten independently. Files are replaced atomically: a crash leaves
either the old or the new file, never a truncated one.
"""

from __future__ import annotations

import os
import tempfile
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from pagecraft_core.cache.build_clock import as_utc
from pagecraft_core.cache.serialization import CacheEntry, dump_entry, load_entry
from pagecraft_core.schemas.blocks import Block, Footnote
from pagecraft_core.schemas.citations import Citation
from pagecraft_core.schemas.interlinks import (
    InterlinkedContentInPage,
    InterlinkedContentToPage,
)
from pagecraft_core.schemas.pages import Heading, Post
from pagecraft_core.utils.logging import get_logger

logger = get_logger(__name__)


class CacheKind(str, Enum):
    """Artifact kinds cached per page."""

    BLOCKS = "blocks"
    FOOTNOTES = "footnotes"
    CITATIONS = "citations"
    INTERLINKED_CONTENT = "interlinked-content"
    INTERLINKED_CONTENT_TO_PAGE = "interlinked-content-to-page"
    RENDERED_HTML = "rendered-html"
    HEADINGS = "headings"

    @property
    def payload_type(self) -> Any:
        return _PAYLOAD_TYPES[self]

    @property
    def directory(self) -> Path:
        return _DIRECTORIES[self]

    @property
    def depends_on_linked_pages(self) -> bool:
        """Kinds whose content embeds titles or slugs of other pages."""
        return self in (
            CacheKind.INTERLINKED_CONTENT,
            CacheKind.INTERLINKED_CONTENT_TO_PAGE,
            CacheKind.RENDERED_HTML,
        )


_PAYLOAD_TYPES: dict[CacheKind, Any] = {
    CacheKind.BLOCKS: list[Block],
    CacheKind.FOOTNOTES: list[Footnote],
    CacheKind.CITATIONS: list[Citation],
    CacheKind.INTERLINKED_CONTENT: list[InterlinkedContentInPage],
    CacheKind.INTERLINKED_CONTENT_TO_PAGE: list[InterlinkedContentToPage],
    CacheKind.RENDERED_HTML: str,
    CacheKind.HEADINGS: list[Heading],
}

_BLOCKS_ROOT = Path("blocks-json-cache")
_DIRECTORIES: dict[CacheKind, Path] = {
    CacheKind.BLOCKS: _BLOCKS_ROOT,
    CacheKind.FOOTNOTES: _BLOCKS_ROOT / "footnotes-in-page",
    CacheKind.CITATIONS: _BLOCKS_ROOT / "citations-in-page",
    CacheKind.INTERLINKED_CONTENT: _BLOCKS_ROOT / "interlinked-content-in-page",
    CacheKind.INTERLINKED_CONTENT_TO_PAGE: _BLOCKS_ROOT / "interlinked-content-to-page",
    CacheKind.RENDERED_HTML: Path("blocks-html-cache"),
    CacheKind.HEADINGS: _BLOCKS_ROOT / "headings",
}

# Kinds produced by one page's extraction run
PAGE_KINDS = (
    CacheKind.BLOCKS,
    CacheKind.FOOTNOTES,
    CacheKind.CITATIONS,
    CacheKind.INTERLINKED_CONTENT,
    CacheKind.HEADINGS,
)


class _Miss:
    """Sentinel returned by ``BuildCache.get`` when nothing usable is cached."""

    _instance: _Miss | None = None

    def __new__(cls) -> _Miss:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "MISS"


MISS = _Miss()


class BuildCache:
    """Reads and writes cached artifacts under a cache root."""

    def __init__(self, root: Path):
        """Initialize the cache.

        Args:
            root: Cache root; kind directories are created below it on write
        """
        self.root = Path(root)

    def path_for(self, page_id: str, kind: CacheKind) -> Path:
        return self.root / kind.directory / f"{page_id}.json"

    def get_entry(self, page_id: str, kind: CacheKind) -> CacheEntry | None:
        """Load the full cache entry, or None if missing or unreadable."""
        path = self.path_for(page_id, kind)
        if not path.exists():
            return None
        try:
            return load_entry(path.read_bytes(), kind.payload_type)
        except (OSError, ValidationError) as e:
            logger.warning(f"Discarding unreadable {kind.value} cache for {page_id}: {e}")
            return None

    def get(self, page_id: str, kind: CacheKind) -> Any:
        """Cached payload for (page, kind), or ``MISS``."""
        entry = self.get_entry(page_id, kind)
        if entry is None:
            return MISS
        return entry.payload

    def has(self, page_id: str, kind: CacheKind) -> bool:
        return self.path_for(page_id, kind).exists()

    def put(
        self,
        page_id: str,
        kind: CacheKind,
        payload: Any,
        page_last_updated: datetime,
    ) -> bool:
        """Write a payload, replacing any previous file atomically.

        Failures are logged and reported, never raised; the artifact is
        simply recomputed on the next build.

        Returns:
            True if the file was written
        """
        path = self.path_for(page_id, kind)
        entry = CacheEntry[kind.payload_type](
            payload=payload, page_last_updated=page_last_updated
        )
        tmp_name = None
        try:
            data = dump_entry(entry, kind.payload_type)
            path.parent.mkdir(parents=True, exist_ok=True)
            with tempfile.NamedTemporaryFile(
                dir=path.parent, prefix=f".{page_id}.", suffix=".tmp", delete=False
            ) as tmp:
                tmp_name = tmp.name
                tmp.write(data)
            os.replace(tmp_name, path)
            return True
        except (OSError, ValueError) as e:
            logger.error(f"Failed to write {kind.value} cache for {page_id}: {e}")
            if tmp_name is not None and os.path.exists(tmp_name):
                os.unlink(tmp_name)
            return False

    def invalidate(self, page_id: str, kinds: tuple[CacheKind, ...] | None = None) -> None:
        """Delete cached files of a page (all kinds by default)."""
        for kind in kinds or tuple(CacheKind):
            path = self.path_for(page_id, kind)
            try:
                path.unlink(missing_ok=True)
            except OSError as e:
                logger.warning(f"Failed to delete {path}: {e}")

    def linked_page_ids(self, page_id: str) -> set[str]:
        """Pages this page linked to when its interlinked content was cached."""
        items = self.get(page_id, CacheKind.INTERLINKED_CONTENT)
        if items is MISS:
            return set()
        page_ids: set[str] = set()
        for item in items:
            page_ids |= item.linked_page_ids()
        return page_ids

    def _page_unchanged(self, page: Post, last_build_time: datetime | None) -> bool:
        if last_build_time is None:
            return False
        return as_utc(page.last_updated) <= as_utc(last_build_time)

    def _linked_pages_unchanged(
        self, page: Post, last_build_time: datetime, registry: dict[str, Post]
    ) -> bool:
        for linked_id in self.linked_page_ids(page.page_id):
            linked = registry.get(linked_id)
            if linked is not None and as_utc(linked.last_updated) > as_utc(last_build_time):
                logger.debug(f"{page.page_id} links to updated page {linked_id}")
                return False
        return True

    def is_valid(
        self,
        page: Post,
        last_build_time: datetime | None,
        registry: dict[str, Post],
    ) -> bool:
        """Whether the page's cached artifacts can be reused.

        True iff there was a previous build, the page was not edited since,
        and no page it links to (one hop) was edited since.

        Args:
            page: Registry entry of the page
            last_build_time: Start of the previous build
            registry: All pages by id

        Returns:
            True if cached artifacts are current
        """
        if not self._page_unchanged(page, last_build_time):
            return False
        return self._linked_pages_unchanged(page, last_build_time, registry)

    def is_kind_valid(
        self,
        page: Post,
        kind: CacheKind,
        last_build_time: datetime | None,
        registry: dict[str, Post],
    ) -> bool:
        """Validity of one artifact kind of a page.

        Kinds that do not embed other pages' data only depend on the page
        itself; a missing file is never valid.
        """
        if not self._page_unchanged(page, last_build_time) or not self.has(page.page_id, kind):
            return False
        if kind.depends_on_linked_pages:
            return self._linked_pages_unchanged(page, last_build_time, registry)
        return True

    def valid_kinds(
        self,
        page: Post,
        last_build_time: datetime | None,
        registry: dict[str, Post],
        kinds: tuple[CacheKind, ...] = PAGE_KINDS,
    ) -> set[CacheKind]:
        """The subset of ``kinds`` whose cached files can be reused."""
        return {
            kind
            for kind in kinds
            if self.is_kind_valid(page, kind, last_build_time, registry)
        }
