"""Bibliography resolver.

Loads every configured bibliography source once per build and merges the
entries into a single map keyed by citation key.
"""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, ValidationError

from pagecraft_core.bibliography.parsing import parse_bibliography
from pagecraft_core.bibliography.sources import BibliographyFetcher
from pagecraft_core.config import CitationsConfig
from pagecraft_core.schemas.citations import ParsedCitationEntry
from pagecraft_core.utils.logging import get_logger

logger = get_logger(__name__)

COMBINED_ENTRIES_FILE = "combined-entries.json"


class KeyCollision(BaseModel):
    """A citation key defined by more than one source."""

    key: str
    first_url: str
    second_url: str
    kept_url: str


class CombinedEntries(BaseModel):
    """Merged entries persisted between builds.

    Only reused for the same sources and collision policy.
    """

    source_urls: list[str]
    last_source_wins: bool = True
    entries: dict[str, ParsedCitationEntry]
    collisions: list[KeyCollision] = []


def _warn_collision(collision: KeyCollision) -> None:
    logger.warning(
        f"Citation key '{collision.key}' is defined in both {collision.first_url} "
        f"and {collision.second_url}; using the entry from {collision.kept_url}"
    )


def merge_entries(
    sources: list[tuple[str, list[ParsedCitationEntry]]],
    last_source_wins: bool = True,
    collisions: list[KeyCollision] | None = None,
) -> dict[str, ParsedCitationEntry]:
    """Merge entries from several sources by key.

    Args:
        sources: (source url, entries) pairs in load order
        last_source_wins: Keep the later definition on collisions
        collisions: Optional list that receives every collision found

    Returns:
        Map of citation key to entry
    """
    merged: dict[str, ParsedCitationEntry] = {}
    origin: dict[str, str] = {}

    for url, entries in sources:
        for entry in entries:
            if entry.key in merged and origin[entry.key] != url:
                collision = KeyCollision(
                    key=entry.key,
                    first_url=origin[entry.key],
                    second_url=url,
                    kept_url=url if last_source_wins else origin[entry.key],
                )
                _warn_collision(collision)
                if collisions is not None:
                    collisions.append(collision)
                if not last_source_wins:
                    continue
            merged[entry.key] = entry
            origin[entry.key] = url
    return merged


class BibliographyResolver:
    """Loads and caches the bibliography map for one build."""

    def __init__(self, config: CitationsConfig, fetcher: BibliographyFetcher):
        self.config = config
        self.fetcher = fetcher
        self._entries: dict[str, ParsedCitationEntry] | None = None

    @property
    def combined_path(self) -> Path:
        return self.fetcher.cache_dir / COMBINED_ENTRIES_FILE

    def _load_combined(self, urls: list[str]) -> dict[str, ParsedCitationEntry] | None:
        path = self.combined_path
        if not path.exists():
            return None

        combined_mtime = path.stat().st_mtime
        for url in urls:
            bib_path = self.fetcher.bib_path(url)
            if not bib_path.exists() or bib_path.stat().st_mtime > combined_mtime:
                return None

        try:
            combined = CombinedEntries.model_validate_json(path.read_text(encoding="utf-8"))
        except (OSError, ValidationError) as e:
            logger.warning(f"Failed to load combined bibliography cache: {e}")
            return None

        if (
            combined.source_urls != urls
            or combined.last_source_wins != self.config.last_source_wins
        ):
            return None
        for collision in combined.collisions:
            _warn_collision(collision)
        logger.info(f"Loaded {len(combined.entries)} entries from combined cache")
        return combined.entries

    def _save_combined(
        self,
        urls: list[str],
        entries: dict[str, ParsedCitationEntry],
        collisions: list[KeyCollision],
    ) -> None:
        combined = CombinedEntries(
            source_urls=urls,
            last_source_wins=self.config.last_source_wins,
            entries=entries,
            collisions=collisions,
        )
        try:
            self.combined_path.write_text(combined.model_dump_json(indent=2), encoding="utf-8")
        except OSError as e:
            logger.warning(f"Failed to write combined bibliography cache: {e}")

    async def load_sources(self, urls: list[str] | None = None) -> dict[str, ParsedCitationEntry]:
        """Fetch, parse and merge all sources; later calls reuse the result.

        A source that fails to download or parse is logged and skipped.

        Args:
            urls: Bibliography URLs, defaults to the configured ones

        Returns:
            Map of citation key to entry
        """
        if self._entries is not None:
            return self._entries

        urls = list(urls if urls is not None else self.config.source_urls)
        contents: list[tuple[str, str]] = []
        for url in urls:
            try:
                contents.append((url, await self.fetcher.fetch(url)))
            except Exception as e:
                logger.error(f"Skipping bibliography source {url}: {e}")

        cached = self._load_combined(urls)
        if cached is not None:
            self._entries = cached
            return cached

        parsed: list[tuple[str, list[ParsedCitationEntry]]] = []
        for url, content in contents:
            try:
                parsed.append((url, parse_bibliography(content, url)))
            except Exception as e:
                logger.error(f"Failed to parse bibliography from {url}: {e}")

        collisions: list[KeyCollision] = []
        entries = merge_entries(parsed, self.config.last_source_wins, collisions)
        logger.info(f"Total bibliography entries loaded: {len(entries)}")
        self._save_combined(urls, entries, collisions)
        self._entries = entries
        return entries

    @property
    def entries(self) -> dict[str, ParsedCitationEntry]:
        """Entries loaded so far; empty before ``load_sources``."""
        return self._entries or {}
