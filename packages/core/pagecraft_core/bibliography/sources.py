"""Bibliography file sources and download caching.

Share links from GitHub gists, GitHub repositories, Dropbox and Google Drive
are normalized to direct downloads. Downloaded files are kept in a cache
directory as ``<md5(url)>.bib`` with a ``<md5(url)>.meta.json`` sidecar, and
``bib-files-mapping.json`` records which URL each file came from.
"""

from __future__ import annotations

import asyncio
import json
import re
from datetime import datetime, timezone
from pathlib import Path
from urllib.parse import urlparse

import httpx
from pydantic import BaseModel, Field, ValidationError

from pagecraft_core.utils.hashing import short_md5
from pagecraft_core.utils.logging import get_logger
from pagecraft_core.utils.retry import with_retry

logger = get_logger(__name__)

DOWNLOAD_TIMEOUT = 10.0
TIMESTAMP_TIMEOUT = 5.0
MAPPING_FILE = "bib-files-mapping.json"

_GIST = re.compile(r"gist\.github\.com/([^/]+)/([a-f0-9]+)")
_GITHUB_BLOB = re.compile(r"github\.com/([^/]+)/([^/]+)/blob/([^/]+)/(.+)")
_DRIVE = re.compile(r"drive\.google\.com/file/d/([^/]+)")


class BibliographyFetchError(Exception):
    """A bibliography file could not be downloaded and no cached copy exists."""

    def __init__(self, url: str, message: str):
        super().__init__(f"Failed to fetch bibliography from {url}: {message}")
        self.url = url


class BibSourceInfo(BaseModel):
    """Where to download a bibliography file and how to check for updates."""

    source: str = Field(..., description="github-gist, github-repo, dropbox, google-drive or unknown")
    download_url: str
    updated_url: str | None = Field(None, description="API URL reporting the last update")


class BibFileMeta(BaseModel):
    """Sidecar metadata of a cached bibliography file."""

    url: str
    last_updated: str | None = None
    entry_count: int = 0
    last_fetched: datetime


def get_bib_source_info(url: str) -> BibSourceInfo:
    """Convert a share link into a direct download URL.

    Args:
        url: Link as configured by the site owner

    Returns:
        Source info; unknown hosts are downloaded as-is
    """
    match = _GIST.search(url)
    if match:
        user, gist_id = match.groups()
        return BibSourceInfo(
            source="github-gist",
            download_url=f"https://gist.githubusercontent.com/{user}/{gist_id}/raw",
            updated_url=f"https://api.github.com/gists/{gist_id}",
        )

    match = _GITHUB_BLOB.search(url)
    if match:
        owner, repo, branch, file_path = match.groups()
        return BibSourceInfo(
            source="github-repo",
            download_url=f"https://raw.githubusercontent.com/{owner}/{repo}/{branch}/{file_path}",
            updated_url=f"https://api.github.com/repos/{owner}/{repo}/commits?path={file_path}",
        )

    if "dropbox.com" in url:
        return BibSourceInfo(source="dropbox", download_url=url.replace("dl=0", "dl=1"))

    match = _DRIVE.search(url)
    if match:
        return BibSourceInfo(
            source="google-drive",
            download_url=f"https://drive.google.com/uc?export=download&id={match.group(1)}",
        )

    return BibSourceInfo(source="unknown", download_url=url)


def _count_entries(content: str) -> int:
    stripped = content.lstrip()
    if stripped.startswith("["):
        try:
            data = json.loads(stripped)
        except json.JSONDecodeError:
            return 0
        return len(data) if isinstance(data, list) else 0
    return len(re.findall(r"^\s*@(?!comment|preamble|string)\w+\s*\{", content, re.I | re.M))


class BibliographyFetcher:
    """Downloads bibliography files with an on-disk cache."""

    def __init__(
        self,
        cache_dir: Path,
        client: httpx.AsyncClient | None = None,
        last_build_time: datetime | None = None,
        max_attempts: int = 3,
        semaphore: asyncio.Semaphore | None = None,
    ):
        """Initialize the fetcher.

        Args:
            cache_dir: Directory holding cached files
            client: HTTP client; one is created per call when omitted
            last_build_time: Start of the previous build, if any
            max_attempts: Download attempts before falling back to the cache
            semaphore: Build-wide limit on requests in flight
        """
        self.cache_dir = cache_dir
        self.client = client
        self.last_build_time = last_build_time
        self.max_attempts = max_attempts
        self.semaphore = semaphore

    def bib_path(self, url: str) -> Path:
        return self.cache_dir / f"{short_md5(url)}.bib"

    def meta_path(self, url: str) -> Path:
        return self.cache_dir / f"{short_md5(url)}.meta.json"

    def _read_meta(self, url: str) -> BibFileMeta | None:
        bib_path, meta_path = self.bib_path(url), self.meta_path(url)
        if not bib_path.exists() or not meta_path.exists():
            return None
        try:
            return BibFileMeta.model_validate_json(meta_path.read_text(encoding="utf-8"))
        except (OSError, ValidationError) as e:
            logger.warning(f"Unreadable metadata for {url}, will re-fetch: {e}")
            return None

    async def _get(self, url: str, timeout: float) -> httpx.Response:
        async def _request() -> httpx.Response:
            if self.client is not None:
                response = await self.client.get(url, timeout=timeout, follow_redirects=True)
            else:
                async with httpx.AsyncClient(timeout=timeout, follow_redirects=True) as client:
                    response = await client.get(url)
            response.raise_for_status()
            return response

        return await with_retry(
            _request,
            max_attempts=self.max_attempts,
            operation_name=f"GET {url}",
            semaphore=self.semaphore,
        )

    async def get_github_last_updated(self, updated_url: str) -> str | None:
        """Remote last-update timestamp of a GitHub source, or None on error."""
        try:
            response = await self._get(updated_url, TIMESTAMP_TIMEOUT)
            data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.warning(f"Failed to get last-updated timestamp from {updated_url}: {e}")
            return None

        if "/gists/" in updated_url:
            return data.get("updated_at") if isinstance(data, dict) else None
        if isinstance(data, list) and data:
            return data[0].get("commit", {}).get("committer", {}).get("date")
        return None

    async def _needs_refetch(self, info: BibSourceInfo, meta: BibFileMeta | None) -> bool:
        if meta is None:
            return True
        if info.updated_url is None:
            logger.info(f"{meta.url} has no public timestamp, re-fetching")
            return True
        if self.last_build_time is not None and meta.last_fetched >= self.last_build_time:
            return False

        remote = await self.get_github_last_updated(info.updated_url)
        if remote and meta.last_updated and remote != meta.last_updated:
            logger.info(f"{meta.url} was updated remotely, re-fetching")
            return True
        return False

    def _update_mapping(self, url: str, download_url: str) -> None:
        mapping_path = self.cache_dir / MAPPING_FILE
        mapping: dict[str, dict[str, str]] = {}
        if mapping_path.exists():
            try:
                mapping = json.loads(mapping_path.read_text(encoding="utf-8"))
            except (OSError, json.JSONDecodeError):
                logger.warning(f"Failed to parse {MAPPING_FILE}, creating a new one")

        name = Path(urlparse(download_url).path).name
        mapping[url] = {
            "cached_as": self.bib_path(url).name,
            "original_name": name if name.endswith(".bib") else "unknown.bib",
            "download_url": download_url,
            "last_updated": datetime.now(timezone.utc).isoformat(),
        }
        mapping_path.write_text(json.dumps(mapping, indent=2), encoding="utf-8")

    async def fetch(self, url: str) -> str:
        """Return the text of a bibliography file, downloading it when needed.

        Args:
            url: Configured bibliography URL

        Returns:
            File content

        Raises:
            BibliographyFetchError: If the download fails and nothing is cached
        """
        self.cache_dir.mkdir(parents=True, exist_ok=True)
        info = get_bib_source_info(url)
        meta = self._read_meta(url)

        if not await self._needs_refetch(info, meta):
            logger.debug(f"Using cached bibliography for {url}")
            return self.bib_path(url).read_text(encoding="utf-8")

        logger.info(f"Fetching bibliography from {info.download_url}")
        try:
            response = await self._get(info.download_url, DOWNLOAD_TIMEOUT)
        except httpx.HTTPError as e:
            if meta is not None:
                logger.warning(f"Download of {url} failed, using cached copy: {e}")
                return self.bib_path(url).read_text(encoding="utf-8")
            raise BibliographyFetchError(url, str(e)) from e

        content = response.text
        remote_updated = None
        if info.updated_url:
            remote_updated = await self.get_github_last_updated(info.updated_url)

        self.bib_path(url).write_text(content, encoding="utf-8")
        new_meta = BibFileMeta(
            url=url,
            last_updated=remote_updated,
            entry_count=_count_entries(content),
            last_fetched=datetime.now(timezone.utc),
        )
        self.meta_path(url).write_text(new_meta.model_dump_json(indent=2), encoding="utf-8")
        self._update_mapping(url, info.download_url)

        logger.info(f"Fetched and cached {new_meta.entry_count} entries from {url}")
        return content
