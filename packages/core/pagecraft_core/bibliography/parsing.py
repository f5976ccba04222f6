"""Parsing of BibTeX and CSL-JSON bibliography files."""

import json
import re
from typing import Any

import bibtexparser
from bibtexparser.bparser import BibTexParser

from pagecraft_core.schemas.citations import ParsedCitationEntry
from pagecraft_core.utils.logging import get_logger

logger = get_logger(__name__)

_BRACES = re.compile(r"[{}]")
_WHITESPACE = re.compile(r"\s+")


def _clean(value: Any) -> str | None:
    if value is None:
        return None
    text = _WHITESPACE.sub(" ", _BRACES.sub("", str(value))).strip()
    return text or None


def split_bibtex_authors(value: str) -> list[str]:
    """Family names from a BibTeX author field.

    Handles ``Family, Given`` and ``Given Family`` forms; a name wrapped in
    braces (an organization) is kept whole.
    """
    names: list[str] = []
    for raw in re.split(r"\s+and\s+", value.strip()):
        raw = raw.strip()
        if not raw:
            continue
        if raw.startswith("{") and raw.endswith("}"):
            names.append(_clean(raw) or raw)
        elif "," in raw:
            names.append(_clean(raw.split(",", 1)[0]) or raw)
        else:
            names.append(_clean(raw.split()[-1]) or raw)
    return names


def parse_bibtex(content: str, source_url: str | None = None) -> list[ParsedCitationEntry]:
    """Parse BibTeX text into entries, in file order."""
    parser = BibTexParser(common_strings=True)
    parser.ignore_nonstandard_types = False
    database = bibtexparser.loads(content, parser=parser)

    entries: list[ParsedCitationEntry] = []
    for record in database.entries:
        key = record.get("ID")
        if not key:
            logger.warning(f"Skipping BibTeX entry without a key in {source_url}")
            continue
        entries.append(
            ParsedCitationEntry(
                key=key,
                entry_type=record.get("ENTRYTYPE", "misc").lower(),
                authors=split_bibtex_authors(record.get("author") or record.get("editor") or ""),
                year=_clean(record.get("year")) or "n.d.",
                title=_clean(record.get("title")) or "",
                container_title=_clean(record.get("journal") or record.get("booktitle")),
                publisher=_clean(record.get("publisher") or record.get("institution")),
                volume=_clean(record.get("volume")),
                issue=_clean(record.get("number")),
                pages=_clean(record.get("pages")),
                doi=_clean(record.get("doi")),
                url=_clean(record.get("url")),
                source_format="bibtex",
                source_url=source_url,
            )
        )
    return entries


def _csl_year(record: dict[str, Any]) -> str:
    issued = record.get("issued") or {}
    parts = issued.get("date-parts") or []
    if parts and parts[0]:
        return str(parts[0][0])
    return str(record.get("year") or "n.d.")


def _csl_authors(record: dict[str, Any]) -> list[str]:
    authors = []
    for author in record.get("author") or []:
        name = author.get("family") or author.get("literal")
        if name:
            authors.append(name)
    return authors


def parse_csl_json(content: str, source_url: str | None = None) -> list[ParsedCitationEntry]:
    """Parse a CSL-JSON array into entries.

    Raises:
        ValueError: If the content is not a JSON array
    """
    data = json.loads(content)
    if not isinstance(data, list):
        raise ValueError("CSL-JSON bibliography must be an array")

    entries: list[ParsedCitationEntry] = []
    for record in data:
        key = record.get("id") or record.get("citation-key")
        if not key:
            logger.warning(f"Skipping CSL-JSON record without an id in {source_url}")
            continue
        entries.append(
            ParsedCitationEntry(
                key=str(key),
                entry_type=record.get("type", "misc"),
                authors=_csl_authors(record),
                year=_csl_year(record),
                title=record.get("title", ""),
                container_title=record.get("container-title"),
                publisher=record.get("publisher"),
                volume=_clean(record.get("volume")),
                issue=_clean(record.get("issue")),
                pages=_clean(record.get("page")),
                doi=record.get("DOI"),
                url=record.get("URL"),
                source_format="csl-json",
                source_url=source_url,
            )
        )
    return entries


def parse_bibliography(content: str, source_url: str | None = None) -> list[ParsedCitationEntry]:
    """Parse a bibliography file, detecting CSL-JSON by a leading ``[``."""
    if content.lstrip().startswith("["):
        return parse_csl_json(content, source_url)
    return parse_bibtex(content, source_url)
