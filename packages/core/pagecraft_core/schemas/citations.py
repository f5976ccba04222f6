"""Citation and bibliography entry schemas."""

from enum import Enum

from pydantic import BaseModel, Field


class BibliographyStyle(str, Enum):
    """Supported bibliography styles."""

    APA = "apa"
    IEEE = "simplified-ieee"


class ParsedCitationEntry(BaseModel):
    """A bibliographic record keyed by citation key, independent of source format."""

    key: str = Field(..., description="Citation key, e.g. smith2020")
    entry_type: str = Field("misc", description="BibTeX entry type or CSL type")
    authors: list[str] = Field(
        default_factory=list, description="Author family names (or literal names)"
    )
    year: str = Field("n.d.", description="Publication year")
    title: str = Field("", description="Work title")
    container_title: str | None = Field(
        None, description="Journal, proceedings or book title"
    )
    publisher: str | None = None
    volume: str | None = None
    issue: str | None = None
    pages: str | None = None
    doi: str | None = None
    url: str | None = None
    source_format: str = Field("bibtex", description="bibtex or csl-json")
    source_url: str | None = Field(None, description="Bibliography file it came from")


class Citation(BaseModel):
    """A citation of one bibliography key inside a page."""

    key: str = Field(..., description="Citation key")
    formatted_entry: str = Field(..., description="Rendered bibliography entry")
    authors: str = Field("", description="Short author display, e.g. Smith & Jones")
    year: str = Field("n.d.", description="Publication year")
    url: str | None = None
    index: int | None = Field(None, description="IEEE number, first-appearance order")
    first_appearance_index: int | None = None
    first_appearance_in_main_content_index: int | None = None
    is_in_footnote_content: bool = False
    source_block_ids: list[str] = Field(default_factory=list)
