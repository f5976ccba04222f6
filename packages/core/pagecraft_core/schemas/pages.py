"""Page registry and heading schemas."""

from datetime import datetime

from pydantic import BaseModel, Field


class Post(BaseModel):
    """An entry of the page registry (post or standalone page)."""

    page_id: str = Field(..., description="Page identifier")
    title: str = ""
    slug: str = ""
    collection: str = ""
    last_updated: datetime = Field(..., description="Last edit time of the page")
    is_external: bool = Field(
        False, description="External posts have no block tree to extract"
    )


class Heading(BaseModel):
    """A heading of a page, used for the table of contents."""

    text: str
    slug: str
    depth: int = Field(..., ge=1, le=3)
    block_id: str


class TocItem(BaseModel):
    """A nested table-of-contents entry."""

    heading: Heading
    subheadings: list["TocItem"] = Field(default_factory=list)
