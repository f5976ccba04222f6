"""Interlinked content schemas."""

from pydantic import BaseModel, Field

from pagecraft_core.schemas.blocks import Block
from pagecraft_core.schemas.richtext import RichText


class InterlinkedContentInPage(BaseModel):
    """Cross-references found in one block.

    A rich text run lands in exactly one of ``other_pages``, ``external_hrefs``
    or ``same_page``.
    """

    block: Block
    other_pages: list[RichText] = Field(default_factory=list)
    external_hrefs: list[RichText] = Field(default_factory=list)
    same_page: list[RichText] = Field(default_factory=list)
    direct_media_link: str | None = None
    link_to_page_id: str | None = None
    direct_nonmedia_link: str | None = None

    def linked_page_ids(self) -> set[str]:
        """Ids of other pages this block points at."""
        page_ids = {rt.target_page_id for rt in self.other_pages if rt.target_page_id}
        if self.link_to_page_id:
            page_ids.add(self.link_to_page_id)
        return page_ids


class InterlinkedContentToPage(BaseModel):
    """A block on another entry that links to the page owning this record."""

    entry_id: str = Field(..., description="Entry containing the linking block")
    block: Block
