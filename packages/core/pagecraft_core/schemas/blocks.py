"""Block tree schemas.

A page is a list of Blocks. Each block carries a typed ``content`` payload,
discriminated by ``kind``. Container payloads own an optional ``children``
list, column lists own columns that own children, and tables own rows of
cells that hold rich text. Traversal code never switches on the payload type
itself; it goes through ``Block.get_children``/``Block.set_children``,
``Block.child_blocks`` and ``Block.rich_text_locations``.

Footnotes live here as well because block-sourced footnote bodies are
blocks themselves.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Annotated, Callable, Literal, Union

from pydantic import BaseModel, Field

from pagecraft_core.schemas.citations import Citation
from pagecraft_core.schemas.richtext import RichText


class TextContainerContent(BaseModel):
    """Shared shape of text blocks that may own children."""

    rich_texts: list[RichText] = Field(default_factory=list)
    color: str = "default"
    children: list[Block] | None = None


class ParagraphContent(TextContainerContent):
    kind: Literal["paragraph"] = "paragraph"


class HeadingContent(TextContainerContent):
    kind: Literal["heading_1", "heading_2", "heading_3"] = "heading_1"
    is_toggleable: bool = False

    @property
    def depth(self) -> int:
        return int(self.kind[-1])


class BulletedListItemContent(TextContainerContent):
    kind: Literal["bulleted_list_item"] = "bulleted_list_item"


class NumberedListItemContent(TextContainerContent):
    kind: Literal["numbered_list_item"] = "numbered_list_item"


class ToDoContent(TextContainerContent):
    kind: Literal["to_do"] = "to_do"
    checked: bool = False


class ToggleContent(TextContainerContent):
    kind: Literal["toggle"] = "toggle"


class QuoteContent(TextContainerContent):
    kind: Literal["quote"] = "quote"


class CalloutContent(TextContainerContent):
    kind: Literal["callout"] = "callout"
    icon: str | None = None


class SyncedBlockContent(BaseModel):
    kind: Literal["synced_block"] = "synced_block"
    synced_from: str | None = None
    children: list[Block] | None = None


class CodeContent(BaseModel):
    kind: Literal["code"] = "code"
    rich_texts: list[RichText] = Field(default_factory=list)
    caption: list[RichText] = Field(default_factory=list)
    language: str = "plain text"


class MediaContent(BaseModel):
    """Image, video, audio, file and pdf blocks."""

    kind: Literal["image", "video", "audio", "file", "pdf"] = "image"
    caption: list[RichText] = Field(default_factory=list)
    file_url: str | None = Field(None, description="Hosted file URL")
    external_url: str | None = Field(None, description="External file URL")


class EmbedContent(BaseModel):
    """Embed, bookmark and link preview blocks."""

    kind: Literal["embed", "bookmark", "link_preview"] = "embed"
    caption: list[RichText] = Field(default_factory=list)
    url: str


class TableCell(BaseModel):
    rich_texts: list[RichText] = Field(default_factory=list)


class TableRow(BaseModel):
    id: str
    cells: list[TableCell] = Field(default_factory=list)


class TableContent(BaseModel):
    kind: Literal["table"] = "table"
    table_width: int = 0
    has_column_header: bool = False
    has_row_header: bool = False
    rows: list[TableRow] = Field(default_factory=list)


class Column(BaseModel):
    id: str
    children: list[Block] = Field(default_factory=list)


class ColumnListContent(BaseModel):
    kind: Literal["column_list"] = "column_list"
    columns: list[Column] = Field(default_factory=list)


class LinkToPageContent(BaseModel):
    kind: Literal["link_to_page"] = "link_to_page"
    page_id: str


class EquationContent(BaseModel):
    kind: Literal["equation"] = "equation"
    expression: str


class BareContent(BaseModel):
    """Blocks without a payload of their own."""

    kind: Literal["divider", "table_of_contents", "breadcrumb"] = "divider"


BlockContent = Annotated[
    Union[
        ParagraphContent,
        HeadingContent,
        BulletedListItemContent,
        NumberedListItemContent,
        ToDoContent,
        ToggleContent,
        QuoteContent,
        CalloutContent,
        SyncedBlockContent,
        CodeContent,
        MediaContent,
        EmbedContent,
        TableContent,
        ColumnListContent,
        LinkToPageContent,
        EquationContent,
        BareContent,
    ],
    Field(discriminator="kind"),
]

HEADING_KINDS = ("heading_1", "heading_2", "heading_3")


class FootnoteSourceLocation(str, Enum):
    """Where a footnote definition was found."""

    CONTENT = "content"
    CAPTION = "caption"
    TABLE = "table"
    COMMENT = "comment"
    CHILD_BLOCK = "child-block"


class CommentAttachment(BaseModel):
    """File attached to a comment that supplies a footnote."""

    category: str
    url: str
    name: str | None = None
    expiry_time: datetime | None = None


class BlockComment(BaseModel):
    """A discussion comment attached to a block."""

    id: str
    rich_texts: list[RichText] = Field(default_factory=list)
    attachments: list[CommentAttachment] = Field(default_factory=list)


class FootnoteContent(BaseModel):
    """Footnote body: a rich text run list or a list of blocks."""

    type: Literal["rich_text", "blocks"]
    rich_texts: list[RichText] | None = None
    blocks: list[Block] | None = None
    attachments: list[CommentAttachment] = Field(default_factory=list)


class Footnote(BaseModel):
    """A footnote extracted from a block."""

    marker: str = Field(..., description="Marker id, e.g. ft_a")
    full_marker: str = Field(..., description="Marker as written, e.g. [^ft_a]")
    index: int | None = Field(None, description="1-based index in document order")
    source_location: FootnoteSourceLocation = FootnoteSourceLocation.CONTENT
    content: FootnoteContent
    source_block_id: str | None = Field(
        None, description="Block whose text holds the marker"
    )


@dataclass
class RichTextLocation:
    """A text-bearing slot of a block, with a setter to replace its runs."""

    path: str
    rich_texts: list[RichText]
    setter: Callable[[list[RichText]], None]

    @property
    def source_location(self) -> FootnoteSourceLocation:
        if "caption" in self.path:
            return FootnoteSourceLocation.CAPTION
        if self.path.startswith("rows["):
            return FootnoteSourceLocation.TABLE
        return FootnoteSourceLocation.CONTENT


def _slot_setter(owner: BaseModel, field_name: str) -> Callable[[list[RichText]], None]:
    def setter(rich_texts: list[RichText]) -> None:
        setattr(owner, field_name, rich_texts)

    return setter


class Block(BaseModel):
    """One node of a page's content tree."""

    id: str
    has_children: bool = False
    last_updated: datetime
    content: BlockContent
    footnotes: list[Footnote] | None = None
    citations: list[Citation] | None = None

    @property
    def type(self) -> str:
        return self.content.kind

    def get_children(self) -> list[Block] | None:
        """Return the payload's own children slot, if the payload has one."""
        return getattr(self.content, "children", None)

    def set_children(self, children: list[Block]) -> None:
        """Replace the payload's children slot.

        Raises:
            ValueError: If the block type has no children slot
        """
        if "children" not in type(self.content).model_fields:
            raise ValueError(f"Block type {self.type} has no children slot")
        self.content.children = children

    def child_blocks(self) -> list[Block]:
        """All direct descendants, column children included, in document order."""
        if isinstance(self.content, ColumnListContent):
            return [child for column in self.content.columns for child in column.children]
        return list(self.get_children() or [])

    def rich_text_locations(self, include_code: bool = False) -> list[RichTextLocation]:
        """Enumerate non-empty rich text slots of this block (not its children).

        Args:
            include_code: Also return the body of code blocks

        Returns:
            Locations in document order: main text, caption, then table cells
        """
        locations: list[RichTextLocation] = []
        content = self.content

        def add(path: str, owner: BaseModel, field_name: str) -> None:
            rich_texts = getattr(owner, field_name)
            if rich_texts:
                locations.append(
                    RichTextLocation(path, rich_texts, _slot_setter(owner, field_name))
                )

        if isinstance(content, CodeContent):
            if include_code:
                add("rich_texts", content, "rich_texts")
        elif "rich_texts" in type(content).model_fields:
            add("rich_texts", content, "rich_texts")

        if "caption" in type(content).model_fields:
            add("caption", content, "caption")

        if isinstance(content, TableContent):
            for row_index, row in enumerate(content.rows):
                for cell_index, cell in enumerate(row.cells):
                    add(f"rows[{row_index}].cells[{cell_index}]", cell, "rich_texts")

        return locations

    def plain_text(self) -> str:
        """Flattened text of the block's main text slot."""
        rich_texts = getattr(self.content, "rich_texts", None) or []
        return "".join(rt.plain_text for rt in rich_texts)


def iter_blocks(blocks: list[Block]):
    """Yield every block of a tree in pre-order, column children included."""
    for block in blocks:
        yield block
        yield from iter_blocks(block.child_blocks())


for _model in (
    TextContainerContent,
    ParagraphContent,
    HeadingContent,
    BulletedListItemContent,
    NumberedListItemContent,
    ToDoContent,
    ToggleContent,
    QuoteContent,
    CalloutContent,
    SyncedBlockContent,
    Column,
    ColumnListContent,
    FootnoteContent,
    Footnote,
    Block,
):
    _model.model_rebuild()
