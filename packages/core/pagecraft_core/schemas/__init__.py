"""Data schemas for the content pipeline.

This module exports the rich text and block tree models, the footnote and
citation models attached to blocks during extraction, interlinked content
records and the page registry types.
"""

from pagecraft_core.schemas.blocks import (
    BareContent,
    Block,
    BlockComment,
    BulletedListItemContent,
    CalloutContent,
    CodeContent,
    Column,
    ColumnListContent,
    CommentAttachment,
    EmbedContent,
    EquationContent,
    Footnote,
    FootnoteContent,
    FootnoteSourceLocation,
    HeadingContent,
    LinkToPageContent,
    MediaContent,
    NumberedListItemContent,
    ParagraphContent,
    QuoteContent,
    RichTextLocation,
    SyncedBlockContent,
    TableCell,
    TableContent,
    TableRow,
    ToDoContent,
    ToggleContent,
    iter_blocks,
)
from pagecraft_core.schemas.citations import (
    BibliographyStyle,
    Citation,
    ParsedCitationEntry,
)
from pagecraft_core.schemas.interlinks import (
    InterlinkedContentInPage,
    InterlinkedContentToPage,
)
from pagecraft_core.schemas.pages import Heading, Post, TocItem
from pagecraft_core.schemas.richtext import (
    Annotation,
    Equation,
    Link,
    LinkMention,
    Mention,
    PageReference,
    RichText,
    TextContent,
)

__all__ = [
    # Rich text
    "Annotation",
    "Equation",
    "Link",
    "LinkMention",
    "Mention",
    "PageReference",
    "RichText",
    "TextContent",
    # Blocks
    "BareContent",
    "Block",
    "BulletedListItemContent",
    "CalloutContent",
    "CodeContent",
    "Column",
    "ColumnListContent",
    "EmbedContent",
    "EquationContent",
    "HeadingContent",
    "LinkToPageContent",
    "MediaContent",
    "NumberedListItemContent",
    "ParagraphContent",
    "QuoteContent",
    "RichTextLocation",
    "SyncedBlockContent",
    "TableCell",
    "TableContent",
    "TableRow",
    "ToDoContent",
    "ToggleContent",
    "iter_blocks",
    # Footnotes
    "BlockComment",
    "CommentAttachment",
    "Footnote",
    "FootnoteContent",
    "FootnoteSourceLocation",
    # Citations
    "BibliographyStyle",
    "Citation",
    "ParsedCitationEntry",
    # Interlinks
    "InterlinkedContentInPage",
    "InterlinkedContentToPage",
    # Pages
    "Heading",
    "Post",
    "TocItem",
]
