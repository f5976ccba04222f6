"""Rich text schemas.

A RichText is one formatted run of text. Runs carry their annotation, an
optional link or mention, and the marker flags set during footnote and
citation extraction. ``plain_text`` is always the flattened text of the run:
the text content for ordinary runs, the marker glyph for marker runs.
"""

from __future__ import annotations

from pydantic import BaseModel, Field


class Annotation(BaseModel):
    """Formatting flags of a rich text run."""

    bold: bool = False
    italic: bool = False
    strikethrough: bool = False
    underline: bool = False
    code: bool = False
    color: str = "default"


class Link(BaseModel):
    """Hyperlink target."""

    url: str


class TextContent(BaseModel):
    """Text body of a run with its optional link."""

    content: str
    link: Link | None = None


class Equation(BaseModel):
    """Inline equation expression."""

    expression: str


class PageReference(BaseModel):
    """Reference to another page (or a block inside it)."""

    page_id: str = Field(..., description="Target page id")
    type: str = Field("page", description="Reference kind as reported by the source")
    block_id: str | None = Field(None, description="Target block for anchor links")


class LinkMention(BaseModel):
    """Link preview mention."""

    href: str
    title: str = ""
    icon_url: str | None = None
    description: str | None = None


class Mention(BaseModel):
    """Inline mention of a page, date or link."""

    type: str = Field(..., description="Mention kind (page, date, link_mention, ...)")
    page: PageReference | None = None
    date_str: str | None = None
    link_mention: LinkMention | None = None


class RichText(BaseModel):
    """One formatted run of text."""

    plain_text: str = Field(..., description="Flattened text of the run")
    annotation: Annotation = Field(default_factory=Annotation)
    text: TextContent | None = None
    href: str | None = None
    equation: Equation | None = None
    mention: Mention | None = None
    internal_href: PageReference | None = None

    footnote_ref: str | None = Field(None, description="Footnote marker id")
    is_footnote_marker: bool = False
    citation_ref: str | None = Field(None, description="Citation key")
    is_citation_marker: bool = False

    @classmethod
    def plain(
        cls,
        content: str,
        annotation: Annotation | None = None,
        href: str | None = None,
    ) -> RichText:
        """Build an ordinary text run.

        Args:
            content: Text of the run
            annotation: Optional formatting
            href: Optional link target

        Returns:
            New RichText
        """
        return cls(
            plain_text=content,
            annotation=annotation or Annotation(),
            text=TextContent(content=content, link=Link(url=href) if href else None),
            href=href,
        )

    @classmethod
    def footnote_marker(cls, marker: str, full_marker: str) -> RichText:
        """Build a footnote marker run with default formatting."""
        return cls(
            plain_text=full_marker,
            text=TextContent(content=full_marker),
            is_footnote_marker=True,
            footnote_ref=marker,
        )

    @classmethod
    def citation_marker(cls, key: str, full_match: str) -> RichText:
        """Build a citation marker run with default formatting."""
        return cls(
            plain_text=full_match,
            text=TextContent(content=full_match),
            is_citation_marker=True,
            citation_ref=key,
        )

    def clone(self) -> RichText:
        """Deep copy, so the clone never shares annotation or link state."""
        return self.model_copy(deep=True)

    def with_text(self, content: str) -> RichText:
        """Clone this run with a different text body, keeping its formatting."""
        clone = self.clone()
        clone.plain_text = content
        if clone.text is not None:
            clone.text.content = content
        return clone

    @property
    def is_marker(self) -> bool:
        return self.is_footnote_marker or self.is_citation_marker

    @property
    def is_opaque(self) -> bool:
        """Runs whose text must never be scanned for marker syntax."""
        return (
            self.annotation.code
            or self.equation is not None
            or self.mention is not None
            or self.is_marker
        )

    @property
    def target_page_id(self) -> str | None:
        """Page this run points at through an internal link or a page mention."""
        if self.internal_href is not None:
            return self.internal_href.page_id
        if self.mention is not None and self.mention.page is not None:
            return self.mention.page.page_id
        return None

    @property
    def external_url(self) -> str | None:
        """External target of the run, if any."""
        if self.mention is not None and self.mention.link_mention is not None:
            return self.mention.link_mention.href
        if self.internal_href is None and self.mention is None and self.href:
            return self.href
        return None
