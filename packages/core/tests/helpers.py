"""Builders for block trees used across tests."""

from datetime import datetime, timezone

from pagecraft_core.schemas.blocks import (
    Block,
    ParagraphContent,
    TableCell,
    TableContent,
    TableRow,
)
from pagecraft_core.schemas.citations import ParsedCitationEntry
from pagecraft_core.schemas.richtext import (
    Annotation,
    Mention,
    PageReference,
    RichText,
)

EDITED = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)


def text(content: str, **annotation: bool) -> RichText:
    return RichText.plain(content, annotation=Annotation(**annotation) if annotation else None)


def page_link(content: str, page_id: str) -> RichText:
    rich_text = RichText.plain(content)
    rich_text.internal_href = PageReference(page_id=page_id)
    return rich_text


def page_mention(page_id: str) -> RichText:
    return RichText(
        plain_text="Linked page",
        mention=Mention(type="page", page=PageReference(page_id=page_id)),
    )


def paragraph(
    block_id: str,
    *rich_texts: RichText | str,
    children: list[Block] | None = None,
) -> Block:
    runs = [text(rt) if isinstance(rt, str) else rt for rt in rich_texts]
    return Block(
        id=block_id,
        has_children=bool(children),
        last_updated=EDITED,
        content=ParagraphContent(rich_texts=runs, children=children),
    )


def table(block_id: str, *rows: list[str]) -> Block:
    return Block(
        id=block_id,
        last_updated=EDITED,
        content=TableContent(
            table_width=max((len(row) for row in rows), default=0),
            rows=[
                TableRow(id=f"{block_id}-r{i}", cells=[TableCell(rich_texts=[text(c)]) for c in row])
                for i, row in enumerate(rows)
            ],
        ),
    )


def visible_text(block: Block) -> str:
    """Main text with marker runs left out."""
    return "".join(rt.plain_text for rt in block.content.rich_texts if not rt.is_marker)


def entry(key: str, *authors: str, year: str = "2020", title: str = "A title") -> ParsedCitationEntry:
    return ParsedCitationEntry(key=key, authors=list(authors), year=year, title=title)
