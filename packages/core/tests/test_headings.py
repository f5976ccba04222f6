"""Tests for heading extraction and table of contents nesting."""

from helpers import EDITED, paragraph, text

from pagecraft_core.extraction.headings import build_toc, extract_headings
from pagecraft_core.schemas.blocks import Block, HeadingContent, ToggleContent
from pagecraft_core.schemas.pages import Heading
from pagecraft_core.schemas.richtext import RichText


def heading(block_id: str, depth: int, *rich_texts: RichText, children=None) -> Block:
    return Block(
        id=block_id,
        last_updated=EDITED,
        content=HeadingContent(
            kind=f"heading_{depth}",
            rich_texts=list(rich_texts),
            is_toggleable=children is not None,
            children=children,
        ),
    )


class TestExtractHeadings:
    """Tests for extract_headings."""

    def test_top_level_and_one_level_nested(self) -> None:
        """Headings inside toggles are found; deeper ones are not."""
        deep = heading("h-deep", 3, text("Too deep"))
        toggle = Block(
            id="t1",
            last_updated=EDITED,
            content=ToggleContent(
                rich_texts=[text("More")],
                children=[heading("h2", 2, text("Inside")), paragraph("p", "x", children=[deep])],
            ),
        )
        blocks = [heading("h1", 1, text("Intro Section")), toggle]

        headings = extract_headings(blocks)

        assert [(h.block_id, h.slug, h.depth) for h in headings] == [
            ("h1", "intro-section", 1),
            ("h2", "inside", 2),
        ]

    def test_marker_runs_are_not_part_of_title(self) -> None:
        """Footnote markers do not leak into heading text."""
        block = heading("h1", 1, text("Results "), RichText.footnote_marker("ft_a", "[^ft_a]"))

        assert extract_headings([block])[0].text == "Results"


class TestBuildToc:
    """Tests for build_toc."""

    def _h(self, name: str, depth: int) -> Heading:
        return Heading(text=name, slug=name, depth=depth, block_id=name)

    def test_nesting(self) -> None:
        """Deeper headings nest under the closest shallower one."""
        toc = build_toc(
            [self._h("a", 1), self._h("a1", 2), self._h("a1x", 3), self._h("b", 1), self._h("b1", 2)]
        )

        assert [item.heading.text for item in toc] == ["a", "b"]
        assert toc[0].subheadings[0].heading.text == "a1"
        assert toc[0].subheadings[0].subheadings[0].heading.text == "a1x"
        assert toc[1].subheadings[0].heading.text == "b1"

    def test_orphans_are_dropped(self) -> None:
        """Headings before the first top-level heading are left out."""
        toc = build_toc([self._h("early", 2), self._h("a", 1)])

        assert [item.heading.text for item in toc] == ["a"]
        assert toc[0].subheadings == []
