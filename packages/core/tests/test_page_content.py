"""Tests for single-pass page content extraction."""

from helpers import EDITED, entry, page_link, page_mention, paragraph, text

from pagecraft_core.config import CitationsConfig, PipelineConfig
from pagecraft_core.extraction.interlinks import (
    build_interlinked_content_to_pages,
    classify_rich_text,
    extract_interlinked_content_in_block,
    linked_page_ids,
)
from pagecraft_core.extraction.page_content import (
    ExtractionOptions,
    extract_page_content,
)
from pagecraft_core.markers.engine import apply_markers
from pagecraft_core.schemas.blocks import (
    Block,
    EmbedContent,
    LinkToPageContent,
    MediaContent,
)
from pagecraft_core.schemas.citations import BibliographyStyle
from pagecraft_core.schemas.richtext import RichText

ENTRIES = {
    "smith2020": entry("smith2020", "Smith", year="2020"),
    "jones2019": entry("jones2019", "Jones", year="2019"),
}


def _marked(blocks: list[Block], citations: bool = False) -> list[Block]:
    config = PipelineConfig(citations=CitationsConfig(enabled=citations))
    apply_markers(blocks, config, ENTRIES)
    return blocks


class TestFootnoteIndices:
    """Tests for footnote numbering across a page."""

    def test_single_footnote_gets_index_one(self) -> None:
        """A lone end-of-block footnote is number 1."""
        blocks = _marked([paragraph("b1", "See note.[^ft_a]: This is the note.")])

        result = extract_page_content("page", blocks)

        assert len(result.footnotes) == 1
        assert result.footnotes[0].marker == "ft_a"
        assert result.footnotes[0].index == 1
        assert result.footnotes[0].source_block_id == "b1"
        assert blocks[0].footnotes[0].index == 1

    def test_indices_are_contiguous_in_document_order(self) -> None:
        """Footnotes are numbered 1..k following the pre-order walk."""
        child = paragraph("c1", "Child.[^ft_b]: Second")
        blocks = _marked(
            [
                paragraph("b1", "First.[^ft_a]: One", children=[child]),
                paragraph("b2", "Plain"),
                paragraph("b3", "Last.[^ft_c]: Third"),
            ]
        )

        result = extract_page_content("page", blocks)

        assert [(f.marker, f.index) for f in result.footnotes] == [
            ("ft_a", 1),
            ("ft_b", 2),
            ("ft_c", 3),
        ]

    def test_extraction_is_idempotent(self) -> None:
        """Running the walk twice yields the same numbering."""
        blocks = _marked(
            [
                paragraph("b1", "A.[^ft_a]: One"),
                paragraph("b2", "[@smith2020] B.[^ft_b]: Two"),
            ],
            citations=True,
        )

        first = extract_page_content("page", blocks)
        second = extract_page_content("page", blocks)

        assert [f.index for f in first.footnotes] == [f.index for f in second.footnotes]
        assert [c.model_dump() for c in first.citations] == [
            c.model_dump() for c in second.citations
        ]


class TestCitationNumbering:
    """Tests for citation order and first-appearance bookkeeping."""

    def _blocks(self) -> list[Block]:
        return _marked(
            [
                paragraph("b1", "[@jones2019] x.[^ft_a]: see [@smith2020]"),
                paragraph("b2", "[@smith2020] again"),
            ],
            citations=True,
        )

    def test_ieee_numbers_follow_first_appearance(self) -> None:
        """IEEE indices count first appearances, footnotes included."""
        result = extract_page_content("page", self._blocks())

        assert [(c.key, c.index) for c in result.citations] == [
            ("jones2019", 1),
            ("smith2020", 2),
        ]

    def test_main_content_index_skips_footnote_only_appearances(self) -> None:
        """A key first seen in a footnote gets its main-content index later."""
        blocks = self._blocks()

        result = extract_page_content("page", blocks)

        smith = result.citations[1]
        assert smith.first_appearance_index == 2
        assert smith.first_appearance_in_main_content_index == 2
        assert smith.source_block_ids == ["b1", "b2"]
        assert blocks[1].citations[0].index == 2
        assert blocks[1].citations[0].first_appearance_index is None

    def test_apa_has_no_numbers(self) -> None:
        """APA citations carry no index and are sorted by author."""
        result = extract_page_content(
            "page", self._blocks(), ExtractionOptions(style=BibliographyStyle.APA)
        )

        assert [c.key for c in result.citations] == ["jones2019", "smith2020"]
        assert all(c.index is None for c in result.citations)


class TestSingleTraversal:
    """Tests for the shared walk."""

    def test_visited_blocks_do_not_depend_on_options(self) -> None:
        """Every option combination visits the same blocks."""
        child = paragraph("c1", "Child.[^ft_b]: Second")
        blocks = _marked(
            [paragraph("b1", "First.[^ft_a]: One", children=[child]), paragraph("b2", "x")]
        )

        counts = {
            extract_page_content(
                "page",
                blocks,
                ExtractionOptions(
                    extract_footnotes=footnotes,
                    extract_citations=citations,
                    extract_interlinked_content=links,
                ),
            ).visited_blocks
            for footnotes in (True, False)
            for citations in (True, False)
            for links in (True, False)
        }

        assert counts == {3}

    def test_combined_walk_matches_separate_walks(self) -> None:
        """One walk with every collection equals one walk per collection."""
        blocks = _marked(
            [
                paragraph("b1", "[@jones2019] ", page_link("x", "p2"), "a.[^ft_a]: [@smith2020]"),
                paragraph("b2", "[@smith2020] b.[^ft_b]: Two"),
            ],
            citations=True,
        )

        combined = extract_page_content("page", blocks)
        combined_footnotes = [f.model_dump() for f in combined.footnotes]
        combined_citations = [c.model_dump() for c in combined.citations]
        combined_links = [i.model_dump() for i in combined.interlinked_content]

        only = {
            "footnotes": ExtractionOptions(
                extract_citations=False, extract_interlinked_content=False
            ),
            "citations": ExtractionOptions(
                extract_footnotes=False, extract_interlinked_content=False
            ),
            "links": ExtractionOptions(extract_footnotes=False, extract_citations=False),
        }
        footnotes = extract_page_content("page", blocks, only["footnotes"]).footnotes
        citations = extract_page_content("page", blocks, only["citations"]).citations
        links = extract_page_content("page", blocks, only["links"]).interlinked_content

        assert [f.model_dump() for f in footnotes] == combined_footnotes
        assert [c.model_dump() for c in citations] == combined_citations
        assert [i.model_dump() for i in links] == combined_links

    def test_disabled_collections_stay_empty(self) -> None:
        """Only enabled collections are filled."""
        blocks = _marked([paragraph("b1", text("Link"), page_link("other", "p2"))])

        result = extract_page_content(
            "page", blocks, ExtractionOptions(extract_interlinked_content=False)
        )

        assert result.interlinked_content == []
        assert result.visited_blocks == 1


class TestInterlinks:
    """Tests for interlinked content."""

    def test_runs_are_bucketed(self) -> None:
        """Each linked run lands in exactly one bucket."""
        external = RichText.plain("site", href="https://example.com")
        block = paragraph(
            "b1",
            page_link("other", "p2"),
            page_link("here", "p1"),
            page_mention("p3"),
            external,
            text("no link"),
        )

        item = extract_interlinked_content_in_block("p1", block)

        assert [rt.plain_text for rt in item.other_pages] == ["other", "Linked page"]
        assert [rt.plain_text for rt in item.same_page] == ["here"]
        assert item.external_hrefs == [external]
        assert item.linked_page_ids() == {"p2", "p3"}

    def test_block_without_links_is_skipped(self) -> None:
        """Blocks that reference nothing produce no entry."""
        blocks = [paragraph("b1", "plain"), paragraph("b2", page_link("x", "p2"))]

        result = extract_page_content("p1", blocks)

        assert [item.block.id for item in result.interlinked_content] == ["b2"]

    def test_direct_links(self) -> None:
        """Media, embeds and link-to-page blocks record their targets."""
        media = Block(
            id="m",
            last_updated=EDITED,
            content=MediaContent(kind="image", file_url="https://files.example/i.png"),
        )
        embed = Block(id="e", last_updated=EDITED, content=EmbedContent(url="https://x.test"))
        to_other = Block(id="l", last_updated=EDITED, content=LinkToPageContent(page_id="p2"))
        to_self = Block(id="s", last_updated=EDITED, content=LinkToPageContent(page_id="p1"))

        assert extract_interlinked_content_in_block("p1", media).direct_media_link == (
            "https://files.example/i.png"
        )
        assert extract_interlinked_content_in_block("p1", embed).direct_nonmedia_link == (
            "https://x.test"
        )
        assert extract_interlinked_content_in_block("p1", to_other).link_to_page_id == "p2"
        assert extract_interlinked_content_in_block("p1", to_self) is None

    def test_classify_plain_run(self) -> None:
        """Runs without targets have no bucket."""
        assert classify_rich_text(text("plain"), "p1") is None

    def test_backlink_index(self) -> None:
        """Per-page links are inverted into a per-target index."""
        linking = paragraph("b1", page_link("to p2", "p2"), page_link("self", "p1"))
        item = extract_interlinked_content_in_block("p1", linking)

        backlinks = build_interlinked_content_to_pages({"p1": [item], "p2": []})

        assert list(backlinks) == ["p2"]
        assert backlinks["p2"][0].entry_id == "p1"
        assert backlinks["p2"][0].block.id == "b1"

    def test_linked_page_ids_walks_children(self) -> None:
        """Links in nested blocks are found."""
        child = paragraph("c1", page_link("deep", "p9"))
        blocks = [paragraph("b1", "top", children=[child])]

        assert linked_page_ids(blocks, "p1") == {"p9"}
