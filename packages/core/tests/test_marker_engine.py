"""Tests for the page-wide marker pass."""

import pytest
from helpers import EDITED, entry, paragraph, visible_text

from pagecraft_core.config import (
    CitationsConfig,
    FootnoteSource,
    FootnotesConfig,
    PipelineConfig,
)
from pagecraft_core.markers import engine
from pagecraft_core.markers.engine import apply_markers, collect_comment_targets
from pagecraft_core.schemas.blocks import Block, Column, ColumnListContent


class TestApplyMarkers:
    """Tests for apply_markers."""

    def test_nested_blocks_are_processed(self) -> None:
        """Children and column children are visited."""
        nested = paragraph("n1", "Nested.[^ft_b]: Deep note")
        in_column = paragraph("col-child", "Column.[^ft_c]: Column note")
        columns = Block(
            id="cols",
            last_updated=EDITED,
            content=ColumnListContent(columns=[Column(id="c1", children=[in_column])]),
        )
        blocks = [paragraph("p1", "Top.", children=[nested]), columns]

        report = apply_markers(blocks, PipelineConfig())

        assert report.footnotes_found == 2
        assert report.blocks_processed == 4
        assert nested.footnotes[0].marker == "ft_b"
        assert in_column.footnotes[0].marker == "ft_c"
        assert report.failed_block_ids == []

    def test_failing_block_is_restored(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """A block that fails keeps its original content; others still succeed."""
        original = engine.extract_citations_from_block

        def fail_for_b1(block, *args, **kwargs):
            if block.id == "b1":
                raise RuntimeError("boom")
            return original(block, *args, **kwargs)

        monkeypatch.setattr(engine, "extract_citations_from_block", fail_for_b1)
        broken = paragraph("b1", "Broken.[^ft_a]: Note")
        healthy = paragraph("b2", "Fine.[^ft_a]: Note")
        config = PipelineConfig(citations=CitationsConfig(enabled=True))

        report = apply_markers(
            [broken, healthy], config, {"smith2020": entry("smith2020", "Smith")}
        )

        assert report.failed_block_ids == ["b1"]
        assert broken.footnotes is None
        assert visible_text(broken) == "Broken.[^ft_a]: Note"
        assert healthy.footnotes[0].marker == "ft_a"
        assert visible_text(healthy) == "Fine."

    def test_failing_block_gets_its_children_back(
        self, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """A child taken as a footnote body is returned unchanged on failure."""

        def fail(block, *args, **kwargs):
            raise RuntimeError("boom")

        monkeypatch.setattr(engine, "extract_citations_from_block", fail)
        body = paragraph("c1", "[^ft_a]: Source")
        block = paragraph("b1", "Claim[^ft_a]", children=[body])
        config = PipelineConfig(
            footnotes=FootnotesConfig(sources=frozenset({FootnoteSource.CHILD_BLOCKS}))
        )

        report = apply_markers([block], config)

        assert "b1" in report.failed_block_ids
        assert block.child_blocks() == [body]
        assert block.child_blocks()[0] is body
        assert block.has_children
        assert visible_text(body) == "[^ft_a]: Source"
        assert visible_text(block) == "Claim[^ft_a]"
        assert block.footnotes is None

    def test_blocks_inside_footnotes_are_processed(self) -> None:
        """Child-block footnote bodies get their citations flagged."""
        body = paragraph("c1", "[^ft_a]: Source [@smith2020]")
        block = paragraph("b1", "Claim[^ft_a]", children=[body])
        config = PipelineConfig(
            footnotes=FootnotesConfig(sources=frozenset({FootnoteSource.CHILD_BLOCKS})),
            citations=CitationsConfig(enabled=True),
        )

        apply_markers([block], config, {"smith2020": entry("smith2020", "Smith")})

        assert block.footnotes[0].content.blocks[0] is body
        assert body.citations[0].key == "smith2020"
        assert body.citations[0].is_in_footnote_content


class TestCommentTargets:
    """Tests for selecting blocks whose comments are needed."""

    def test_only_blocks_with_markers(self) -> None:
        """Blocks with markers are listed, nested ones included."""
        nested = paragraph("n1", "Nested[^ft_b]")
        blocks = [
            paragraph("p1", "Marked[^ft_a]", children=[nested]),
            paragraph("p2", "Plain text"),
        ]
        config = PipelineConfig(
            footnotes=FootnotesConfig(sources=frozenset({FootnoteSource.BLOCK_COMMENTS}))
        )

        assert collect_comment_targets(blocks, config) == ["p1", "n1"]

    def test_other_sources_need_no_comments(self) -> None:
        """Without the comment source nothing is fetched."""
        blocks = [paragraph("p1", "Marked[^ft_a]")]

        assert collect_comment_targets(blocks, PipelineConfig()) == []
