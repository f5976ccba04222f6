"""Tests for the build cache."""

from datetime import datetime, timedelta, timezone

import pytest
from helpers import EDITED, page_link, paragraph

from pagecraft_core.cache.block_index import BlockPageIndex, format_uuid
from pagecraft_core.cache.build_cache import MISS, PAGE_KINDS, BuildCache, CacheKind
from pagecraft_core.cache.build_clock import (
    as_utc,
    read_last_build_time,
    record_build_start,
)
from pagecraft_core.schemas.interlinks import InterlinkedContentInPage
from pagecraft_core.schemas.pages import Post

LAST_BUILD = datetime(2024, 2, 1, tzinfo=timezone.utc)
BEFORE = LAST_BUILD - timedelta(days=1)
AFTER = LAST_BUILD + timedelta(days=1)


def post(page_id: str, last_updated: datetime = BEFORE) -> Post:
    return Post(page_id=page_id, title=page_id, last_updated=last_updated)


def cache_links(cache: BuildCache, page_id: str, *targets: str) -> None:
    items = [
        InterlinkedContentInPage(
            block=paragraph(f"{page_id}-b{i}", page_link("see", target)),
            other_pages=[page_link("see", target)],
        )
        for i, target in enumerate(targets)
    ]
    cache.put(page_id, CacheKind.INTERLINKED_CONTENT, items, BEFORE)


@pytest.fixture
def cache(tmp_path) -> BuildCache:
    return BuildCache(tmp_path)


class TestReadWrite:
    """Tests for storing and loading artifacts."""

    def test_put_then_get(self, cache: BuildCache) -> None:
        """Payloads come back with their types, datetimes included."""
        blocks = [paragraph("b1", "Hello", children=[paragraph("b2", "World")])]

        assert cache.put("p1", CacheKind.BLOCKS, blocks, EDITED)
        loaded = cache.get("p1", CacheKind.BLOCKS)

        assert [b.model_dump() for b in loaded] == [b.model_dump() for b in blocks]
        assert loaded[0].last_updated == EDITED
        assert loaded[0].child_blocks()[0].id == "b2"

    def test_rewrite_is_idempotent(self, cache: BuildCache) -> None:
        """Writing the same payload twice yields the same payload."""
        cache.put("p1", CacheKind.RENDERED_HTML, "<p>hi</p>", EDITED)
        cache.put("p1", CacheKind.RENDERED_HTML, "<p>hi</p>", EDITED)

        assert cache.get("p1", CacheKind.RENDERED_HTML) == "<p>hi</p>"
        assert cache.get_entry("p1", CacheKind.RENDERED_HTML).page_last_updated == EDITED

    def test_missing_file_is_miss(self, cache: BuildCache) -> None:
        """Absent artifacts read as MISS, which is falsy."""
        result = cache.get("nope", CacheKind.FOOTNOTES)

        assert result is MISS
        assert not result
        assert repr(result) == "MISS"

    def test_corrupt_file_is_miss(self, cache: BuildCache) -> None:
        """Unreadable files are treated like missing ones."""
        path = cache.path_for("p1", CacheKind.HEADINGS)
        path.parent.mkdir(parents=True)
        path.write_text("{not json")

        assert cache.get("p1", CacheKind.HEADINGS) is MISS

    def test_empty_list_is_not_miss(self, cache: BuildCache) -> None:
        """An empty cached list is a hit."""
        cache.put("p1", CacheKind.CITATIONS, [], EDITED)

        assert cache.get("p1", CacheKind.CITATIONS) == []

    def test_failed_write_is_reported(self, cache: BuildCache) -> None:
        """A write that cannot happen returns False and leaves no file behind."""
        blocker = cache.path_for("p1", CacheKind.RENDERED_HTML).parent
        blocker.parent.mkdir(parents=True, exist_ok=True)
        blocker.write_text("not a directory")

        assert not cache.put("p1", CacheKind.RENDERED_HTML, "<p/>", EDITED)
        assert cache.get("p1", CacheKind.RENDERED_HTML) is MISS

    def test_kinds_use_separate_directories(self, cache: BuildCache) -> None:
        """Every kind is stored in its own directory."""
        paths = {cache.path_for("p1", kind).parent for kind in CacheKind}

        assert len(paths) == len(CacheKind)
        assert cache.path_for("p1", CacheKind.FOOTNOTES).parts[-3:] == (
            "blocks-json-cache",
            "footnotes-in-page",
            "p1.json",
        )

    def test_invalidate_selected_kinds(self, cache: BuildCache) -> None:
        """Invalidation removes only the requested kinds."""
        cache.put("p1", CacheKind.BLOCKS, [], EDITED)
        cache.put("p1", CacheKind.FOOTNOTES, [], EDITED)

        cache.invalidate("p1", (CacheKind.FOOTNOTES,))

        assert cache.has("p1", CacheKind.BLOCKS)
        assert not cache.has("p1", CacheKind.FOOTNOTES)
        cache.invalidate("p1")
        assert not cache.has("p1", CacheKind.BLOCKS)


class TestValidity:
    """Tests for cache validity decisions."""

    def test_no_previous_build(self, cache: BuildCache) -> None:
        """Nothing is valid on a first build."""
        assert not cache.is_valid(post("p1"), None, {})

    def test_page_edited_since_last_build(self, cache: BuildCache) -> None:
        """Edits after the last build invalidate the page."""
        assert cache.is_valid(post("p1", BEFORE), LAST_BUILD, {})
        assert cache.is_valid(post("p1", LAST_BUILD), LAST_BUILD, {})
        assert not cache.is_valid(post("p1", AFTER), LAST_BUILD, {})

    def test_naive_times_are_utc(self, cache: BuildCache) -> None:
        """Naive timestamps compare as UTC."""
        naive_after = AFTER.replace(tzinfo=None)

        assert as_utc(naive_after) == AFTER
        assert not cache.is_valid(post("p1", naive_after), LAST_BUILD, {})

    def test_linked_page_edit_invalidates(self, cache: BuildCache) -> None:
        """A page linking to an edited page is stale."""
        cache_links(cache, "p1", "p2")
        registry = {"p1": post("p1"), "p2": post("p2", AFTER)}

        assert cache.linked_page_ids("p1") == {"p2"}
        assert not cache.is_valid(registry["p1"], LAST_BUILD, registry)

    def test_invalidation_is_one_hop(self, cache: BuildCache) -> None:
        """Links of linked pages are not followed."""
        cache_links(cache, "p1", "p2")
        cache_links(cache, "p2", "p3")
        registry = {"p1": post("p1"), "p2": post("p2"), "p3": post("p3", AFTER)}

        assert not cache.is_valid(registry["p2"], LAST_BUILD, registry)
        assert cache.is_valid(registry["p1"], LAST_BUILD, registry)

    def test_unknown_linked_page_is_ignored(self, cache: BuildCache) -> None:
        """Links to pages outside the registry do not invalidate."""
        cache_links(cache, "p1", "gone")

        assert cache.is_valid(post("p1"), LAST_BUILD, {"p1": post("p1")})

    def test_partial_validity_per_kind(self, cache: BuildCache) -> None:
        """Only kinds embedding other pages go stale when a linked page changes."""
        for kind in PAGE_KINDS:
            if kind != CacheKind.INTERLINKED_CONTENT:
                cache.put("p1", kind, [], BEFORE)
        cache_links(cache, "p1", "p2")
        registry = {"p1": post("p1"), "p2": post("p2", AFTER)}

        valid = cache.valid_kinds(registry["p1"], LAST_BUILD, registry)

        assert valid == set(PAGE_KINDS) - {CacheKind.INTERLINKED_CONTENT}

    def test_missing_kind_is_not_valid(self, cache: BuildCache) -> None:
        """A kind without a file is never valid."""
        cache.put("p1", CacheKind.BLOCKS, [], BEFORE)

        assert cache.valid_kinds(post("p1"), LAST_BUILD, {}) == {CacheKind.BLOCKS}


class TestBuildClock:
    """Tests for the persisted build start time."""

    def test_round_trip_to_millisecond(self, tmp_path) -> None:
        """The recorded start reads back as the same UTC instant."""
        path = tmp_path / "build_start_timestamp.txt"
        started = datetime(2024, 3, 1, 8, 30, 15, tzinfo=timezone.utc)

        assert record_build_start(path, started) == started
        assert path.read_text() == "1709281815000"
        assert read_last_build_time(path) == started

    def test_missing_or_garbage_file(self, tmp_path) -> None:
        """Missing and unreadable files mean there was no previous build."""
        path = tmp_path / "build_start_timestamp.txt"

        assert read_last_build_time(path) is None
        path.write_text("yesterday")
        assert read_last_build_time(path) is None


class TestBlockIndex:
    """Tests for the block-id to page-id index."""

    def test_format_uuid(self) -> None:
        """Undashed hex ids are dashed; other ids pass through."""
        assert format_uuid("0123456789abcdef0123456789abcdef") == (
            "01234567-89ab-cdef-0123-456789abcdef"
        )
        assert format_uuid("b1") == "b1"

    def test_update_save_and_reload(self, tmp_path, cache: BuildCache) -> None:
        """Nested blocks are indexed and the index survives a reload."""
        blocks = [paragraph("b1", "top", children=[paragraph("b2", "nested")])]
        cache.put("p1", CacheKind.BLOCKS, blocks, EDITED)
        index = BlockPageIndex(tmp_path / "block-id-page-id-map.json")

        index.update("p1", blocks)
        assert index.save()
        reloaded = BlockPageIndex(tmp_path / "block-id-page-id-map.json")

        assert reloaded.find_page_for_block("b2") == "p1"
        assert reloaded.find_block("b2", cache).plain_text() == "nested"
        assert reloaded.find_block("unknown", cache) is None
