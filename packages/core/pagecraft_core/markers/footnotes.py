"""Footnote extraction.

Handles the four footnote sources:

- end-of-block: ``[^ft_a]: definition`` trailing the block's text
- start-of-child-blocks: child blocks starting with ``[^ft_a]:`` as bodies
- block-comments: comments starting with ``[^ft_a]:`` as bodies
- inline-latex-footnote-command: ``\\footnote{...}`` spans

Each extractor rewrites the block's rich text in place so that every marker
occupies its own marker run, and returns the footnotes in the order their
markers appear. Text around a marker keeps its formatting.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field

from pagecraft_core.config import FootnoteSource, FootnotesConfig
from pagecraft_core.markers.richtext_ops import (
    extract_rich_text_range,
    join_plain_text,
    range_is_scannable,
    remove_leading_chars,
    replace_range,
    split_rich_texts_at,
)
from pagecraft_core.schemas.blocks import (
    Block,
    BlockComment,
    Footnote,
    FootnoteContent,
    FootnoteSourceLocation,
    RichTextLocation,
)
from pagecraft_core.schemas.richtext import RichText
from pagecraft_core.utils.hashing import short_md5
from pagecraft_core.utils.logging import get_logger

logger = get_logger(__name__)

_MARKER_ID_CHARS = r"[\w\-]+"
_COMMAND_START = re.compile(r"\\footnote\{")
INLINE_COMMAND_DISPLAY = "\\footnote{...}"


@dataclass
class FootnoteMarkerInfo:
    """A marker occurrence inside one rich text location."""

    marker: str
    full_marker: str
    path: str
    start: int
    end: int


@dataclass
class FootnoteExtractionResult:
    """Footnotes found in a block and what was rewritten."""

    footnotes: list[Footnote] = field(default_factory=list)
    processed_rich_texts: bool = False
    processed_children: bool = False


def full_marker_for(marker: str) -> str:
    return f"[^{marker}]"


def _inline_marker_pattern(prefix: str, allow_colon: bool = False) -> re.Pattern[str]:
    # (?!:) keeps definitions ("[^ft_a]:") out of the inline matches
    guard = "" if allow_colon else "(?!:)"
    return re.compile(rf"\[\^({re.escape(prefix)}{_MARKER_ID_CHARS})\]{guard}")


def _definition_pattern(prefix: str) -> re.Pattern[str]:
    return re.compile(rf"\[\^({re.escape(prefix)}{_MARKER_ID_CHARS})\]:[ \t]*")


def _content_prefix_pattern(prefix: str) -> re.Pattern[str]:
    return re.compile(rf"^\[\^({re.escape(prefix)}{_MARKER_ID_CHARS})\]:\s*")


def find_footnote_markers(
    locations: list[RichTextLocation], prefix: str, allow_colon: bool = False
) -> list[FootnoteMarkerInfo]:
    """Find inline footnote markers in every location.

    Markers inside code, equations, mentions or existing marker runs are ignored.
    A marker followed by a colon only counts when ``allow_colon`` is set, which
    is the case for text already known to lie before the definitions.
    """
    pattern = _inline_marker_pattern(prefix, allow_colon)
    markers: list[FootnoteMarkerInfo] = []
    for location in locations:
        text = join_plain_text(location.rich_texts)
        for match in pattern.finditer(text):
            if not range_is_scannable(location.rich_texts, match.start(), match.end()):
                continue
            markers.append(
                FootnoteMarkerInfo(
                    marker=match.group(1),
                    full_marker=match.group(0),
                    path=location.path,
                    start=match.start(),
                    end=match.end(),
                )
            )
    return markers


def has_footnote_markers(block: Block, config: FootnotesConfig) -> bool:
    """Cheap check used to avoid fetching comments for blocks without markers."""
    locations = block.rich_text_locations()
    if config.active_source == FootnoteSource.INLINE_COMMAND:
        return any(
            _COMMAND_START.search(join_plain_text(loc.rich_texts)) for loc in locations
        )
    return bool(find_footnote_markers(locations, config.marker_prefix))


def _split_markers(
    rich_texts: list[RichText], markers: list[FootnoteMarkerInfo]
) -> list[RichText]:
    """Replace each marker span with a dedicated marker run.

    Spans are replaced right to left so earlier offsets stay valid.
    """
    result = list(rich_texts)
    for info in sorted(markers, key=lambda m: m.start, reverse=True):
        marker_run = RichText.footnote_marker(info.marker, info.full_marker)
        result = replace_range(result, info.start, info.end, [marker_run])
    return result


def _order_by_first_marker(
    footnotes: dict[str, Footnote], markers: list[FootnoteMarkerInfo]
) -> list[Footnote]:
    ordered: list[Footnote] = []
    seen: set[str] = set()
    for info in markers:
        if info.marker in footnotes and info.marker not in seen:
            ordered.append(footnotes[info.marker])
            seen.add(info.marker)
    ordered.extend(fn for marker, fn in footnotes.items() if marker not in seen)
    return ordered


# ============================================================================
# End-of-block
# ============================================================================


def _extract_end_of_block_location(
    location: RichTextLocation, prefix: str
) -> list[Footnote]:
    rich_texts = location.rich_texts
    text = join_plain_text(rich_texts)

    definitions = [
        match
        for match in _definition_pattern(prefix).finditer(text)
        if range_is_scannable(rich_texts, match.start(), match.end())
    ]
    if not definitions:
        return []

    # The section opens at the first definition starting its own paragraph, if any
    opening = next(
        (match for match in definitions if text[: match.start()].endswith("\n\n")),
        definitions[0],
    )
    definitions = [match for match in definitions if match.start() >= opening.start()]
    section_start = opening.start()
    visible_end = len(text[:section_start].rstrip())

    bodies: dict[str, list[RichText]] = {}
    for position, match in enumerate(definitions):
        body_end = (
            definitions[position + 1].start()
            if position + 1 < len(definitions)
            else len(text)
        )
        body = extract_rich_text_range(rich_texts, match.end(), body_end)
        if not join_plain_text(body).strip():
            logger.debug(f"Skipping empty footnote definition {match.group(0)}")
            continue
        bodies.setdefault(match.group(1), body)

    main, _ = split_rich_texts_at(rich_texts, visible_end)
    inline = [
        info
        for info in find_footnote_markers(
            [RichTextLocation(location.path, main, location.setter)],
            prefix,
            allow_colon=True,
        )
        if info.marker in bodies
    ]
    anchored = {info.marker for info in inline}

    rewritten = _split_markers(main, inline)
    for marker in bodies:
        if marker not in anchored:
            rewritten.append(
                RichText.footnote_marker(marker, full_marker_for(marker))
            )
    location.setter(rewritten)

    footnotes = {
        marker: Footnote(
            marker=marker,
            full_marker=full_marker_for(marker),
            source_location=location.source_location,
            content=FootnoteContent(type="rich_text", rich_texts=body),
        )
        for marker, body in bodies.items()
    }
    return _order_by_first_marker(footnotes, inline)


def extract_end_of_block_footnotes(
    block: Block, config: FootnotesConfig
) -> FootnoteExtractionResult:
    """Extract definitions appended to the end of each text slot."""
    footnotes: list[Footnote] = []
    for location in block.rich_text_locations():
        footnotes.extend(_extract_end_of_block_location(location, config.marker_prefix))

    if not footnotes:
        return FootnoteExtractionResult()
    return FootnoteExtractionResult(footnotes=footnotes, processed_rich_texts=True)


# ============================================================================
# Start-of-child-blocks
# ============================================================================


def extract_child_block_footnotes(
    block: Block, config: FootnotesConfig
) -> FootnoteExtractionResult:
    """Use children that start with ``[^ft_x]:`` as footnote bodies.

    Matching children are removed from the block's children; their prefix is
    stripped and the whole child (with descendants) becomes the footnote body.
    """
    prefix = config.marker_prefix
    locations = block.rich_text_locations()
    markers = find_footnote_markers(locations, prefix)
    children = block.get_children()
    if not markers or not children:
        return FootnoteExtractionResult()

    referenced = {info.marker for info in markers}
    content_pattern = _content_prefix_pattern(prefix)
    footnotes: dict[str, Footnote] = {}
    remaining: list[Block] = []

    for child in children:
        child_locations = child.rich_text_locations()
        if not child_locations:
            remaining.append(child)
            continue

        first = child_locations[0]
        match = content_pattern.match(join_plain_text(first.rich_texts))
        if not match or match.group(1) not in referenced or match.group(1) in footnotes:
            remaining.append(child)
            continue

        marker = match.group(1)
        first.setter(remove_leading_chars(first.rich_texts, match.end()))
        footnotes[marker] = Footnote(
            marker=marker,
            full_marker=full_marker_for(marker),
            source_location=FootnoteSourceLocation.CHILD_BLOCK,
            content=FootnoteContent(type="blocks", blocks=[child]),
        )

    if not footnotes:
        return FootnoteExtractionResult()

    block.set_children(remaining)
    block.has_children = bool(remaining)
    _split_defined_markers(locations, markers, footnotes)

    return FootnoteExtractionResult(
        footnotes=_order_by_first_marker(footnotes, markers),
        processed_rich_texts=True,
        processed_children=True,
    )


def _split_defined_markers(
    locations: list[RichTextLocation],
    markers: list[FootnoteMarkerInfo],
    footnotes: dict[str, Footnote],
) -> None:
    for location in locations:
        location_markers = [
            info
            for info in markers
            if info.path == location.path and info.marker in footnotes
        ]
        if location_markers:
            location.setter(_split_markers(location.rich_texts, location_markers))


# ============================================================================
# Block comments
# ============================================================================


def extract_comment_footnotes(
    block: Block, config: FootnotesConfig, comments: list[BlockComment]
) -> FootnoteExtractionResult:
    """Use block comments that start with ``[^ft_x]:`` as footnote bodies."""
    prefix = config.marker_prefix
    locations = block.rich_text_locations()
    markers = find_footnote_markers(locations, prefix)
    if not markers or not comments:
        return FootnoteExtractionResult()

    referenced = {info.marker for info in markers}
    content_pattern = _content_prefix_pattern(prefix)
    footnotes: dict[str, Footnote] = {}

    for comment in comments:
        match = content_pattern.match(join_plain_text(comment.rich_texts))
        if not match or match.group(1) not in referenced or match.group(1) in footnotes:
            continue

        marker = match.group(1)
        body = [rt.clone() for rt in remove_leading_chars(comment.rich_texts, match.end())]
        footnotes[marker] = Footnote(
            marker=marker,
            full_marker=full_marker_for(marker),
            source_location=FootnoteSourceLocation.COMMENT,
            content=FootnoteContent(
                type="rich_text",
                rich_texts=body,
                attachments=[a.model_copy() for a in comment.attachments],
            ),
        )

    if not footnotes:
        return FootnoteExtractionResult()

    _split_defined_markers(locations, markers, footnotes)
    return FootnoteExtractionResult(
        footnotes=_order_by_first_marker(footnotes, markers),
        processed_rich_texts=True,
    )


# ============================================================================
# Inline \footnote{...} command
# ============================================================================


def find_matching_brace(text: str, start: int) -> int:
    """Find the ``}`` closing a brace opened just before ``start``.

    Escaped braces (``\\{`` and ``\\}``) are literal characters.

    Returns:
        Index of the closing brace, or -1 if it is never closed
    """
    depth = 1
    for position in range(start, len(text)):
        char = text[position]
        if position > 0 and text[position - 1] == "\\":
            continue
        if char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
            if depth == 0:
                return position
    return -1


def _unescape_braces(rich_text: RichText) -> RichText:
    if rich_text.equation is not None or rich_text.mention is not None:
        return rich_text
    return rich_text.with_text(rich_text.plain_text.replace("\\{", "{").replace("\\}", "}"))


def extract_inline_command_footnotes(
    block: Block, config: FootnotesConfig
) -> FootnoteExtractionResult:
    """Turn ``\\footnote{...}`` spans into anonymous footnotes.

    The argument keeps its rich text formatting. Unterminated or empty
    commands stay in the text as written.
    """
    block_hash = short_md5(block.id, 8)
    counter = 0
    footnotes: list[Footnote] = []

    for location in block.rich_text_locations():
        rich_texts = location.rich_texts
        text = join_plain_text(rich_texts)
        spans: list[tuple[int, int, Footnote]] = []
        resume_at = 0

        for match in _COMMAND_START.finditer(text):
            if match.start() < resume_at:
                continue
            if not range_is_scannable(rich_texts, match.start(), match.end()):
                continue

            close = find_matching_brace(text, match.end())
            if close == -1:
                logger.warning(
                    f"Unmatched brace in \\footnote command at position {match.start()} in block {block.id}"
                )
                continue

            body = [
                _unescape_braces(rt)
                for rt in extract_rich_text_range(rich_texts, match.end(), close)
            ]
            if not join_plain_text(body).strip():
                logger.warning(
                    f"Empty \\footnote command at position {match.start()} in block {block.id}"
                )
                continue

            counter += 1
            marker = f"inline_auto_{block_hash}_{counter}"
            spans.append(
                (
                    match.start(),
                    close + 1,
                    Footnote(
                        marker=marker,
                        full_marker=INLINE_COMMAND_DISPLAY,
                        source_location=location.source_location,
                        content=FootnoteContent(type="rich_text", rich_texts=body),
                    ),
                )
            )
            resume_at = close + 1

        if not spans:
            continue

        rewritten = list(rich_texts)
        for start, end, footnote in reversed(spans):
            marker_run = RichText.footnote_marker(footnote.marker, footnote.full_marker)
            rewritten = replace_range(rewritten, start, end, [marker_run])
        location.setter(rewritten)
        footnotes.extend(footnote for _, _, footnote in spans)

    if not footnotes:
        return FootnoteExtractionResult()
    return FootnoteExtractionResult(footnotes=footnotes, processed_rich_texts=True)


# ============================================================================
# Entry point
# ============================================================================


def extract_footnotes_from_block(
    block: Block,
    config: FootnotesConfig,
    comments: list[BlockComment] | None = None,
) -> FootnoteExtractionResult:
    """Extract footnotes from a block using the configured source.

    Args:
        block: Block to rewrite in place
        config: Effective footnote configuration
        comments: Comments of this block, used by the block-comments source

    Returns:
        Extraction result with footnotes in marker order
    """
    if not config.enabled:
        return FootnoteExtractionResult()

    source = config.active_source
    if source == FootnoteSource.BLOCK_COMMENTS:
        return extract_comment_footnotes(block, config, comments or [])
    if source == FootnoteSource.CHILD_BLOCKS:
        return extract_child_block_footnotes(block, config)
    if source == FootnoteSource.END_OF_BLOCK:
        return extract_end_of_block_footnotes(block, config)
    if source == FootnoteSource.INLINE_COMMAND:
        return extract_inline_command_footnotes(block, config)
    return FootnoteExtractionResult()
