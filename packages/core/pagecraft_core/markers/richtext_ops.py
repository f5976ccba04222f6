"""Character-offset operations over rich text run lists.

All offsets refer to the concatenation of the runs' ``plain_text``. Runs that
straddle a boundary are cloned, so formatting is kept on both halves and the
input list is never mutated.
"""

from pagecraft_core.schemas.richtext import RichText


def join_plain_text(rich_texts: list[RichText]) -> str:
    """Concatenate plain text of the runs without separators."""
    return "".join(rt.plain_text for rt in rich_texts)


def split_rich_texts_at(
    rich_texts: list[RichText], position: int
) -> tuple[list[RichText], list[RichText]]:
    """Split runs at a character offset.

    Args:
        rich_texts: Runs to split
        position: Offset in the concatenated text

    Returns:
        Tuple of (runs before the offset, runs from the offset on)
    """
    before: list[RichText] = []
    after: list[RichText] = []
    current = 0

    for rich_text in rich_texts:
        length = len(rich_text.plain_text)
        end = current + length

        if position <= current:
            after.append(rich_text)
        elif position >= end:
            before.append(rich_text)
        else:
            offset = position - current
            before.append(rich_text.with_text(rich_text.plain_text[:offset]))
            after.append(rich_text.with_text(rich_text.plain_text[offset:]))

        current = end

    return before, after


def extract_rich_text_range(
    rich_texts: list[RichText], start: int, end: int, strip: bool = True
) -> list[RichText]:
    """Copy the runs covering ``[start, end)``, keeping their annotations.

    Args:
        rich_texts: Source runs
        start: Start offset (inclusive)
        end: End offset (exclusive)
        strip: Trim whitespace at both ends of the extracted range

    Returns:
        New list of cloned runs
    """
    result: list[RichText] = []
    current = 0

    for rich_text in rich_texts:
        length = len(rich_text.plain_text)
        run_end = current + length

        if run_end > start and current < end:
            sliced = rich_text.plain_text[max(0, start - current) : min(length, end - current)]
            if sliced:
                result.append(rich_text.with_text(sliced))

        current = run_end

    if strip and result:
        result[0] = result[0].with_text(result[0].plain_text.lstrip())
        result[-1] = result[-1].with_text(result[-1].plain_text.rstrip())
        result = [rt for rt in result if rt.plain_text]

    return result


def remove_leading_chars(rich_texts: list[RichText], count: int) -> list[RichText]:
    """Drop the first ``count`` characters across the runs."""
    if count <= 0:
        return list(rich_texts)
    _, after = split_rich_texts_at(rich_texts, count)
    return after


def rich_text_at(rich_texts: list[RichText], position: int) -> RichText | None:
    """Return the run covering a character offset, if any."""
    current = 0
    for rich_text in rich_texts:
        end = current + len(rich_text.plain_text)
        if current <= position < end:
            return rich_text
        current = end
    return None


def range_is_scannable(rich_texts: list[RichText], start: int, end: int) -> bool:
    """True when no run overlapping ``[start, end)`` is code, equation, mention or marker."""
    current = 0
    for rich_text in rich_texts:
        run_end = current + len(rich_text.plain_text)
        if run_end > start and current < end and rich_text.is_opaque:
            return False
        current = run_end
    return True


def replace_range(
    rich_texts: list[RichText], start: int, end: int, replacement: list[RichText]
) -> list[RichText]:
    """Replace the characters in ``[start, end)`` with the given runs."""
    before, rest = split_rich_texts_at(rich_texts, start)
    _, after = split_rich_texts_at(rest, end - start)
    return [*before, *replacement, *after]
