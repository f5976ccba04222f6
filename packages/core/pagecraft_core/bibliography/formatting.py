"""Citation formatting for APA and simplified-IEEE styles.

Formatting is a pure function of the entry and the style, so formatted
strings are stable across builds and safe to cache.
"""

from html import escape

from pagecraft_core.schemas.citations import (
    BibliographyStyle,
    Citation,
    ParsedCitationEntry,
)

MAX_DISPLAYED_AUTHORS = 8
UNKNOWN_AUTHOR = "Unknown"


def format_author_short(authors: list[str]) -> str:
    """Short author display used in-text and for sorting.

    One author is shown alone, two are joined with ``&``, up to eight are
    listed with ``&`` before the last, and longer lists show the first
    eight followed by ``et al.``.
    """
    names = [name for name in authors if name]
    if not names:
        return UNKNOWN_AUTHOR
    if len(names) == 1:
        return names[0]
    if len(names) == 2:
        return f"{names[0]} & {names[1]}"
    if len(names) > MAX_DISPLAYED_AUTHORS:
        return f"{', '.join(names[:MAX_DISPLAYED_AUTHORS])}, et al."
    return f"{', '.join(names[:-1])} & {names[-1]}"


def _ieee_author_list(authors: list[str]) -> str:
    names = [name for name in authors if name]
    if not names:
        return UNKNOWN_AUTHOR
    if len(names) > MAX_DISPLAYED_AUTHORS:
        return f"{', '.join(names[:MAX_DISPLAYED_AUTHORS])} et al."
    if len(names) <= 2:
        return " and ".join(names)
    return f"{', '.join(names[:-1])}, and {names[-1]}"


def _apa_author_list(authors: list[str]) -> str:
    names = [name for name in authors if name]
    if not names:
        return UNKNOWN_AUTHOR
    if len(names) == 1:
        return names[0]
    if len(names) > MAX_DISPLAYED_AUTHORS:
        return f"{', '.join(names[:MAX_DISPLAYED_AUTHORS])}, et al."
    return f"{', '.join(names[:-1])}, & {names[-1]}"


def _link(entry: ParsedCitationEntry) -> str | None:
    if entry.doi:
        doi = entry.doi.removeprefix("https://doi.org/")
        return f"https://doi.org/{doi}"
    return entry.url


def _format_apa(entry: ParsedCitationEntry) -> str:
    parts = [f"{escape(_apa_author_list(entry.authors))} ({escape(entry.year)})."]

    title = escape(entry.title or "Untitled")
    if entry.container_title:
        parts.append(f"{title}.")
        container = f"<i>{escape(entry.container_title)}</i>"
        if entry.volume:
            container += f", <i>{escape(entry.volume)}</i>"
            if entry.issue:
                container += f"({escape(entry.issue)})"
        if entry.pages:
            container += f", {escape(entry.pages)}"
        parts.append(f"{container}.")
    else:
        parts.append(f"<i>{title}</i>.")
        if entry.publisher:
            parts.append(f"{escape(entry.publisher)}.")

    link = _link(entry)
    if link:
        parts.append(escape(link))
    return " ".join(parts)


def _format_ieee(entry: ParsedCitationEntry) -> str:
    parts = [f"{escape(_ieee_author_list(entry.authors))},"]
    parts.append(f"“{escape(entry.title or 'Untitled')},”")

    details: list[str] = []
    if entry.container_title:
        details.append(f"<i>{escape(entry.container_title)}</i>")
    elif entry.publisher:
        details.append(escape(entry.publisher))
    if entry.volume:
        details.append(f"vol. {escape(entry.volume)}")
    if entry.issue:
        details.append(f"no. {escape(entry.issue)}")
    if entry.pages:
        details.append(f"pp. {escape(entry.pages)}")
    details.append(escape(entry.year))
    parts.append(f"{', '.join(details)}.")

    if entry.doi:
        parts.append(f"doi: {escape(entry.doi.removeprefix('https://doi.org/'))}.")
    elif entry.url:
        parts.append(f"[Online]. Available: {escape(entry.url)}")
    return " ".join(parts)


def format_entry(entry: ParsedCitationEntry, style: BibliographyStyle) -> str:
    """Render a bibliography entry as an HTML fragment.

    Args:
        entry: Parsed bibliography entry
        style: Bibliography style

    Returns:
        Formatted entry; identical for identical inputs
    """
    if style == BibliographyStyle.APA:
        return _format_apa(entry)
    return _format_ieee(entry)


def build_citation(entry: ParsedCitationEntry, style: BibliographyStyle) -> Citation:
    """Create the citation record attached to blocks for one key."""
    return Citation(
        key=entry.key,
        formatted_entry=format_entry(entry, style),
        authors=format_author_short(entry.authors),
        year=entry.year,
        url=_link(entry),
    )


def format_in_text(citation: Citation, style: BibliographyStyle) -> str:
    """In-text display: ``Authors, Year`` for APA, ``[n]`` for IEEE."""
    if style == BibliographyStyle.APA:
        return f"{citation.authors}, {citation.year}"
    if citation.index is None:
        return "[?]"
    return f"[{citation.index}]"


def prepare_bibliography(
    citations: list[Citation], style: BibliographyStyle
) -> list[Citation]:
    """Order citations for the reference list.

    IEEE lists by first-appearance number; APA sorts by author then year.
    """
    if style == BibliographyStyle.IEEE:
        return sorted(citations, key=lambda c: (c.index is None, c.index or 0))
    return sorted(citations, key=lambda c: (c.authors.casefold(), c.year, c.key))


def render_bibliography_section(
    citations: list[Citation], style: BibliographyStyle
) -> str:
    """Render the ordered reference list as HTML.

    Returns:
        An ``<ol>`` for IEEE, a ``<ul>`` for APA; empty string without citations
    """
    if not citations:
        return ""

    ordered = prepare_bibliography(citations, style)
    items: list[str] = []
    for citation in ordered:
        anchor = f'id="bib-{escape(citation.key)}"'
        if style == BibliographyStyle.IEEE:
            items.append(
                f"<li {anchor}>{format_in_text(citation, style)} {citation.formatted_entry}</li>"
            )
        else:
            items.append(f"<li {anchor}>{citation.formatted_entry}</li>")

    tag = "ol" if style == BibliographyStyle.IEEE else "ul"
    return f'<{tag} class="bibliography">' + "".join(items) + f"</{tag}>"
