r"""Split rendered page text into independently indexable sections.

The render step turns one HTML page into plain text where every heading is
fenced by boundary lines of four or more ``=`` characters. This module turns
that text into :class:`HeaderChunk` records and then into :class:`Section`
objects: the page's root entry (anchor ``""``) followed by one section per
anchored heading, each titled ``<heading> » <page title>``.

Example
-------
>>> from guide_index.segmenter import segment
>>> sections = segment("====\nGetting Started\n====\nWelcome.\n====\n#s1 Install\n====\nRun it.")
>>> [(s.anchor, s.title) for s in sections]
[('', 'Getting Started'), ('#s1', 'Install » Getting Started')]
"""

from __future__ import annotations

import dataclasses as dc
import re

from ._constants import TITLE_SEPARATOR

BOUNDARY_PATTERN = re.compile(r"\s*^[ \t]*={4,}[ \t\r]*$\s*", re.MULTILINE)
ANCHOR_PATTERN = re.compile(r"^(#\S+)\s+(\S.*)$")


class ParseError(ValueError):
    """Raised when rendered text has no header to establish the page title."""


@dc.dataclass(slots=True, frozen=True)
class HeaderChunk:
    """One header line and the body text that follows it.

    Attributes
    ----------
    anchor : str | None
        Fragment identifier including the leading ``#``, or ``None`` when the
        header carries no anchor.
    heading : str
        Heading text with the anchor removed.
    body : str
        Body text belonging to the header, stripped of surrounding blanks.
    """

    anchor: str | None
    heading: str
    body: str


@dc.dataclass(slots=True, frozen=True)
class Section:
    """Indexable slice of a page.

    Attributes
    ----------
    anchor : str
        ``""`` for the page's root section, otherwise the fragment identifier.
    title : str
        Page title for the root section, ``<heading> » <page title>`` for the
        others.
    body : str
        Plain text of the section.
    """

    anchor: str
    title: str
    body: str


def parse_header(line: str) -> tuple[str | None, str]:
    """Return ``(anchor, heading)`` for a header line."""
    text = line.strip()
    match = ANCHOR_PATTERN.match(text)
    if match:
        return match.group(1), match.group(2).strip()
    return None, text


def _is_inline_chunk(part: str) -> bool:
    header, newline, _ = part.strip().partition("\n")
    return bool(newline) and ANCHOR_PATTERN.match(header.strip()) is not None


def tokenize(raw_text: str) -> list[HeaderChunk]:
    """Split boundary-marked text into header chunks.

    Parameters
    ----------
    raw_text : str
        Output of the render step.

    Returns
    -------
    list[HeaderChunk]
        Chunks in page order. A chunk that is a single line is a header whose
        body is the next chunk; a chunk of several lines carries its header on
        the first line and its body inline.

    Notes
    -----
    Line endings are normalised to ``\\n`` first. Text before the first
    boundary is preamble and is discarded, unless it opens with an anchored
    header line (``#id Heading``) followed by an inline body, in which case
    it is read as the first chunk.
    """
    text = raw_text.replace("\r\n", "\n").replace("\r", "\n")
    parts = BOUNDARY_PATTERN.split(text)
    if not _is_inline_chunk(parts[0]):
        parts = parts[1:]

    chunks: list[HeaderChunk] = []
    idx = 0
    while idx < len(parts):
        header, newline, inline_body = parts[idx].strip().partition("\n")
        idx += 1
        if newline:
            body = inline_body
        elif idx < len(parts):
            body = parts[idx]
            idx += 1
        else:
            body = ""
        anchor, heading = parse_header(header)
        chunks.append(HeaderChunk(anchor=anchor, heading=heading, body=body.strip()))
    return chunks


def segment(raw_text: str) -> list[Section]:
    """Turn rendered page text into ordered sections.

    Parameters
    ----------
    raw_text : str
        Output of the render step for one page.

    Returns
    -------
    list[Section]
        The root section (anchor ``""``, titled with the page title) followed
        by one section per anchored header after the first.

    Raises
    ------
    ParseError
        If the text contains no header or the first header is blank.
    """
    chunks = tokenize(raw_text)
    if not chunks:
        msg = "Rendered text contains no section header to take the page title from."
        raise ParseError(msg)

    first, rest = chunks[0], chunks[1:]
    page_title = first.heading
    if not page_title:
        msg = "The first section header of the page is blank."
        raise ParseError(msg)

    root_body = [first.body] if first.body else []
    sections: list[Section] = []
    for chunk in rest:
        if chunk.anchor is None:
            if chunk.body:
                root_body.append(chunk.body)
            continue
        sections.append(
            Section(
                anchor=chunk.anchor,
                title=f"{chunk.heading}{TITLE_SEPARATOR}{page_title}",
                body=chunk.body,
            )
        )

    root = Section(anchor="", title=page_title, body="\n\n".join(root_body))
    return [root, *sections]


__all__ = [
    "BOUNDARY_PATTERN",
    "HeaderChunk",
    "ParseError",
    "Section",
    "parse_header",
    "segment",
    "tokenize",
]
