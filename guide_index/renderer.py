"""Convert rendered HTML pages into boundary-marked plain text.

Two converters are provided. :class:`CommandRenderer` shells out to an
external tool (the production setup runs ``xsltproc`` with an HTML-to-text
stylesheet), while :class:`SoupRenderer` does the conversion in-process with
BeautifulSoup. Both emit the text layout understood by
:mod:`guide_index.segmenter`: a ``====`` boundary line, a header line
(``#anchor Heading`` when the heading has an id), another boundary, then the
body.

Example
-------
>>> from pathlib import Path
>>> from guide_index.renderer import SoupRenderer
>>> text = SoupRenderer().render(Path("html/en/ref/current/guide.html"))  # doctest: +SKIP
>>> text.splitlines()[:2]  # doctest: +SKIP
['====', '#guide Getting Started']
"""

from __future__ import annotations

import logging
import re
import subprocess
import typing as typ

from bs4 import BeautifulSoup, NavigableString, Tag

if typ.TYPE_CHECKING:
    import collections.abc as cabc
    from pathlib import Path

logger = logging.getLogger(__name__)

BOUNDARY = "===="
HEADING_TAGS = ["h1", "h2", "h3", "h4", "h5", "h6"]
SKIPPED_TAGS = ["script", "style", "nav", "noscript", "template"]
_WHITESPACE = re.compile(r"\s+")


class RenderError(RuntimeError):
    """Raised when a page cannot be converted to text."""

    def __init__(self, path: Path, detail: str) -> None:
        self.path = path
        self.detail = detail
        super().__init__(f"Couldn't parse text in {path}: {detail}")


class Renderer(typ.Protocol):
    """Anything that turns one HTML file into boundary-marked text."""

    def render(self, path: Path) -> str:
        """Return the text of ``path`` or raise :class:`RenderError`."""
        ...


class CommandRenderer:
    """Run an external converter and return its standard output."""

    def __init__(self, command: cabc.Sequence[str]) -> None:
        if not command:
            msg = "Render command cannot be empty"
            raise ValueError(msg)
        self.command = list(command)

    def render(self, path: Path) -> str:
        """Invoke the converter on ``path`` and decode its output as UTF-8."""
        try:
            result = subprocess.run(  # noqa: S603
                [*self.command, str(path)],
                check=True,
                capture_output=True,
            )
        except FileNotFoundError as exc:
            raise RenderError(path, f"command not found: {self.command[0]}") from exc
        except subprocess.CalledProcessError as exc:
            stderr = (exc.stderr or b"").decode("utf-8", errors="replace").strip()
            detail = f"exit status {exc.returncode}"
            if stderr:
                detail = f"{detail}: {stderr}"
            raise RenderError(path, detail) from exc
        try:
            return result.stdout.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise RenderError(path, "converter output is not valid UTF-8") from exc


class SoupRenderer:
    """Convert HTML to boundary-marked text with BeautifulSoup."""

    def __init__(self, parser: str = "html.parser") -> None:
        self.parser = parser

    def render(self, path: Path) -> str:
        """Return one header/body pair per heading found in ``path``."""
        try:
            html = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            raise RenderError(path, str(exc)) from exc

        soup = BeautifulSoup(html, self.parser)
        page_title = _page_title(soup) or path.stem
        for tag in soup.find_all([*SKIPPED_TAGS, "head", "title"]):
            tag.decompose()
        root = soup.body or soup
        blocks = _collect_blocks(root, page_title=page_title)
        if not blocks:
            raise RenderError(path, "no text content")
        logger.debug("Rendered %s into %d blocks", path, len(blocks))
        return "".join(
            f"{BOUNDARY}\n{header}\n{BOUNDARY}\n{body}\n" for header, body in blocks
        )


def _collect_blocks(root: Tag, *, page_title: str) -> list[tuple[str, str]]:
    """Walk ``root`` in document order, grouping text under each heading."""
    blocks: list[tuple[str, str]] = []
    header: str | None = None
    texts: list[str] = []

    def _flush() -> None:
        if header is None and not texts:
            return
        blocks.append((page_title if header is None else header, "\n".join(texts)))

    for node in root.descendants:
        if isinstance(node, Tag) and node.name in HEADING_TAGS:
            _flush()
            header = _header_line(node)
            texts = []
        elif type(node) is NavigableString:
            if node.find_parent(HEADING_TAGS) is not None:
                continue
            text = _clean(str(node))
            if text:
                texts.append(text)
    _flush()
    return blocks


def _header_line(heading: Tag) -> str:
    """Return ``#anchor Heading`` for headings with an id, else the text."""
    text = _clean(heading.get_text(" ")) or "Untitled"
    anchor = _heading_anchor(heading)
    return f"#{anchor} {text}" if anchor else text


def _heading_anchor(heading: Tag) -> str | None:
    """Find the fragment id for a heading, its inner anchor, or its section."""
    own = heading.get("id")
    if own:
        return str(own)
    inner = heading.find("a", attrs={"id": True}) or heading.find(
        "a", attrs={"name": True}
    )
    if isinstance(inner, Tag):
        return str(inner.get("id") or inner.get("name"))
    for parent in heading.parents:
        if parent.name in {"body", "html", "[document]"}:
            break
        if parent.name == "section" or "section" in (parent.get("class") or []):
            parent_id = parent.get("id")
            if parent_id:
                return str(parent_id)
    return None


def _page_title(soup: BeautifulSoup) -> str | None:
    title = soup.find("title")
    if isinstance(title, Tag):
        return _clean(title.get_text(" ")) or None
    return None


def _clean(text: str) -> str:
    return _WHITESPACE.sub(" ", text).strip()


def build_renderer(command: cabc.Sequence[str] | None) -> Renderer:
    """Return a CommandRenderer for ``command`` or the built-in SoupRenderer."""
    if command:
        return CommandRenderer(command)
    return SoupRenderer()


__all__ = [
    "CommandRenderer",
    "RenderError",
    "Renderer",
    "SoupRenderer",
    "build_renderer",
]
