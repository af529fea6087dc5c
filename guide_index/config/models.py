"""Typed dataclasses describing guide-index configuration structures."""

from __future__ import annotations

import dataclasses as dc
from pathlib import Path

from guide_index._constants import (
    DEFAULT_ALIAS,
    DEFAULT_HOST,
    DEFAULT_INDEX_PREFIX,
    DEFAULT_STATE_FILE,
    URL_BASE,
)


class ConfigError(ValueError):
    """Raised when the indexer configuration is invalid or incomplete."""


@dc.dataclass(slots=True, frozen=True)
class Book:
    """A single documentation book whose pages live under ``<prefix>/current``.

    Attributes
    ----------
    prefix : str
        Directory and URL segment of the book, unique across the contents tree.
    abbr : str
        Short label appended to every document title from this book.
    title : str
        Human readable book title used in progress output.
    single : bool
        ``True`` when the book is a single page, so its ``index.html`` is the
        content rather than a table of contents.
    """

    prefix: str
    abbr: str
    title: str
    single: bool = False


@dc.dataclass(slots=True)
class BookGroup:
    """A container entry grouping nested books or further groups."""

    title: str
    sections: list[BookEntry] = dc.field(default_factory=list)


BookEntry = Book | BookGroup


@dc.dataclass(slots=True)
class SearchConfig:
    """Connection and build settings for the search engine."""

    host: str = DEFAULT_HOST
    alias: str = DEFAULT_ALIAS
    index_prefix: str = DEFAULT_INDEX_PREFIX
    doc_type: str | None = None
    batch_size: int = 500
    concurrency: int = 4
    max_retries: int = 3
    timeout: float = 30.0
    keep_failed_index: bool = True
    sweep_orphans: bool = False


@dc.dataclass(slots=True)
class RenderConfig:
    """External HTML to text converter; ``None`` selects the built-in one."""

    command: list[str] | None = None


@dc.dataclass(slots=True)
class StateConfig:
    """Where the last indexed content revision is recorded."""

    path: Path = Path(DEFAULT_STATE_FILE)
    repo: Path = Path()


@dc.dataclass(slots=True)
class IndexerConfig:
    """Fully resolved configuration consumed by the reindex pipeline."""

    build_dir: Path
    contents: list[BookEntry]
    search: SearchConfig = dc.field(default_factory=SearchConfig)
    render: RenderConfig = dc.field(default_factory=RenderConfig)
    state: StateConfig = dc.field(default_factory=StateConfig)
    url_base: str = URL_BASE

    def books(self) -> list[Book]:
        """Return every book in the contents tree in document order."""
        return flatten_books(self.contents)


MAX_DEPTH = 16


def flatten_books(entries: list[BookEntry], *, max_depth: int = MAX_DEPTH) -> list[Book]:
    """Flatten nested book groups into an ordered list of books.

    Parameters
    ----------
    entries : list[BookEntry]
        Top-level contents entries; groups may nest further groups.
    max_depth : int, optional
        Deepest nesting accepted before the tree is treated as malformed.

    Returns
    -------
    list[Book]
        Books in document (depth-first, left-to-right) order.

    Raises
    ------
    ConfigError
        If a group contains itself, directly or through a descendant, or the
        nesting exceeds ``max_depth``.
    """
    books: list[Book] = []
    # Each frame holds the remaining entries of one group and the ids of the
    # groups currently open above it.
    stack: list[tuple[list[BookEntry], int, frozenset[int]]] = [
        (list(entries), 0, frozenset())
    ]
    while stack:
        pending, depth, ancestors = stack.pop()
        if not pending:
            continue
        head, rest = pending[0], pending[1:]
        stack.append((rest, depth, ancestors))
        match head:
            case Book():
                books.append(head)
            case BookGroup():
                if id(head) in ancestors:
                    msg = f"Book group '{head.title}' contains itself."
                    raise ConfigError(msg)
                if depth + 1 > max_depth:
                    msg = (
                        f"Book group '{head.title}' is nested deeper than "
                        f"{max_depth} levels."
                    )
                    raise ConfigError(msg)
                stack.append(
                    (list(head.sections), depth + 1, ancestors | {id(head)})
                )
            case _:
                msg = f"Unsupported contents entry: {head!r}"
                raise ConfigError(msg)
    return books


__all__ = [
    "MAX_DEPTH",
    "flatten_books",
    "Book",
    "BookEntry",
    "BookGroup",
    "ConfigError",
    "IndexerConfig",
    "RenderConfig",
    "SearchConfig",
    "StateConfig",
]
