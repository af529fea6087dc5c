"""Build search documents for every page of a documentation book.

The :class:`DocumentBuilder` lists the rendered HTML pages of one book,
converts each page to text through a :class:`~guide_index.renderer.Renderer`,
splits it with :func:`~guide_index.segmenter.segment`, and emits one
:class:`IndexDocument` per section. Documents are identified by their URL, so
rebuilding unchanged input yields the same set.

Example
-------
>>> from pathlib import Path
>>> from guide_index.config import Book
>>> from guide_index.documents import DocumentBuilder
>>> from guide_index.renderer import SoupRenderer
>>> builder = DocumentBuilder(Path("html"), SoupRenderer())  # doctest: +SKIP
>>> docs = builder.build_documents(Book("ref", "R", "Reference"))  # doctest: +SKIP
>>> docs[0].url  # doctest: +SKIP
'/guide/ref/current/guide'
"""

from __future__ import annotations

import dataclasses as dc
import logging
import typing as typ
from concurrent.futures import ThreadPoolExecutor

from ._constants import (
    CURRENT_DIR,
    HTML_SUFFIX,
    INDEX_PAGE,
    TITLE_SEPARATOR,
    URL_BASE,
    WIDGET_PAGE,
)
from .segmenter import ParseError, segment

if typ.TYPE_CHECKING:
    from pathlib import Path

    from .config import Book
    from .renderer import Renderer

logger = logging.getLogger(__name__)


class BookDirectoryError(RuntimeError):
    """Raised when a book's rendered pages directory cannot be listed."""

    def __init__(self, book: Book, directory: Path, detail: str) -> None:
        self.book = book
        self.directory = directory
        super().__init__(f"No rendered pages for {book.title} at {directory}: {detail}")


@dc.dataclass(slots=True, frozen=True)
class Page:
    """A rendered HTML file belonging to a book.

    Attributes
    ----------
    path : Path
        Location of the file on disk.
    name : str
        File name without the ``.html`` extension.
    """

    path: Path
    name: str


@dc.dataclass(slots=True, frozen=True)
class IndexDocument:
    """A document as written to the search index; ``id`` equals ``url``."""

    id: str
    book: str
    title: str
    text: str
    url: str
    path: str

    def source(self) -> dict[str, str]:
        """Return the stored fields of the document."""
        return {
            "book": self.book,
            "title": self.title,
            "text": self.text,
            "url": self.url,
            "path": self.path,
        }


def book_dir(build_root: Path, book: Book) -> Path:
    """Return the directory holding the current pages of ``book``."""
    return build_root.joinpath(*book.prefix.split("/"), CURRENT_DIR)


def list_pages(directory: Path, book: Book) -> list[Page]:
    """Return the indexable pages directly inside ``directory``.

    Parameters
    ----------
    directory : Path
        The book's ``<prefix>/current`` directory.
    book : Book
        Book owning the directory; ``single`` books keep their ``index.html``.

    Returns
    -------
    list[Page]
        Pages sorted by file name. Subdirectories, non-HTML files,
        ``sense_widget.html`` and, unless the book is single-page,
        ``index.html`` are skipped.

    Raises
    ------
    BookDirectoryError
        If ``directory`` is missing or unreadable, so a book never silently
        drops out of a rebuild.
    """
    if not directory.is_dir():
        raise BookDirectoryError(book, directory, "not a directory")
    try:
        entries = sorted(directory.iterdir(), key=lambda item: item.name)
    except OSError as exc:
        raise BookDirectoryError(book, directory, str(exc)) from exc

    pages: list[Page] = []
    for path in entries:
        if not path.is_file() or path.suffix != HTML_SUFFIX:
            continue
        name = path.stem
        if name == WIDGET_PAGE or (name == INDEX_PAGE and not book.single):
            continue
        pages.append(Page(path=path, name=name))
    return pages


def page_url(url_base: str, book: Book, name: str) -> str:
    """Return the public URL of a page, without extension or fragment."""
    return f"{url_base}/{book.prefix}/{CURRENT_DIR}/{name}"


class DocumentBuilder:
    """Turn a book's rendered pages into index documents."""

    def __init__(
        self,
        build_root: Path,
        renderer: Renderer,
        *,
        url_base: str = URL_BASE,
        concurrency: int = 1,
    ) -> None:
        """Initialize the builder.

        Parameters
        ----------
        build_root : Path
            Root of the generated site (``paths.build`` in the config).
        renderer : Renderer
            Converter from HTML files to boundary-marked text.
        url_base : str, optional
            Path prefix of every document URL. Defaults to ``/guide``.
        concurrency : int, optional
            Number of pages rendered in parallel. Defaults to ``1``.
        """
        self.build_root = build_root
        self.renderer = renderer
        self.url_base = url_base
        self.concurrency = max(1, concurrency)

    def build_documents(self, book: Book) -> list[IndexDocument]:
        """Return the documents of every section of every page in ``book``.

        Raises
        ------
        BookDirectoryError
            If the book's ``<prefix>/current`` directory is missing.
        RenderError
            If any page fails to render; the whole book is abandoned.
        ParseError
            If any page's text has no title header; the message names the file.
        """
        pages = list_pages(book_dir(self.build_root, book), book)
        if self.concurrency == 1 or len(pages) < 2:
            per_page = [self._page_documents(book, page) for page in pages]
        else:
            with ThreadPoolExecutor(max_workers=self.concurrency) as executor:
                per_page = list(
                    executor.map(lambda page: self._page_documents(book, page), pages)
                )
        documents = [doc for docs in per_page for doc in docs]
        logger.debug(
            "Built %d documents from %d pages of %s",
            len(documents),
            len(pages),
            book.title,
        )
        return documents

    def _page_documents(self, book: Book, page: Page) -> list[IndexDocument]:
        text = self.renderer.render(page.path)
        try:
            sections = segment(text)
        except ParseError as exc:
            msg = f"Couldn't split {page.path} into sections: {exc}"
            raise ParseError(msg) from exc

        url = page_url(self.url_base, book, page.name)
        logger.debug("Indexed %s: %d sections", page.path, len(sections))
        return [
            IndexDocument(
                id=url + section.anchor,
                book=book.prefix,
                title=f"{section.title}{TITLE_SEPARATOR}{book.abbr}",
                text=section.body,
                url=url + section.anchor,
                path=f"/{book.prefix}/{page.name}",
            )
            for section in sections
        ]


__all__ = [
    "BookDirectoryError",
    "DocumentBuilder",
    "IndexDocument",
    "Page",
    "book_dir",
    "list_pages",
    "page_url",
]
