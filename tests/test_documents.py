"""Tests for building index documents from a book's rendered pages."""

from __future__ import annotations

from pathlib import Path

import pytest

from guide_index.config import Book
from guide_index.documents import (
    BookDirectoryError,
    DocumentBuilder,
    IndexDocument,
    book_dir,
    list_pages,
    page_url,
)
from guide_index.renderer import RenderError
from guide_index.segmenter import ParseError

GUIDE_TEXT = (
    "#intro Getting Started\nWelcome text.\n====\n"
    "#s1 Install\nRun the installer.\n====\n"
    "#s2 Config\nEdit the file."
)


class MappingRenderer:
    """Return canned text per file name and remember which files were read."""

    def __init__(self, texts: dict[str, str]) -> None:
        self.texts = texts
        self.rendered: list[str] = []

    def render(self, path: Path) -> str:
        self.rendered.append(path.name)
        text = self.texts.get(path.name)
        if text is None:
            raise RenderError(path, "unexpected file")
        return text


def _book_tree(root: Path, prefix: str, names: list[str]) -> Path:
    directory = root.joinpath(*prefix.split("/"), "current")
    directory.mkdir(parents=True)
    for name in names:
        (directory / name).write_text("<html></html>", encoding="utf-8")
    return directory


def test_end_to_end_page_documents(tmp_path: Path) -> None:
    _book_tree(tmp_path, "ref", ["guide.html"])
    builder = DocumentBuilder(tmp_path, MappingRenderer({"guide.html": GUIDE_TEXT}))

    docs = builder.build_documents(Book(prefix="ref", abbr="R", title="Reference"))

    assert [(d.id, d.title, d.text) for d in docs] == [
        ("/guide/ref/current/guide", "Getting Started » R", "Welcome text."),
        ("/guide/ref/current/guide#s1", "Install » Getting Started » R", "Run the installer."),
        ("/guide/ref/current/guide#s2", "Config » Getting Started » R", "Edit the file."),
    ]
    assert all(d.id == d.url for d in docs), "document ids must equal their urls"
    assert {d.book for d in docs} == {"ref"}
    assert {d.path for d in docs} == {"/ref/guide"}


def test_index_and_widget_pages_are_excluded(tmp_path: Path) -> None:
    directory = _book_tree(
        tmp_path, "ref", ["index.html", "foo.html", "sense_widget.html", "notes.txt"]
    )
    (directory / "nested").mkdir()
    renderer = MappingRenderer({"foo.html": "====\nFoo\n====\nbody\n"})

    docs = DocumentBuilder(tmp_path, renderer).build_documents(
        Book(prefix="ref", abbr="R", title="Reference")
    )

    assert renderer.rendered == ["foo.html"], "only foo.html should be rendered"
    assert [d.url for d in docs] == ["/guide/ref/current/foo"]


def test_single_page_books_keep_index(tmp_path: Path) -> None:
    directory = _book_tree(tmp_path, "client/py", ["index.html", "sense_widget.html"])
    book = Book(prefix="client/py", abbr="Py", title="Python", single=True)

    pages = list_pages(directory, book)

    assert [page.name for page in pages] == ["index"]


def test_pages_are_listed_in_name_order(tmp_path: Path) -> None:
    directory = _book_tree(tmp_path, "ref", ["zeta.html", "alpha.html", "mid.html"])

    pages = list_pages(directory, Book(prefix="ref", abbr="R", title="Reference"))

    assert [page.name for page in pages] == ["alpha", "mid", "zeta"]


def test_missing_book_directory_raises(tmp_path: Path) -> None:
    book = Book(prefix="absent", abbr="A", title="Absent")
    directory = book_dir(tmp_path, book)

    with pytest.raises(BookDirectoryError, match="No rendered pages for Absent") as excinfo:
        list_pages(directory, book)

    assert excinfo.value.directory == directory
    assert excinfo.value.book == book


def test_missing_book_directory_aborts_the_build(tmp_path: Path) -> None:
    builder = DocumentBuilder(tmp_path, MappingRenderer({}))

    with pytest.raises(BookDirectoryError, match="not a directory"):
        builder.build_documents(Book(prefix="typo", abbr="T", title="Typo"))


def test_book_dir_and_page_url() -> None:
    book = Book(prefix="en/elasticsearch/reference", abbr="Ref", title="Reference")

    assert book_dir(Path("html"), book) == Path(
        "html/en/elasticsearch/reference/current"
    )
    assert page_url("/guide", book, "search") == (
        "/guide/en/elasticsearch/reference/current/search"
    )


@pytest.mark.parametrize("concurrency", [1, 4])
def test_builds_are_idempotent_and_ordered(tmp_path: Path, concurrency: int) -> None:
    names = [f"page{n:02d}.html" for n in range(8)]
    _book_tree(tmp_path, "ref", names)
    texts = {
        name: f"====\n{name} title\n====\nroot\n====\n#a Part\n====\nbody\n"
        for name in names
    }
    builder = DocumentBuilder(
        tmp_path, MappingRenderer(texts), concurrency=concurrency
    )
    book = Book(prefix="ref", abbr="R", title="Reference")

    first = builder.build_documents(book)
    second = builder.build_documents(book)

    assert first == second, "repeated builds over unchanged input must match"
    assert [d.id for d in first] == [
        url
        for n in range(8)
        for url in (
            f"/guide/ref/current/page{n:02d}",
            f"/guide/ref/current/page{n:02d}#a",
        )
    ]


def test_render_error_aborts_the_book(tmp_path: Path) -> None:
    _book_tree(tmp_path, "ref", ["a.html", "b.html"])
    renderer = MappingRenderer({"a.html": "====\nA\n====\nbody\n"})

    with pytest.raises(RenderError, match="b.html"):
        DocumentBuilder(tmp_path, renderer).build_documents(
            Book(prefix="ref", abbr="R", title="Reference")
        )


def test_parse_error_names_the_file(tmp_path: Path) -> None:
    _book_tree(tmp_path, "ref", ["blank.html"])
    renderer = MappingRenderer({"blank.html": "   "})

    with pytest.raises(ParseError, match="blank.html"):
        DocumentBuilder(tmp_path, renderer).build_documents(
            Book(prefix="ref", abbr="R", title="Reference")
        )


def test_custom_url_base(tmp_path: Path) -> None:
    _book_tree(tmp_path, "ref", ["guide.html"])
    builder = DocumentBuilder(
        tmp_path, MappingRenderer({"guide.html": GUIDE_TEXT}), url_base="/docs"
    )

    docs = builder.build_documents(Book(prefix="ref", abbr="R", title="Reference"))

    assert docs[0].url == "/docs/ref/current/guide"


def test_document_source_omits_id() -> None:
    doc = IndexDocument(
        id="/guide/ref/current/a",
        book="ref",
        title="A » R",
        text="body",
        url="/guide/ref/current/a",
        path="/ref/a",
    )

    assert doc.source() == {
        "book": "ref",
        "title": "A » R",
        "text": "body",
        "url": "/guide/ref/current/a",
        "path": "/ref/a",
    }
