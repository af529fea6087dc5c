"""Shared fixtures: an in-memory search store and a small book tree."""

from __future__ import annotations

import dataclasses as dc
import datetime as dt
import typing as typ

import pytest

from guide_index.config import Book, BookGroup, IndexerConfig, SearchConfig
from guide_index.documents import IndexDocument
from guide_index.store import BulkItemError, BulkResult, SearchStoreError

if typ.TYPE_CHECKING:
    import collections.abc as cabc
    from pathlib import Path

FIXED_NOW = dt.datetime(2025, 1, 1, 12, 0, 0, tzinfo=dt.UTC)
FIXED_GENERATION = "docs_20250101120000000000"


@dc.dataclass
class FakeSearchStore:
    """Dictionary-backed stand-in for :class:`guide_index.store.SearchStore`."""

    indices: dict[str, dict[str, dict[str, str]]] = dc.field(default_factory=dict)
    aliases: dict[str, str] = dc.field(default_factory=dict)
    created: list[str] = dc.field(default_factory=list)
    deleted: list[str] = dc.field(default_factory=list)
    alias_calls: list[list[dict[str, dict[str, str]]]] = dc.field(default_factory=list)
    reject_ids: set[str] = dc.field(default_factory=set)
    fail_delete: set[str] = dc.field(default_factory=set)
    fail_alias_update: bool = False
    fail_create: bool = False

    def create_index(
        self,
        name: str,
        settings: cabc.Mapping[str, typ.Any],
        mappings: cabc.Mapping[str, typ.Any],
    ) -> None:
        if self.fail_create:
            msg = f"PUT /{name} failed with status 400: resource_already_exists"
            raise SearchStoreError(msg)
        assert "analysis" in settings, "indices must be created with the analysis chain"
        assert mappings, "indices must be created with mappings"
        self.indices[name] = {}
        self.created.append(name)

    def delete_index(self, name: str, *, ignore_missing: bool = False) -> bool:
        if name in self.fail_delete:
            msg = f"DELETE /{name} failed with status 500: boom"
            raise SearchStoreError(msg)
        if name not in self.indices:
            if ignore_missing:
                return False
            msg = f"DELETE /{name} failed with status 404: index_not_found"
            raise SearchStoreError(msg)
        del self.indices[name]
        self.deleted.append(name)
        return True

    def list_indices(self, prefix: str) -> list[str]:
        return sorted(name for name in self.indices if name.startswith(prefix))

    def bulk_upsert(
        self,
        index: str,
        doc_type: str | None,
        documents: cabc.Sequence[IndexDocument],
    ) -> BulkResult:
        target = self.indices[index]
        errors: list[BulkItemError] = []
        for doc in documents:
            if doc.id in self.reject_ids:
                errors.append(
                    BulkItemError(id=doc.id, status=400, reason="mapper_parsing_exception")
                )
                continue
            target[doc.id] = doc.source()
        return BulkResult(indexed=len(documents) - len(errors), errors=errors)

    def get_alias_target(self, alias: str, *, ignore_missing: bool = True) -> str | None:
        return self.aliases.get(alias)

    def update_aliases(self, actions: cabc.Sequence[cabc.Mapping[str, typ.Any]]) -> None:
        self.alias_calls.append([dict(action) for action in actions])
        if self.fail_alias_update:
            msg = "POST /_aliases failed with status 503: unavailable"
            raise SearchStoreError(msg)
        for action in actions:
            for verb, body in action.items():
                if verb == "add":
                    self.aliases[body["alias"]] = body["index"]
                elif verb == "remove" and self.aliases.get(body["alias"]) == body["index"]:
                    del self.aliases[body["alias"]]


class FakeBuilder:
    """Return canned documents per book prefix and record the calls."""

    def __init__(self, documents: dict[str, list[IndexDocument]]) -> None:
        self.documents = documents
        self.calls: list[str] = []

    def build_documents(self, book: Book) -> list[IndexDocument]:
        self.calls.append(book.prefix)
        return list(self.documents.get(book.prefix, []))


def make_document(prefix: str, name: str, anchor: str = "") -> IndexDocument:
    url = f"/guide/{prefix}/current/{name}{anchor}"
    return IndexDocument(
        id=url,
        book=prefix,
        title=f"{name} » {prefix}",
        text=f"Body of {name}{anchor}",
        url=url,
        path=f"/{prefix}/{name}",
    )


@pytest.fixture
def fake_store() -> FakeSearchStore:
    return FakeSearchStore()


@pytest.fixture
def books() -> list[Book]:
    return [
        Book(prefix="ref", abbr="R", title="Reference"),
        Book(prefix="guide", abbr="G", title="Definitive Guide"),
    ]


@pytest.fixture
def indexer_config(tmp_path: Path, books: list[Book]) -> IndexerConfig:
    return IndexerConfig(
        build_dir=tmp_path / "html",
        contents=[BookGroup(title="Elasticsearch", sections=list(books))],
        search=SearchConfig(batch_size=2),
    )


@pytest.fixture
def book_documents() -> dict[str, list[IndexDocument]]:
    return {
        "ref": [
            make_document("ref", "guide"),
            make_document("ref", "guide", "#s1"),
            make_document("ref", "setup"),
        ],
        "guide": [make_document("guide", "intro")],
    }


@pytest.fixture
def fake_builder(book_documents: dict[str, list[IndexDocument]]) -> FakeBuilder:
    return FakeBuilder(book_documents)


@pytest.fixture
def clock() -> cabc.Callable[[], dt.datetime]:
    """Return a clock pinned to ``FIXED_NOW`` so generation names are stable."""
    return lambda: FIXED_NOW


@pytest.fixture
def generation() -> str:
    """Name the orchestrator derives from the pinned clock."""
    return FIXED_GENERATION
