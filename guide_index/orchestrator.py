"""Build a fresh index generation and swap it in behind the live alias.

:class:`ReindexOrchestrator` drives one full rebuild. It creates a uniquely
named index with the analysis schema, streams every book's documents into it
in batches, and only when every batch succeeded moves the alias from the old
generation to the new one in a single atomic request. The old generation is
then deleted on a best-effort basis. Readers of the alias never see a
partially built index, and a failed build leaves the live generation as it
was.

Typical usage mirrors the CLI:

>>> from pathlib import Path
>>> from guide_index.config import load_config
>>> from guide_index.documents import DocumentBuilder
>>> from guide_index.orchestrator import ReindexOrchestrator
>>> from guide_index.renderer import build_renderer
>>> from guide_index.store import SearchStore
>>> config = load_config(Path("config/guide-index.yaml"))  # doctest: +SKIP
>>> builder = DocumentBuilder(config.build_dir, build_renderer(None))  # doctest: +SKIP
>>> orchestrator = ReindexOrchestrator(config, SearchStore(config.search.host), builder)  # doctest: +SKIP
>>> orchestrator.rebuild().generation  # doctest: +SKIP
'docs_20250101120000123456'
"""

from __future__ import annotations

import dataclasses as dc
import datetime as dt
import enum
import logging
import typing as typ

from .documents import BookDirectoryError
from .renderer import RenderError
from .schema import schema
from .segmenter import ParseError
from .store import BulkItemError, SearchStoreError

if typ.TYPE_CHECKING:
    import collections.abc as cabc

    from .config import Book, IndexerConfig
    from .documents import DocumentBuilder, IndexDocument
    from .store import SearchStore

logger = logging.getLogger(__name__)


class RebuildState(enum.Enum):
    """Lifecycle of one rebuild."""

    PENDING = "pending"
    CREATING = "creating"
    POPULATING = "populating"
    FAILED = "failed"
    READY = "ready"
    SWAPPING = "swapping"
    DONE = "done"


class IndexingError(RuntimeError):
    """Raised when documents could not be written to the new generation."""

    def __init__(
        self, generation: str, book: Book, failures: cabc.Sequence[BulkItemError]
    ) -> None:
        self.generation = generation
        self.book = book
        self.failures = list(failures)
        lines = [f"Error indexing {book.title}:"]
        lines.extend(
            f"  {failure.id}: {failure.reason}" for failure in self.failures
        )
        super().__init__("\n".join(lines))


class AliasSwapError(RuntimeError):
    """Raised when the atomic alias update fails; the new generation is not live."""

    def __init__(self, generation: str, alias: str, detail: str) -> None:
        self.generation = generation
        self.alias = alias
        super().__init__(
            f"Could not point alias '{alias}' at {generation}: {detail}"
        )


class CleanupWarning(UserWarning):
    """An index generation that should have been deleted was left behind."""

    def __init__(self, index: str, detail: str) -> None:
        self.index = index
        self.detail = detail
        super().__init__(f"Could not delete old index {index}: {detail}")


@dc.dataclass(slots=True)
class RebuildResult:
    """Summary of a completed rebuild.

    Attributes
    ----------
    generation : str
        Name of the index now bound to the alias.
    previous : str | None
        Generation that was live before the swap, if any.
    state : RebuildState
        Final state; ``DONE`` for every returned result.
    books : int
        Number of books indexed.
    documents : int
        Number of documents written.
    warnings : list[CleanupWarning]
        Deletions that failed after the swap.
    """

    generation: str
    previous: str | None
    state: RebuildState
    books: int = 0
    documents: int = 0
    warnings: list[CleanupWarning] = dc.field(default_factory=list)


def _utc_now() -> dt.datetime:
    return dt.datetime.now(dt.UTC)


class ReindexOrchestrator:
    """Run the create, populate, swap, and retire protocol for one rebuild."""

    def __init__(
        self,
        config: IndexerConfig,
        store: SearchStore,
        builder: DocumentBuilder,
        *,
        clock: cabc.Callable[[], dt.datetime] = _utc_now,
    ) -> None:
        """Initialize the orchestrator with its collaborators.

        Parameters
        ----------
        config : IndexerConfig
            Contents tree and search settings (alias, prefix, batch size,
            failure and sweep policies).
        store : SearchStore
            Client for the search engine.
        builder : DocumentBuilder
            Produces the documents of one book.
        clock : Callable[[], datetime], optional
            Source of the timestamp used in generation names.
        """
        self.config = config
        self.store = store
        self.builder = builder
        self.clock = clock
        self.state = RebuildState.PENDING

    def generation_name(self) -> str:
        """Return a new generation name derived from the current time."""
        stamp = self.clock().astimezone(dt.UTC).strftime("%Y%m%d%H%M%S%f")
        return f"{self.config.search.index_prefix}{stamp}"

    def rebuild(self) -> RebuildResult:
        """Build a new generation and make it live.

        Returns
        -------
        RebuildResult
            The new and previous generation names, counts, and any cleanup
            warnings.

        Raises
        ------
        IndexingError
            If any document failed to index; the alias is not touched.
        BookDirectoryError, RenderError, ParseError
            If a book's pages could not be listed or converted; the alias is
            not touched.
        AliasSwapError
            If reading or updating the alias failed; the new generation
            exists but is not live.
        SearchStoreError
            If the new index could not be created.
        """
        search = self.config.search
        books = self.config.books()
        generation = self.generation_name()

        self._transition(RebuildState.CREATING)
        if search.sweep_orphans:
            self.sweep_orphans()
        self.store.delete_index(generation, ignore_missing=True)
        settings, mappings = schema(search.doc_type)
        self.store.create_index(generation, settings, mappings)
        logger.info("Created index %s", generation)

        self._transition(RebuildState.POPULATING)
        total = 0
        for book in books:
            try:
                total += self._index_book(generation, book)
            except (IndexingError, BookDirectoryError, RenderError, ParseError):
                self._fail(generation)
                raise

        self._transition(RebuildState.READY)
        logger.info("Indexed %d documents from %d books", total, len(books))

        self._transition(RebuildState.SWAPPING)
        try:
            previous = self.store.get_alias_target(search.alias, ignore_missing=True)
            actions: list[dict[str, dict[str, str]]] = [
                {"add": {"alias": search.alias, "index": generation}}
            ]
            if previous and previous != generation:
                actions.append({"remove": {"alias": search.alias, "index": previous}})
            self.store.update_aliases(actions)
        except SearchStoreError as exc:
            self._transition(RebuildState.FAILED)
            raise AliasSwapError(generation, search.alias, str(exc)) from exc
        logger.info("Alias %s now points at %s", search.alias, generation)

        warnings: list[CleanupWarning] = []
        if previous and previous != generation:
            warning = self._retire(previous)
            if warning:
                warnings.append(warning)

        self._transition(RebuildState.DONE)
        return RebuildResult(
            generation=generation,
            previous=previous,
            state=self.state,
            books=len(books),
            documents=total,
            warnings=warnings,
        )

    def sweep_orphans(self) -> list[str]:
        """Delete generations left unbound by earlier interrupted or failed runs.

        Returns
        -------
        list[str]
            Names of the deleted indices. The generation bound to the alias is
            never deleted.
        """
        search = self.config.search
        live = self.store.get_alias_target(search.alias, ignore_missing=True)
        removed: list[str] = []
        for name in self.store.list_indices(search.index_prefix):
            if name == live:
                continue
            self.store.delete_index(name, ignore_missing=True)
            logger.info("Deleted orphaned index %s", name)
            removed.append(name)
        return removed

    def _index_book(self, generation: str, book: Book) -> int:
        logger.info("Indexing book: %s", book.title)
        documents = self.builder.build_documents(book)
        search = self.config.search
        failures: list[BulkItemError] = []
        indexed = 0
        for batch in _batches(documents, search.batch_size):
            try:
                result = self.store.bulk_upsert(generation, search.doc_type, batch)
            except SearchStoreError as exc:
                # The whole request was refused, so every document in it failed.
                failures.extend(
                    BulkItemError(id=doc.id, status=None, reason=str(exc))
                    for doc in batch
                )
                raise IndexingError(generation, book, failures) from exc
            logger.debug(
                "Batch of %d for %s: %d errors",
                len(batch),
                book.prefix,
                len(result.errors),
            )
            failures.extend(result.errors)
            indexed += len(batch) - len(result.errors)
        if failures:
            raise IndexingError(generation, book, failures)
        return indexed

    def _fail(self, generation: str) -> None:
        self._transition(RebuildState.FAILED)
        if self.config.search.keep_failed_index:
            logger.info("Left unpublished index %s in place for inspection", generation)
            return
        try:
            self.store.delete_index(generation, ignore_missing=True)
        except SearchStoreError as exc:
            logger.warning("Could not delete failed index %s: %s", generation, exc)
        else:
            logger.info("Deleted unpublished index %s", generation)

    def _retire(self, previous: str) -> CleanupWarning | None:
        try:
            self.store.delete_index(previous, ignore_missing=True)
        except SearchStoreError as exc:
            warning = CleanupWarning(previous, str(exc))
            logger.warning("%s", warning)
            return warning
        logger.info("Deleted previous index %s", previous)
        return None

    def _transition(self, state: RebuildState) -> None:
        logger.debug("Rebuild state %s -> %s", self.state.value, state.value)
        self.state = state


def _batches(
    documents: cabc.Sequence[IndexDocument], size: int
) -> cabc.Iterator[cabc.Sequence[IndexDocument]]:
    for start in range(0, len(documents), size):
        yield documents[start : start + size]


__all__ = [
    "AliasSwapError",
    "CleanupWarning",
    "IndexingError",
    "RebuildResult",
    "RebuildState",
    "ReindexOrchestrator",
]
