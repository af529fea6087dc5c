"""Cyclopts CLI entrypoint for rebuilding the docs search index.

The ``guide-index`` console script defined here checks whether the docs
checkout changed since the last successful index, rebuilds a fresh index
generation from the generated HTML, swaps the search alias over to it, and
records the indexed revision. ``guide-index schema`` prints the index body for
inspection.

Examples
--------
Rebuild only when the docs changed:

>>> from guide_index.cli import main
>>> main(["rebuild"])  # doctest: +SKIP
0

Force a rebuild against another cluster with progress detail:

>>> main(
...     ["rebuild", "--force", "--verbose", "--es-host", "http://search:9200"]
... )  # doctest: +SKIP
0
"""

from __future__ import annotations

import json
import logging
import sys
import typing as typ
from pathlib import Path

from cyclopts import App, Parameter

from ._constants import HOST_ENV_VAR
from .config import ConfigError, load_config
from .documents import BookDirectoryError, DocumentBuilder
from .orchestrator import AliasSwapError, IndexingError, ReindexOrchestrator
from .renderer import RenderError, build_renderer
from .schema import schema as index_schema
from .segmenter import ParseError
from .staleness import GitRevisionSource, IndexStateFile, StalenessError, StalenessGate
from .store import SearchStore, SearchStoreError

if typ.TYPE_CHECKING:
    from .config import IndexerConfig

DEFAULT_CONFIG = Path("config/guide-index.yaml")

FATAL_ERRORS = (
    AliasSwapError,
    BookDirectoryError,
    ConfigError,
    FileNotFoundError,
    IndexingError,
    ParseError,
    RenderError,
    SearchStoreError,
    StalenessError,
)

logger = logging.getLogger(__name__)

app = App(name="guide-index", help="Index the generated HTML docs into the search engine.")


def _configure_logging(verbose: bool) -> None:
    """Send log records to stderr, at DEBUG when ``verbose`` is set."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(message)s",
        stream=sys.stderr,
        force=True,
    )
    # Connection chatter is only interesting when the HTTP layer misbehaves.
    logging.getLogger("urllib3").setLevel(logging.WARNING)


def build_orchestrator(config: IndexerConfig) -> ReindexOrchestrator:
    """Wire the store client, renderer, and document builder for ``config``."""
    search = config.search
    store = SearchStore(
        search.host, timeout=search.timeout, max_retries=search.max_retries
    )
    builder = DocumentBuilder(
        config.build_dir,
        build_renderer(config.render.command),
        url_base=config.url_base,
        concurrency=search.concurrency,
    )
    return ReindexOrchestrator(config, store, builder)


def build_gate(config: IndexerConfig) -> StalenessGate:
    """Return the staleness gate for the configured checkout and state file."""
    return StalenessGate(
        GitRevisionSource(config.state.repo), IndexStateFile(config.state.path)
    )


@app.command(help="Reindex the docs if the checkout changed since the last index.")
def rebuild(
    *,
    config: typ.Annotated[Path, Parameter(help="Path to indexer config")] = DEFAULT_CONFIG,
    force: typ.Annotated[
        bool, Parameter(help="Reindex the docs even if already up to date")
    ] = False,
    verbose: typ.Annotated[bool, Parameter(help="Log per-file progress")] = False,
    es_host: typ.Annotated[
        str | None,
        Parameter(help="Search engine URL overriding the config", env_var=HOST_ENV_VAR),
    ] = None,
) -> None:
    """Rebuild the search index when the docs changed.

    Parameters
    ----------
    config : Path, optional
        Path to the YAML configuration; defaults to ``config/guide-index.yaml``.
    force : bool, optional
        Rebuild even when the recorded revision matches the checkout.
    verbose : bool, optional
        Log per-file and per-batch detail.
    es_host : str or None, optional
        Search engine base URL; falls back to ``ES_HOST`` and then the config.

    Raises
    ------
    ConfigError, RenderError, ParseError, IndexingError, AliasSwapError
        Propagated to :func:`main`, which reports them and exits non-zero.
    """
    _configure_logging(verbose)
    indexer_config = load_config(config, host=es_host)
    gate = build_gate(indexer_config)

    revision = gate.current_revision()
    if not gate.needs_rebuild(force, revision=revision):
        print("Up to date")
        return

    print("Indexing docs")
    result = build_orchestrator(indexer_config).rebuild()
    gate.record(revision, result.generation)
    for warning in result.warnings:
        print(f"warning: {warning}", file=sys.stderr)
    print(
        f"indexed {result.documents} documents from {result.books} books "
        f"into {result.generation}"
    )


@app.command(help="Print the index settings and mappings as JSON.")
def schema(
    *,
    doc_type: typ.Annotated[
        str | None, Parameter(help="Legacy mapping type to nest mappings under")
    ] = None,
) -> None:
    """Print the body used to create every index generation."""
    settings, mappings = index_schema(doc_type)
    print(json.dumps({"settings": settings, "mappings": mappings}, indent=2))


def main(argv: list[str] | None = None) -> int:
    """Run the ``guide-index`` command and return the process exit code.

    Parameters
    ----------
    argv : list[str], optional
        Arguments to parse; ``sys.argv[1:]`` when ``None``.

    Returns
    -------
    int
        ``0`` when the index was rebuilt or already up to date, ``1`` when a
        fatal error stopped the run.
    """
    try:
        app(argv)
    except FATAL_ERRORS as exc:
        logger.error("%s", exc)
        return 1
    return 0


if __name__ == "__main__":  # pragma: no cover - manual invocation helper
    sys.exit(main())
