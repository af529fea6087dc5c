"""Load and validate the guide-index configuration YAML.

This subpackage parses the indexer's configuration file, resolves the nested
``contents`` tree of books and book groups, applies defaults for the search
engine, render step, and state marker, and produces typed dataclasses
(:class:`IndexerConfig`, :class:`Book`, etc.) that the document builder and
reindex orchestrator consume. The primary entry point is :func:`load_config`.

Examples
--------
>>> from pathlib import Path
>>> from guide_index.config import load_config
>>> config = load_config(Path("config/guide-index.yaml"))  # doctest: +SKIP
>>> config.search.alias  # doctest: +SKIP
'docs'
"""

from .loader import load_config
from .models import (
    MAX_DEPTH,
    Book,
    BookEntry,
    BookGroup,
    ConfigError,
    IndexerConfig,
    RenderConfig,
    SearchConfig,
    StateConfig,
    flatten_books,
)

__all__ = [
    "MAX_DEPTH",
    "Book",
    "BookEntry",
    "BookGroup",
    "ConfigError",
    "IndexerConfig",
    "RenderConfig",
    "SearchConfig",
    "StateConfig",
    "flatten_books",
    "load_config",
]
