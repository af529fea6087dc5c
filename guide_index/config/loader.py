"""Load indexer configuration YAML into typed dataclasses."""

from __future__ import annotations

import os
import typing as typ
from pathlib import Path

from ruamel.yaml import YAML

from guide_index._constants import HOST_ENV_VAR, URL_BASE

from .helpers import (
    _as_mapping,
    _build_entries,
    _build_render_config,
    _build_search_config,
    _build_state_config,
    _ensure_unique_prefixes,
    _optional_str,
)
from .models import ConfigError, IndexerConfig, flatten_books


def load_config(path: Path, *, host: str | None = None) -> IndexerConfig:
    """Load the YAML configuration describing the books to index.

    Parameters
    ----------
    path : Path
        Filesystem path to the YAML configuration file (for example,
        ``config/guide-index.yaml``).
    host : str, optional
        Search engine URL overriding ``search.host``. When ``None`` the
        ``ES_HOST`` environment variable is consulted before the file value.

    Returns
    -------
    IndexerConfig
        Parsed configuration with the build directory, the contents tree, and
        the search, render, and state settings.

    Raises
    ------
    FileNotFoundError
        If the configuration file does not exist at ``path``.
    ConfigError
        If required sections are missing, the contents tree is malformed, or
        two books share a prefix.
    YAMLError
        If the YAML content cannot be parsed by the underlying loader.

    Examples
    --------
    >>> from pathlib import Path
    >>> from guide_index.config import load_config
    >>> config = load_config(Path("config/guide-index.yaml"))  # doctest: +SKIP
    >>> [book.prefix for book in config.books()][:1]  # doctest: +SKIP
    ['en/elasticsearch/reference']
    """
    if not path.exists():
        msg = f"Configuration file '{path}' not found."
        raise FileNotFoundError(msg)

    loader = YAML(typ="safe")
    loader.version = (1, 2)
    with path.open("r", encoding="utf-8") as handle:
        loaded = loader.load(handle) or {}
    if not isinstance(loaded, dict):
        msg = "Top-level YAML structure must be a mapping."
        raise ConfigError(msg)
    raw: dict[str, typ.Any] = dict(loaded)

    paths = _as_mapping(raw.get("paths"), where="paths")
    build = _optional_str(paths.get("build"))
    if not build:
        msg = "Missing <paths.build> from config."
        raise ConfigError(msg)

    contents_raw = raw.get("contents") or []
    if not isinstance(contents_raw, list) or not contents_raw:
        msg = "No books defined under <contents>."
        raise ConfigError(msg)
    contents = _build_entries(contents_raw)
    _ensure_unique_prefixes(flatten_books(contents))

    host_override = host or os.getenv(HOST_ENV_VAR) or None
    url_base = (_optional_str(raw.get("url_base")) or URL_BASE).strip("/")

    return IndexerConfig(
        build_dir=Path(build),
        contents=contents,
        search=_build_search_config(
            _as_mapping(raw.get("search"), where="search"),
            host_override=host_override,
        ),
        render=_build_render_config(_as_mapping(raw.get("render"), where="render")),
        state=_build_state_config(_as_mapping(raw.get("state"), where="state")),
        url_base=f"/{url_base}" if url_base else "",
    )


__all__ = ["load_config"]
