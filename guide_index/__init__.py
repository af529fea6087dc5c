"""Rebuild the full-text search index for the generated HTML docs.

This package exposes the CLI entry points used by ``guide-index`` to rebuild
the docs index behind a search alias and to print the index schema.

Exports
-------
- ``app``: Cyclopts application entry for subcommands.
- ``main``: Convenience function that invokes the Cyclopts app.

Examples
--------
>>> from guide_index import main
>>> main(["rebuild"])  # doctest: +SKIP
0
>>> from guide_index import app
>>> app.name[0]
'guide-index'
"""

from __future__ import annotations

from .cli import app, main

__all__ = ["app", "main"]
