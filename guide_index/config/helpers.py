"""Utility helpers shared by the guide-index configuration loader."""

from __future__ import annotations

import collections.abc as cabc
import typing as typ
from pathlib import Path

from .models import (
    MAX_DEPTH,
    Book,
    BookEntry,
    BookGroup,
    ConfigError,
    RenderConfig,
    SearchConfig,
    StateConfig,
)


def _optional_str(value: object | None) -> str | None:
    """Return a stripped string value or None when empty."""
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _as_mapping(value: object, *, where: str) -> typ.Mapping[str, typ.Any]:
    """Return ``value`` as a mapping, treating ``None`` as empty."""
    if value is None:
        return {}
    if not isinstance(value, cabc.Mapping):
        msg = f"'{where}' must be a mapping."
        raise ConfigError(msg)
    return value


def _positive_int(value: object, *, name: str, minimum: int = 1) -> int:
    """Return ``value`` as an integer of at least ``minimum`` or raise ConfigError."""
    try:
        number = int(typ.cast(typ.Any, value))
    except (TypeError, ValueError) as exc:
        msg = f"'search.{name}' must be an integer, got {value!r}."
        raise ConfigError(msg) from exc
    if number < minimum:
        msg = f"'search.{name}' must be at least {minimum}, got {number}."
        raise ConfigError(msg)
    return number


def _build_search_config(
    payload: typ.Mapping[str, typ.Any], *, host_override: str | None
) -> SearchConfig:
    """Build a SearchConfig from the ``search`` mapping and an optional host."""
    base = SearchConfig()
    timeout = payload.get("timeout", base.timeout)
    try:
        timeout = float(timeout)
    except (TypeError, ValueError) as exc:
        msg = f"'search.timeout' must be a number, got {timeout!r}."
        raise ConfigError(msg) from exc
    return SearchConfig(
        host=host_override or _optional_str(payload.get("host")) or base.host,
        alias=_optional_str(payload.get("alias")) or base.alias,
        index_prefix=_optional_str(payload.get("index_prefix")) or base.index_prefix,
        doc_type=_optional_str(payload.get("doc_type")),
        batch_size=_positive_int(
            payload.get("batch_size", base.batch_size), name="batch_size"
        ),
        concurrency=_positive_int(
            payload.get("concurrency", base.concurrency), name="concurrency"
        ),
        max_retries=_positive_int(
            payload.get("max_retries", base.max_retries), name="max_retries", minimum=0
        ),
        timeout=timeout,
        keep_failed_index=bool(
            payload.get("keep_failed_index", base.keep_failed_index)
        ),
        sweep_orphans=bool(payload.get("sweep_orphans", base.sweep_orphans)),
    )


def _build_render_config(payload: typ.Mapping[str, typ.Any]) -> RenderConfig:
    """Build a RenderConfig; a string command is split on whitespace."""
    command = payload.get("command")
    match command:
        case None:
            return RenderConfig()
        case str():
            parts = command.split()
        case list():
            parts = [str(part) for part in command]
        case _:
            msg = "'render.command' must be a string or a list of arguments."
            raise ConfigError(msg)
    if not parts:
        return RenderConfig()
    return RenderConfig(command=parts)


def _build_state_config(payload: typ.Mapping[str, typ.Any]) -> StateConfig:
    """Build a StateConfig from the ``state`` mapping."""
    base = StateConfig()
    return StateConfig(
        path=Path(payload.get("path") or base.path),
        repo=Path(payload.get("repo") or base.repo),
    )


def _build_entry(
    payload: object, *, depth: int, ancestors: frozenset[int]
) -> BookEntry:
    """Convert one raw contents entry into a Book or BookGroup."""
    if not isinstance(payload, cabc.Mapping):
        msg = f"Contents entries must be mappings, got {payload!r}."
        raise ConfigError(msg)
    title = _optional_str(payload.get("title"))
    sections = payload.get("sections")
    if sections is not None:
        if id(sections) in ancestors:
            msg = f"Book group '{title}' contains itself."
            raise ConfigError(msg)
        if depth + 1 > MAX_DEPTH:
            msg = f"Book group '{title}' is nested deeper than {MAX_DEPTH} levels."
            raise ConfigError(msg)
        if not isinstance(sections, list):
            msg = f"'sections' of '{title}' must be a list."
            raise ConfigError(msg)
        return BookGroup(
            title=title or "",
            sections=_build_entries(
                sections, depth=depth + 1, ancestors=ancestors | {id(sections)}
            ),
        )

    prefix = _optional_str(payload.get("prefix"))
    if not prefix:
        msg = f"Book '{title or payload!r}' is missing 'prefix'."
        raise ConfigError(msg)
    prefix = prefix.strip("/")
    return Book(
        prefix=prefix,
        abbr=_optional_str(payload.get("abbr")) or title or prefix,
        title=title or prefix,
        single=bool(payload.get("single", False)),
    )


def _build_entries(
    payload: list[typ.Any], *, depth: int = 0, ancestors: frozenset[int] = frozenset()
) -> list[BookEntry]:
    """Convert a raw contents list into typed entries, preserving order."""
    return [
        _build_entry(item, depth=depth, ancestors=ancestors) for item in payload
    ]


def _ensure_unique_prefixes(books: list[Book]) -> None:
    """Raise ConfigError when two books share a prefix."""
    seen: set[str] = set()
    for book in books:
        if book.prefix in seen:
            msg = f"Duplicate book prefix '{book.prefix}' in contents."
            raise ConfigError(msg)
        seen.add(book.prefix)


__all__ = [
    "_as_mapping",
    "_build_entries",
    "_build_render_config",
    "_build_search_config",
    "_build_state_config",
    "_ensure_unique_prefixes",
    "_optional_str",
]
