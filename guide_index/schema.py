r"""Analysis settings and field mappings for every new index generation.

All four analyzers share the ``code`` filter, which splits identifiers such as
``getFieldMapping`` or ``utf8`` into their word and digit runs before any
further processing:

* ``content``: lowercase, keep each token alongside its English stem, then
  drop stems identical to the original at the same position.
* ``shingles``: lowercase, then two-word shingles only.
* ``ngrams``: lowercase, drop stopwords, front edge n-grams of 1 to 20
  characters. Applied at index time.
* ``ngrams_search``: lowercase only. Applied to queries against the n-gram
  sub-fields so a typed prefix matches the indexed n-grams.

Example
-------
>>> from guide_index.schema import schema
>>> settings, mappings = schema()
>>> sorted(settings["analysis"]["analyzer"])
['content', 'ngrams', 'ngrams_search', 'shingles']
>>> mappings["properties"]["book"]["type"]
'keyword'
"""

from __future__ import annotations

import typing as typ

CODE_PATTERNS = [r"(\p{Ll}+|\p{Lu}\p{Ll}+|\p{Lu}+)", r"(\d+)"]
NGRAM_MIN = 1
NGRAM_MAX = 20


def _analyzer(*filters: str) -> dict[str, typ.Any]:
    return {
        "type": "custom",
        "tokenizer": "standard",
        "filter": ["code", "lowercase", *filters],
    }


def index_settings() -> dict[str, typ.Any]:
    """Return the index settings, including the analysis chain."""
    return {
        "number_of_shards": 1,
        "analysis": {
            "analyzer": {
                "content": _analyzer("keyword_repeat", "english", "unique_stem"),
                "shingles": _analyzer("shingles"),
                "ngrams": _analyzer("stop", "ngrams"),
                "ngrams_search": _analyzer(),
            },
            "filter": {
                "english": {"type": "stemmer", "name": "english"},
                "ngrams": {
                    "type": "edge_ngram",
                    "min_gram": NGRAM_MIN,
                    "max_gram": NGRAM_MAX,
                },
                "shingles": {"type": "shingle", "output_unigrams": False},
                "unique_stem": {"type": "unique", "only_on_same_position": True},
                "code": {
                    "type": "pattern_capture",
                    "patterns": list(CODE_PATTERNS),
                },
            },
        },
    }


def _text_field() -> dict[str, typ.Any]:
    """Return a text field analyzed three ways over one stored value."""
    return {
        "type": "text",
        "analyzer": "content",
        "fields": {
            "shingles": {"type": "text", "analyzer": "shingles"},
            "ngrams": {
                "type": "text",
                "analyzer": "ngrams",
                "search_analyzer": "ngrams_search",
            },
        },
    }


def mappings(doc_type: str | None = None) -> dict[str, typ.Any]:
    """Return the field mappings, nested under ``doc_type`` when given.

    Parameters
    ----------
    doc_type : str, optional
        Legacy mapping type name for engines that still require one. Modern
        engines take the typeless form returned when this is ``None``.
    """
    body = {
        "properties": {
            "book": {"type": "keyword"},
            "path": {"type": "keyword"},
            "url": {"type": "keyword"},
            "title": _text_field(),
            "text": _text_field(),
        }
    }
    if doc_type:
        return {doc_type: body}
    return body


def schema(doc_type: str | None = None) -> tuple[dict[str, typ.Any], dict[str, typ.Any]]:
    """Return fresh ``(settings, mappings)`` for a new index generation."""
    return index_settings(), mappings(doc_type)


__all__ = ["CODE_PATTERNS", "index_settings", "mappings", "schema"]
