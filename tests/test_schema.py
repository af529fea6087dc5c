"""Tests for the index settings and field mappings."""

from __future__ import annotations

from guide_index.schema import CODE_PATTERNS, index_settings, mappings, schema


def test_settings_define_single_shard_and_analyzers() -> None:
    settings = index_settings()

    assert settings["number_of_shards"] == 1
    analyzers = settings["analysis"]["analyzer"]
    assert set(analyzers) == {"content", "shingles", "ngrams", "ngrams_search"}
    for name, analyzer in analyzers.items():
        assert analyzer["tokenizer"] == "standard", name
        assert analyzer["filter"][:2] == ["code", "lowercase"], (
            f"{name} should split identifiers before lowercasing"
        )


def test_analyzer_filter_chains() -> None:
    analyzers = index_settings()["analysis"]["analyzer"]

    assert analyzers["content"]["filter"][2:] == [
        "keyword_repeat",
        "english",
        "unique_stem",
    ]
    assert analyzers["shingles"]["filter"][2:] == ["shingles"]
    assert analyzers["ngrams"]["filter"][2:] == ["stop", "ngrams"]
    assert analyzers["ngrams_search"]["filter"][2:] == []


def test_token_filters() -> None:
    filters = index_settings()["analysis"]["filter"]

    assert filters["code"] == {"type": "pattern_capture", "patterns": CODE_PATTERNS}
    assert filters["ngrams"] == {"type": "edge_ngram", "min_gram": 1, "max_gram": 20}
    assert filters["shingles"]["output_unigrams"] is False
    assert filters["unique_stem"] == {"type": "unique", "only_on_same_position": True}
    assert filters["english"] == {"type": "stemmer", "name": "english"}


def test_mappings_field_types() -> None:
    properties = mappings()["properties"]

    for field in ("book", "path", "url"):
        assert properties[field] == {"type": "keyword"}, field
    for field in ("title", "text"):
        text_field = properties[field]
        assert text_field["analyzer"] == "content", field
        assert text_field["fields"]["shingles"]["analyzer"] == "shingles"
        assert text_field["fields"]["ngrams"]["analyzer"] == "ngrams"
        assert text_field["fields"]["ngrams"]["search_analyzer"] == "ngrams_search"


def test_legacy_doc_type_nests_mappings() -> None:
    nested = mappings("doc")

    assert list(nested) == ["doc"]
    assert nested["doc"] == mappings()


def test_schema_returns_fresh_copies() -> None:
    first_settings, first_mappings = schema()
    first_settings["number_of_shards"] = 5
    first_mappings["properties"].clear()

    second_settings, second_mappings = schema()

    assert second_settings["number_of_shards"] == 1, "schema() must not share state"
    assert "title" in second_mappings["properties"]
    assert second_settings["analysis"]["filter"]["code"]["patterns"] is not CODE_PATTERNS
