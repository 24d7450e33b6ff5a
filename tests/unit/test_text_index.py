"""Unit tests for the in-memory text index."""

from __future__ import annotations

import pytest

from local_instantsearch.domain.model import IndexMapping
from local_instantsearch.search.text_index import FORMAT_VERSION, LocalTextIndex, tokenize


DOCS = [
    {"id": "a", "title": "Foo one", "body": "alpha"},
    {"id": "b", "title": "Bar two", "body": "foo foo foo"},
    {"id": "c", "title": "Foo three", "body": "gamma"},
]


def build(fields: list[str] | None = None) -> LocalTextIndex:
    return LocalTextIndex.build(IndexMapping(ref="id", fields=fields or ["title"]), DOCS)


def test_tokenize_lowercases_and_splits_on_punctuation() -> None:
    assert tokenize("Hello, World! don't-stop") == ["hello", "world", "don't", "stop"]


def test_search_returns_matching_refs_in_corpus_order_on_ties() -> None:
    matches = build().search("foo")

    assert [match.ref for match in matches] == ["a", "c"]
    assert matches[0].score == pytest.approx(matches[1].score)
    assert matches[0].matched_terms == ("foo",)


def test_search_is_case_insensitive() -> None:
    assert [match.ref for match in build().search("FOO")] == ["a", "c"]


def test_search_ranks_higher_term_frequency_first() -> None:
    matches = build(["title", "body"]).search("foo")

    assert matches[0].ref == "b"
    assert {match.ref for match in matches} == {"a", "b", "c"}


def test_multi_term_query_matches_any_term() -> None:
    refs = {match.ref for match in build().search("bar three")}

    assert refs == {"b", "c"}


def test_blank_query_browses_whole_corpus() -> None:
    assert [match.ref for match in build().search("   ")] == ["a", "b", "c"]


def test_query_without_word_characters_matches_nothing() -> None:
    assert build().search("?!") == []


def test_unknown_term_matches_nothing() -> None:
    assert build().search("zebra") == []


def test_list_fields_are_searchable() -> None:
    index = LocalTextIndex.build(
        IndexMapping(ref="id", fields=["tags"]),
        [{"id": "1", "tags": ["python", "search"]}, {"id": "2", "tags": ["rust"]}],
    )

    assert [match.ref for match in index.search("search")] == ["1"]


def test_add_rejects_missing_ref() -> None:
    index = LocalTextIndex(ref_field="id", fields=["title"])

    with pytest.raises(ValueError, match="missing reference field"):
        index.add({"title": "orphan"})


def test_add_rejects_duplicate_ref() -> None:
    index = build()

    with pytest.raises(ValueError, match="Duplicate"):
        index.add({"id": "a", "title": "again"})


def test_to_dict_round_trip_preserves_results() -> None:
    original = build(["title", "body"])
    restored = LocalTextIndex.load(original.to_dict())

    assert len(restored) == len(original)
    assert restored.search("foo") == original.search("foo")


def test_load_rejects_unknown_format_version() -> None:
    data = build().to_dict()
    data["version"] = FORMAT_VERSION + 1

    with pytest.raises(ValueError, match="Unsupported precomputed index version"):
        LocalTextIndex.load(data)
