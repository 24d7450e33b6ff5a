"""Unit tests for facet counting, filtering, and censoring."""

from __future__ import annotations

import pytest

from local_instantsearch.services.facets import (
    active_filter_fields,
    build_hit_filter,
    censor_facets,
    count_facets,
    facet_value,
    parse_facet_filter,
)


HITS = [
    {"ref": "a", "objectID": "a", "id": "a", "category": "x", "year": 2020, "tags": ["py", "web"]},
    {"ref": "b", "objectID": "b", "id": "b", "category": "y", "year": 2021, "tags": ["py"]},
    {"ref": "c", "objectID": "c", "id": "c", "category": "x", "year": 2020.0, "tags": ["py", "web"]},
]


class TestFacetValue:
    def test_scalars_render_as_strings(self) -> None:
        assert facet_value("x") == "x"
        assert facet_value(3) == "3"
        assert facet_value(2.0) == "2"
        assert facet_value(2.5) == "2.5"

    def test_lists_join_with_comma_space(self) -> None:
        assert facet_value(["a", 1, True]) == "a, 1, true"

    def test_non_facetable_values(self) -> None:
        assert facet_value(True) is None
        assert facet_value(None) is None
        assert facet_value({"nested": 1}) is None


class TestCountFacets:
    def test_counts_each_field_value_pair(self) -> None:
        facets = count_facets(HITS, "id")

        assert facets["category"] == {"x": 2, "y": 1}
        assert facets["year"] == {"2020": 2, "2021": 1}
        assert facets["tags"] == {"py, web": 2, "py": 1}

    def test_identifier_and_reference_fields_are_never_counted(self) -> None:
        facets = count_facets(HITS, "id")

        assert "ref" not in facets
        assert "objectID" not in facets
        assert "id" not in facets

    def test_long_values_are_skipped(self) -> None:
        hits = [{"summary": "s" * 65}, {"summary": "s" * 64}]

        assert count_facets(hits) == {"summary": {"s" * 64: 1}}

    def test_counts_only_given_hits(self) -> None:
        assert count_facets([]) == {}
        assert count_facets(HITS[:1], "id")["category"] == {"x": 1}


class TestFacetFilters:
    def test_parse_splits_on_first_colon(self) -> None:
        assert parse_facet_filter("url:https://example.com") == ("url", "https://example.com")

    def test_parse_nested_list_uses_first_entry(self) -> None:
        assert parse_facet_filter(["category:x", "category:y"]) == ("category", "x")

    def test_parse_rejects_non_strings(self) -> None:
        assert parse_facet_filter(42) is None
        assert parse_facet_filter([]) is None

    def test_filter_keeps_only_matching_hits(self) -> None:
        keep = build_hit_filter(["category:x"])

        assert [hit["ref"] for hit in HITS if keep(hit)] == ["a", "c"]

    def test_bare_string_filter(self) -> None:
        keep = build_hit_filter("category:y")

        assert [hit["ref"] for hit in HITS if keep(hit)] == ["b"]

    def test_filters_combine_with_and(self) -> None:
        keep = build_hit_filter(["category:x", "tags:py, web"])

        assert [hit["ref"] for hit in HITS if keep(hit)] == ["a", "c"]

    def test_numeric_values_compare_as_strings(self) -> None:
        keep = build_hit_filter(["year:2020"])

        assert [hit["ref"] for hit in HITS if keep(hit)] == ["a", "c"]

    def test_filter_order_does_not_matter(self) -> None:
        forward = build_hit_filter(["category:x", "year:2021"])
        backward = build_hit_filter(["year:2021", "category:x"])

        assert [forward(hit) for hit in HITS] == [backward(hit) for hit in HITS]

    def test_repeated_filter_is_idempotent(self) -> None:
        once = build_hit_filter(["category:x"])
        twice = build_hit_filter(["category:x", "category:x"])

        assert [once(hit) for hit in HITS] == [twice(hit) for hit in HITS]

    def test_missing_field_rejects_hit(self) -> None:
        keep = build_hit_filter(["colour:red"])

        assert not any(keep(hit) for hit in HITS)

    @pytest.mark.parametrize("filters", [None, []])
    def test_empty_filters_keep_everything(self, filters) -> None:
        keep = build_hit_filter(filters)

        assert all(keep(hit) for hit in HITS)

    def test_malformed_filter_matches_nothing(self) -> None:
        keep = build_hit_filter(["category:x", 7])

        assert not any(keep(hit) for hit in HITS)

    def test_active_filter_fields_skip_malformed(self) -> None:
        assert active_filter_fields(["category:x", ["year:2020"], None]) == {"category", "year"}


class TestCensorFacets:
    def test_single_valued_facet_is_hidden(self) -> None:
        facets = {"category": {"x": 2}, "year": {"2020": 1, "2021": 1}}

        assert censor_facets(facets, max_result_count=10, threshold=80) == {"year": {"2020": 1, "2021": 1}}

    def test_requested_facet_survives_with_single_value(self) -> None:
        facets = {"category": {"x": 2}, "year": {"2020": 1, "2021": 1}}

        assert censor_facets(facets, max_result_count=10, threshold=80, facet="category") == {"category": {"x": 2}}

    def test_filtered_facet_survives_with_single_value(self) -> None:
        facets = {"category": {"x": 2}}

        censored = censor_facets(facets, max_result_count=10, threshold=80, facet_filters=["category:x"])

        assert censored == {"category": {"x": 2}}

    def test_high_cardinality_facet_is_hidden(self) -> None:
        wide = {str(value): 1 for value in range(9)}
        narrow = {str(value): 1 for value in range(8)}

        censored = censor_facets({"wide": wide, "narrow": narrow}, max_result_count=10, threshold=80)

        assert list(censored) == ["narrow"]

    def test_cardinality_limit_applies_to_requested_facet(self) -> None:
        wide = {str(value): 1 for value in range(9)}

        assert censor_facets({"wide": wide}, max_result_count=10, threshold=80, facet="wide") == {}

    def test_long_values_hide_the_whole_facet(self) -> None:
        facets = {"summary": {"s" * 64: 1, "short": 1}}

        assert censor_facets(facets, max_result_count=10, threshold=100) == {}

    def test_threshold_zero_hides_everything(self) -> None:
        facets = {"year": {"2020": 1, "2021": 1}}

        assert censor_facets(facets, max_result_count=10, threshold=0) == {}
