"""Facet counting, hit filtering, and facet censoring over raw hits.

Facet tables are derived from the hits of one query only. Identifier-like
fields and long free-text values are never counted, and tables that would
leak near-unique values are censored before they reach the UI.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
import logging
from typing import Any

from local_instantsearch.domain.model import FacetCounts, FacetFilters, Hit


logger = logging.getLogger(__name__)

IDENTIFIER_FIELDS = frozenset({"objectID", "ref"})
MAX_COUNTED_VALUE_LENGTH = 64
MAX_EXPOSED_VALUE_LENGTH = 63


def _render_scalar(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if value is None:
        return ""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def facet_value(value: Any) -> str | None:
    """Render a hit value as a facet string, or ``None`` when it cannot be a facet.

    Lists are joined with ``", "``; booleans, mappings and ``None`` are not facetable.
    """
    if isinstance(value, (list, tuple)):
        return ", ".join(_render_scalar(item) for item in value)
    if isinstance(value, bool) or not isinstance(value, (str, int, float)):
        return None
    return _render_scalar(value)


def count_facets(hits: Iterable[Hit], ref_field: str | None = None) -> FacetCounts:
    """Count occurrences of every facetable ``(field, value)`` pair across hits."""
    skipped = (IDENTIFIER_FIELDS | {ref_field}) if ref_field else IDENTIFIER_FIELDS
    counts: FacetCounts = {}
    for hit in hits:
        for key, raw_value in hit.items():
            if key in skipped:
                continue
            value = facet_value(raw_value)
            if value is None:
                continue
            if not isinstance(raw_value, (int, float)) and len(value) > MAX_COUNTED_VALUE_LENGTH:
                continue
            table = counts.setdefault(key, {})
            table[value] = table.get(value, 0) + 1
    return counts


def normalize_facet_filters(facet_filters: FacetFilters | None) -> list[Any]:
    """Promote a bare ``"field:value"`` string to a one-element list."""
    if facet_filters is None:
        return []
    if isinstance(facet_filters, str):
        return [facet_filters]
    return list(facet_filters)


def parse_facet_filter(entry: Any) -> tuple[str, str] | None:
    """Split a ``field:value`` entry on its first colon.

    A nested list (an InstantSearch disjunctive group) is represented by its
    first element. Returns ``None`` for malformed entries.
    """
    if isinstance(entry, (list, tuple)):
        entry = entry[0] if entry else None
    if not isinstance(entry, str):
        return None
    field_name, _, value = entry.partition(":")
    return field_name, value


def active_filter_fields(facet_filters: FacetFilters | None) -> set[str]:
    """Field names targeted by well-formed filters."""
    fields: set[str] = set()
    for entry in normalize_facet_filters(facet_filters):
        parsed = parse_facet_filter(entry)
        if parsed is not None:
            fields.add(parsed[0])
    return fields


def _reject_all(_: Hit) -> bool:
    return False


def build_hit_filter(facet_filters: FacetFilters | None) -> Callable[[Hit], bool]:
    """Return a predicate keeping hits that satisfy every filter (logical AND).

    A malformed entry fails closed: the predicate rejects every hit.
    """
    parsed_filters: list[tuple[str, str]] = []
    for entry in normalize_facet_filters(facet_filters):
        parsed = parse_facet_filter(entry)
        if parsed is None:
            logger.warning("Malformed facet filter %r; no hit can match", entry)
            return _reject_all
        parsed_filters.append(parsed)

    def matches(hit: Hit) -> bool:
        for field_name, value in parsed_filters:
            if field_name not in hit:
                return False
            if facet_value(hit[field_name]) != value:
                return False
        return True

    return matches


def censor_facets(
    facets: FacetCounts,
    *,
    max_result_count: int,
    threshold: float,
    facet: str | None = None,
    facet_filters: FacetFilters | None = None,
) -> FacetCounts:
    """Drop facet tables that are too wide, too noisy, or uninformative.

    A table survives when it is the requested facet (or no facet was
    requested), holds at most ``threshold`` percent of ``max_result_count``
    distinct values, has no value longer than 63 characters, and is either
    filtered on, explicitly requested, or has more than one distinct value.
    """
    cardinality_limit = threshold * max_result_count / 100
    filtered_fields = active_filter_fields(facet_filters)
    censored: FacetCounts = {}
    for field_name, values in facets.items():
        if facet and field_name != facet:
            continue
        if len(values) > cardinality_limit:
            continue
        if any(len(value) > MAX_EXPOSED_VALUE_LENGTH for value in values):
            continue
        if field_name in filtered_fields or facet or len(values) > 1:
            censored[field_name] = values
    return censored
