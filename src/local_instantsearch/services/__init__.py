"""Services behind a search worker: index access, facets, and result caching."""

from local_instantsearch.services.facets import (
    active_filter_fields,
    build_hit_filter,
    censor_facets,
    count_facets,
    facet_value,
)
from local_instantsearch.services.index_accessor import IndexAccessor, file_fallback
from local_instantsearch.services.result_cache import ResultCache, with_cache


__all__ = [
    "IndexAccessor",
    "ResultCache",
    "active_filter_fields",
    "build_hit_filter",
    "censor_facets",
    "count_facets",
    "facet_value",
    "file_fallback",
    "with_cache",
]
