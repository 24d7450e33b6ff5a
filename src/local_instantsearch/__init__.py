"""Local full-text search behind the InstantSearch batched search protocol.

Serves Algolia-shaped responses (hits, facets, pagination, facet hits) from
indexes held in memory, so InstantSearch widgets work without a hosted
search service.

Example:
    client = create_search_client("https://example.com/search_index.json")
    response = await client.search([{"indexName": "docs", "params": {"query": "foo"}}])
"""

from local_instantsearch.client import SearchClient, encode_uri_component, flatten_facets, parse_batch
from local_instantsearch.domain.model import FacetQuery, HitQuery, IndexMapping, IndexPayload, SearchOutcome
from local_instantsearch.errors import DataUnavailable, IndexNotFound, SearchAdapterError, UnsupportedRequestShape
from local_instantsearch.factory import build_registry, create_search_client, create_worker
from local_instantsearch.registry import WorkerRegistry
from local_instantsearch.services.index_accessor import IndexAccessor, file_fallback
from local_instantsearch.services.result_cache import ResultCache
from local_instantsearch.worker import SearchWorker


__version__ = "0.1.0"

__all__ = [
    "DataUnavailable",
    "FacetQuery",
    "HitQuery",
    "IndexAccessor",
    "IndexMapping",
    "IndexNotFound",
    "IndexPayload",
    "ResultCache",
    "SearchAdapterError",
    "SearchClient",
    "SearchOutcome",
    "SearchWorker",
    "UnsupportedRequestShape",
    "WorkerRegistry",
    "__version__",
    "build_registry",
    "create_search_client",
    "create_worker",
    "encode_uri_component",
    "file_fallback",
    "flatten_facets",
    "parse_batch",
]
