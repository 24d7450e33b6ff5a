"""InstantSearch-compatible search client.

Relays each item of a batched request to the worker owning its index, runs
all items concurrently, and reassembles the responses: facet-query results
first, then hit-query results, each group in request order.
"""

from __future__ import annotations

import asyncio
from collections.abc import Mapping, Sequence
import logging
import math
import re
from typing import Any
from urllib.parse import quote

from pydantic import ValidationError

from local_instantsearch.domain.model import (
    DEFAULT_HITS_PER_PAGE,
    FacetCounts,
    FacetQuery,
    HitQuery,
    SearchRequestItem,
)
from local_instantsearch.errors import UnsupportedRequestShape
from local_instantsearch.observability.context import set_search_context, start_request
from local_instantsearch.observability.metrics import BATCH_COUNT
from local_instantsearch.observability.timing import Plugin, measure_time
from local_instantsearch.registry import WorkerRegistry
from local_instantsearch.worker import SearchWorker


logger = logging.getLogger(__name__)

_UNSUPPORTED_SHAPE = "Only the batched (legacy) search method params are supported."


def encode_uri_component(value: str) -> str:
    """Percent-encode like JavaScript's ``encodeURIComponent``."""
    return quote(value, safe="!'()*-._~")


def parse_batch(requests: Any) -> list[SearchRequestItem]:
    """Validate a whole batch before any query runs.

    Raises:
        UnsupportedRequestShape: The batch is not a list, or an item lacks ``params``
    """
    if isinstance(requests, (str, bytes)) or not isinstance(requests, Sequence):
        raise UnsupportedRequestShape(_UNSUPPORTED_SHAPE)

    items: list[SearchRequestItem] = []
    for position, raw_item in enumerate(requests):
        if isinstance(raw_item, SearchRequestItem):
            items.append(raw_item)
            continue
        if not isinstance(raw_item, Mapping) or raw_item.get("params") is None:
            raise UnsupportedRequestShape(f"{_UNSUPPORTED_SHAPE} Request #{position} has no params.")
        try:
            items.append(SearchRequestItem.model_validate(raw_item))
        except ValidationError as exc:
            raise UnsupportedRequestShape(f"Request #{position} is malformed: {exc}") from exc
    return items


def _compile_facet_query(facet_query: str) -> re.Pattern[str]:
    try:
        return re.compile(facet_query, re.IGNORECASE)
    except re.error:
        logger.debug("Facet query %r is not a valid pattern; matching it literally", facet_query)
        return re.compile(re.escape(facet_query), re.IGNORECASE)


def flatten_facets(
    facets: FacetCounts,
    facet_query: str | None,
    facet_name: str | None,
) -> list[dict[str, Any]]:
    """Flatten facet tables into ``facetHits`` entries.

    Only ``facet_name``'s table is used when given; values are kept when the
    case-insensitive ``facet_query`` pattern finds a match in them.
    """
    pattern = _compile_facet_query(facet_query) if facet_query is not None else None
    facet_hits: list[dict[str, Any]] = []
    for field_name, values in facets.items():
        if facet_name and field_name != facet_name:
            continue
        for value, count in values.items():
            if pattern is not None and not pattern.search(value):
                continue
            facet_hits.append({"value": value, "highlighted": value, "count": count})
    return facet_hits


class SearchClient:
    """Implementation of the InstantSearch search client over local workers.

    Relays searches to the correct worker (one worker per index).
    """

    def __init__(
        self,
        workers: Mapping[str, SearchWorker] | WorkerRegistry,
        plugins: Plugin = measure_time,
        *,
        strict_index_names: bool = False,
    ) -> None:
        """Initialize the client.

        Args:
            workers: Index name to worker, in registration order; the first is
                the default for unknown index names
            plugins: Wrapper applied to every per-item handler
            strict_index_names: Reject unknown index names instead of routing
                them to the default worker (ignored when a registry is passed)
        """
        if isinstance(workers, WorkerRegistry):
            registry = workers
        else:
            registry = WorkerRegistry.from_mapping(workers, strict=strict_index_names)
        if not len(registry):
            raise ValueError("SearchClient needs at least one registered worker")
        self.registry = registry
        self.plugins = plugins

    async def search(self, requests: Any) -> dict[str, list[dict[str, Any]]]:
        """Answer a batch: facet results first, then hit results."""
        items = parse_batch(requests)
        facet_queries = [item.as_facet_query() for item in items if item.is_facet_query]
        hit_queries = [item.as_hit_query() for item in items if not item.is_facet_query]
        results = await self._run_batch(facet_queries, hit_queries)
        return {"results": results}

    async def search_for_hits(self, requests: Any) -> dict[str, list[dict[str, Any]]]:
        items = parse_batch(requests)
        hit_queries = [item.as_hit_query() for item in items if not item.is_facet_query]
        return {"results": await self._run_batch([], hit_queries)}

    async def search_for_facets(self, requests: Any) -> dict[str, list[dict[str, Any]]]:
        items = parse_batch(requests)
        facet_queries = [item.as_facet_query() for item in items if item.is_facet_query]
        return {"results": await self._run_batch(facet_queries, [])}

    async def _run_batch(
        self,
        facet_queries: list[FacetQuery],
        hit_queries: list[HitQuery],
    ) -> list[dict[str, Any]]:
        request_id = start_request()
        answer_facets = self.plugins(self._answer_facet_query)
        answer_hits = self.plugins(self._answer_hit_query)
        logger.debug(
            "Batch %s: %d facet queries, %d hit queries",
            request_id,
            len(facet_queries),
            len(hit_queries),
        )
        try:
            results = await asyncio.gather(
                *(answer_facets(query) for query in facet_queries),
                *(answer_hits(query) for query in hit_queries),
            )
        except Exception:
            BATCH_COUNT.labels(status="error").inc()
            raise
        BATCH_COUNT.labels(status="ok").inc()
        return list(results)

    async def _answer_hit_query(self, hit_query: HitQuery) -> dict[str, Any]:
        index_name, worker = self.registry.resolve(hit_query.index_name)
        set_search_context(index=index_name)
        outcome = await worker.search(
            hit_query.query,
            hit_query.facet,
            hit_query.facet_filters,
            hit_query.page,
            hit_query.hits_per_page,
        )
        return {
            "hits": outcome.hits,
            "query": hit_query.query,
            "params": encode_uri_component(hit_query.query),
            "facets": outcome.facets,
            "renderingContent": {
                "facetOrdering": {
                    "facets": {
                        "order": list(outcome.facets),
                    },
                },
            },
            "page": outcome.page_num,
            "nbHits": outcome.total,
            "nbPages": math.ceil(outcome.total / outcome.page_size),
            "hitsPerPage": outcome.page_size,
        }

    async def _answer_facet_query(self, facet_query: FacetQuery) -> dict[str, Any]:
        index_name, worker = self.registry.resolve(facet_query.index_name)
        set_search_context(index=index_name)
        outcome = await worker.search_facets(
            facet_query.query,
            facet_query.facet_name,
            facet_query.facet_filters,
            0,
            DEFAULT_HITS_PER_PAGE,
        )
        return {
            "facetHits": flatten_facets(outcome.facets, facet_query.facet_query, facet_query.facet_name),
            "exhaustiveFacetsCount": True,
        }
