"""Timing plugin applied around every batch item handler."""

from __future__ import annotations

from collections.abc import Awaitable, Callable
import functools
import logging
import time
from typing import Any

from local_instantsearch.observability.context import get_search_context
from local_instantsearch.observability.metrics import QUERY_LATENCY


logger = logging.getLogger(__name__)

QueryHandler = Callable[[Any], Awaitable[dict[str, Any]]]
Plugin = Callable[[QueryHandler], QueryHandler]


def measure_time(fn: QueryHandler) -> QueryHandler:
    """Wrap a handler so its response carries ``processingTimeMS``."""

    @functools.wraps(fn)
    async def timed(item: Any) -> dict[str, Any]:
        start = time.perf_counter()
        result = await fn(item)
        elapsed = time.perf_counter() - start
        index_name = get_search_context().get("index", "")
        QUERY_LATENCY.labels(index=index_name).observe(elapsed)
        elapsed_ms = elapsed * 1000
        logger.info("Query time: %.3f milliseconds", elapsed_ms)
        return {**result, "processingTimeMS": elapsed_ms}

    return timed


def no_plugins(fn: QueryHandler) -> QueryHandler:
    """Identity plugin, for callers that want the raw protocol responses."""
    return fn
