"""Observability: structured logging, Prometheus metrics, and query timing."""

from local_instantsearch.observability.context import get_search_context, search_context, set_search_context, start_request
from local_instantsearch.observability.logging import JsonFormatter, configure_logging
from local_instantsearch.observability.metrics import (
    BATCH_COUNT,
    CACHE_EVENTS,
    INDEX_DOC_COUNT,
    INDEX_LOADS,
    QUERY_LATENCY,
    get_metrics,
    get_metrics_content_type,
)
from local_instantsearch.observability.timing import measure_time, no_plugins


__all__ = [
    "BATCH_COUNT",
    "CACHE_EVENTS",
    "INDEX_DOC_COUNT",
    "INDEX_LOADS",
    "QUERY_LATENCY",
    "JsonFormatter",
    "configure_logging",
    "get_metrics",
    "get_metrics_content_type",
    "get_search_context",
    "measure_time",
    "no_plugins",
    "search_context",
    "set_search_context",
    "start_request",
]
