"""Prometheus metrics for search batches, caches, and index loading."""

from __future__ import annotations

from prometheus_client import CONTENT_TYPE_LATEST, Counter, Gauge, Histogram, generate_latest


QUERY_LATENCY = Histogram(
    "instantsearch_query_latency_seconds",
    "Latency of a single batch item",
    ["index"],
    buckets=(0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0),
)

BATCH_COUNT = Counter(
    "instantsearch_batches_total",
    "Batched search requests by outcome",
    ["status"],
)

CACHE_EVENTS = Counter(
    "instantsearch_result_cache_total",
    "Result cache lookups by outcome",
    ["index", "outcome"],
)

INDEX_LOADS = Counter(
    "instantsearch_index_loads_total",
    "Index bundle loads by channel",
    ["index", "channel"],
)

INDEX_DOC_COUNT = Gauge(
    "instantsearch_index_document_count",
    "Documents in a loaded index",
    ["index"],
)


def get_metrics() -> bytes:
    """Generate Prometheus metrics output."""
    return generate_latest()


def get_metrics_content_type() -> str:
    """Get content type for metrics endpoint."""
    return CONTENT_TYPE_LATEST
