"""Construction of workers, registries, and clients from configuration."""

from __future__ import annotations

from pathlib import Path

from local_instantsearch.client import SearchClient
from local_instantsearch.deployment_config import DeploymentConfig, IndexConfig
from local_instantsearch.observability.timing import Plugin, measure_time
from local_instantsearch.registry import WorkerRegistry
from local_instantsearch.services.index_accessor import IndexAccessor, default_fallback_path, file_fallback
from local_instantsearch.worker import SearchWorker


def create_worker(index_config: IndexConfig, *, http_timeout: float = 30.0) -> SearchWorker:
    """Build the worker serving one configured index."""
    fallback_path = (
        Path(index_config.fallback_path)
        if index_config.fallback_path
        else default_fallback_path(index_config.resource_url)
    )
    accessor = IndexAccessor(
        index_config.resource_url,
        name=index_config.name,
        fallback=file_fallback(fallback_path) if fallback_path is not None else None,
        http_timeout=http_timeout,
    )
    return SearchWorker(
        accessor,
        censor_facet_threshold=index_config.censor_facet_threshold,
        censor_basis=index_config.censor_basis,
    )


def build_registry(config: DeploymentConfig) -> WorkerRegistry:
    """Register one worker per configured index, in configuration order."""
    infra = config.infrastructure
    registry = WorkerRegistry(strict=infra.strict_index_names)
    for index_config in config.indexes:
        registry.register(index_config.name, create_worker(index_config, http_timeout=infra.http_timeout))
    return registry


def create_search_client(
    resource_url: str = "search_index.json",
    *,
    fallback_path: str | None = None,
    censor_facet_threshold: float = 80,
    plugins: Plugin = measure_time,
) -> SearchClient:
    """Create a client serving the bundle at ``resource_url`` as its only index.

    The bundle is JSON shaped as ``{"docs": [...], "mapping": {"ref": ..., "fields": [...]},
    "computedIndex": {...}}`` (``computedIndex`` optional). For a local
    ``foo.json`` the offline ``foo.js`` wrapper next to it serves as fallback
    unless ``fallback_path`` says otherwise.

    The index is registered under ``resource_url``; requests naming any other
    index are answered from it.
    """
    index_config = IndexConfig(
        name=resource_url,
        resource_url=resource_url,
        fallback_path=fallback_path,
        censor_facet_threshold=censor_facet_threshold,
    )
    return SearchClient({resource_url: create_worker(index_config)}, plugins=plugins)
