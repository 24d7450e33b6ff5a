"""Health endpoint factory."""

from __future__ import annotations

from typing import TYPE_CHECKING

from starlette.responses import JSONResponse


if TYPE_CHECKING:
    from starlette.requests import Request

    from local_instantsearch.registry import WorkerRegistry


def build_health_endpoint(registry: WorkerRegistry):
    """Return a coroutine function reporting load state per index."""

    async def health_check(_: Request) -> JSONResponse:
        indexes: dict[str, dict] = {}
        for name, worker in registry.items():
            indexes[name] = {
                "status": "loaded" if worker.accessor.is_loaded else "pending",
                "document_count": worker.document_count,
                "cached_results": len(worker.cache),
            }

        return JSONResponse(
            {
                "status": "healthy",
                "index_count": len(registry),
                "default_index": registry.default_name,
                "strict_index_names": registry.strict,
                "indexes": indexes,
            }
        )

    return health_check
