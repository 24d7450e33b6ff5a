"""Main ASGI application entry point.

Serves an Algolia-compatible search endpoint backed by in-memory indexes.

Architecture:
    Starlette App
      ├── POST /1/indexes/*/queries       → batched InstantSearch queries
      ├── POST /1/indexes/{index}/query   → single query against one index
      ├── GET  /health                    → per-index load state
      └── GET  /metrics                   → Prometheus exposition

Usage:
    # Load from deployment.json
    python -m local_instantsearch.app

    # Or specify custom config file
    DEPLOYMENT_CONFIG=/path/to/config.json python -m local_instantsearch.app

    # Without deployment.json, one index is configured from INSTANTSEARCH_* variables
    INSTANTSEARCH_RESOURCE_URL=https://example.com/search_index.json python -m local_instantsearch.app
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

from pydantic import ValidationError
from starlette.applications import Starlette

from local_instantsearch.app_builder import AppBuilder


logger = logging.getLogger(__name__)


def create_app(config_path: Path | str | None = None) -> Starlette:
    """Create the search application.

    Args:
        config_path: Path to deployment.json (defaults to ``DEPLOYMENT_CONFIG``
            or ``deployment.json``)
    """
    if config_path is None:
        config_path = os.getenv("DEPLOYMENT_CONFIG", "deployment.json")
    return AppBuilder(config_path).build()


def main() -> None:
    """Main entry point for the search server."""
    import uvicorn

    config_path = Path(os.getenv("DEPLOYMENT_CONFIG", "deployment.json"))

    builder = AppBuilder(config_path)
    try:
        app = builder.build()
    except ValidationError as exc:
        logger.error("Deployment configuration is invalid: %s", exc)
        return

    assert builder.deployment_config is not None
    infra = builder.deployment_config.infrastructure
    profile = infra.get_active_log_profile()

    logger.info("Starting local InstantSearch server")
    logger.info("Configuration: %s", config_path if config_path.exists() else "environment")
    logger.info("Indexes: %s", ", ".join(builder.deployment_config.list_index_names()))
    logger.info("Health check: http://%s:%d/health", infra.host, infra.port)

    uvicorn.run(
        app,
        host=infra.host,
        port=infra.port,
        log_level=profile.level,
        log_config=None,  # keep our logging config
        access_log=profile.access_log,
    )


if __name__ == "__main__":
    main()
