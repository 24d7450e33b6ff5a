"""Composable builder for the search HTTP server."""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
import logging
from pathlib import Path
from typing import TYPE_CHECKING, Any
from urllib.parse import parse_qsl

import orjson
from starlette.applications import Starlette
from starlette.responses import JSONResponse, Response
from starlette.routing import Route

from local_instantsearch.client import SearchClient
from local_instantsearch.config import Settings
from local_instantsearch.deployment_config import DeploymentConfig
from local_instantsearch.errors import DataUnavailable, IndexNotFound, UnsupportedRequestShape
from local_instantsearch.factory import build_registry
from local_instantsearch.observability import configure_logging, get_metrics, get_metrics_content_type
from local_instantsearch.registry import WorkerRegistry
from local_instantsearch.runtime.health import build_health_endpoint


if TYPE_CHECKING:
    from starlette.requests import Request


logger = logging.getLogger(__name__)


def decode_params(raw: str) -> dict[str, Any]:
    """Decode a URL-encoded ``params`` string; JSON-looking values are parsed."""
    params: dict[str, Any] = {}
    for key, value in parse_qsl(raw, keep_blank_values=True):
        if value[:1] in ("[", "{"):
            try:
                params[key] = orjson.loads(value)
                continue
            except orjson.JSONDecodeError:
                pass
        params[key] = value
    return params


def normalize_request_item(item: Any) -> Any:
    """Accept ``params`` as an object or as the URL-encoded string Algolia clients send."""
    if not isinstance(item, dict):
        return item
    params = item.get("params")
    if isinstance(params, str):
        params = decode_params(params)
        item = {**item, "params": params}
    if isinstance(params, dict) and not item.get("facet") and params.get("facetName"):
        item = {**item, "facet": params["facetName"]}
    return item


def parse_queries_body(body: Any) -> list[Any]:
    if not isinstance(body, dict) or not isinstance(body.get("requests"), list):
        raise UnsupportedRequestShape("Expected a JSON body of the form {\"requests\": [...]}.")
    return [normalize_request_item(item) for item in body["requests"]]


def _error_response(message: str, status: int) -> JSONResponse:
    return JSONResponse({"message": message, "status": status}, status_code=status)


async def _read_json(request: Request) -> Any:
    body = await request.body()
    try:
        return orjson.loads(body)
    except orjson.JSONDecodeError as exc:
        raise UnsupportedRequestShape(f"Request body is not valid JSON: {exc}") from exc


async def _answer(search_client: SearchClient, requests: list[Any]) -> dict[str, Any] | JSONResponse:
    try:
        return await search_client.search(requests)
    except UnsupportedRequestShape as exc:
        return _error_response(str(exc), 400)
    except IndexNotFound as exc:
        return _error_response(str(exc), 404)
    except DataUnavailable as exc:
        logger.error("Search failed, index data unavailable: %s", exc)
        return _error_response(str(exc), 503)


class AppBuilder:
    """Builds the ASGI app from deployment config or environment variables."""

    def __init__(self, config_path: Path | str | None = None) -> None:
        self.config_path = Path(config_path) if config_path else Path("deployment.json")
        self.deployment_config: DeploymentConfig | None = None
        self.registry: WorkerRegistry | None = None
        self.search_client: SearchClient | None = None

    def build(self) -> Starlette:
        """Build and return the Starlette application."""
        self.deployment_config = self._load_config()
        infra = self.deployment_config.infrastructure

        profile = infra.get_active_log_profile()
        configure_logging(
            level=profile.level,
            json_output=profile.json_output,
            logger_levels=profile.logger_levels,
            access_log=profile.access_log,
        )

        self.registry = build_registry(self.deployment_config)
        self.search_client = SearchClient(self.registry)

        app = Starlette(
            debug=profile.level == "debug",
            routes=self._build_routes(),
            lifespan=self._build_lifespan_manager(preload=infra.preload_indexes),
        )
        app.state.search_client = self.search_client
        logger.info(
            "Search server initialized with %d indexes: %s",
            len(self.registry),
            ", ".join(self.registry.list_index_names()),
        )
        return app

    def _load_config(self) -> DeploymentConfig:
        if self.config_path.exists():
            logger.info("Loading deployment configuration from %s", self.config_path)
            return DeploymentConfig.from_json_file(self.config_path)

        logger.info(
            "Deployment config %s not found, using environment-driven single-index mode",
            self.config_path,
        )
        return DeploymentConfig.from_settings(Settings())

    def _build_routes(self) -> list[Route]:
        assert self.registry is not None
        return [
            Route("/1/indexes/*/queries", endpoint=self._build_queries_endpoint(), methods=["POST"]),
            Route("/1/indexes/{index_name}/query", endpoint=self._build_query_endpoint(), methods=["POST"]),
            Route("/health", endpoint=build_health_endpoint(self.registry), methods=["GET"]),
            Route("/metrics", endpoint=self._build_metrics_endpoint(), methods=["GET"]),
        ]

    def _build_queries_endpoint(self):
        assert self.search_client is not None
        search_client = self.search_client

        async def queries_endpoint(request: Request) -> JSONResponse:
            try:
                requests = parse_queries_body(await _read_json(request))
            except UnsupportedRequestShape as exc:
                return _error_response(str(exc), 400)
            answer = await _answer(search_client, requests)
            return answer if isinstance(answer, JSONResponse) else JSONResponse(answer)

        return queries_endpoint

    def _build_query_endpoint(self):
        assert self.search_client is not None
        search_client = self.search_client

        async def query_endpoint(request: Request) -> JSONResponse:
            try:
                body = await _read_json(request)
            except UnsupportedRequestShape as exc:
                return _error_response(str(exc), 400)
            if not isinstance(body, dict):
                return _error_response("Expected a JSON object body.", 400)
            item = normalize_request_item(
                {"indexName": request.path_params["index_name"], "params": body.get("params", body)}
            )
            answer = await _answer(search_client, [item])
            return answer if isinstance(answer, JSONResponse) else JSONResponse(answer["results"][0])

        return query_endpoint

    def _build_metrics_endpoint(self):
        async def metrics_endpoint(_: Request) -> Response:
            return Response(content=get_metrics(), media_type=get_metrics_content_type())

        return metrics_endpoint

    def _build_lifespan_manager(self, *, preload: bool):
        registry = self.registry

        @asynccontextmanager
        async def lifespan(app: Starlette):
            if preload and registry is not None:
                names = registry.list_index_names()
                outcomes = await asyncio.gather(
                    *(registry.get_worker(name).get_index() for name in names),
                    return_exceptions=True,
                )
                for name, outcome in zip(names, outcomes):
                    if isinstance(outcome, DataUnavailable):
                        logger.warning("Preloading index %s failed; it will retry on first query: %s", name, outcome)
                    elif isinstance(outcome, BaseException):
                        raise outcome
            yield

        return lifespan
