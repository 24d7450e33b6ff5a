"""Lazy, memoized access to one index bundle.

The bundle ``{documents, mapping, precomputed_index?}`` is read from the
configured resource (HTTP(S) URL or local path). When that fails, a fallback
channel supplying the same payload is tried. The resolved index is memoized
for the lifetime of the accessor; a failed resolution memoizes nothing.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Mapping
import logging
from pathlib import Path
import re
from typing import Any

import httpx
import orjson

from local_instantsearch.domain.model import IndexPayload, LoadedIndex
from local_instantsearch.errors import DataUnavailable
from local_instantsearch.observability.metrics import INDEX_DOC_COUNT, INDEX_LOADS
from local_instantsearch.search.text_index import LocalTextIndex, TextIndex, TextIndexFactory


logger = logging.getLogger(__name__)

FallbackLoader = Callable[[], Awaitable[Mapping[str, Any]]]

# Offline bundles wrap the payload as: sessionStorage.setItem('fallback', JSON.stringify({...}));
_JS_WRAPPER = re.compile(r"JSON\.stringify\(\s*(\{.*\})\s*\)", re.DOTALL)


def extract_js_payload(text: str) -> str:
    """Pull the JSON object literal out of an offline ``.js`` bundle."""
    match = _JS_WRAPPER.search(text)
    if match:
        return match.group(1)
    start, end = text.find("{"), text.rfind("}")
    if start == -1 or end < start:
        raise ValueError("No JSON object found in fallback script")
    return text[start : end + 1]


def read_bundle_file(path: Path) -> dict[str, Any]:
    """Read an index bundle from a ``.json`` file or an offline ``.js`` wrapper."""
    text = path.read_text(encoding="utf-8")
    if path.suffix == ".js":
        text = extract_js_payload(text)
    return orjson.loads(text)


def file_fallback(path: Path | str) -> FallbackLoader:
    """Fallback channel reading a local bundle file."""
    bundle_path = Path(path)

    async def load() -> Mapping[str, Any]:
        return await asyncio.to_thread(read_bundle_file, bundle_path)

    return load


def _is_http_url(resource_url: str) -> bool:
    return resource_url.startswith(("http://", "https://"))


class IndexAccessor:
    """Resolves and memoizes ``(index, corpus, mapping, document_count)`` for one worker."""

    def __init__(
        self,
        resource_url: str,
        *,
        name: str | None = None,
        fallback: FallbackLoader | None = None,
        index_factory: TextIndexFactory = LocalTextIndex,
        http_timeout: float = 30.0,
        client_factory: Callable[[], httpx.AsyncClient] | None = None,
    ) -> None:
        self.resource_url = resource_url
        self.name = name or resource_url
        self.index_factory = index_factory
        self.http_timeout = http_timeout
        self._fallback = fallback
        self._client_factory = client_factory or self._default_client
        self._loaded: LoadedIndex | None = None
        self._lock = asyncio.Lock()

    @property
    def is_loaded(self) -> bool:
        return self._loaded is not None

    @property
    def document_count(self) -> int | None:
        """Number of documents in the corpus, or ``None`` before the first load."""
        return self._loaded.document_count if self._loaded is not None else None

    def _default_client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=httpx.Timeout(self.http_timeout),
            follow_redirects=True,
            headers={"Accept": "application/json"},
        )

    async def get_index(self) -> LoadedIndex:
        """Return the memoized index, resolving it on first use.

        Concurrent first callers share one resolution.

        Raises:
            DataUnavailable: Neither channel produced a usable bundle.
        """
        if self._loaded is not None:
            return self._loaded
        async with self._lock:
            if self._loaded is None:
                self._loaded = await self._resolve()
        return self._loaded

    async def _resolve(self) -> LoadedIndex:
        try:
            payload = IndexPayload.model_validate(await self._fetch_primary())
            channel = "primary"
        except (httpx.HTTPError, OSError, ValueError) as exc:
            logger.warning("Index resource %s unavailable (%s); trying fallback", self.resource_url, exc)
            payload = await self._load_fallback(exc)
            channel = "fallback"

        try:
            index = self._build_index(payload)
        except (KeyError, TypeError, ValueError) as exc:
            INDEX_LOADS.labels(index=self.name, channel="failed").inc()
            raise DataUnavailable(f"Index bundle for {self.name} could not be indexed: {exc}") from exc

        loaded = LoadedIndex.from_payload(index, payload)
        INDEX_LOADS.labels(index=self.name, channel=channel).inc()
        INDEX_DOC_COUNT.labels(index=self.name).set(loaded.document_count)
        logger.info(
            "Loaded index %s from %s channel: %d documents, ref=%s, fields=%s",
            self.name,
            channel,
            loaded.document_count,
            loaded.mapping.ref,
            loaded.mapping.fields,
        )
        return loaded

    async def _fetch_primary(self) -> Mapping[str, Any]:
        if _is_http_url(self.resource_url):
            async with self._client_factory() as client:
                response = await client.get(self.resource_url)
                response.raise_for_status()
                return orjson.loads(response.content)
        return await asyncio.to_thread(read_bundle_file, Path(self.resource_url))

    async def _load_fallback(self, primary_error: Exception) -> IndexPayload:
        if self._fallback is None:
            INDEX_LOADS.labels(index=self.name, channel="failed").inc()
            raise DataUnavailable(
                f"Index resource {self.resource_url} unavailable and no fallback configured"
            ) from primary_error
        try:
            return IndexPayload.model_validate(await self._fallback())
        except (httpx.HTTPError, OSError, ValueError) as exc:
            INDEX_LOADS.labels(index=self.name, channel="failed").inc()
            raise DataUnavailable(
                f"Index resource {self.resource_url} and its fallback are both unavailable: {exc}"
            ) from exc

    def _build_index(self, payload: IndexPayload) -> TextIndex:
        if payload.precomputed_index is not None:
            try:
                return self.index_factory.load(payload.precomputed_index)
            except (KeyError, TypeError, ValueError) as exc:
                logger.warning("Precomputed index for %s rejected (%s); rebuilding from corpus", self.name, exc)
        return self.index_factory.build(payload.mapping, payload.documents)


def default_fallback_path(resource_url: str) -> Path | None:
    """Offline sibling of a local ``.json`` bundle (``search_index.json`` -> ``search_index.js``)."""
    if _is_http_url(resource_url) or not resource_url.endswith(".json"):
        return None
    return Path(resource_url[:-2])
