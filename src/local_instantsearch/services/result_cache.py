"""Per-worker memoization of query outcomes.

The cache is an explicit object owned by one worker and lives as long as that
worker: no expiry, no capacity bound. Keys are the orjson serialization of the
call arguments in the order they were given, so callers must build arguments
deterministically (dict keys are not sorted).
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
import copy
import functools
import logging
from typing import Any, TypeVar

import orjson

from local_instantsearch.observability.metrics import CACHE_EVENTS


logger = logging.getLogger(__name__)

T = TypeVar("T")


class ResultCache:
    """In-memory result cache with single-flight misses."""

    def __init__(self, name: str = "") -> None:
        self.name = name
        self.hits = 0
        self.misses = 0
        self._entries: dict[bytes, Any] = {}
        self._in_flight: dict[bytes, asyncio.Future] = {}

    @staticmethod
    def make_key(
        args: tuple[Any, ...],
        kwargs: dict[str, Any] | None = None,
        *,
        namespace: str = "",
    ) -> bytes:
        payload: list[Any] = [namespace, *args]
        if kwargs:
            payload.append(kwargs)
        return orjson.dumps(payload, default=str)

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: bytes) -> bool:
        return key in self._entries

    def clear(self) -> None:
        self._entries.clear()

    def _record(self, outcome: str) -> None:
        if outcome == "miss":
            self.misses += 1
        else:
            self.hits += 1
        CACHE_EVENTS.labels(index=self.name, outcome=outcome).inc()

    async def get_or_compute(self, key: bytes, compute: Callable[[], Awaitable[T]]) -> T:
        """Return a copy of the stored value for ``key``, computing it at most once.

        The computation runs as its own task, so concurrent callers missing on
        the same key share it and cancelling any one caller leaves the others
        waiting. Failures reach every waiter and are never stored. Callers get
        deep copies, so mutating a response never alters the cached entry.
        """
        if key in self._entries:
            self._record("hit")
            return copy.deepcopy(self._entries[key])

        task = self._in_flight.get(key)
        if task is not None:
            self._record("coalesced")
        else:
            self._record("miss")
            task = asyncio.ensure_future(compute())
            self._in_flight[key] = task
            task.add_done_callback(functools.partial(self._settle, key))
        return copy.deepcopy(await asyncio.shield(task))

    def _settle(self, key: bytes, task: asyncio.Future) -> None:
        self._in_flight.pop(key, None)
        if task.cancelled():
            return
        if task.exception() is None:
            self._entries[key] = task.result()


def with_cache(
    fn: Callable[..., Awaitable[T]],
    cache: ResultCache,
    *,
    namespace: str = "",
) -> Callable[..., Awaitable[T]]:
    """Return ``fn`` memoized in ``cache`` by its full argument tuple.

    Wrappers sharing one cache under different ``namespace`` values never see
    each other's entries.
    """

    @functools.wraps(fn)
    async def cached(*args: Any, **kwargs: Any) -> T:
        key = cache.make_key(args, kwargs, namespace=namespace)
        return await cache.get_or_compute(key, lambda: fn(*args, **kwargs))

    cached.cache = cache  # type: ignore[attr-defined]
    return cached
