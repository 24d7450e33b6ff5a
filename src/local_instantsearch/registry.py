"""Registry of search workers keyed by index name."""

from __future__ import annotations

from collections.abc import Iterator, Mapping
import logging
from typing import TYPE_CHECKING

from local_instantsearch.errors import IndexNotFound


if TYPE_CHECKING:
    from local_instantsearch.worker import SearchWorker


logger = logging.getLogger(__name__)


class WorkerRegistry:
    """Central registry of search workers.

    Registration order matters: the first registered worker is the default
    target for index names nobody registered.

    Usage:
        registry = WorkerRegistry()
        registry.register("products", products_worker)
        registry.register("articles", articles_worker)

        name, worker = registry.resolve("unknown")  # -> ("products", products_worker)
    """

    def __init__(self, *, strict: bool = False) -> None:
        """Initialize empty registry.

        Args:
            strict: Raise IndexNotFound for unknown names instead of routing
                them to the default worker
        """
        self.strict = strict
        self._workers: dict[str, SearchWorker] = {}

    @classmethod
    def from_mapping(cls, workers: Mapping[str, SearchWorker], *, strict: bool = False) -> WorkerRegistry:
        registry = cls(strict=strict)
        for name, worker in workers.items():
            registry.register(name, worker)
        return registry

    def register(self, name: str, worker: SearchWorker) -> None:
        """Register a worker; re-registering a name replaces it in place."""
        self._workers[name] = worker

    def get_worker(self, name: str) -> SearchWorker | None:
        return self._workers.get(name)

    @property
    def default_name(self) -> str | None:
        """Name of the first registered worker, or None when empty."""
        return next(iter(self._workers), None)

    def resolve(self, name: str) -> tuple[str, SearchWorker]:
        """Return ``(name, worker)`` for ``name``, falling back to the default worker.

        Raises:
            IndexNotFound: ``name`` is unknown and the registry is strict
            LookupError: The registry is empty
        """
        worker = self._workers.get(name)
        if worker is not None:
            return name, worker
        if self.strict:
            raise IndexNotFound(name, self.list_index_names())
        default_name = self.default_name
        if default_name is None:
            raise LookupError("No search workers registered")
        logger.debug("Unknown index %r routed to default index %r", name, default_name)
        return default_name, self._workers[default_name]

    def list_index_names(self) -> list[str]:
        return list(self._workers)

    def items(self) -> list[tuple[str, SearchWorker]]:
        return list(self._workers.items())

    def __iter__(self) -> Iterator[str]:
        return iter(self._workers)

    def __len__(self) -> int:
        return len(self._workers)

    def __contains__(self, name: object) -> bool:
        return name in self._workers
