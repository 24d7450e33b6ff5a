"""Error taxonomy for the search adapter.

Malformed facet filters have no error type: they fail closed by matching
nothing instead of raising.
"""


class SearchAdapterError(Exception):
    """Base error for the search adapter."""


class UnsupportedRequestShape(SearchAdapterError, ValueError):
    """Raised when a request is not the batched array form with ``params`` on every item."""


class DataUnavailable(SearchAdapterError, RuntimeError):
    """Raised when neither the primary resource nor the fallback yields a usable payload."""


class IndexNotFound(SearchAdapterError, LookupError):
    """Raised for unknown index names when strict index routing is enabled."""

    def __init__(self, index_name: str, known: list[str]) -> None:
        self.index_name = index_name
        self.known = known
        super().__init__(f"Unknown index '{index_name}'. Available: {known}")
