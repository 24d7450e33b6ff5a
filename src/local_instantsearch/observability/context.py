"""Context propagation for log correlation across async boundaries."""

from __future__ import annotations

from contextvars import ContextVar
from uuid import uuid4


# Each asyncio task receives a copy, so per-query values never leak between siblings
search_context: ContextVar[dict | None] = ContextVar("search_context", default=None)


def generate_request_id() -> str:
    """Generate a 16-char hex request ID."""
    return uuid4().hex[:16]


def get_search_context() -> dict:
    """Get the current search context (request_id, index)."""
    return dict(search_context.get() or {})


def set_search_context(**values: object) -> None:
    """Merge values into the search context of the current async context."""
    ctx = search_context.get() or {}
    search_context.set({**ctx, **values})


def start_request() -> str:
    """Begin a new batch: assign a fresh request_id and drop any stale index binding."""
    request_id = generate_request_id()
    search_context.set({"request_id": request_id})
    return request_id
