# backend/app/utils/context.py
"""
Request-scoped context for log enrichment.

Holds the correlation ID and the owner reference of the request being served.
Backed by contextvars, so values follow the request through sync handlers
running in the threadpool as well as async code.

Usage:
    from app.utils.context import get_correlation_id, set_correlation_id

    set_correlation_id("abc-123")       # middleware
    correlation_id = get_correlation_id()
"""

from contextvars import ContextVar

_correlation_id_var: ContextVar[str | None] = ContextVar("correlation_id", default=None)
_owner_id_var: ContextVar[str | None] = ContextVar("owner_id", default=None)


def get_correlation_id() -> str | None:
    """Return the current request's correlation ID, or None outside a request."""
    return _correlation_id_var.get()


def set_correlation_id(correlation_id: str) -> None:
    _correlation_id_var.set(correlation_id)


def clear_correlation_id() -> None:
    _correlation_id_var.set(None)


def get_owner_id() -> str | None:
    """Return the owner reference attached to the current request."""
    return _owner_id_var.get()


def set_owner_id(owner_id: str) -> None:
    _owner_id_var.set(owner_id)


def clear_request_context() -> None:
    """Reset every request-scoped value. Called once the response is sent."""
    _correlation_id_var.set(None)
    _owner_id_var.set(None)
