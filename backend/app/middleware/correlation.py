# backend/app/middleware/correlation.py
"""
Request context middleware for request tracing.

For each request this middleware:
1. Takes the correlation ID from X-Correlation-ID or X-Request-ID, or
   generates a UUID
2. Records the correlation ID and the X-Owner-Id header in the request
   context so every log line carries them
3. Echoes the correlation ID on the response

Usage:
    app.add_middleware(CorrelationIdMiddleware)

Client Usage:
    curl -H "X-Correlation-ID: my-trace-123" http://localhost:8000/health
    # X-Correlation-ID: my-trace-123 comes back on the response
"""

import uuid
from typing import Awaitable, Callable

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from app.models import GUEST_OWNER_ID
from app.utils.context import clear_request_context, set_correlation_id, set_owner_id

CORRELATION_ID_HEADER = "X-Correlation-ID"
REQUEST_ID_HEADER = "X-Request-ID"
OWNER_ID_HEADER = "X-Owner-Id"


class CorrelationIdMiddleware(BaseHTTPMiddleware):
    """Attach correlation ID and owner reference to the request context."""

    async def dispatch(
        self,
        request: Request,
        call_next: Callable[[Request], Awaitable[Response]],
    ) -> Response:
        correlation_id = (
            request.headers.get(CORRELATION_ID_HEADER)
            or request.headers.get(REQUEST_ID_HEADER)
            or str(uuid.uuid4())
        )
        set_correlation_id(correlation_id)
        set_owner_id(request.headers.get(OWNER_ID_HEADER) or GUEST_OWNER_ID)

        try:
            response = await call_next(request)
            response.headers[CORRELATION_ID_HEADER] = correlation_id
            return response
        finally:
            clear_request_context()
