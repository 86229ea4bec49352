# backend/app/middleware/rate_limit.py
"""
Per-IP API rate limiting with slowapi.

Protects the service and, indirectly, the Coinbase quota consumed by bulk
price refreshes. Limits live in app/services/constants.py. Set
RATE_LIMIT_ENABLED=false to switch limiting off (tests do).

Storage: in-memory, i.e. per process.

Usage:
    from app.middleware.rate_limit import limiter, RATE_LIMIT_REFRESH

    @router.post("/{portfolio_id}/update-prices")
    @limiter.limit(RATE_LIMIT_REFRESH)
    def update_prices(request: Request, ...):
        ...
"""

import logging

from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from slowapi.util import get_remote_address
from starlette.requests import Request
from starlette.responses import JSONResponse

from app.config import settings
from app.services.constants import (
    RATE_LIMIT_DEFAULT,
    RATE_LIMIT_REFRESH,
    RATE_LIMIT_WRITE,
)

logger = logging.getLogger(__name__)

DEFAULT_RETRY_AFTER_SECONDS = 60

limiter = Limiter(
    key_func=get_remote_address,
    default_limits=[RATE_LIMIT_DEFAULT],
    enabled=settings.rate_limit_enabled,
)


async def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    """Return 429 in the standard ErrorDetail shape with a Retry-After header."""
    limit_info = str(exc.detail) if exc.detail else "Rate limit exceeded"
    logger.warning(f"Rate limit exceeded for {get_remote_address(request)}: {limit_info}")

    return JSONResponse(
        status_code=429,
        content={
            "error": "RateLimitError",
            "message": f"Too many requests. {limit_info}",
            "details": {"retry_after": DEFAULT_RETRY_AFTER_SECONDS},
        },
        headers={"Retry-After": str(DEFAULT_RETRY_AFTER_SECONDS)},
    )


__all__ = [
    "limiter",
    "rate_limit_exceeded_handler",
    "SlowAPIMiddleware",
    "RATE_LIMIT_DEFAULT",
    "RATE_LIMIT_WRITE",
    "RATE_LIMIT_REFRESH",
]
