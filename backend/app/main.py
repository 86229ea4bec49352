# backend/app/main.py
"""
FastAPI application entry point.

This file:
- Configures application-wide logging
- Creates the FastAPI application and ensures tables exist
- Registers global exception handlers
- Registers all routers
- Defines global endpoints (health checks)
"""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from starlette.exceptions import HTTPException

from app.config import settings
from app.database import check_database_health, init_db
from app.dependencies import get_price_provider
from app.middleware import (
    CorrelationIdMiddleware,
    SlowAPIMiddleware,
    limiter,
    rate_limit_exceeded_handler,
)
from app.routers import assets_router, portfolios_router, prices_router
from app.schemas.errors import ErrorDetail
from app.services.exceptions import (
    AggregationInconsistencyError,
    NotFoundError,
    ServiceError,
    StorageUnavailableError,
    ValidationError,
)
from app.utils import setup_logging

logger = logging.getLogger(__name__)

# =============================================================================
# LOGGING SETUP (must be before app creation)
# =============================================================================

setup_logging()


# =============================================================================
# APPLICATION SETUP
# =============================================================================

@asynccontextmanager
async def lifespan(_: FastAPI) -> AsyncIterator[None]:
    if settings.uses_memory_storage:
        logger.warning("Memory storage backend: data is lost on restart")
    else:
        init_db()
    yield


app = FastAPI(
    title=settings.app_name,
    description="Multi-asset portfolio tracking and valuation API",
    version="0.1.0",
    lifespan=lifespan,
)


# =============================================================================
# CORS MIDDLEWARE
# =============================================================================

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=settings.cors_allow_credentials,
    allow_methods=settings.cors_allow_methods,
    allow_headers=settings.cors_allow_headers,
)


# =============================================================================
# MIDDLEWARE (order matters: last added = first executed)
# =============================================================================

app.state.limiter = limiter
app.add_middleware(SlowAPIMiddleware)
app.add_middleware(CorrelationIdMiddleware)


# =============================================================================
# GLOBAL EXCEPTION HANDLERS
# =============================================================================
# Service exceptions propagate out of the routers and are converted here.
# Starlette resolves handlers along the exception's MRO, so the subclass
# handlers win over the ServiceError catch-all.
# =============================================================================

app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)


@app.exception_handler(ValidationError)
async def validation_error_handler(request: Request, exc: ValidationError) -> JSONResponse:
    """Handle business validation errors (400)."""
    logger.warning(f"Validation error: {exc}")
    return JSONResponse(
        status_code=400,
        content=ErrorDetail(
            error="ValidationError",
            message=str(exc),
            details={"field": exc.field} if exc.field else None,
        ).model_dump(),
    )


@app.exception_handler(NotFoundError)
async def not_found_handler(request: Request, exc: NotFoundError) -> JSONResponse:
    """Handle portfolio/asset not found errors (404)."""
    logger.warning(f"{exc.resource_type} not found: {exc.resource_id}")
    return JSONResponse(
        status_code=404,
        content=ErrorDetail(
            error=type(exc).__name__,
            message=str(exc),
            details={"resource_type": exc.resource_type, "resource_id": exc.resource_id},
        ).model_dump(),
    )


@app.exception_handler(StorageUnavailableError)
async def storage_unavailable_handler(request: Request, exc: StorageUnavailableError) -> JSONResponse:
    """Handle persistence failures (503)."""
    logger.error(f"Storage unavailable: {exc}")
    return JSONResponse(
        status_code=503,
        content=ErrorDetail(
            error="StorageUnavailableError",
            message="Storage is temporarily unavailable",
            details={"operation": exc.operation},
        ).model_dump(),
    )


@app.exception_handler(AggregationInconsistencyError)
async def aggregation_inconsistency_handler(
    request: Request, exc: AggregationInconsistencyError
) -> JSONResponse:
    """Handle stored totals that disagree with the assets (500)."""
    logger.error(f"Aggregation inconsistency: {exc}")
    return JSONResponse(
        status_code=500,
        content=ErrorDetail(
            error="AggregationInconsistencyError",
            message=str(exc),
            details={"portfolio_id": exc.portfolio_id},
        ).model_dump(),
    )


@app.exception_handler(ServiceError)
async def service_error_handler(request: Request, exc: ServiceError) -> JSONResponse:
    """Handle generic service errors (500)."""
    logger.error(f"Service error: {exc}")
    return JSONResponse(
        status_code=500,
        content=ErrorDetail(
            error="ServiceError",
            message=str(exc),
            details=None,
        ).model_dump(),
    )


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """
    Handle all HTTPExceptions with consistent error format.

    Converts FastAPI's default {"detail": "..."} format to ErrorDetail.
    """
    error_types = {
        400: "BadRequestError",
        404: "NotFoundError",
        405: "MethodNotAllowedError",
        422: "ValidationError",
        429: "RateLimitError",
        500: "InternalServerError",
        503: "ServiceUnavailableError",
    }
    error_type = error_types.get(exc.status_code, "HTTPError")

    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorDetail(
            error=error_type,
            message=str(exc.detail) if exc.detail else "An error occurred",
            details=None,
        ).model_dump(),
        headers=exc.headers,
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Flatten Pydantic request validation errors into ErrorDetail (422)."""
    errors = []
    for error in exc.errors():
        errors.append({
            "field": ".".join(str(loc) for loc in error["loc"]),
            "message": error["msg"],
            "type": error["type"],
        })

    return JSONResponse(
        status_code=422,
        content=ErrorDetail(
            error="ValidationError",
            message="Request validation failed",
            details=errors,
        ).model_dump(),
    )


# =============================================================================
# ROUTER REGISTRATION
# =============================================================================

app.include_router(portfolios_router)  # /portfolios/*
app.include_router(assets_router)  # /assets/*
app.include_router(prices_router)  # /prices/*


# =============================================================================
# GLOBAL ENDPOINTS
# =============================================================================

@app.get("/", tags=["Health"])
def root():
    """API root - returns basic application info."""
    return {
        "message": f"Welcome to {settings.app_name}!",
        "docs": "/docs",
        "redoc": "/redoc",
    }


@app.get("/health", tags=["Health"])
def health_check():
    """
    Health of storage and price sources.

    **Response Status Codes:**
    - 200: Storage healthy; price sources may be degraded
    - 503: Storage unhealthy, do not route traffic here

    An open circuit breaker on a price source degrades the status but never
    fails the check, since prices fall back to the static table.
    """
    checks = {"storage": {**check_database_health(), "critical": True}}
    critical_healthy = checks["storage"]["status"] == "healthy"
    overall_status = "healthy" if critical_healthy else "unhealthy"

    provider = get_price_provider()
    for name, breaker in provider.breakers.items():
        stats = breaker.stats
        checks[name] = {
            "status": "unhealthy" if breaker.is_open else "healthy",
            "critical": False,
            "circuit_breaker_state": breaker.state.value,
            "total_calls": stats.total_calls,
            "failed_calls": stats.failed_calls,
            "rejected_calls": stats.rejected_calls,
        }
        if breaker.is_open and overall_status == "healthy":
            overall_status = "degraded"

    response_data = {"status": overall_status, "checks": checks}

    if not critical_healthy:
        return JSONResponse(status_code=503, content=response_data)

    return response_data


@app.get("/health/live", tags=["Health"])
def liveness_check():
    """
    Liveness probe. Succeeds whenever the process is serving requests.

    Does NOT check dependencies; use /health/ready for that.
    """
    return {"status": "alive"}


@app.get("/health/ready", tags=["Health"])
def readiness_check():
    """Readiness probe. 503 while storage is unreachable."""
    health = check_database_health()
    if health["status"] != "healthy":
        logger.error(f"Readiness check failed: {health.get('error')}")
        return JSONResponse(
            status_code=503,
            content={"status": "not_ready", "error": "Storage unavailable"},
        )
    return {"status": "ready"}
