# backend/app/dependencies.py
"""
Dependency injection module for FastAPI services.

Singleton services are shared across all requests so that circuit breaker
state, HTTP connection pools and per-portfolio locks are process-wide. The
repository is built per request for the database backend (one Session per
request) and is a process-wide singleton for the memory backend.

The storage backend is decided here, once, from settings.storage_backend.

Usage in routers:
    from app.dependencies import get_portfolio_service, get_repository, get_owner_id

    @router.get("/")
    def list_portfolios(
        repository: PortfolioRepository = Depends(get_repository),
        service: PortfolioService = Depends(get_portfolio_service),
        owner_id: str = Depends(get_owner_id),
    ):
        ...
"""

import logging
from collections.abc import Generator
from contextlib import contextmanager
from functools import lru_cache
from typing import Annotated

from fastapi import Header

from app.config import settings
from app.database import get_db
from app.models import GUEST_OWNER_ID
from app.repositories import (
    InMemoryPortfolioRepository,
    PortfolioRepository,
    SqlAlchemyPortfolioRepository,
)
from app.services.analytics_service import AnalyticsService
from app.services.portfolio_service import PortfolioService
from app.services.pricing import (
    CoinbaseExchangeSource,
    CoinbasePublicSource,
    PriceProvider,
)

logger = logging.getLogger(__name__)


# =============================================================================
# SINGLETON SERVICE INSTANCES
# =============================================================================
# Order matters: define dependencies before dependents
# 1. get_price_provider (no deps)
# 2. get_portfolio_service (depends on provider)
# 3. get_analytics_service (no deps)


@lru_cache(maxsize=1)
def get_price_provider() -> PriceProvider:
    """
    Get the singleton PriceProvider.

    The Exchange source is always constructed; it reports itself unavailable
    and is skipped when COINBASE_API_KEY is not set.
    """
    exchange = CoinbaseExchangeSource(
        api_key=settings.coinbase_api_key,
        api_secret=settings.coinbase_api_secret,
        timeout=settings.price_fetch_timeout_seconds,
    )
    public = CoinbasePublicSource(timeout=settings.price_fetch_timeout_seconds)
    logger.debug("Initializing singleton PriceProvider")
    return PriceProvider(crypto_sources=[exchange, public], candle_source=exchange)


@lru_cache(maxsize=1)
def get_portfolio_service() -> PortfolioService:
    logger.debug("Initializing singleton PortfolioService")
    return PortfolioService(
        price_provider=get_price_provider(),
        refresh_delay=settings.price_refresh_delay_seconds,
        default_portfolio_name=settings.default_portfolio_name,
    )


@lru_cache(maxsize=1)
def get_analytics_service() -> AnalyticsService:
    logger.debug("Initializing singleton AnalyticsService")
    return AnalyticsService()


@lru_cache(maxsize=1)
def get_memory_repository() -> InMemoryPortfolioRepository:
    logger.info("Using in-memory storage backend")
    return InMemoryPortfolioRepository()


# =============================================================================
# REQUEST-SCOPED DEPENDENCIES
# =============================================================================


def get_repository() -> Generator[PortfolioRepository, None, None]:
    """
    Yield the repository for this request.

    database: a SqlAlchemyPortfolioRepository over a fresh Session
    memory: the shared InMemoryPortfolioRepository
    """
    if settings.uses_memory_storage:
        yield get_memory_repository()
        return

    with contextmanager(get_db)() as db:
        yield SqlAlchemyPortfolioRepository(db)


def get_owner_id(
    x_owner_id: Annotated[str | None, Header(max_length=255)] = None,
) -> str:
    """
    Owner reference set by the upstream identity provider.

    Anonymous requests act as the shared "guest" owner.
    """
    return (x_owner_id or "").strip() or GUEST_OWNER_ID


def clear_service_caches() -> None:
    """Drop all singletons. Used by tests to isolate state."""
    get_price_provider.cache_clear()
    get_portfolio_service.cache_clear()
    get_analytics_service.cache_clear()
    get_memory_repository.cache_clear()
