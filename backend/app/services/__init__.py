# backend/app/services/__init__.py
"""
Service layer for business logic.

Services:
- Have NO knowledge of HTTP (no HTTPException, no status codes)
- Raise domain-specific exceptions
- Receive their repository and price provider through the constructor

Architecture:
    services/
    ├── __init__.py            # This file - exception exports
    ├── exceptions.py          # Domain exceptions
    ├── constants.py           # Fallback prices, catalog, limits
    ├── protocols.py           # Collaborator interfaces (Protocol classes)
    ├── circuit_breaker.py     # Circuit breaker for price sources
    ├── portfolio_service.py   # Orchestrator: CRUD, refresh, hooks
    ├── analytics_service.py   # Allocation and performers
    ├── asset_search.py        # Static catalog search
    ├── pricing/               # PriceProvider and its sources
    └── valuation/             # AssetValuationEngine, PortfolioAggregator

Service classes are imported from their modules directly
(e.g. `from app.services.portfolio_service import PortfolioService`) so
that app.repositories can depend on app.services.constants without an
import cycle.
"""

from app.services.exceptions import (
    AggregationInconsistencyError,
    AssetNotFoundError,
    MarketDataError,
    NotFoundError,
    PortfolioNotFoundError,
    PriceUnavailableError,
    ProviderUnavailableError,
    RateLimitError,
    ServiceError,
    StorageUnavailableError,
    SymbolNotFoundError,
    ValidationError,
)

__all__ = [
    "ServiceError",
    "ValidationError",
    "NotFoundError",
    "PortfolioNotFoundError",
    "AssetNotFoundError",
    "PriceUnavailableError",
    "MarketDataError",
    "ProviderUnavailableError",
    "SymbolNotFoundError",
    "RateLimitError",
    "AggregationInconsistencyError",
    "StorageUnavailableError",
]
