# backend/app/schemas/__init__.py
"""
Pydantic schemas for API request/response validation.

This package contains all Pydantic schemas organized by domain:
- analytics: Portfolio analytics and bulk refresh results
- assets: Asset CRUD and catalog search
- errors: Error response formats
- portfolios: Portfolio CRUD
- prices: Price history, latest prices, chart candles
- validators: Symbol validation and fixed-scale decimal output types

Usage:
    from app.schemas import AssetCreate, AssetResponse
    from app.schemas import PortfolioCreate, PortfolioResponse
"""

from app.schemas.analytics import (
    AllocationEntry,
    AnalyticsResponse,
    PerformerResponse,
    RefreshResponse,
    TotalsResponse,
)
from app.schemas.assets import (
    AssetCreate,
    AssetResponse,
    AssetSearchResult,
    AssetUpdate,
)
from app.schemas.errors import ErrorDetail
from app.schemas.portfolios import (
    PortfolioCreate,
    PortfolioResponse,
    PortfolioUpdate,
)
from app.schemas.prices import (
    CandleResponse,
    ChartResponse,
    PricePointResponse,
)

__all__ = [
    "AllocationEntry",
    "AnalyticsResponse",
    "PerformerResponse",
    "RefreshResponse",
    "TotalsResponse",
    "AssetCreate",
    "AssetResponse",
    "AssetSearchResult",
    "AssetUpdate",
    "ErrorDetail",
    "PortfolioCreate",
    "PortfolioResponse",
    "PortfolioUpdate",
    "CandleResponse",
    "ChartResponse",
    "PricePointResponse",
]
