# backend/app/services/valuation/__init__.py
"""
Valuation package.

Usage:
    from app.services.valuation import AssetValuationEngine, PortfolioAggregator

    valuation = AssetValuationEngine().revalue(asset, quote)
    totals = PortfolioAggregator().recompute(repository, portfolio_id)

Architecture:
    valuation/
    ├── __init__.py     # This file - package exports
    ├── types.py        # Result dataclasses
    ├── engine.py       # AssetValuationEngine (per asset, pure)
    └── aggregator.py   # PortfolioAggregator (per portfolio)

Data Flow:
    Asset + PriceQuote → AssetValuationEngine → AssetValuation → repository
    Assets → PortfolioAggregator → PortfolioTotals → repository
"""

from app.services.valuation.aggregator import PortfolioAggregator
from app.services.valuation.engine import AssetValuationEngine
from app.services.valuation.types import (
    AllocationSlice,
    AssetValuation,
    Performer,
    PortfolioAnalytics,
    PortfolioTotals,
    RefreshResult,
)

__all__ = [
    "AssetValuationEngine",
    "PortfolioAggregator",
    "AssetValuation",
    "PortfolioTotals",
    "AllocationSlice",
    "Performer",
    "PortfolioAnalytics",
    "RefreshResult",
]
