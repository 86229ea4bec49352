# backend/app/routers/__init__.py
"""
API routers for the Portfolio Tracker.

Each router handles a specific domain:
- portfolios: Portfolio CRUD, assets in a portfolio, refresh, analytics
- assets: Single-asset operations, catalog search, charts
- prices: Latest recorded prices
"""

from app.routers.assets import router as assets_router
from app.routers.portfolios import router as portfolios_router
from app.routers.prices import router as prices_router

__all__ = [
    "assets_router",
    "portfolios_router",
    "prices_router",
]
