# backend/app/routers/assets.py
"""
Asset endpoints.

Single-asset read/edit/delete, catalog search and chart data. Creating an
asset happens under its portfolio (POST /portfolios/{id}/assets).

Static routes (/assets/search) are declared before /assets/{asset_id} so
they are matched first.
"""

from fastapi import APIRouter, Depends, Query, Request, Response, status

from app.dependencies import get_portfolio_service, get_repository
from app.middleware.rate_limit import RATE_LIMIT_WRITE, limiter
from app.models import Asset, AssetType, PriceHistory
from app.repositories import PortfolioRepository
from app.schemas.assets import AssetResponse, AssetSearchResult, AssetUpdate
from app.schemas.prices import ChartResponse, PricePointResponse
from app.services.asset_search import CatalogEntry, search_assets
from app.services.constants import (
    DEFAULT_CHART_DAYS,
    DEFAULT_PRICE_HISTORY_LIMIT,
    MAX_CHART_DAYS,
)
from app.services.portfolio_service import ChartData, PortfolioService

router = APIRouter(
    prefix="/assets",
    tags=["Assets"],
)


@router.get(
    "/search",
    response_model=list[AssetSearchResult],
    summary="Search the asset catalog",
)
def search(
        query: str | None = Query(default=None, max_length=100, description="Symbol or name fragment"),
        type: AssetType | None = Query(default=None, description="Restrict to one asset type"),
) -> list[CatalogEntry]:
    return search_assets(query, type)


@router.get(
    "/{asset_id}",
    response_model=AssetResponse,
    summary="Get an asset",
)
def get_asset(
        asset_id: str,
        repository: PortfolioRepository = Depends(get_repository),
        service: PortfolioService = Depends(get_portfolio_service),
) -> Asset:
    return service.get_asset(repository, asset_id)


@router.patch(
    "/{asset_id}",
    response_model=AssetResponse,
    summary="Edit an asset",
)
@limiter.limit(RATE_LIMIT_WRITE)
def update_asset(
        request: Request,
        asset_id: str,
        payload: AssetUpdate,
        repository: PortfolioRepository = Depends(get_repository),
        service: PortfolioService = Depends(get_portfolio_service),
) -> Asset:
    """
    Change name, quantity, purchase price or metadata.

    Valuation is recomputed at the asset's current price and the portfolio
    totals are updated. No new price is fetched.
    """
    fields = payload.model_dump(exclude_unset=True)
    if "metadata" in fields:
        fields["extra_metadata"] = fields.pop("metadata")
    return service.update_asset(repository, asset_id, fields)


@router.delete(
    "/{asset_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete an asset",
)
@limiter.limit(RATE_LIMIT_WRITE)
def delete_asset(
        request: Request,
        asset_id: str,
        repository: PortfolioRepository = Depends(get_repository),
        service: PortfolioService = Depends(get_portfolio_service),
) -> Response:
    service.delete_asset(repository, asset_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get(
    "/{asset_id}/history",
    response_model=list[PricePointResponse],
    summary="Recorded prices of an asset",
)
def get_price_history(
        asset_id: str,
        limit: int = Query(default=DEFAULT_PRICE_HISTORY_LIMIT, ge=1, le=365),
        repository: PortfolioRepository = Depends(get_repository),
        service: PortfolioService = Depends(get_portfolio_service),
) -> list[PriceHistory]:
    """Newest first."""
    return service.get_price_history(repository, asset_id, limit)


@router.get(
    "/{symbol}/chart",
    response_model=ChartResponse,
    summary="Daily candles for a symbol",
)
def get_chart(
        symbol: str,
        days: int = Query(default=DEFAULT_CHART_DAYS, ge=1, le=MAX_CHART_DAYS),
        type: AssetType | None = Query(default=None, description="Asset type (defaults to catalog entry)"),
        repository: PortfolioRepository = Depends(get_repository),
        service: PortfolioService = Depends(get_portfolio_service),
) -> ChartData:
    """
    Live exchange candles for crypto when credentials are configured,
    otherwise the prices recorded by refreshes.
    """
    return service.get_chart(repository, symbol, days, type)
