# backend/app/routers/portfolios.py
"""
Portfolio endpoints.

CRUD for portfolios, the assets inside them, the bulk price refresh and
analytics. Portfolios are scoped to the owner from the X-Owner-Id header
when listing; an owner without portfolios gets a default one provisioned.

Service exceptions (PortfolioNotFoundError, ValidationError, ...) propagate
to the global handlers in main.py.
"""

from fastapi import APIRouter, Depends, Request, Response, status

from app.dependencies import (
    get_analytics_service,
    get_owner_id,
    get_portfolio_service,
    get_repository,
)
from app.middleware.rate_limit import RATE_LIMIT_REFRESH, RATE_LIMIT_WRITE, limiter
from app.models import Asset, Portfolio
from app.repositories import PortfolioRepository
from app.schemas.analytics import AnalyticsResponse, RefreshResponse
from app.schemas.assets import AssetCreate, AssetResponse
from app.schemas.portfolios import PortfolioCreate, PortfolioResponse, PortfolioUpdate
from app.services.analytics_service import AnalyticsService
from app.services.portfolio_service import AssetCreateData, PortfolioService

router = APIRouter(
    prefix="/portfolios",
    tags=["Portfolios"],
)


# =============================================================================
# PORTFOLIO CRUD
# =============================================================================

@router.get(
    "",
    response_model=list[PortfolioResponse],
    summary="List the owner's portfolios",
)
def list_portfolios(
        repository: PortfolioRepository = Depends(get_repository),
        service: PortfolioService = Depends(get_portfolio_service),
        owner_id: str = Depends(get_owner_id),
) -> list[Portfolio]:
    """
    List portfolios newest first.

    The first call for an owner with no portfolios creates "My Portfolio".
    """
    return service.list_portfolios(repository, owner_id)


@router.post(
    "",
    response_model=PortfolioResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a new portfolio",
)
@limiter.limit(RATE_LIMIT_WRITE)
def create_portfolio(
        request: Request,
        payload: PortfolioCreate,
        repository: PortfolioRepository = Depends(get_repository),
        service: PortfolioService = Depends(get_portfolio_service),
        owner_id: str = Depends(get_owner_id),
) -> Portfolio:
    return service.create_portfolio(repository, owner_id, payload.name, payload.description)


@router.get(
    "/{portfolio_id}",
    response_model=PortfolioResponse,
    summary="Get a portfolio",
)
def get_portfolio(
        portfolio_id: str,
        repository: PortfolioRepository = Depends(get_repository),
        service: PortfolioService = Depends(get_portfolio_service),
) -> Portfolio:
    return service.get_portfolio(repository, portfolio_id)


@router.patch(
    "/{portfolio_id}",
    response_model=PortfolioResponse,
    summary="Rename or describe a portfolio",
)
def update_portfolio(
        portfolio_id: str,
        payload: PortfolioUpdate,
        repository: PortfolioRepository = Depends(get_repository),
        service: PortfolioService = Depends(get_portfolio_service),
) -> Portfolio:
    """Only fields present in the body are changed."""
    return service.update_portfolio(repository, portfolio_id, payload.model_dump(exclude_unset=True))


@router.delete(
    "/{portfolio_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete a portfolio and its assets",
)
def delete_portfolio(
        portfolio_id: str,
        repository: PortfolioRepository = Depends(get_repository),
        service: PortfolioService = Depends(get_portfolio_service),
) -> Response:
    service.delete_portfolio(repository, portfolio_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# =============================================================================
# ASSETS IN A PORTFOLIO
# =============================================================================

@router.get(
    "/{portfolio_id}/assets",
    response_model=list[AssetResponse],
    summary="List a portfolio's assets",
)
def list_assets(
        portfolio_id: str,
        repository: PortfolioRepository = Depends(get_repository),
        service: PortfolioService = Depends(get_portfolio_service),
) -> list[Asset]:
    """Assets ordered by total value, largest first."""
    return service.list_assets(repository, portfolio_id)


@router.post(
    "/{portfolio_id}/assets",
    response_model=AssetResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Add an asset to a portfolio",
)
@limiter.limit(RATE_LIMIT_WRITE)
def create_asset(
        request: Request,
        portfolio_id: str,
        payload: AssetCreate,
        repository: PortfolioRepository = Depends(get_repository),
        service: PortfolioService = Depends(get_portfolio_service),
) -> Asset:
    """
    Add an asset, price it immediately and update the portfolio totals.

    - **symbol**: e.g. BTC, AAPL (uppercased)
    - **type**: crypto, stock, commodity, forex or etf
    - **quantity**: must be positive
    - **purchase_price**: unit cost, zero allowed
    """
    data = AssetCreateData(
        symbol=payload.symbol,
        name=payload.name,
        asset_type=payload.type,
        quantity=payload.quantity,
        purchase_price=payload.purchase_price,
        metadata=payload.metadata,
    )
    return service.create_asset(repository, portfolio_id, data)


# =============================================================================
# REFRESH & ANALYTICS
# =============================================================================

@router.post(
    "/{portfolio_id}/update-prices",
    response_model=RefreshResponse,
    summary="Refresh prices of every asset in a portfolio",
)
@limiter.limit(RATE_LIMIT_REFRESH)
def update_prices(
        request: Request,
        portfolio_id: str,
        repository: PortfolioRepository = Depends(get_repository),
        service: PortfolioService = Depends(get_portfolio_service),
) -> RefreshResponse:
    """
    Re-price assets one by one with a pause between lookups.

    Assets whose price cannot be found keep their previous valuation and are
    listed under `unchanged`. Assets priced from the static fallback table
    are listed under `fallback_symbols`.
    """
    result = service.refresh_prices(repository, portfolio_id)
    return RefreshResponse.from_result(result)


@router.get(
    "/{portfolio_id}/analytics",
    response_model=AnalyticsResponse,
    summary="Allocation and performers for a portfolio",
)
def get_analytics(
        portfolio_id: str,
        repository: PortfolioRepository = Depends(get_repository),
        analytics: AnalyticsService = Depends(get_analytics_service),
) -> AnalyticsResponse:
    return AnalyticsResponse.from_analytics(portfolio_id, analytics.get_analytics(repository, portfolio_id))
