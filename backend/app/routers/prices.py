# backend/app/routers/prices.py
"""Latest recorded prices."""

from fastapi import APIRouter, Depends, HTTPException, Query, status

from app.dependencies import get_portfolio_service, get_repository
from app.models import PriceHistory
from app.repositories import PortfolioRepository
from app.schemas.prices import PricePointResponse
from app.schemas.validators import parse_symbol_list
from app.services.portfolio_service import PortfolioService

router = APIRouter(
    prefix="/prices",
    tags=["Prices"],
)


@router.get(
    "/latest",
    response_model=list[PricePointResponse],
    summary="Latest recorded price per symbol",
)
def get_latest_prices(
        symbols: str = Query(..., min_length=1, max_length=500, examples=["BTC,ETH"]),
        repository: PortfolioRepository = Depends(get_repository),
        service: PortfolioService = Depends(get_portfolio_service),
) -> list[PriceHistory]:
    """Symbols without any recorded price are left out of the result."""
    try:
        symbol_list = parse_symbol_list(symbols)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e))
    return service.get_latest_prices(repository, symbol_list)
