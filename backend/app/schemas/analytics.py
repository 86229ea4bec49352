# backend/app/schemas/analytics.py
"""
Pydantic schemas for portfolio analytics and bulk refresh responses.
"""

from datetime import datetime

from pydantic import BaseModel, Field

from app.schemas.validators import CurrencyAmount, Percentage
from app.services.valuation import PortfolioAnalytics, PortfolioTotals, RefreshResult


class TotalsResponse(BaseModel):
    total_value: CurrencyAmount
    total_gain_loss: CurrencyAmount
    total_gain_loss_percent: Percentage
    daily_change: CurrencyAmount
    daily_change_percent: Percentage
    total_cost: CurrencyAmount
    total_assets: int

    @classmethod
    def from_totals(cls, totals: PortfolioTotals) -> "TotalsResponse":
        return cls(
            total_value=totals.total_value,
            total_gain_loss=totals.total_gain_loss,
            total_gain_loss_percent=totals.total_gain_loss_percent,
            daily_change=totals.daily_change,
            daily_change_percent=totals.daily_change_percent,
            total_cost=totals.total_cost,
            total_assets=totals.asset_count,
        )


class AllocationEntry(BaseModel):
    value: CurrencyAmount
    percentage: Percentage
    count: int


class PerformerResponse(BaseModel):
    symbol: str
    name: str
    change: Percentage = Field(..., description="Daily change percent")


class AnalyticsResponse(BaseModel):
    """
    Portfolio analytics.

    allocation is keyed by asset type ("crypto", "stock", ...).
    """

    portfolio_id: str
    totals: TotalsResponse
    allocation: dict[str, AllocationEntry]
    best_performer: PerformerResponse | None
    worst_performer: PerformerResponse | None
    last_updated: datetime | None

    @classmethod
    def from_analytics(cls, portfolio_id: str, analytics: PortfolioAnalytics) -> "AnalyticsResponse":
        def performer(p):
            if p is None:
                return None
            return PerformerResponse(symbol=p.symbol, name=p.name, change=p.change_percent)

        return cls(
            portfolio_id=portfolio_id,
            totals=TotalsResponse.from_totals(analytics.totals),
            allocation={
                key: AllocationEntry(value=s.value, percentage=s.percentage, count=s.count)
                for key, s in analytics.allocation.items()
            },
            best_performer=performer(analytics.best_performer),
            worst_performer=performer(analytics.worst_performer),
            last_updated=analytics.last_updated,
        )


class RefreshResponse(BaseModel):
    """
    Outcome of POST /portfolios/{id}/update-prices.

    fallback_symbols lists assets priced from the static table; their
    values may be stale.
    """

    portfolio_id: str
    updated: list[str]
    unchanged: list[str]
    fallback_symbols: list[str]
    totals: TotalsResponse | None

    @classmethod
    def from_result(cls, result: RefreshResult) -> "RefreshResponse":
        return cls(
            portfolio_id=result.portfolio_id,
            updated=result.updated,
            unchanged=result.unchanged,
            fallback_symbols=result.fallback_symbols,
            totals=TotalsResponse.from_totals(result.totals) if result.totals else None,
        )
