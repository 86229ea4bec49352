# backend/app/services/analytics_service.py
"""
Portfolio analytics.

Computes, from a portfolio's current asset rows:
- Totals (a fresh fold, identical to the stored aggregates)
- Allocation by asset type: value, share of total value, asset count
- Best and worst performer by daily change percent

Read-only; nothing is written back.

Usage:
    service = AnalyticsService()
    analytics = service.get_analytics(repository, portfolio_id)
"""

import logging
from decimal import Decimal

from app.repositories.base import PortfolioRepository
from app.services.exceptions import PortfolioNotFoundError
from app.services.valuation import (
    AllocationSlice,
    Performer,
    PortfolioAggregator,
    PortfolioAnalytics,
)
from app.utils.decimals import ZERO, percent_of, to_currency

logger = logging.getLogger(__name__)


class AnalyticsService:
    def __init__(self, aggregator: PortfolioAggregator | None = None) -> None:
        self._aggregator = aggregator or PortfolioAggregator()

    def get_analytics(self, repository: PortfolioRepository, portfolio_id: str) -> PortfolioAnalytics:
        """
        Raises:
            PortfolioNotFoundError: If the portfolio does not exist
        """
        portfolio = repository.get_portfolio(portfolio_id)
        if portfolio is None:
            raise PortfolioNotFoundError(portfolio_id)

        assets = repository.get_assets_by_portfolio(portfolio_id)
        totals = self._aggregator.aggregate(assets)

        values: dict[str, Decimal] = {}
        counts: dict[str, int] = {}
        for asset in assets:
            key = asset.asset_type.value
            values[key] = values.get(key, ZERO) + asset.total_value
            counts[key] = counts.get(key, 0) + 1

        allocation = {
            key: AllocationSlice(
                value=to_currency(value),
                percentage=percent_of(value, totals.total_value),
                count=counts[key],
            )
            for key, value in values.items()
        }

        best = worst = None
        if assets:
            # Ties: best is the first tied asset in value order, worst the last
            best_asset = max(assets, key=lambda a: a.daily_change_percent)
            worst_asset = min(reversed(assets), key=lambda a: a.daily_change_percent)
            best = Performer(best_asset.symbol, best_asset.name, best_asset.daily_change_percent)
            worst = Performer(worst_asset.symbol, worst_asset.name, worst_asset.daily_change_percent)

        logger.debug(f"Analytics for portfolio {portfolio_id}: {len(assets)} assets, {len(allocation)} types")
        return PortfolioAnalytics(
            totals=totals,
            allocation=allocation,
            best_performer=best,
            worst_performer=worst,
            last_updated=portfolio.updated_at,
        )
