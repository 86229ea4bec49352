# backend/app/services/valuation/aggregator.py
"""
Portfolio-level aggregation.

PortfolioAggregator folds a portfolio's assets into its stored totals. The
fold is computed completely in memory and written with a single repository
update, so a partially summed total is never persisted.

Formulas:
    total_value              = Σ asset.total_value
    total_gain_loss          = Σ asset.gain_loss
    total_cost               = Σ asset.quantity × asset.purchase_price
    total_gain_loss_percent  = total_gain_loss / total_cost × 100  (0 if cost is 0)
    daily_change             = Σ asset.daily_change
    daily_change_percent     = daily_change / (total_value − daily_change) × 100
                               (0 if the denominator is not positive)

daily_change_percent treats (total_value − daily_change) as yesterday's
value. That is exact only when each asset's daily_change is its own value
move, which is not the case for quote-level changes passed through per unit.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from decimal import Decimal
from typing import TYPE_CHECKING

from app.services.exceptions import AggregationInconsistencyError
from app.services.valuation.types import PortfolioTotals
from app.utils.decimals import ZERO, percent_of, to_currency, to_percent

if TYPE_CHECKING:
    from app.models import Asset, Portfolio
    from app.repositories.base import PortfolioRepository

logger = logging.getLogger(__name__)


class PortfolioAggregator:
    """
    Folds assets into PortfolioTotals and persists them.

    Example:
        aggregator = PortfolioAggregator()
        totals = aggregator.recompute(repository, portfolio_id)
    """

    def aggregate(self, assets: Iterable[Asset]) -> PortfolioTotals:
        """Pure fold over assets. No I/O."""
        total_value = ZERO
        total_gain_loss = ZERO
        total_cost = ZERO
        daily_change = ZERO
        count = 0

        for asset in assets:
            total_value += asset.total_value
            total_gain_loss += asset.gain_loss
            total_cost += asset.quantity * asset.purchase_price
            daily_change += asset.daily_change
            count += 1

        total_cost = to_currency(total_cost)
        return PortfolioTotals(
            total_value=to_currency(total_value),
            total_gain_loss=to_currency(total_gain_loss),
            total_gain_loss_percent=percent_of(total_gain_loss, total_cost),
            daily_change=to_currency(daily_change),
            daily_change_percent=percent_of(daily_change, total_value - daily_change),
            total_cost=total_cost,
            asset_count=count,
        )

    def recompute(self, repository: PortfolioRepository, portfolio_id: str) -> PortfolioTotals | None:
        """
        Re-aggregate a portfolio and write its totals.

        Returns:
            The new totals, or None if the portfolio does not exist (no-op)
        """
        if repository.get_portfolio(portfolio_id) is None:
            logger.debug(f"Skipping aggregation, portfolio {portfolio_id} not found")
            return None

        totals = self.aggregate(repository.get_assets_by_portfolio(portfolio_id))
        repository.update_portfolio(portfolio_id, totals.as_fields())

        logger.debug(
            f"Aggregated portfolio {portfolio_id}: assets={totals.asset_count}, "
            f"total_value={totals.total_value}, gain_loss={totals.total_gain_loss}"
        )
        return totals

    def verify(self, portfolio: Portfolio, assets: Iterable[Asset]) -> PortfolioTotals:
        """
        Check stored portfolio totals against a fresh fold.

        Raises:
            AggregationInconsistencyError: If any stored total differs
        """
        expected = self.aggregate(assets)
        mismatches: dict[str, tuple[Decimal, Decimal]] = {}

        for name, value in expected.as_fields().items():
            stored = getattr(portfolio, name)
            stored = to_percent(stored) if name.endswith("_percent") else to_currency(stored)
            if stored != value:
                mismatches[name] = (stored, value)

        if mismatches:
            raise AggregationInconsistencyError(portfolio.id, mismatches)
        return expected
