# tests/services/test_aggregator.py
"""
Tests for PortfolioAggregator.

aggregate() is exercised with plain objects; recompute() and verify() run
against both repository backends.
"""

from decimal import Decimal
from types import SimpleNamespace

import pytest

from app.services.exceptions import AggregationInconsistencyError
from app.services.valuation import PortfolioAggregator
from tests.conftest import create_asset, create_portfolio


def holding(total_value, gain_loss, quantity, purchase_price, daily_change="0"):
    return SimpleNamespace(
        total_value=Decimal(total_value),
        gain_loss=Decimal(gain_loss),
        quantity=Decimal(quantity),
        purchase_price=Decimal(purchase_price),
        daily_change=Decimal(daily_change),
    )


@pytest.fixture
def aggregator() -> PortfolioAggregator:
    return PortfolioAggregator()


class TestAggregate:
    """Tests for the pure fold."""

    def test_two_asset_scenario(self, aggregator):
        totals = aggregator.aggregate([
            holding("100", "10", "1", "90"),
            holding("200", "-20", "2", "110"),
        ])

        assert totals.total_value == Decimal("300.00")
        assert totals.total_gain_loss == Decimal("-10.00")
        assert totals.total_cost == Decimal("310.00")
        assert totals.total_gain_loss_percent == Decimal("-3.2258")
        assert totals.asset_count == 2

    def test_empty_portfolio_is_all_zero(self, aggregator):
        totals = aggregator.aggregate([])

        assert totals.total_value == Decimal("0")
        assert totals.total_gain_loss_percent == Decimal("0")
        assert totals.daily_change_percent == Decimal("0")
        assert totals.asset_count == 0

    def test_zero_cost_gives_zero_percent(self, aggregator):
        totals = aggregator.aggregate([holding("50", "50", "10", "0")])

        assert totals.total_gain_loss == Decimal("50.00")
        assert totals.total_gain_loss_percent == Decimal("0")

    def test_daily_change_percent_uses_previous_value(self, aggregator):
        """daily % = change / (value − change) × 100."""
        totals = aggregator.aggregate([
            holding("110", "0", "1", "110", daily_change="10"),
        ])

        assert totals.daily_change == Decimal("10.00")
        assert totals.daily_change_percent == Decimal("10.0000")

    def test_daily_change_percent_zero_when_denominator_not_positive(self, aggregator):
        totals = aggregator.aggregate([
            holding("10", "0", "1", "10", daily_change="10"),
        ])

        assert totals.daily_change_percent == Decimal("0")

    def test_as_fields_excludes_cost_and_count(self, aggregator):
        fields = aggregator.aggregate([holding("1", "0", "1", "1")]).as_fields()

        assert "total_cost" not in fields
        assert "asset_count" not in fields


class TestRecompute:
    """Tests for recompute against a repository."""

    def test_writes_sum_of_assets(self, aggregator, repository):
        portfolio = create_portfolio(repository)
        create_asset(repository, portfolio, "A", quantity="1", purchase_price="90",
                     current_price="100", gain_loss="10")
        create_asset(repository, portfolio, "B", quantity="2", purchase_price="110",
                     current_price="100", gain_loss="-20")

        totals = aggregator.recompute(repository, portfolio.id)

        stored = repository.get_portfolio(portfolio.id)
        assert totals.total_value == Decimal("300.00")
        assert stored.total_value == Decimal("300.00")
        assert stored.total_gain_loss == Decimal("-10.00")
        assert stored.total_gain_loss_percent == Decimal("-3.2258")

    def test_is_idempotent(self, aggregator, repository):
        portfolio = create_portfolio(repository)
        create_asset(repository, portfolio, "A", quantity="3", current_price="12.34", daily_change="1.5")

        first = aggregator.recompute(repository, portfolio.id)
        second = aggregator.recompute(repository, portfolio.id)

        assert first.as_fields() == second.as_fields()

    def test_missing_portfolio_is_noop(self, aggregator, repository):
        assert aggregator.recompute(repository, "does-not-exist") is None


class TestVerify:
    """Tests for verify."""

    def test_passes_after_recompute(self, aggregator, repository):
        portfolio = create_portfolio(repository)
        create_asset(repository, portfolio, "A", quantity="2", current_price="50")
        aggregator.recompute(repository, portfolio.id)

        portfolio = repository.get_portfolio(portfolio.id)
        totals = aggregator.verify(portfolio, repository.get_assets_by_portfolio(portfolio.id))

        assert totals.total_value == Decimal("100.00")

    def test_raises_on_stale_totals(self, aggregator, repository):
        portfolio = create_portfolio(repository)
        create_asset(repository, portfolio, "A", quantity="2", current_price="50")

        portfolio = repository.get_portfolio(portfolio.id)
        with pytest.raises(AggregationInconsistencyError) as exc_info:
            aggregator.verify(portfolio, repository.get_assets_by_portfolio(portfolio.id))

        assert "total_value" in exc_info.value.mismatches
        assert exc_info.value.mismatches["total_value"] == (Decimal("0.00"), Decimal("100.00"))
