# tests/services/test_analytics_service.py
"""
Tests for AnalyticsService.
"""

from decimal import Decimal

import pytest

from app.models import AssetType
from app.services.analytics_service import AnalyticsService
from app.services.exceptions import PortfolioNotFoundError
from tests.conftest import create_asset, create_portfolio


@pytest.fixture
def analytics() -> AnalyticsService:
    return AnalyticsService()


class TestAllocation:
    """Tests for allocation by asset type."""

    def test_groups_by_type(self, analytics, repository):
        portfolio = create_portfolio(repository)
        create_asset(repository, portfolio, "BTC", AssetType.CRYPTO, quantity="1", current_price="600")
        create_asset(repository, portfolio, "ETH", AssetType.CRYPTO, quantity="1", current_price="150")
        create_asset(repository, portfolio, "AAPL", AssetType.STOCK, quantity="1", current_price="250")

        result = analytics.get_analytics(repository, portfolio.id)

        crypto = result.allocation["crypto"]
        stock = result.allocation["stock"]
        assert crypto.value == Decimal("750.00")
        assert crypto.percentage == Decimal("75.0000")
        assert crypto.count == 2
        assert stock.value == Decimal("250.00")
        assert stock.percentage == Decimal("25.0000")
        assert set(result.allocation) == {"crypto", "stock"}
        assert result.totals.total_value == Decimal("1000.00")
        assert result.totals.asset_count == 3

    def test_zero_total_gives_zero_percentages(self, analytics, repository):
        portfolio = create_portfolio(repository)
        create_asset(repository, portfolio, "NEW", quantity="1", current_price="0")

        result = analytics.get_analytics(repository, portfolio.id)

        assert result.allocation["crypto"].percentage == Decimal("0")


class TestPerformers:
    """Tests for best and worst performer."""

    def test_best_and_worst_by_daily_percent(self, analytics, repository):
        portfolio = create_portfolio(repository)
        create_asset(repository, portfolio, "BTC", daily_change_percent="2.34")
        create_asset(repository, portfolio, "ETH", daily_change_percent="-1.87")
        create_asset(repository, portfolio, "NVDA", AssetType.STOCK, daily_change_percent="3.42")

        result = analytics.get_analytics(repository, portfolio.id)

        assert result.best_performer.symbol == "NVDA"
        assert result.best_performer.change_percent == Decimal("3.42")
        assert result.worst_performer.symbol == "ETH"

    def test_ties_resolved_by_value_order(self, analytics, repository):
        portfolio = create_portfolio(repository)
        create_asset(repository, portfolio, "BTC", current_price="300", daily_change_percent="1")
        create_asset(repository, portfolio, "ETH", current_price="200", daily_change_percent="1")
        create_asset(repository, portfolio, "SOL", current_price="100", daily_change_percent="1")

        result = analytics.get_analytics(repository, portfolio.id)

        assert result.best_performer.symbol == "BTC"
        assert result.worst_performer.symbol == "SOL"

    def test_single_asset_is_both(self, analytics, repository):
        portfolio = create_portfolio(repository)
        create_asset(repository, portfolio, "BTC", daily_change_percent="1")

        result = analytics.get_analytics(repository, portfolio.id)

        assert result.best_performer == result.worst_performer

    def test_empty_portfolio(self, analytics, repository):
        portfolio = create_portfolio(repository)

        result = analytics.get_analytics(repository, portfolio.id)

        assert result.allocation == {}
        assert result.best_performer is None
        assert result.worst_performer is None
        assert result.last_updated is not None


def test_missing_portfolio(analytics, repository):
    with pytest.raises(PortfolioNotFoundError):
        analytics.get_analytics(repository, "missing")
