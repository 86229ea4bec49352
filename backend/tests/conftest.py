# backend/tests/conftest.py
"""
Pytest configuration and fixtures.

This module provides shared fixtures for all tests:
- Database session fixtures (in-memory SQLite)
- Repository fixtures for both storage backends
- A stub price provider
- Sample data factories
"""

import os

# Must be set before anything imports app.config
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")
os.environ.setdefault("PRICE_REFRESH_DELAY_SECONDS", "0")

from datetime import datetime, timezone
from decimal import Decimal
from typing import Iterator
from unittest.mock import Mock

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from app.models import Asset, AssetType, Base, Portfolio
from app.repositories import (
    InMemoryPortfolioRepository,
    PortfolioRepository,
    SqlAlchemyPortfolioRepository,
)
from app.services.pricing.base import Candle, PriceQuote
from app.services.portfolio_service import PortfolioService


# =============================================================================
# DATABASE FIXTURES
# =============================================================================

@pytest.fixture(scope="function")
def db_engine():
    """Create an in-memory SQLite database engine for testing."""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    Base.metadata.drop_all(engine)


@pytest.fixture(scope="function")
def db(db_engine) -> Iterator[Session]:
    """Create a database session for testing."""
    SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=db_engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.rollback()
        session.close()


# =============================================================================
# REPOSITORY FIXTURES
# =============================================================================

@pytest.fixture
def memory_repository() -> InMemoryPortfolioRepository:
    return InMemoryPortfolioRepository()


@pytest.fixture
def sql_repository(db: Session) -> SqlAlchemyPortfolioRepository:
    return SqlAlchemyPortfolioRepository(db)


@pytest.fixture(params=["memory", "sql"])
def repository(request) -> PortfolioRepository:
    """Run the test once against each storage backend."""
    return request.getfixturevalue(f"{request.param}_repository")


# =============================================================================
# STUB PRICE PROVIDER
# =============================================================================

class StubPriceProvider:
    """
    In-memory stand-in for PriceProvider.

    Unknown symbols (and symbols marked failing) return None, which is what
    the real provider does once its whole chain is exhausted.
    """

    def __init__(self):
        self._quotes: dict[str, PriceQuote] = {}
        self._candles: dict[str, list[Candle]] = {}
        self._failing: set[str] = set()
        self.price_calls: list[str] = []

    def set_quote(
            self,
            symbol: str,
            price: str,
            change: str = "0",
            change_percent: str = "0",
            source: str = "stub",
    ) -> None:
        self._quotes[symbol.upper()] = make_quote(price, change, change_percent, source)

    def set_candles(self, symbol: str, candles: list[Candle]) -> None:
        self._candles[symbol.upper()] = candles

    def set_failing(self, symbol: str) -> None:
        self._failing.add(symbol.upper())

    def fetch_price(self, symbol: str, asset_type: AssetType) -> PriceQuote | None:
        symbol = symbol.upper()
        self.price_calls.append(symbol)
        if symbol in self._failing:
            return None
        return self._quotes.get(symbol)

    def fetch_candles(self, symbol: str, asset_type: AssetType, days: int) -> list[Candle] | None:
        candles = self._candles.get(symbol.upper())
        return candles[-days:] if candles else None


@pytest.fixture
def price_provider() -> StubPriceProvider:
    """Create a fresh stub provider for each test."""
    return StubPriceProvider()


@pytest.fixture
def sleep() -> Mock:
    return Mock()


@pytest.fixture
def service(price_provider: StubPriceProvider, sleep: Mock) -> PortfolioService:
    """PortfolioService wired to the stub provider with a recorded sleep."""
    return PortfolioService(price_provider, refresh_delay=1.0, sleep=sleep)


# =============================================================================
# SAMPLE DATA FACTORIES
# =============================================================================

def make_quote(
        price: str,
        change: str = "0",
        change_percent: str = "0",
        source: str = "stub",
) -> PriceQuote:
    """Factory function for creating PriceQuote test data."""
    return PriceQuote(
        price=Decimal(price),
        change_24h=Decimal(change),
        change_percent_24h=Decimal(change_percent),
        source=source,
    )


def make_candle(day: int, close: str, volume: str = "10") -> Candle:
    """Factory function for a flat daily candle on 2024-01-<day>."""
    price = Decimal(close)
    return Candle(
        timestamp=datetime(2024, 1, day, tzinfo=timezone.utc),
        open=price,
        high=price,
        low=price,
        close=price,
        volume=Decimal(volume),
    )


def create_portfolio(
        repository: PortfolioRepository,
        name: str = "Test Portfolio",
        owner_id: str = "guest",
) -> Portfolio:
    """Factory function for creating Portfolio records through a repository."""
    return repository.create_portfolio({"name": name, "owner_id": owner_id})


def create_asset(
        repository: PortfolioRepository,
        portfolio: Portfolio,
        symbol: str = "BTC",
        asset_type: AssetType = AssetType.CRYPTO,
        quantity: str = "1",
        purchase_price: str = "100",
        current_price: str = "100",
        total_value: str | None = None,
        gain_loss: str = "0",
        daily_change: str = "0",
        daily_change_percent: str = "0",
) -> Asset:
    """
    Factory function for creating Asset records directly, bypassing the
    valuation engine. total_value defaults to quantity × current_price.
    """
    if total_value is None:
        total_value = str((Decimal(quantity) * Decimal(current_price)).quantize(Decimal("0.01")))
    return repository.create_asset({
        "portfolio_id": portfolio.id,
        "symbol": symbol,
        "name": symbol.title(),
        "asset_type": asset_type,
        "quantity": Decimal(quantity),
        "purchase_price": Decimal(purchase_price),
        "current_price": Decimal(current_price),
        "total_value": Decimal(total_value),
        "gain_loss": Decimal(gain_loss),
        "gain_loss_percent": Decimal("0"),
        "daily_change": Decimal(daily_change),
        "daily_change_percent": Decimal(daily_change_percent),
    })


@pytest.fixture
def sample_portfolio(memory_repository: InMemoryPortfolioRepository) -> Portfolio:
    """Provide a sample Portfolio in the memory repository."""
    return create_portfolio(memory_repository)
