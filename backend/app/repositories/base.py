# backend/app/repositories/base.py
"""
Persistence contract for portfolios, assets and price history.

Two implementations exist:
- SqlAlchemyPortfolioRepository (sql_repository.py): PostgreSQL / SQLite
- InMemoryPortfolioRepository (memory_repository.py): process-local dicts

The implementation is picked once at startup (STORAGE_BACKEND) and handed
to the services; nothing in the service layer knows which one it got.

Conventions shared by both implementations:
- Absence is a value, not an exception: get_* returns None, delete_*
  returns False, list operations return [].
- Storage failures raise StorageUnavailableError.
- Portfolios are listed newest first, assets by total_value descending,
  price history newest first.
- Deleting a portfolio deletes its assets. Deleting an asset keeps its
  price history (asset_id is cleared).
"""

from abc import ABC, abstractmethod
from collections.abc import Iterable, Mapping
from typing import Any

from app.models import Asset, Portfolio, PriceHistory
from app.services.constants import DEFAULT_PRICE_HISTORY_LIMIT


PORTFOLIO_FIELDS = frozenset({
    "name", "description", "owner_id",
    "total_value", "total_gain_loss", "total_gain_loss_percent",
    "daily_change", "daily_change_percent",
})

ASSET_FIELDS = frozenset({
    "portfolio_id", "symbol", "name", "asset_type",
    "quantity", "purchase_price", "current_price",
    "total_value", "gain_loss", "gain_loss_percent",
    "daily_change", "daily_change_percent", "extra_metadata",
})

PRICE_HISTORY_FIELDS = frozenset({
    "asset_id", "symbol", "timestamp", "open", "high", "low", "close", "volume",
})


def check_fields(fields: Mapping[str, Any], allowed: Iterable[str], entity: str) -> None:
    """
    Raises:
        ValueError: If fields names a column the caller may not write
    """
    unknown = set(fields) - set(allowed)
    if unknown:
        raise ValueError(f"Unknown {entity} field(s): {', '.join(sorted(unknown))}")


class PortfolioRepository(ABC):
    """Storage operations used by the service layer."""

    # =========================================================================
    # PORTFOLIOS
    # =========================================================================

    @abstractmethod
    def list_portfolios(self, owner_id: str | None = None) -> list[Portfolio]:
        """List portfolios newest first, optionally restricted to one owner."""

    @abstractmethod
    def get_portfolio(self, portfolio_id: str) -> Portfolio | None:
        ...

    @abstractmethod
    def create_portfolio(self, fields: Mapping[str, Any]) -> Portfolio:
        """Create a portfolio with zeroed totals and a fresh id."""

    @abstractmethod
    def update_portfolio(self, portfolio_id: str, fields: Mapping[str, Any]) -> Portfolio | None:
        """Apply fields and bump updated_at. None if the portfolio is missing."""

    @abstractmethod
    def delete_portfolio(self, portfolio_id: str) -> bool:
        """Delete a portfolio and all of its assets."""

    # =========================================================================
    # ASSETS
    # =========================================================================

    @abstractmethod
    def get_assets_by_portfolio(self, portfolio_id: str) -> list[Asset]:
        ...

    @abstractmethod
    def get_asset(self, asset_id: str) -> Asset | None:
        ...

    @abstractmethod
    def create_asset(self, fields: Mapping[str, Any]) -> Asset:
        ...

    @abstractmethod
    def update_asset(self, asset_id: str, fields: Mapping[str, Any]) -> Asset | None:
        ...

    @abstractmethod
    def delete_asset(self, asset_id: str) -> bool:
        ...

    # =========================================================================
    # PRICE HISTORY
    # =========================================================================

    @abstractmethod
    def get_price_history(
            self,
            asset_id: str,
            limit: int = DEFAULT_PRICE_HISTORY_LIMIT,
    ) -> list[PriceHistory]:
        ...

    @abstractmethod
    def get_price_history_by_symbol(
            self,
            symbol: str,
            limit: int = DEFAULT_PRICE_HISTORY_LIMIT,
    ) -> list[PriceHistory]:
        ...

    @abstractmethod
    def create_price_history(self, fields: Mapping[str, Any]) -> PriceHistory:
        ...

    @abstractmethod
    def get_latest_prices(self, symbols: Iterable[str]) -> list[PriceHistory]:
        """Latest point per symbol. Symbols without history are skipped."""

    def ping(self) -> None:
        """Raise StorageUnavailableError if the store cannot be reached."""
