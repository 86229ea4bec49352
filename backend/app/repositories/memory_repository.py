# backend/app/repositories/memory_repository.py
"""
In-memory implementation of PortfolioRepository.

Records are plain (transient) model instances kept in dicts. Column defaults
normally applied by the database on flush are filled in here instead. A
single lock serializes all access, so one instance can be shared across
request threads. Callers always receive copies, never the stored records.

Data lives as long as the process; this backend is meant for development,
demos and tests.
"""

import logging
import threading
import uuid
from collections.abc import Iterable, Mapping
from datetime import datetime, timezone
from typing import Any, TypeVar

from sqlalchemy import inspect

from app.models import Asset, GUEST_OWNER_ID, Portfolio, PriceHistory
from app.repositories.base import (
    ASSET_FIELDS,
    PORTFOLIO_FIELDS,
    PRICE_HISTORY_FIELDS,
    PortfolioRepository,
    check_fields,
)
from app.services.constants import DEFAULT_PRICE_HISTORY_LIMIT
from app.utils.decimals import ZERO

logger = logging.getLogger(__name__)

_ZERO_TOTALS = {
    "total_value": ZERO,
    "total_gain_loss": ZERO,
    "total_gain_loss_percent": ZERO,
    "daily_change": ZERO,
    "daily_change_percent": ZERO,
}

_ZERO_VALUATION = {
    "current_price": ZERO,
    "total_value": ZERO,
    "gain_loss": ZERO,
    "gain_loss_percent": ZERO,
    "daily_change": ZERO,
    "daily_change_percent": ZERO,
}


def _now() -> datetime:
    return datetime.now(timezone.utc)


_Model = TypeVar("_Model", Portfolio, Asset, PriceHistory)


def _copy(record: _Model) -> _Model:
    """Detached copy of a stored record; JSON values are copied one level deep."""
    values = {}
    for attr in inspect(type(record)).column_attrs:
        value = getattr(record, attr.key)
        values[attr.key] = dict(value) if isinstance(value, dict) else value
    return type(record)(**values)


class InMemoryPortfolioRepository(PortfolioRepository):
    """Thread-safe dict-backed repository."""

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._portfolios: dict[str, Portfolio] = {}
        self._assets: dict[str, Asset] = {}
        self._history: list[PriceHistory] = []

    # =========================================================================
    # PORTFOLIOS
    # =========================================================================

    def list_portfolios(self, owner_id: str | None = None) -> list[Portfolio]:
        with self._lock:
            portfolios = [
                p for p in reversed(list(self._portfolios.values()))
                if owner_id is None or p.owner_id == owner_id
            ]
            portfolios = [_copy(p) for p in portfolios]
        return sorted(portfolios, key=lambda p: p.created_at, reverse=True)

    def get_portfolio(self, portfolio_id: str) -> Portfolio | None:
        with self._lock:
            portfolio = self._portfolios.get(portfolio_id)
            return _copy(portfolio) if portfolio is not None else None

    def create_portfolio(self, fields: Mapping[str, Any]) -> Portfolio:
        check_fields(fields, PORTFOLIO_FIELDS, "portfolio")
        now = _now()
        portfolio = Portfolio(**{
            "description": None,
            "owner_id": GUEST_OWNER_ID,
            **_ZERO_TOTALS,
            **fields,
            "id": str(uuid.uuid4()),
            "created_at": now,
            "updated_at": now,
        })
        with self._lock:
            self._portfolios[portfolio.id] = portfolio
        return _copy(portfolio)

    def update_portfolio(self, portfolio_id: str, fields: Mapping[str, Any]) -> Portfolio | None:
        check_fields(fields, PORTFOLIO_FIELDS, "portfolio")
        with self._lock:
            portfolio = self._portfolios.get(portfolio_id)
            if portfolio is None:
                return None
            for key, value in fields.items():
                setattr(portfolio, key, value)
            portfolio.updated_at = _now()
            return _copy(portfolio)

    def delete_portfolio(self, portfolio_id: str) -> bool:
        with self._lock:
            if self._portfolios.pop(portfolio_id, None) is None:
                return False
            owned = [a.id for a in self._assets.values() if a.portfolio_id == portfolio_id]
            for asset_id in owned:
                self._remove_asset(asset_id)
            logger.debug(f"Deleted portfolio {portfolio_id} with {len(owned)} assets")
            return True

    # =========================================================================
    # ASSETS
    # =========================================================================

    def get_assets_by_portfolio(self, portfolio_id: str) -> list[Asset]:
        with self._lock:
            assets = [_copy(a) for a in self._assets.values() if a.portfolio_id == portfolio_id]
        return sorted(assets, key=lambda a: a.total_value, reverse=True)

    def get_asset(self, asset_id: str) -> Asset | None:
        with self._lock:
            asset = self._assets.get(asset_id)
            return _copy(asset) if asset is not None else None

    def create_asset(self, fields: Mapping[str, Any]) -> Asset:
        check_fields(fields, ASSET_FIELDS, "asset")
        now = _now()
        asset = Asset(**{
            "extra_metadata": None,
            **_ZERO_VALUATION,
            **fields,
            "id": str(uuid.uuid4()),
            "created_at": now,
            "updated_at": now,
        })
        with self._lock:
            self._assets[asset.id] = asset
        return _copy(asset)

    def update_asset(self, asset_id: str, fields: Mapping[str, Any]) -> Asset | None:
        check_fields(fields, ASSET_FIELDS, "asset")
        with self._lock:
            asset = self._assets.get(asset_id)
            if asset is None:
                return None
            for key, value in fields.items():
                setattr(asset, key, value)
            asset.updated_at = _now()
            return _copy(asset)

    def delete_asset(self, asset_id: str) -> bool:
        with self._lock:
            if asset_id not in self._assets:
                return False
            self._remove_asset(asset_id)
            return True

    def _remove_asset(self, asset_id: str) -> None:
        del self._assets[asset_id]
        for point in self._history:
            if point.asset_id == asset_id:
                point.asset_id = None

    # =========================================================================
    # PRICE HISTORY
    # =========================================================================

    def get_price_history(
            self,
            asset_id: str,
            limit: int = DEFAULT_PRICE_HISTORY_LIMIT,
    ) -> list[PriceHistory]:
        with self._lock:
            points = [_copy(p) for p in self._history if p.asset_id == asset_id]
        return self._newest_first(points)[:limit]

    def get_price_history_by_symbol(
            self,
            symbol: str,
            limit: int = DEFAULT_PRICE_HISTORY_LIMIT,
    ) -> list[PriceHistory]:
        symbol = symbol.upper()
        with self._lock:
            points = [_copy(p) for p in self._history if p.symbol == symbol]
        return self._newest_first(points)[:limit]

    def create_price_history(self, fields: Mapping[str, Any]) -> PriceHistory:
        check_fields(fields, PRICE_HISTORY_FIELDS, "price history")
        point = PriceHistory(**{
            "asset_id": None,
            "timestamp": _now(),
            "volume": ZERO,
            **fields,
            "id": str(uuid.uuid4()),
        })
        with self._lock:
            self._history.append(point)
        return _copy(point)

    def get_latest_prices(self, symbols: Iterable[str]) -> list[PriceHistory]:
        latest = []
        for symbol in dict.fromkeys(s.upper() for s in symbols):
            points = self.get_price_history_by_symbol(symbol, limit=1)
            if points:
                latest.append(points[0])
        return latest

    @staticmethod
    def _newest_first(points: list[PriceHistory]) -> list[PriceHistory]:
        # Later appends win ties on equal timestamps
        return sorted(reversed(points), key=lambda p: p.timestamp, reverse=True)
