# backend/app/repositories/sql_repository.py
"""
SQLAlchemy implementation of PortfolioRepository.

One repository wraps one Session (one request). Every write commits
immediately; on any SQLAlchemyError the session is rolled back and the
error resurfaces as StorageUnavailableError.
"""

import logging
from collections.abc import Iterable, Iterator, Mapping
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import select, text, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.models import Asset, GUEST_OWNER_ID, Portfolio, PriceHistory
from app.repositories.base import (
    ASSET_FIELDS,
    PORTFOLIO_FIELDS,
    PRICE_HISTORY_FIELDS,
    PortfolioRepository,
    check_fields,
)
from app.services.constants import DEFAULT_PRICE_HISTORY_LIMIT
from app.services.exceptions import StorageUnavailableError

logger = logging.getLogger(__name__)


class SqlAlchemyPortfolioRepository(PortfolioRepository):
    """
    Repository backed by a SQLAlchemy Session.

    Example:
        repository = SqlAlchemyPortfolioRepository(db)
        portfolio = repository.create_portfolio({"name": "Crypto"})
    """

    def __init__(self, db: Session) -> None:
        self._db = db

    @contextmanager
    def _operation(self, name: str) -> Iterator[None]:
        try:
            yield
        except SQLAlchemyError as e:
            self._db.rollback()
            logger.error(f"Storage operation {name} failed: {e}")
            raise StorageUnavailableError(name, str(e)) from e

    # =========================================================================
    # PORTFOLIOS
    # =========================================================================

    def list_portfolios(self, owner_id: str | None = None) -> list[Portfolio]:
        with self._operation("list_portfolios"):
            stmt = select(Portfolio).order_by(Portfolio.created_at.desc())
            if owner_id is not None:
                stmt = stmt.where(Portfolio.owner_id == owner_id)
            return list(self._db.scalars(stmt))

    def get_portfolio(self, portfolio_id: str) -> Portfolio | None:
        with self._operation("get_portfolio"):
            return self._db.get(Portfolio, portfolio_id)

    def create_portfolio(self, fields: Mapping[str, Any]) -> Portfolio:
        check_fields(fields, PORTFOLIO_FIELDS, "portfolio")
        with self._operation("create_portfolio"):
            portfolio = Portfolio(**{"owner_id": GUEST_OWNER_ID, **fields})
            self._db.add(portfolio)
            self._db.commit()
            self._db.refresh(portfolio)
            return portfolio

    def update_portfolio(self, portfolio_id: str, fields: Mapping[str, Any]) -> Portfolio | None:
        check_fields(fields, PORTFOLIO_FIELDS, "portfolio")
        with self._operation("update_portfolio"):
            portfolio = self._db.get(Portfolio, portfolio_id)
            if portfolio is None:
                return None
            for key, value in fields.items():
                setattr(portfolio, key, value)
            portfolio.updated_at = datetime.now(timezone.utc)
            self._db.commit()
            self._db.refresh(portfolio)
            return portfolio

    def delete_portfolio(self, portfolio_id: str) -> bool:
        with self._operation("delete_portfolio"):
            portfolio = self._db.get(Portfolio, portfolio_id)
            if portfolio is None:
                return False
            asset_ids = [asset.id for asset in portfolio.assets]
            self._detach_price_history(asset_ids)
            # relationship cascade removes the assets
            self._db.delete(portfolio)
            self._db.commit()
            return True

    # =========================================================================
    # ASSETS
    # =========================================================================

    def get_assets_by_portfolio(self, portfolio_id: str) -> list[Asset]:
        with self._operation("get_assets_by_portfolio"):
            stmt = (
                select(Asset)
                .where(Asset.portfolio_id == portfolio_id)
                .order_by(Asset.total_value.desc(), Asset.created_at)
            )
            return list(self._db.scalars(stmt))

    def get_asset(self, asset_id: str) -> Asset | None:
        with self._operation("get_asset"):
            return self._db.get(Asset, asset_id)

    def create_asset(self, fields: Mapping[str, Any]) -> Asset:
        check_fields(fields, ASSET_FIELDS, "asset")
        with self._operation("create_asset"):
            asset = Asset(**fields)
            self._db.add(asset)
            self._db.commit()
            self._db.refresh(asset)
            return asset

    def update_asset(self, asset_id: str, fields: Mapping[str, Any]) -> Asset | None:
        check_fields(fields, ASSET_FIELDS, "asset")
        with self._operation("update_asset"):
            asset = self._db.get(Asset, asset_id)
            if asset is None:
                return None
            for key, value in fields.items():
                setattr(asset, key, value)
            asset.updated_at = datetime.now(timezone.utc)
            self._db.commit()
            self._db.refresh(asset)
            return asset

    def delete_asset(self, asset_id: str) -> bool:
        with self._operation("delete_asset"):
            asset = self._db.get(Asset, asset_id)
            if asset is None:
                return False
            self._detach_price_history([asset_id])
            self._db.delete(asset)
            self._db.commit()
            return True

    def _detach_price_history(self, asset_ids: list[str]) -> None:
        # SQLite does not enforce ON DELETE SET NULL without PRAGMA foreign_keys
        if asset_ids:
            self._db.execute(
                update(PriceHistory)
                .where(PriceHistory.asset_id.in_(asset_ids))
                .values(asset_id=None)
            )

    # =========================================================================
    # PRICE HISTORY
    # =========================================================================

    def get_price_history(
            self,
            asset_id: str,
            limit: int = DEFAULT_PRICE_HISTORY_LIMIT,
    ) -> list[PriceHistory]:
        with self._operation("get_price_history"):
            stmt = (
                select(PriceHistory)
                .where(PriceHistory.asset_id == asset_id)
                .order_by(PriceHistory.timestamp.desc())
                .limit(limit)
            )
            return list(self._db.scalars(stmt))

    def get_price_history_by_symbol(
            self,
            symbol: str,
            limit: int = DEFAULT_PRICE_HISTORY_LIMIT,
    ) -> list[PriceHistory]:
        with self._operation("get_price_history_by_symbol"):
            stmt = (
                select(PriceHistory)
                .where(PriceHistory.symbol == symbol.upper())
                .order_by(PriceHistory.timestamp.desc())
                .limit(limit)
            )
            return list(self._db.scalars(stmt))

    def create_price_history(self, fields: Mapping[str, Any]) -> PriceHistory:
        check_fields(fields, PRICE_HISTORY_FIELDS, "price history")
        with self._operation("create_price_history"):
            point = PriceHistory(**fields)
            self._db.add(point)
            self._db.commit()
            self._db.refresh(point)
            return point

    def get_latest_prices(self, symbols: Iterable[str]) -> list[PriceHistory]:
        latest: list[PriceHistory] = []
        with self._operation("get_latest_prices"):
            for symbol in dict.fromkeys(s.upper() for s in symbols):
                point = self._db.scalars(
                    select(PriceHistory)
                    .where(PriceHistory.symbol == symbol)
                    .order_by(PriceHistory.timestamp.desc())
                    .limit(1)
                ).first()
                if point is not None:
                    latest.append(point)
        return latest

    def ping(self) -> None:
        with self._operation("ping"):
            self._db.execute(text("SELECT 1"))
