# backend/app/services/portfolio_service.py
"""
Portfolio orchestration service.

This service owns the control flow around the valuation core:
- Portfolio CRUD, including auto-provisioning a default portfolio
- Asset create / update / delete, each followed by re-aggregation
- Bulk price refresh (sequential, throttled, per-asset soft failure)
- Price history and chart data

Every asset mutation path ends in `on_asset_changed`, the single place that
re-aggregates a portfolio, so stored totals never outlive the request that
made them stale.

Concurrency:
    Mutations of one portfolio are serialized with an in-process lock keyed
    by portfolio id. Writers in other processes still follow the store's
    last-write-wins semantics.

Usage:
    from app.services.portfolio_service import PortfolioService

    service = PortfolioService(price_provider)
    asset = service.create_asset(repository, portfolio_id, AssetCreateData(...))
    result = service.refresh_prices(repository, portfolio_id)
"""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import Any

from app.models import Asset, AssetType, GUEST_OWNER_ID, Portfolio, PriceHistory
from app.repositories.base import PortfolioRepository
from app.services.asset_search import catalog_entry
from app.services.constants import (
    DEFAULT_CHART_DAYS,
    MAX_CHART_DAYS,
    MAX_QUANTITY,
    MAX_UNIT_PRICE,
)
from app.services.exceptions import (
    AssetNotFoundError,
    PortfolioNotFoundError,
    PriceUnavailableError,
    ValidationError,
)
from app.services.pricing.base import Candle, PriceQuote
from app.services.protocols import PriceLookup, Sleeper
from app.services.valuation import (
    AssetValuationEngine,
    PortfolioAggregator,
    PortfolioTotals,
    RefreshResult,
)
from app.utils.decimals import ZERO, to_price, to_quantity

logger = logging.getLogger(__name__)


# =============================================================================
# INPUT & RESULT TYPES
# =============================================================================

@dataclass(frozen=True)
class AssetCreateData:
    """Validated user input for a new asset."""

    symbol: str
    name: str
    asset_type: AssetType
    quantity: Decimal
    purchase_price: Decimal
    metadata: dict[str, Any] | None = None


@dataclass
class ChartData:
    """
    Daily candles for a symbol, oldest first.

    Attributes:
        source: "provider" for live candles, "history" for stored points
    """

    symbol: str
    source: str
    candles: list[Candle] = field(default_factory=list)


# Asset fields a user may edit after creation
EDITABLE_ASSET_FIELDS = frozenset({"name", "quantity", "purchase_price", "extra_metadata"})

EDITABLE_PORTFOLIO_FIELDS = frozenset({"name", "description"})


# =============================================================================
# SERVICE
# =============================================================================

class PortfolioService:
    """
    Orchestrates repository, PriceProvider, AssetValuationEngine and
    PortfolioAggregator.

    Args:
        price_provider: Quote lookup (PriceProvider in production)
        refresh_delay: Seconds to pause between lookups in a bulk refresh
        sleep: Pause function, replaceable in tests
        default_portfolio_name: Name used when auto-provisioning
    """

    def __init__(
            self,
            price_provider: PriceLookup,
            refresh_delay: float = 1.0,
            sleep: Sleeper = time.sleep,
            default_portfolio_name: str = "My Portfolio",
            engine: AssetValuationEngine | None = None,
            aggregator: PortfolioAggregator | None = None,
    ) -> None:
        self._prices = price_provider
        self._refresh_delay = refresh_delay
        self._sleep = sleep
        self._default_portfolio_name = default_portfolio_name
        self._engine = engine or AssetValuationEngine()
        self._aggregator = aggregator or PortfolioAggregator()
        self._locks: dict[str, threading.RLock] = {}
        self._locks_guard = threading.Lock()
        logger.info(f"PortfolioService initialized (refresh_delay={refresh_delay}s)")

    @contextmanager
    def _portfolio_lock(self, portfolio_id: str) -> Iterator[None]:
        with self._locks_guard:
            lock = self._locks.setdefault(portfolio_id, threading.RLock())
        with lock:
            yield

    # =========================================================================
    # PORTFOLIOS
    # =========================================================================

    def list_portfolios(self, repository: PortfolioRepository, owner_id: str) -> list[Portfolio]:
        """List an owner's portfolios, provisioning a default one on first visit."""
        portfolios = repository.list_portfolios(owner_id)
        if not portfolios:
            portfolios = [self.ensure_default_portfolio(repository, owner_id)]
        return portfolios

    def ensure_default_portfolio(self, repository: PortfolioRepository, owner_id: str) -> Portfolio:
        existing = repository.list_portfolios(owner_id)
        if existing:
            return existing[0]

        portfolio = repository.create_portfolio({
            "name": self._default_portfolio_name,
            "description": None,
            "owner_id": owner_id or GUEST_OWNER_ID,
        })
        logger.info(f"Provisioned default portfolio {portfolio.id} for owner {owner_id}")
        return portfolio

    def get_portfolio(self, repository: PortfolioRepository, portfolio_id: str) -> Portfolio:
        """
        Raises:
            PortfolioNotFoundError: If the portfolio does not exist
        """
        portfolio = repository.get_portfolio(portfolio_id)
        if portfolio is None:
            raise PortfolioNotFoundError(portfolio_id)
        return portfolio

    def create_portfolio(
            self,
            repository: PortfolioRepository,
            owner_id: str,
            name: str,
            description: str | None = None,
    ) -> Portfolio:
        name = name.strip()
        if not name:
            raise ValidationError("Portfolio name cannot be empty", field="name")

        portfolio = repository.create_portfolio({
            "name": name,
            "description": description,
            "owner_id": owner_id or GUEST_OWNER_ID,
        })
        logger.info(f"Created portfolio {portfolio.id} '{name}'")
        return portfolio

    def update_portfolio(
            self,
            repository: PortfolioRepository,
            portfolio_id: str,
            fields: Mapping[str, Any],
    ) -> Portfolio:
        """Rename or re-describe a portfolio. Totals are not editable."""
        illegal = set(fields) - EDITABLE_PORTFOLIO_FIELDS
        if illegal:
            raise ValidationError(f"Cannot edit portfolio field(s): {', '.join(sorted(illegal))}")
        if "name" in fields and not (fields["name"] or "").strip():
            raise ValidationError("Portfolio name cannot be empty", field="name")

        portfolio = repository.update_portfolio(portfolio_id, fields)
        if portfolio is None:
            raise PortfolioNotFoundError(portfolio_id)
        return portfolio

    def delete_portfolio(self, repository: PortfolioRepository, portfolio_id: str) -> None:
        with self._portfolio_lock(portfolio_id):
            if not repository.delete_portfolio(portfolio_id):
                raise PortfolioNotFoundError(portfolio_id)
        with self._locks_guard:
            self._locks.pop(portfolio_id, None)
        logger.info(f"Deleted portfolio {portfolio_id}")

    # =========================================================================
    # ASSETS
    # =========================================================================

    def list_assets(self, repository: PortfolioRepository, portfolio_id: str) -> list[Asset]:
        self.get_portfolio(repository, portfolio_id)
        return repository.get_assets_by_portfolio(portfolio_id)

    def get_asset(self, repository: PortfolioRepository, asset_id: str) -> Asset:
        asset = repository.get_asset(asset_id)
        if asset is None:
            raise AssetNotFoundError(asset_id)
        return asset

    def create_asset(
            self,
            repository: PortfolioRepository,
            portfolio_id: str,
            data: AssetCreateData,
    ) -> Asset:
        """
        Add an asset, price it, and re-aggregate the portfolio.

        If no price is available the asset is stored with zeroed valuation
        fields; the next successful refresh fills them in.

        Raises:
            PortfolioNotFoundError: If the portfolio does not exist
            ValidationError: If quantity <= 0 or purchase_price < 0
        """
        if data.quantity is None or data.purchase_price is None:
            raise ValidationError("Quantity and purchase price are required")
        quantity = self._normalize_quantity(data.quantity)
        purchase_price = self._normalize_purchase_price(data.purchase_price)
        symbol = data.symbol.strip().upper()

        with self._portfolio_lock(portfolio_id):
            self.get_portfolio(repository, portfolio_id)

            try:
                quote: PriceQuote | None = self._require_price(symbol, data.asset_type)
            except PriceUnavailableError as e:
                logger.warning(f"{e}; storing {symbol} unvalued")
                quote = None

            if quote is None:
                valuation_fields: dict[str, Decimal] = {
                    "current_price": ZERO,
                    "total_value": ZERO,
                    "gain_loss": ZERO,
                    "gain_loss_percent": ZERO,
                    "daily_change": ZERO,
                    "daily_change_percent": ZERO,
                }
            else:
                valuation_fields = self._engine.calculate(
                    quantity=quantity,
                    purchase_price=purchase_price,
                    price=quote.price,
                    change_24h=quote.change_24h,
                    change_percent_24h=quote.change_percent_24h,
                ).as_fields()

            asset = repository.create_asset({
                "portfolio_id": portfolio_id,
                "symbol": symbol,
                "name": data.name.strip(),
                "asset_type": data.asset_type,
                "quantity": quantity,
                "purchase_price": purchase_price,
                "extra_metadata": self._metadata_for(symbol, data.metadata),
                **valuation_fields,
            })
            if quote is not None:
                self._record_price(repository, asset, quote)

            self.on_asset_changed(repository, portfolio_id)

        logger.info(
            f"Created asset {asset.id} {symbol} in portfolio {portfolio_id}: "
            f"quantity={quantity}, total_value={asset.total_value}"
        )
        return asset

    def update_asset(
            self,
            repository: PortfolioRepository,
            asset_id: str,
            fields: Mapping[str, Any],
    ) -> Asset:
        """
        Edit name, quantity, purchase price or metadata and revalue at the
        asset's current price.

        Raises:
            AssetNotFoundError: If the asset does not exist
            ValidationError: On non-editable fields or invalid amounts
        """
        illegal = set(fields) - EDITABLE_ASSET_FIELDS
        if illegal:
            raise ValidationError(f"Cannot edit asset field(s): {', '.join(sorted(illegal))}")

        asset = self.get_asset(repository, asset_id)
        portfolio_id = asset.portfolio_id

        with self._portfolio_lock(portfolio_id):
            changes = dict(fields)
            for key in ("name", "quantity", "purchase_price"):
                if key in changes and changes[key] is None:
                    raise ValidationError(f"{key} cannot be null", field=key)
            if "quantity" in changes:
                changes["quantity"] = self._normalize_quantity(changes["quantity"])
            if "purchase_price" in changes:
                changes["purchase_price"] = self._normalize_purchase_price(changes["purchase_price"])

            # Amounts and the valuation derived from them land in one write
            if "quantity" in changes or "purchase_price" in changes:
                valuation = self._engine.revalue_at_current_price(
                    asset,
                    quantity=changes.get("quantity"),
                    purchase_price=changes.get("purchase_price"),
                )
                changes.update(valuation.as_fields())

            asset = repository.update_asset(asset_id, changes)
            if asset is None:
                raise AssetNotFoundError(asset_id)

            self.on_asset_changed(repository, portfolio_id)

        logger.info(f"Updated asset {asset_id}: {sorted(fields)}")
        return asset

    def delete_asset(self, repository: PortfolioRepository, asset_id: str) -> None:
        asset = self.get_asset(repository, asset_id)
        portfolio_id = asset.portfolio_id

        with self._portfolio_lock(portfolio_id):
            if not repository.delete_asset(asset_id):
                raise AssetNotFoundError(asset_id)
            self.on_asset_changed(repository, portfolio_id)

        logger.info(f"Deleted asset {asset_id} from portfolio {portfolio_id}")

    # =========================================================================
    # AGGREGATION HOOK
    # =========================================================================

    def on_asset_changed(self, repository: PortfolioRepository, portfolio_id: str) -> PortfolioTotals | None:
        """Re-aggregate a portfolio after any change to its assets."""
        return self._aggregator.recompute(repository, portfolio_id)

    # =========================================================================
    # BULK REFRESH
    # =========================================================================

    def refresh_prices(self, repository: PortfolioRepository, portfolio_id: str) -> RefreshResult:
        """
        Re-price every asset of a portfolio, one at a time.

        A failed lookup leaves that asset exactly as it was and the loop
        continues. Each priced asset is written as soon as it is revalued;
        the portfolio is aggregated once, after the loop.

        Raises:
            PortfolioNotFoundError: If the portfolio does not exist
        """
        result = RefreshResult(portfolio_id=portfolio_id)

        with self._portfolio_lock(portfolio_id):
            self.get_portfolio(repository, portfolio_id)
            assets = repository.get_assets_by_portfolio(portfolio_id)

            for index, asset in enumerate(assets):
                if index > 0 and self._refresh_delay > 0:
                    self._sleep(self._refresh_delay)

                try:
                    quote = self._require_price(asset.symbol, asset.asset_type)
                except PriceUnavailableError as e:
                    logger.warning(f"{e}; keeping previous valuation of asset {asset.id}")
                    result.unchanged.append(asset.symbol)
                    continue

                valuation = self._engine.revalue(asset, quote)
                updated = repository.update_asset(asset.id, valuation.as_fields())
                if updated is None:
                    # Deleted by a writer in another process mid-refresh
                    result.unchanged.append(asset.symbol)
                    continue

                self._record_price(repository, updated, quote)
                result.updated.append(asset.symbol)
                if quote.is_fallback:
                    result.fallback_symbols.append(asset.symbol)

            result.totals = self.on_asset_changed(repository, portfolio_id)

        logger.info(
            f"Refreshed portfolio {portfolio_id}: updated={result.updated_count}, "
            f"unchanged={len(result.unchanged)}, fallback={len(result.fallback_symbols)}"
        )
        return result

    # =========================================================================
    # PRICES & CHARTS
    # =========================================================================

    def get_latest_prices(self, repository: PortfolioRepository, symbols: list[str]) -> list[PriceHistory]:
        return repository.get_latest_prices(symbols)

    def get_price_history(self, repository: PortfolioRepository, asset_id: str, limit: int) -> list[PriceHistory]:
        self.get_asset(repository, asset_id)
        return repository.get_price_history(asset_id, limit)

    def get_chart(
            self,
            repository: PortfolioRepository,
            symbol: str,
            days: int = DEFAULT_CHART_DAYS,
            asset_type: AssetType | None = None,
    ) -> ChartData:
        """
        Daily candles from the price provider, falling back to stored history.

        Asset type defaults to the catalog entry for the symbol, else crypto.
        """
        if not 1 <= days <= MAX_CHART_DAYS:
            raise ValidationError(f"days must be between 1 and {MAX_CHART_DAYS}", field="days")

        symbol = symbol.strip().upper()
        if asset_type is None:
            entry = catalog_entry(symbol)
            asset_type = entry.asset_type if entry else AssetType.CRYPTO

        candles = self._prices.fetch_candles(symbol, asset_type, days)
        if candles:
            return ChartData(symbol=symbol, source="provider", candles=candles)

        history = repository.get_price_history_by_symbol(symbol, limit=days)
        return ChartData(
            symbol=symbol,
            source="history",
            candles=[
                Candle(
                    timestamp=point.timestamp,
                    open=point.open,
                    high=point.high,
                    low=point.low,
                    close=point.close,
                    volume=point.volume,
                )
                for point in reversed(history)
            ],
        )

    # =========================================================================
    # HELPERS
    # =========================================================================

    def _require_price(self, symbol: str, asset_type: AssetType) -> PriceQuote:
        """
        Raises:
            PriceUnavailableError: If no source produced a quote
        """
        quote = self._prices.fetch_price(symbol, asset_type)
        if quote is None:
            raise PriceUnavailableError(symbol)
        return quote

    @staticmethod
    def _normalize_quantity(value: Decimal) -> Decimal:
        """Quantize to 8 dp, then require 0 < quantity < MAX_QUANTITY."""
        try:
            quantity = to_quantity(value)
        except InvalidOperation as e:
            raise ValidationError("Quantity is out of range", field="quantity") from e
        if quantity <= ZERO:
            raise ValidationError("Quantity must be greater than zero at 8 decimal places", field="quantity")
        if quantity >= MAX_QUANTITY:
            raise ValidationError("Quantity is out of range", field="quantity")
        return quantity

    @staticmethod
    def _normalize_purchase_price(value: Decimal) -> Decimal:
        try:
            purchase_price = to_price(value)
        except InvalidOperation as e:
            raise ValidationError("Purchase price is out of range", field="purchase_price") from e
        if purchase_price < ZERO:
            raise ValidationError("Purchase price cannot be negative", field="purchase_price")
        if purchase_price >= MAX_UNIT_PRICE:
            raise ValidationError("Purchase price is out of range", field="purchase_price")
        return purchase_price

    @staticmethod
    def _metadata_for(symbol: str, metadata: dict[str, Any] | None) -> dict[str, Any] | None:
        entry = catalog_entry(symbol)
        if entry is None:
            return metadata
        return {"icon": entry.icon, **(metadata or {})}

    @staticmethod
    def _record_price(repository: PortfolioRepository, asset: Asset, quote: PriceQuote) -> None:
        # A spot quote has no intraday range; store it as a flat candle
        repository.create_price_history({
            "asset_id": asset.id,
            "symbol": asset.symbol,
            "open": quote.price,
            "high": quote.price,
            "low": quote.price,
            "close": quote.price,
            "volume": ZERO,
        })
