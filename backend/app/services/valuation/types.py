# backend/app/services/valuation/types.py
"""
Internal data types for valuation and aggregation.

These dataclasses are NOT Pydantic schemas; those live in app/schemas for
API serialization.

Design Principles:
- Immutable value objects (frozen=True)
- Decimal for ALL financial values, already quantized to column scale
- `as_fields()` yields exactly the columns the repository should write

Type Hierarchy:
    AssetValuation      - Derived fields for one asset
    PortfolioTotals     - Fold of all assets of a portfolio
    AllocationSlice     - Value share of one asset type
    Performer           - Best/worst daily mover
    PortfolioAnalytics  - Analytics view of a portfolio
    RefreshResult       - Outcome of a bulk price refresh
"""

from __future__ import annotations

from dataclasses import dataclass, field, asdict
from datetime import datetime
from decimal import Decimal


@dataclass(frozen=True)
class AssetValuation:
    """
    Derived fields for one asset at one price.

    Attributes:
        current_price: Unit price used (price scale)
        total_value: quantity × current_price
        gain_loss: quantity × (current_price − purchase_price)
        gain_loss_percent: Price change vs purchase price, 0 if purchase_price is 0
        daily_change: 24h change from the quote, passed through
        daily_change_percent: 24h change percent from the quote
    """

    current_price: Decimal
    total_value: Decimal
    gain_loss: Decimal
    gain_loss_percent: Decimal
    daily_change: Decimal
    daily_change_percent: Decimal

    def as_fields(self) -> dict[str, Decimal]:
        return asdict(self)


@dataclass(frozen=True)
class PortfolioTotals:
    """
    Aggregates over every asset of a portfolio.

    total_cost is carried for analytics and is not a stored column.
    """

    total_value: Decimal
    total_gain_loss: Decimal
    total_gain_loss_percent: Decimal
    daily_change: Decimal
    daily_change_percent: Decimal
    total_cost: Decimal
    asset_count: int

    def as_fields(self) -> dict[str, Decimal]:
        return {
            "total_value": self.total_value,
            "total_gain_loss": self.total_gain_loss,
            "total_gain_loss_percent": self.total_gain_loss_percent,
            "daily_change": self.daily_change,
            "daily_change_percent": self.daily_change_percent,
        }


@dataclass(frozen=True)
class AllocationSlice:
    value: Decimal
    percentage: Decimal
    count: int


@dataclass(frozen=True)
class Performer:
    symbol: str
    name: str
    change_percent: Decimal


@dataclass(frozen=True)
class PortfolioAnalytics:
    """
    Analytics view of a portfolio.

    Attributes:
        totals: Freshly folded totals
        allocation: asset type value -> slice
        best_performer: Highest daily_change_percent, None if no assets
        worst_performer: Lowest daily_change_percent, None if no assets
        last_updated: Portfolio's updated_at
    """

    totals: PortfolioTotals
    allocation: dict[str, AllocationSlice]
    best_performer: Performer | None
    worst_performer: Performer | None
    last_updated: datetime | None


@dataclass
class RefreshResult:
    """
    Outcome of a bulk price refresh.

    Attributes:
        portfolio_id: Portfolio refreshed
        updated: Symbols that received a new price
        unchanged: Symbols whose lookup failed (previous valuation kept)
        fallback_symbols: Updated symbols priced from the static table
        totals: Portfolio totals after the single closing aggregation
    """

    portfolio_id: str
    updated: list[str] = field(default_factory=list)
    unchanged: list[str] = field(default_factory=list)
    fallback_symbols: list[str] = field(default_factory=list)
    totals: PortfolioTotals | None = None

    @property
    def updated_count(self) -> int:
        return len(self.updated)

    @property
    def all_updated(self) -> bool:
        return not self.unchanged
