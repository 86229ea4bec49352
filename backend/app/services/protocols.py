# backend/app/services/protocols.py
"""
Protocol interfaces for service dependency injection.

Using typing.Protocol enables structural subtyping:
- PriceProvider satisfies PriceLookup without inheriting from it
- Test stubs work without explicit inheritance
"""

from __future__ import annotations

from typing import Protocol, TYPE_CHECKING

if TYPE_CHECKING:
    from app.models import AssetType
    from app.services.pricing.base import Candle, PriceQuote


class PriceLookup(Protocol):
    """Interface required by PortfolioService."""

    def fetch_price(self, symbol: str, asset_type: AssetType) -> PriceQuote | None:
        ...

    def fetch_candles(self, symbol: str, asset_type: AssetType, days: int) -> list[Candle] | None:
        ...


class Sleeper(Protocol):
    """Callable used to pause between lookups in a bulk refresh."""

    def __call__(self, seconds: float) -> None:
        ...
