# backend/app/services/pricing/fallback.py
"""Static last-resort quotes."""

from app.services.constants import FALLBACK_PRICES
from app.services.pricing.base import FALLBACK_SOURCE, PriceQuote


class StaticPriceTable:
    """
    Lookup into a fixed symbol -> quote table.

    Not a PriceSource: it never fails, it either knows the symbol or not.
    """

    def __init__(self, prices=None) -> None:
        self._prices = FALLBACK_PRICES if prices is None else prices

    def get(self, symbol: str) -> PriceQuote | None:
        entry = self._prices.get(symbol.strip().upper())
        if entry is None:
            return None
        price, change, change_percent = entry
        return PriceQuote(
            price=price,
            change_24h=change,
            change_percent_24h=change_percent,
            source=FALLBACK_SOURCE,
        )

    def __contains__(self, symbol: str) -> bool:
        return symbol.strip().upper() in self._prices
