# backend/app/services/valuation/engine.py
"""
Per-asset valuation.

AssetValuationEngine turns (quantity, purchase price, quote) into the
derived asset fields. It is stateless and performs no I/O, so the same
inputs always produce the same Decimal outputs.

Formulas:
    total_value        = quantity × price
    gain_loss          = quantity × (price − purchase_price)
    gain_loss_percent  = (price − purchase_price) / purchase_price × 100
                         (0 when purchase_price is 0)
    daily_change       = quote.change_24h          (not scaled by quantity)
    daily_change_%     = quote.change_percent_24h

Every output is quantized once, at the end, to its column scale.
"""

from decimal import Decimal
from typing import Protocol

from app.services.pricing.base import PriceQuote
from app.services.valuation.types import AssetValuation
from app.utils.decimals import (
    ZERO,
    percent_of,
    to_currency,
    to_percent,
    to_price,
)


class Holding(Protocol):
    """Anything carrying the user-entered side of an asset."""

    quantity: Decimal
    purchase_price: Decimal


class AssetValuationEngine:
    """
    Computes AssetValuation for a holding at a quoted price.

    Negative prices and quantities are rejected by the callers' validation;
    the engine assumes non-negative inputs.

    Example:
        engine = AssetValuationEngine()
        valuation = engine.revalue(asset, quote)
        repository.update_asset(asset.id, valuation.as_fields())
    """

    def revalue(self, asset: Holding, quote: PriceQuote) -> AssetValuation:
        return self.calculate(
            quantity=asset.quantity,
            purchase_price=asset.purchase_price,
            price=quote.price,
            change_24h=quote.change_24h,
            change_percent_24h=quote.change_percent_24h,
        )

    def revalue_at_current_price(
            self,
            asset,
            quantity: Decimal | None = None,
            purchase_price: Decimal | None = None,
    ) -> AssetValuation:
        """
        Re-derive fields from the asset's stored price and daily change.

        Used when quantity or purchase price is edited without a new quote;
        the edited amounts override the stored ones.
        """
        return self.calculate(
            quantity=asset.quantity if quantity is None else quantity,
            purchase_price=asset.purchase_price if purchase_price is None else purchase_price,
            price=asset.current_price,
            change_24h=asset.daily_change,
            change_percent_24h=asset.daily_change_percent,
        )

    def calculate(
            self,
            quantity: Decimal,
            purchase_price: Decimal,
            price: Decimal,
            change_24h: Decimal = ZERO,
            change_percent_24h: Decimal = ZERO,
    ) -> AssetValuation:
        """
        Args:
            quantity: Units held
            purchase_price: Unit cost
            price: Current unit price
            change_24h: Absolute 24h move from the quote
            change_percent_24h: Percent 24h move from the quote

        Returns:
            AssetValuation with every field at its column scale
        """
        price = to_price(price)
        return AssetValuation(
            current_price=price,
            total_value=to_currency(quantity * price),
            gain_loss=to_currency(quantity * (price - purchase_price)),
            gain_loss_percent=percent_of(price - purchase_price, purchase_price),
            daily_change=to_currency(change_24h),
            daily_change_percent=to_percent(change_percent_24h),
        )
