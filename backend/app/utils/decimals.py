# backend/app/utils/decimals.py
"""
Fixed-scale decimal parsing and formatting.

Every monetary or ratio value enters the system through one of the parsers
below and is quantized to its column scale. Floats are never accepted as
input: a float has already lost precision by the time it reaches us.

Scales:
    CURRENCY  2 dp   totals, gain/loss, daily change
    PERCENT   4 dp   gain/loss %, daily change %, allocation %
    QUANTITY  8 dp   holdings
    PRICE     8 dp   unit prices (FX pairs need more than cents)

Usage:
    from app.utils.decimals import to_currency, parse_decimal

    total = to_currency(quantity * price)
"""

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

CURRENCY_PLACES = Decimal("0.01")
PERCENT_PLACES = Decimal("0.0001")
QUANTITY_PLACES = Decimal("0.00000001")
PRICE_PLACES = Decimal("0.00000001")

ZERO = Decimal("0")
HUNDRED = Decimal("100")


def parse_decimal(value: Decimal | int | str) -> Decimal:
    """
    Convert an external value into a Decimal without rounding.

    Args:
        value: Decimal, int or numeric string

    Returns:
        Decimal representation of value

    Raises:
        ValueError: If value is a float, bool, non-numeric or not finite
    """
    # bool is an int subclass; True would otherwise parse as 1
    if isinstance(value, (float, bool)):
        raise ValueError(f"Refusing lossy numeric input: {value!r}")

    try:
        result = value if isinstance(value, Decimal) else Decimal(str(value).strip())
    except InvalidOperation as e:
        raise ValueError(f"Not a decimal number: {value!r}") from e

    if not result.is_finite():
        raise ValueError(f"Decimal must be finite: {value!r}")
    return result


def quantize(value: Decimal, places: Decimal) -> Decimal:
    return value.quantize(places, rounding=ROUND_HALF_UP)


def to_currency(value: Decimal) -> Decimal:
    return quantize(value, CURRENCY_PLACES)


def to_percent(value: Decimal) -> Decimal:
    return quantize(value, PERCENT_PLACES)


def to_quantity(value: Decimal) -> Decimal:
    return quantize(value, QUANTITY_PLACES)


def to_price(value: Decimal) -> Decimal:
    return quantize(value, PRICE_PLACES)


def percent_of(part: Decimal, whole: Decimal) -> Decimal:
    """Return part / whole * 100 at percent scale, or 0 when whole is not positive."""
    if whole <= ZERO:
        return to_percent(ZERO)
    return to_percent(part / whole * HUNDRED)


def format_decimal(value: Decimal, places: Decimal) -> str:
    """
    Render a decimal as a fixed-point string at the given scale.

    Never produces exponent notation, so Decimal("1E+2") at currency
    scale renders as "100.00".
    """
    return format(quantize(value, places), "f")
