# backend/app/schemas/validators.py
"""
Reusable validation functions and field types for Pydantic schemas.

This module provides:
- Symbol validation and normalization
- Decimal field types that serialize as fixed-scale strings in JSON

Decimal fields are emitted as strings ("135684.60") so that clients never
round-trip money through binary floats.
"""

import re
from decimal import Decimal
from typing import Annotated

from pydantic import PlainSerializer

from app.utils.decimals import (
    CURRENCY_PLACES,
    PERCENT_PLACES,
    PRICE_PLACES,
    QUANTITY_PLACES,
    format_decimal,
)

# =============================================================================
# CONSTANTS
# =============================================================================

# Symbol: 1-20 chars, letters, digits, dots, dashes and slashes (e.g. EUR/USD)
SYMBOL_PATTERN = re.compile(r'^[A-Z0-9][A-Z0-9./\-]{0,19}$')
SYMBOL_MAX_LENGTH = 20


# =============================================================================
# SYMBOL VALIDATION
# =============================================================================

def validate_symbol(value: str) -> str:
    """
    Validate and normalize an asset symbol.

    Args:
        value: Raw symbol input

    Returns:
        Normalized symbol (uppercase, trimmed)

    Raises:
        ValueError: If symbol format is invalid
    """
    normalized = (value or "").strip().upper()

    if not normalized:
        raise ValueError("Symbol cannot be empty")

    if len(normalized) > SYMBOL_MAX_LENGTH:
        raise ValueError(f"Symbol cannot exceed {SYMBOL_MAX_LENGTH} characters")

    if not SYMBOL_PATTERN.match(normalized):
        raise ValueError(f"Invalid symbol format: '{normalized}'")

    return normalized


def parse_symbol_list(value: str) -> list[str]:
    """Split a comma-separated query parameter into normalized symbols."""
    return [validate_symbol(part) for part in value.split(",") if part.strip()]


# =============================================================================
# DECIMAL OUTPUT TYPES
# =============================================================================

def _serializer(places: Decimal) -> PlainSerializer:
    return PlainSerializer(lambda v: format_decimal(v, places), return_type=str, when_used="json")


CurrencyAmount = Annotated[Decimal, _serializer(CURRENCY_PLACES)]
Percentage = Annotated[Decimal, _serializer(PERCENT_PLACES)]
Quantity = Annotated[Decimal, _serializer(QUANTITY_PLACES)]
UnitPrice = Annotated[Decimal, _serializer(PRICE_PLACES)]
