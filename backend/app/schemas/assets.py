# backend/app/schemas/assets.py
"""
Pydantic schemas for Asset validation.

Users supply symbol, name, type, quantity and purchase price. Everything
else (current price, value, gain/loss, daily change) is derived by the
valuation engine and returned read-only.
"""

from datetime import datetime
from decimal import Decimal
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from app.models import AssetType
from app.schemas.validators import (
    CurrencyAmount,
    Percentage,
    Quantity,
    UnitPrice,
    validate_symbol,
)


# =============================================================================
# CREATE SCHEMA
# =============================================================================

class AssetCreate(BaseModel):
    """Schema for adding an asset to a portfolio."""

    symbol: str = Field(
        ...,
        min_length=1,
        max_length=20,
        examples=["BTC", "AAPL", "XAUUSD"],
        description="Trading symbol (normalized to uppercase)"
    )
    name: str = Field(
        ...,
        min_length=1,
        max_length=255,
        examples=["Bitcoin", "Apple Inc."],
    )
    type: AssetType = Field(..., description="Asset type")
    quantity: Decimal = Field(..., gt=0, max_digits=20, decimal_places=8, description="Units held")
    purchase_price: Decimal = Field(..., ge=0, max_digits=18, decimal_places=8, description="Unit cost in USD")
    metadata: dict[str, Any] | None = Field(
        default=None,
        description="Opaque display data (icon, exchange, ...)"
    )

    @field_validator('symbol')
    @classmethod
    def normalize_symbol(cls, v: str) -> str:
        return validate_symbol(v)

    @field_validator('name')
    @classmethod
    def normalize_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Name cannot be blank")
        return v


# =============================================================================
# UPDATE SCHEMA
# =============================================================================

class AssetUpdate(BaseModel):
    """
    Schema for editing an asset.

    Symbol and type are fixed once created; delete and re-add to change them.
    """

    name: str | None = Field(default=None, min_length=1, max_length=255)
    quantity: Decimal | None = Field(default=None, gt=0, max_digits=20, decimal_places=8)
    purchase_price: Decimal | None = Field(default=None, ge=0, max_digits=18, decimal_places=8)
    metadata: dict[str, Any] | None = None

    @field_validator('name')
    @classmethod
    def normalize_name(cls, v: str | None) -> str | None:
        return v.strip() if v is not None else None


# =============================================================================
# RESPONSE SCHEMAS
# =============================================================================

class AssetResponse(BaseModel):
    id: str
    portfolio_id: str
    symbol: str
    name: str
    type: AssetType = Field(validation_alias="asset_type")
    quantity: Quantity
    purchase_price: UnitPrice
    current_price: UnitPrice
    total_value: CurrencyAmount
    gain_loss: CurrencyAmount
    gain_loss_percent: Percentage
    daily_change: CurrencyAmount
    daily_change_percent: Percentage
    metadata: dict[str, Any] | None = Field(default=None, validation_alias="extra_metadata")
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class AssetSearchResult(BaseModel):
    """One entry of the static asset catalog."""

    symbol: str
    name: str
    type: AssetType = Field(validation_alias="asset_type")
    icon: str

    model_config = ConfigDict(from_attributes=True)
