# backend/app/schemas/portfolios.py
"""
Pydantic schemas for Portfolio validation.

These schemas define:
- What data clients must send (Create)
- What data clients can update (Update)
- What data the API returns (Response)

The owner is not part of the body; it comes from the X-Owner-Id header
set by the upstream identity provider. Totals are read-only.
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator

from app.schemas.validators import CurrencyAmount, Percentage


# =============================================================================
# BASE SCHEMA
# =============================================================================

class PortfolioBase(BaseModel):
    name: str = Field(
        ...,
        min_length=1,
        max_length=100,
        examples=["My Portfolio", "Crypto", "Retirement"],
        description="Name of the portfolio"
    )

    description: str | None = Field(
        default=None,
        max_length=500,
        description="Free-text description"
    )

    @field_validator('name')
    @classmethod
    def normalize_name(cls, v: str) -> str:
        """Normalize name: trim whitespace."""
        v = v.strip()
        if not v:
            raise ValueError("Name cannot be blank")
        return v


# =============================================================================
# CREATE / UPDATE SCHEMAS
# =============================================================================

class PortfolioCreate(PortfolioBase):
    """Schema for creating a new portfolio."""


class PortfolioUpdate(BaseModel):
    """
    Schema for updating an existing portfolio.

    All fields are optional; client only sends fields to update.
    """

    name: str | None = Field(
        default=None,
        min_length=1,
        max_length=100,
        description="New name for the portfolio"
    )

    description: str | None = Field(
        default=None,
        max_length=500,
        description="New description (null clears it)"
    )

    @field_validator('name')
    @classmethod
    def normalize_name(cls, v: str | None) -> str | None:
        if v is None:
            return None
        v = v.strip()
        if not v:
            raise ValueError("Name cannot be blank")
        return v


# =============================================================================
# RESPONSE SCHEMAS
# =============================================================================

class PortfolioResponse(PortfolioBase):
    """
    Schema for API responses.

    Includes database-generated fields and the stored aggregates.
    """

    id: str = Field(..., description="Unique identifier")
    owner_id: str = Field(..., description="Opaque owner reference ('guest' if anonymous)")
    total_value: CurrencyAmount
    total_gain_loss: CurrencyAmount
    total_gain_loss_percent: Percentage
    daily_change: CurrencyAmount
    daily_change_percent: Percentage
    created_at: datetime = Field(..., description="When the portfolio was created")
    updated_at: datetime = Field(..., description="When the portfolio was last modified")

    model_config = ConfigDict(from_attributes=True)
