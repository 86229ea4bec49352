# backend/app/schemas/prices.py
"""
Pydantic schemas for price history, latest prices and charts.
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict

from app.schemas.validators import Quantity, UnitPrice


class PricePointResponse(BaseModel):
    """A stored OHLCV point."""

    id: str
    asset_id: str | None
    symbol: str
    timestamp: datetime
    open: UnitPrice
    high: UnitPrice
    low: UnitPrice
    close: UnitPrice
    volume: Quantity

    model_config = ConfigDict(from_attributes=True)


class CandleResponse(BaseModel):
    timestamp: datetime
    open: UnitPrice
    high: UnitPrice
    low: UnitPrice
    close: UnitPrice
    volume: Quantity

    model_config = ConfigDict(from_attributes=True)


class ChartResponse(BaseModel):
    """
    Daily candles, oldest first.

    source is "provider" for live exchange candles and "history" for points
    recorded by price refreshes.
    """

    symbol: str
    source: str
    candles: list[CandleResponse]

    model_config = ConfigDict(from_attributes=True)
