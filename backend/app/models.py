# backend/app/models.py
import enum
import uuid
from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import String, DateTime, ForeignKey, Enum, Numeric, JSON, Index
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""
    pass


def _new_id() -> str:
    return str(uuid.uuid4())


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


GUEST_OWNER_ID = "guest"


class AssetType(str, enum.Enum):
    CRYPTO = "crypto"
    STOCK = "stock"
    COMMODITY = "commodity"
    FOREX = "forex"
    ETF = "etf"


class Portfolio(Base):
    """
    A named collection of assets belonging to one owner.

    The total_* and daily_* columns are denormalized aggregates of the
    portfolio's assets. They are rewritten by the aggregator after every
    asset mutation and are never edited directly.
    """
    __tablename__ = "portfolios"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    name: Mapped[str] = mapped_column(String(100))
    description: Mapped[str | None] = mapped_column(String(500), nullable=True)

    # Opaque reference handed over by the identity provider; "guest" when absent
    owner_id: Mapped[str] = mapped_column(String(255), index=True, default=GUEST_OWNER_ID)

    total_value: Mapped[Decimal] = mapped_column(Numeric(15, 2), default=Decimal("0"))
    total_gain_loss: Mapped[Decimal] = mapped_column(Numeric(15, 2), default=Decimal("0"))
    total_gain_loss_percent: Mapped[Decimal] = mapped_column(Numeric(8, 4), default=Decimal("0"))
    daily_change: Mapped[Decimal] = mapped_column(Numeric(15, 2), default=Decimal("0"))
    daily_change_percent: Mapped[Decimal] = mapped_column(Numeric(8, 4), default=Decimal("0"))

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    assets: Mapped[list["Asset"]] = relationship(
        back_populates="portfolio",
        cascade="all, delete-orphan",
    )


class Asset(Base):
    """
    A holding of one symbol inside a portfolio.

    current_price and the derived valuation columns are written by the
    valuation engine; quantity and purchase_price are user input.
    """
    __tablename__ = "assets"
    __table_args__ = (
        Index("ix_asset_portfolio_value", "portfolio_id", "total_value"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    portfolio_id: Mapped[str] = mapped_column(ForeignKey("portfolios.id", ondelete="CASCADE"), index=True)
    symbol: Mapped[str] = mapped_column(String(20), index=True)
    name: Mapped[str] = mapped_column(String(255))
    asset_type: Mapped[AssetType] = mapped_column(Enum(AssetType, values_callable=lambda e: [m.value for m in e]))

    # Numeric(20, 8) holds fractional crypto quantities
    quantity: Mapped[Decimal] = mapped_column(Numeric(20, 8))
    purchase_price: Mapped[Decimal] = mapped_column(Numeric(18, 8))
    current_price: Mapped[Decimal] = mapped_column(Numeric(18, 8), default=Decimal("0"))

    total_value: Mapped[Decimal] = mapped_column(Numeric(15, 2), default=Decimal("0"))
    gain_loss: Mapped[Decimal] = mapped_column(Numeric(15, 2), default=Decimal("0"))
    gain_loss_percent: Mapped[Decimal] = mapped_column(Numeric(8, 4), default=Decimal("0"))
    daily_change: Mapped[Decimal] = mapped_column(Numeric(15, 2), default=Decimal("0"))
    daily_change_percent: Mapped[Decimal] = mapped_column(Numeric(8, 4), default=Decimal("0"))

    # "metadata" is reserved on declarative classes, so the attribute is renamed
    extra_metadata: Mapped[dict | None] = mapped_column("metadata", JSON, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    portfolio: Mapped["Portfolio"] = relationship(back_populates="assets")


class PriceHistory(Base):
    """
    Append-only OHLCV point for a symbol.

    asset_id is nulled rather than cascaded when the asset is deleted, so
    chart history outlives individual holdings.
    """
    __tablename__ = "price_history"
    __table_args__ = (
        Index("ix_price_history_symbol_timestamp", "symbol", "timestamp"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    asset_id: Mapped[str | None] = mapped_column(
        ForeignKey("assets.id", ondelete="SET NULL"), index=True, nullable=True
    )
    symbol: Mapped[str] = mapped_column(String(20))
    timestamp: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)
    open: Mapped[Decimal] = mapped_column(Numeric(18, 8))
    high: Mapped[Decimal] = mapped_column(Numeric(18, 8))
    low: Mapped[Decimal] = mapped_column(Numeric(18, 8))
    close: Mapped[Decimal] = mapped_column(Numeric(18, 8))
    volume: Mapped[Decimal] = mapped_column(Numeric(20, 8), default=Decimal("0"))
