# backend/app/services/constants.py
"""
Centralized constants for the Portfolio Tracker services.

Usage:
    from app.services.constants import (
        FALLBACK_PRICES,
        ASSET_CATALOG,
        DEFAULT_CHART_DAYS,
    )
"""

from decimal import Decimal

from app.models import AssetType


# =============================================================================
# STATIC FALLBACK PRICES
# =============================================================================

# Last-resort quotes used when no networked source answers, and the only
# source for non-crypto assets. Keyed by symbol as stored on the asset.
# Values: (price, change_24h, change_percent_24h)
FALLBACK_PRICES: dict[str, tuple[Decimal, Decimal, Decimal]] = {
    "BTC": (Decimal("67842.30"), Decimal("1547"), Decimal("2.34")),
    "ETH": (Decimal("3742.85"), Decimal("-1098"), Decimal("-1.87")),
    "AAPL": (Decimal("189.76"), Decimal("412"), Decimal("0.87")),
    "NVDA": (Decimal("924.37"), Decimal("3847"), Decimal("3.42")),
    "XAUUSD": (Decimal("2687.42"), Decimal("138"), Decimal("0.34")),
    "EURUSD": (Decimal("1.0847"), Decimal("-65"), Decimal("-0.12")),
}


# =============================================================================
# ASSET SEARCH CATALOG
# =============================================================================

# Symbols offered by the asset search box: (symbol, name, type, icon)
ASSET_CATALOG: tuple[tuple[str, str, AssetType, str], ...] = (
    ("BTC", "Bitcoin", AssetType.CRYPTO, "bitcoin"),
    ("ETH", "Ethereum", AssetType.CRYPTO, "ethereum"),
    ("AAPL", "Apple Inc.", AssetType.STOCK, "apple"),
    ("NVDA", "NVIDIA Corporation", AssetType.STOCK, "nvidia"),
    ("XAUUSD", "Gold", AssetType.COMMODITY, "coins"),
    ("EURUSD", "EUR/USD", AssetType.FOREX, "dollar-sign"),
)


# =============================================================================
# CHART & HISTORY LIMITS
# =============================================================================

DEFAULT_CHART_DAYS: int = 30

# Coinbase returns at most 300 candles per request
MAX_CHART_DAYS: int = 300

DEFAULT_PRICE_HISTORY_LIMIT: int = 30


# =============================================================================
# AMOUNT LIMITS
# =============================================================================

# Integer digits left by Numeric(20, 8) quantities and Numeric(18, 8) prices
MAX_QUANTITY: Decimal = Decimal("1E12")
MAX_UNIT_PRICE: Decimal = Decimal("1E10")


# =============================================================================
# CIRCUIT BREAKER SETTINGS
# =============================================================================

# Consecutive failures before a price source is skipped
PRICE_SOURCE_FAILURE_THRESHOLD: int = 5

# Seconds an open breaker waits before letting a probe request through
PRICE_SOURCE_RECOVERY_TIMEOUT: float = 60.0


# =============================================================================
# API RATE LIMITS (slowapi format)
# =============================================================================

RATE_LIMIT_DEFAULT: str = "200/minute"
RATE_LIMIT_WRITE: str = "60/minute"

# A bulk refresh makes one outbound lookup per asset
RATE_LIMIT_REFRESH: str = "10/minute"
