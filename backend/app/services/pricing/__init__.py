# backend/app/services/pricing/__init__.py
"""
Price lookup package.

This package contains:
- Abstract networked source interface and quote types (base.py)
- Coinbase Exchange and public sources (coinbase.py)
- Static fallback table (fallback.py)
- PriceProvider fallback chain (provider.py)

Usage:
    from app.services.pricing import PriceProvider, PriceQuote

Architecture:
    PriceProvider
    ├── CoinbaseExchangeSource (primary, crypto, needs API key)
    ├── CoinbasePublicSource   (secondary, crypto)
    └── StaticPriceTable       (last resort, all asset types)
"""

from app.services.pricing.base import Candle, PriceQuote, PriceSource, FALLBACK_SOURCE
from app.services.pricing.coinbase import (
    CoinbaseExchangeSource,
    CoinbasePublicSource,
    clean_crypto_symbol,
)
from app.services.pricing.fallback import StaticPriceTable
from app.services.pricing.provider import PriceProvider

__all__ = [
    "Candle",
    "PriceQuote",
    "PriceSource",
    "FALLBACK_SOURCE",
    "CoinbaseExchangeSource",
    "CoinbasePublicSource",
    "clean_crypto_symbol",
    "StaticPriceTable",
    "PriceProvider",
]
