# backend/app/services/pricing/base.py
"""
Abstract interface for networked price sources.

A price source answers "what does one unit of SYMBOL cost in USD right now,
and how did that move over 24h". Sources raise MarketDataError subclasses on
failure; turning those into a None result is the PriceProvider's job, not
the source's.

Retry Behavior:
    `_execute_with_retry` wraps a call with tenacity exponential backoff on
    ProviderUnavailableError and RateLimitError. SymbolNotFoundError is
    permanent and never retried. Subclasses tune the class attributes.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import TypeVar, Callable, Any

from tenacity import (
    retry,
    stop_after_attempt,
    wait_exponential,
    retry_if_exception_type,
    before_sleep_log,
)

from app.services.exceptions import ProviderUnavailableError, RateLimitError

logger = logging.getLogger(__name__)

T = TypeVar("T")

FALLBACK_SOURCE = "fallback"


# =============================================================================
# DATA CLASSES
# =============================================================================

@dataclass(frozen=True)
class PriceQuote:
    """
    Current price and 24h movement for a symbol.

    Attributes:
        price: Unit price in USD
        change_24h: Absolute 24h change, passed through to the asset unchanged
        change_percent_24h: 24h change in percent
        source: Name of the source that produced the quote ("fallback" for
            the static table, which callers may treat as stale)
    """

    price: Decimal
    change_24h: Decimal
    change_percent_24h: Decimal
    source: str

    def __post_init__(self) -> None:
        if self.price < 0:
            raise ValueError(f"price cannot be negative, got {self.price}")

    @property
    def is_fallback(self) -> bool:
        return self.source == FALLBACK_SOURCE


@dataclass(frozen=True)
class Candle:
    """One daily OHLCV candle."""

    timestamp: datetime
    open: Decimal
    high: Decimal
    low: Decimal
    close: Decimal
    volume: Decimal

    def __post_init__(self) -> None:
        if self.high < self.low:
            raise ValueError(f"high ({self.high}) cannot be less than low ({self.low})")


# =============================================================================
# ABSTRACT BASE CLASS
# =============================================================================

class PriceSource(ABC):
    """
    Abstract base class for networked price sources.

    Raises from fetch_quote:
        SymbolNotFoundError: The source does not list the symbol
        ProviderUnavailableError: Network error, timeout, non-2xx, bad payload
        RateLimitError: HTTP 429
    """

    MAX_RETRY_ATTEMPTS: int = 2
    RETRY_MIN_WAIT: int = 1
    RETRY_MAX_WAIT: int = 4
    RETRY_MULTIPLIER: int = 1

    @property
    @abstractmethod
    def name(self) -> str:
        """Unique identifier used in logs, breaker names and PriceQuote.source."""
        pass

    @abstractmethod
    def fetch_quote(self, symbol: str) -> PriceQuote:
        """
        Fetch the current quote for an already-cleaned symbol.

        Args:
            symbol: Base symbol without quote currency (e.g. "BTC")

        Returns:
            PriceQuote tagged with this source's name
        """
        pass

    def is_available(self) -> bool:
        """Whether the source is configured to be used at all."""
        return True

    def _execute_with_retry(
            self,
            func: Callable[..., T],
            *args: Any,
            **kwargs: Any,
    ) -> T:
        """
        Execute func with exponential backoff on transient failures.

        Raises:
            The last exception if all attempts fail
        """

        @retry(
            stop=stop_after_attempt(self.MAX_RETRY_ATTEMPTS),
            wait=wait_exponential(
                multiplier=self.RETRY_MULTIPLIER,
                min=self.RETRY_MIN_WAIT,
                max=self.RETRY_MAX_WAIT,
            ),
            retry=retry_if_exception_type((ProviderUnavailableError, RateLimitError)),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=True,
        )
        def _inner() -> T:
            return func(*args, **kwargs)

        return _inner()
