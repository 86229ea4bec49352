# backend/app/services/pricing/provider.py
"""
Price lookup with an ordered fallback chain.

Crypto:
    CoinbaseExchangeSource (if credentials) -> CoinbasePublicSource
    -> static table
Stock / commodity / forex / ETF:
    static table only. No vendor is wired up for these asset types; a
    market-data source for them would slot into `_sources_for`.

Each networked source sits behind its own CircuitBreaker, so a vendor that
keeps failing during a bulk refresh is skipped instead of being retried for
every asset.

fetch_price never raises. Every failure is logged and turned into either
the next source in the chain or a None result.
"""

import logging

from app.models import AssetType
from app.services.circuit_breaker import CircuitBreaker, CircuitBreakerOpen
from app.services.constants import (
    PRICE_SOURCE_FAILURE_THRESHOLD,
    PRICE_SOURCE_RECOVERY_TIMEOUT,
)
from app.services.exceptions import MarketDataError, SymbolNotFoundError
from app.services.pricing.base import Candle, PriceQuote, PriceSource
from app.services.pricing.coinbase import CoinbaseExchangeSource, clean_crypto_symbol
from app.services.pricing.fallback import StaticPriceTable

logger = logging.getLogger(__name__)


class PriceProvider:
    """
    Resolves a PriceQuote for (symbol, asset_type).

    Args:
        crypto_sources: Networked sources tried in order for crypto assets
        static_table: Last-resort quotes
        candle_source: Source for chart candles (None disables candles)

    Example:
        provider = PriceProvider([exchange_source, public_source])
        quote = provider.fetch_price("BTC", AssetType.CRYPTO)
        if quote is None:
            ...  # keep the asset's previous valuation
    """

    def __init__(
            self,
            crypto_sources: list[PriceSource] | None = None,
            static_table: StaticPriceTable | None = None,
            candle_source: CoinbaseExchangeSource | None = None,
    ) -> None:
        self._crypto_sources = list(crypto_sources or [])
        self._static_table = static_table or StaticPriceTable()
        self._candle_source = candle_source
        self._breakers: dict[str, CircuitBreaker] = {
            source.name: CircuitBreaker(
                name=f"price-source-{source.name}",
                failure_threshold=PRICE_SOURCE_FAILURE_THRESHOLD,
                recovery_timeout=PRICE_SOURCE_RECOVERY_TIMEOUT,
                excluded_exceptions=(SymbolNotFoundError,),
            )
            for source in self._crypto_sources
        }

    @property
    def breakers(self) -> dict[str, CircuitBreaker]:
        """Breakers keyed by source name, for health reporting."""
        return dict(self._breakers)

    def breaker_for(self, source_name: str) -> CircuitBreaker:
        return self._breakers[source_name]

    def _sources_for(self, asset_type: AssetType) -> list[PriceSource]:
        if asset_type == AssetType.CRYPTO:
            return [s for s in self._crypto_sources if s.is_available()]
        return []

    def fetch_price(self, symbol: str, asset_type: AssetType) -> PriceQuote | None:
        """
        Get the current price and 24h change for a symbol.

        Args:
            symbol: Symbol as stored on the asset (e.g. "BTC", "ETHUSD")
            asset_type: Decides which networked sources are consulted

        Returns:
            PriceQuote, or None when no source knows the symbol
        """
        symbol = symbol.strip().upper()
        lookup_symbol = clean_crypto_symbol(symbol) if asset_type == AssetType.CRYPTO else symbol

        for source in self._sources_for(asset_type):
            breaker = self._breakers[source.name]
            try:
                with breaker:
                    quote = source.fetch_quote(lookup_symbol)
                logger.debug(f"Price for {symbol} from {source.name}: {quote.price}")
                return quote
            except SymbolNotFoundError:
                logger.info(f"{source.name} does not list {lookup_symbol}")
            except CircuitBreakerOpen as e:
                logger.warning(f"Skipping {source.name} for {symbol}: {e}")
            except MarketDataError as e:
                logger.warning(f"{source.name} failed for {symbol}: {e}")
            except Exception:
                # Price lookups degrade to the next source whatever a source raises
                logger.exception(f"{source.name} raised unexpectedly for {symbol}")

        quote = self._static_table.get(symbol) or self._static_table.get(lookup_symbol)
        if quote is None:
            logger.warning(f"No price available for {symbol} ({asset_type.value})")
            return None

        logger.info(f"Using fallback price for {symbol}: {quote.price}")
        return quote

    def fetch_candles(self, symbol: str, asset_type: AssetType, days: int) -> list[Candle] | None:
        """
        Get daily candles, oldest first.

        Returns:
            Candles, or None when no candle source applies or it failed
        """
        source = self._candle_source
        if asset_type != AssetType.CRYPTO or source is None or not source.is_available():
            return None

        lookup_symbol = clean_crypto_symbol(symbol)
        breaker = self._breakers.get(source.name)
        try:
            if breaker is None:
                return source.fetch_candles(lookup_symbol, days)
            with breaker:
                return source.fetch_candles(lookup_symbol, days)
        except (MarketDataError, CircuitBreakerOpen) as e:
            logger.warning(f"Candle fetch failed for {symbol}: {e}")
            return None
