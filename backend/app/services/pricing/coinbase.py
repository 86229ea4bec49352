# backend/app/services/pricing/coinbase.py
"""
Coinbase price sources for crypto assets.

Two sources with different trade-offs:

CoinbaseExchangeSource (primary)
    api.exchange.coinbase.com ticker + 24h stats. Gives a real 24h change
    (price minus the 24h open). Only used when COINBASE_API_KEY is set.
    Also serves daily candles for charts.

CoinbasePublicSource (secondary)
    api.coinbase.com/v2 exchange-rates. No credentials needed but carries
    no 24h movement, so change fields are zero.

Both take an injectable httpx.Client so tests can plug in a MockTransport.
"""

import logging
import time
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Any, Callable

import httpx

from app.services.constants import MAX_QUANTITY, MAX_UNIT_PRICE
from app.services.exceptions import (
    ProviderUnavailableError,
    RateLimitError,
    SymbolNotFoundError,
)
from app.services.pricing.base import Candle, PriceQuote, PriceSource
from app.utils.decimals import parse_decimal, to_percent, to_price, to_quantity, ZERO, HUNDRED

logger = logging.getLogger(__name__)

EXCHANGE_API_URL = "https://api.exchange.coinbase.com"
PUBLIC_API_URL = "https://api.coinbase.com/v2"

DAILY_GRANULARITY = 86400

# Quote-currency suffixes users commonly type ("BTCUSD", "ETHUSDT")
_QUOTE_SUFFIXES = ("USDT", "USD")


def clean_crypto_symbol(symbol: str) -> str:
    """
    Reduce a trading pair to its base symbol.

    Examples:
        >>> clean_crypto_symbol("btcusdt")
        'BTC'
        >>> clean_crypto_symbol("ETH")
        'ETH'
    """
    cleaned = symbol.strip().upper()
    for suffix in _QUOTE_SUFFIXES:
        if cleaned.endswith(suffix) and len(cleaned) > len(suffix):
            return cleaned[: -len(suffix)]
    return cleaned


def _get_json(
        client: httpx.Client,
        url: str,
        provider: str,
        symbol: str,
        headers: dict[str, str] | None = None,
        params: dict[str, Any] | None = None,
) -> Any:
    """
    GET a JSON document and translate failures into MarketDataError types.

    Numbers in the body are parsed straight to Decimal.

    Raises:
        SymbolNotFoundError: HTTP 404 (or 400, which Coinbase returns for
            unknown currencies)
        RateLimitError: HTTP 429
        ProviderUnavailableError: Transport error, other non-2xx, bad JSON
    """
    try:
        response = client.get(url, headers=headers, params=params)
    except httpx.TimeoutException as e:
        raise ProviderUnavailableError(provider, f"timeout: {e}") from e
    except httpx.RequestError as e:
        raise ProviderUnavailableError(provider, f"network error: {e}") from e

    if response.status_code in (400, 404):
        raise SymbolNotFoundError(symbol, provider)
    if response.status_code == 429:
        retry_after = response.headers.get("Retry-After")
        raise RateLimitError(provider, int(retry_after) if retry_after and retry_after.isdigit() else None)
    if response.status_code != 200:
        raise ProviderUnavailableError(provider, f"HTTP {response.status_code}")

    try:
        return response.json(parse_float=Decimal)
    except ValueError as e:
        raise ProviderUnavailableError(provider, f"malformed response: {e}") from e


def _field(payload: Any, provider: str, *path: str) -> Decimal:
    """Walk nested dict keys and parse the leaf as a Decimal."""
    value = payload
    try:
        for key in path:
            value = value[key]
        return parse_decimal(value)
    except (KeyError, TypeError, ValueError) as e:
        raise ProviderUnavailableError(provider, f"missing or invalid '{'.'.join(path)}'") from e


def _scaled(
        value: Decimal,
        scale: Callable[[Decimal], Decimal],
        provider: str,
        what: str,
        limit: Decimal | None = None,
) -> Decimal:
    """Quantize a provider value; values too large to store are a bad response."""
    try:
        result = scale(value)
    except ArithmeticError as e:
        raise ProviderUnavailableError(provider, f"{what} out of range: {value}") from e
    if limit is not None and abs(result) >= limit:
        raise ProviderUnavailableError(provider, f"{what} out of range: {value}")
    return result


class CoinbaseExchangeSource(PriceSource):
    """
    Authenticated Coinbase Exchange source.

    change_24h = last price - 24h open
    change_percent_24h = change_24h / open * 100 (0 when open is 0)
    """

    def __init__(
            self,
            api_key: str | None,
            api_secret: str | None = None,
            timeout: float = 5.0,
            client: httpx.Client | None = None,
    ) -> None:
        self._api_key = api_key
        self._api_secret = api_secret
        self._client = client or httpx.Client(base_url=EXCHANGE_API_URL, timeout=timeout)
        logger.info(f"CoinbaseExchangeSource initialized (configured={self.is_available()})")

    @property
    def name(self) -> str:
        return "coinbase_exchange"

    def is_available(self) -> bool:
        return bool(self._api_key)

    def _headers(self) -> dict[str, str]:
        if not self._api_key:
            return {}
        return {
            "CB-ACCESS-KEY": self._api_key,
            "CB-ACCESS-TIMESTAMP": str(int(time.time())),
            "Content-Type": "application/json",
        }

    def fetch_quote(self, symbol: str) -> PriceQuote:
        return self._execute_with_retry(self._fetch_quote, symbol)

    def _fetch_quote(self, symbol: str) -> PriceQuote:
        product = f"/products/{symbol}-USD"
        headers = self._headers()

        ticker = _get_json(self._client, f"{product}/ticker", self.name, symbol, headers=headers)
        stats = _get_json(self._client, f"{product}/stats", self.name, symbol, headers=headers)

        price = _field(ticker, self.name, "price")
        open_24h = _field(stats, self.name, "open")
        change = price - open_24h
        change_percent = change / open_24h * HUNDRED if open_24h > ZERO else ZERO

        logger.debug(f"{self.name}: {symbol} price={price} open={open_24h}")
        return PriceQuote(
            price=_scaled(price, to_price, self.name, "price", MAX_UNIT_PRICE),
            change_24h=_scaled(change, to_price, self.name, "change", MAX_UNIT_PRICE),
            change_percent_24h=_scaled(change_percent, to_percent, self.name, "change percent"),
            source=self.name,
        )

    def fetch_candles(self, symbol: str, days: int = 30) -> list[Candle]:
        """
        Fetch daily candles for the last `days` days, oldest first.

        Coinbase returns rows of [time, low, high, open, close, volume],
        newest first.
        """
        return self._execute_with_retry(self._fetch_candles, symbol, days)

    def _fetch_candles(self, symbol: str, days: int) -> list[Candle]:
        end = datetime.now(timezone.utc)
        start = end - timedelta(days=days)
        rows = _get_json(
            self._client,
            f"/products/{symbol}-USD/candles",
            self.name,
            symbol,
            headers=self._headers(),
            params={
                "start": start.isoformat(),
                "end": end.isoformat(),
                "granularity": DAILY_GRANULARITY,
            },
        )
        if not isinstance(rows, list):
            raise ProviderUnavailableError(self.name, "candles payload is not a list")

        candles = []
        for row in rows:
            try:
                ts, low, high, open_, close, volume = row
                candles.append(Candle(
                    timestamp=datetime.fromtimestamp(int(ts), tz=timezone.utc),
                    open=_scaled(parse_decimal(open_), to_price, self.name, "open", MAX_UNIT_PRICE),
                    high=_scaled(parse_decimal(high), to_price, self.name, "high", MAX_UNIT_PRICE),
                    low=_scaled(parse_decimal(low), to_price, self.name, "low", MAX_UNIT_PRICE),
                    close=_scaled(parse_decimal(close), to_price, self.name, "close", MAX_UNIT_PRICE),
                    volume=_scaled(parse_decimal(volume), to_quantity, self.name, "volume", MAX_QUANTITY),
                ))
            except (TypeError, ValueError) as e:
                raise ProviderUnavailableError(self.name, f"malformed candle row {row!r}") from e

        candles.reverse()
        return candles


class CoinbasePublicSource(PriceSource):
    """Unauthenticated exchange-rates source. Price only."""

    def __init__(self, timeout: float = 5.0, client: httpx.Client | None = None) -> None:
        self._client = client or httpx.Client(base_url=PUBLIC_API_URL, timeout=timeout)

    @property
    def name(self) -> str:
        return "coinbase_public"

    def fetch_quote(self, symbol: str) -> PriceQuote:
        return self._execute_with_retry(self._fetch_quote, symbol)

    def _fetch_quote(self, symbol: str) -> PriceQuote:
        payload = _get_json(
            self._client,
            "/exchange-rates",
            self.name,
            symbol,
            params={"currency": symbol},
        )
        price = _field(payload, self.name, "data", "rates", "USD")
        if price <= ZERO:
            raise SymbolNotFoundError(symbol, self.name)

        return PriceQuote(
            price=_scaled(price, to_price, self.name, "price", MAX_UNIT_PRICE),
            change_24h=ZERO,
            change_percent_24h=ZERO,
            source=self.name,
        )
