# tests/services/test_coinbase_sources.py
"""
Tests for the Coinbase price sources.

HTTP is served by httpx.MockTransport, so no network access is needed.
Retries are limited to one attempt to keep failure tests fast.
"""

from decimal import Decimal

import httpx
import pytest

from app.models import AssetType
from app.services.exceptions import (
    ProviderUnavailableError,
    RateLimitError,
    SymbolNotFoundError,
)
from app.services.pricing import CoinbaseExchangeSource, CoinbasePublicSource, PriceProvider
from app.services.pricing.base import FALLBACK_SOURCE
from app.services.pricing.coinbase import EXCHANGE_API_URL, PUBLIC_API_URL, clean_crypto_symbol


def mock_client(base_url: str, handler) -> httpx.Client:
    return httpx.Client(transport=httpx.MockTransport(handler), base_url=base_url)


def exchange_source(handler, api_key: str | None = "key") -> CoinbaseExchangeSource:
    source = CoinbaseExchangeSource(api_key=api_key, client=mock_client(EXCHANGE_API_URL, handler))
    source.MAX_RETRY_ATTEMPTS = 1
    return source


def public_source(handler) -> CoinbasePublicSource:
    source = CoinbasePublicSource(client=mock_client(PUBLIC_API_URL, handler))
    source.MAX_RETRY_ATTEMPTS = 1
    return source


class TestCleanCryptoSymbol:
    """Tests for clean_crypto_symbol."""

    @pytest.mark.parametrize("raw,expected", [
        ("BTC", "BTC"),
        ("btcusd", "BTC"),
        ("ETHUSDT", "ETH"),
        (" sol ", "SOL"),
        ("USD", "USD"),
        ("USDT", "USDT"),
    ])
    def test_strips_quote_currency(self, raw, expected):
        assert clean_crypto_symbol(raw) == expected


class TestCoinbaseExchangeSource:
    """Tests for the authenticated Exchange source."""

    def test_quote_from_ticker_and_stats(self):
        seen_headers = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen_headers.append(request.headers.get("CB-ACCESS-KEY"))
            if request.url.path == "/products/BTC-USD/ticker":
                return httpx.Response(200, json={"price": "67842.30"})
            if request.url.path == "/products/BTC-USD/stats":
                return httpx.Response(200, json={"open": "66295.30"})
            return httpx.Response(404)

        quote = exchange_source(handler).fetch_quote("BTC")

        assert quote.price == Decimal("67842.30")
        assert quote.change_24h == Decimal("1547.00")
        assert quote.change_percent_24h == Decimal("2.3335")
        assert quote.source == "coinbase_exchange"
        assert seen_headers == ["key", "key"]

    def test_unavailable_without_api_key(self):
        source = exchange_source(lambda request: httpx.Response(500), api_key=None)

        assert source.is_available() is False

    def test_zero_open_gives_zero_percent(self):
        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.path.endswith("/ticker"):
                return httpx.Response(200, json={"price": "10"})
            return httpx.Response(200, json={"open": "0"})

        quote = exchange_source(handler).fetch_quote("NEW")

        assert quote.change_percent_24h == Decimal("0")

    def test_404_is_symbol_not_found(self):
        source = exchange_source(lambda request: httpx.Response(404, json={"message": "NotFound"}))

        with pytest.raises(SymbolNotFoundError):
            source.fetch_quote("NOPE")

    def test_429_is_rate_limit(self):
        source = exchange_source(lambda request: httpx.Response(429, headers={"Retry-After": "7"}))

        with pytest.raises(RateLimitError) as exc_info:
            source.fetch_quote("BTC")

        assert exc_info.value.retry_after == 7

    def test_server_error_is_provider_unavailable(self):
        source = exchange_source(lambda request: httpx.Response(503))

        with pytest.raises(ProviderUnavailableError):
            source.fetch_quote("BTC")

    def test_missing_field_is_provider_unavailable(self):
        source = exchange_source(lambda request: httpx.Response(200, json={"unexpected": True}))

        with pytest.raises(ProviderUnavailableError, match="price"):
            source.fetch_quote("BTC")

    def test_ticker_price_out_of_range(self):
        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.path.endswith("/ticker"):
                return httpx.Response(200, json={"price": "1e25"})
            return httpx.Response(200, json={"open": "1"})

        with pytest.raises(ProviderUnavailableError, match="out of range"):
            exchange_source(handler).fetch_quote("BTC")

    def test_candles_oldest_first(self):
        rows = [
            [1704240000, "95", "105", "100", "102", "12.5"],
            [1704153600, "90", "101", "98", "100", "8"],
        ]

        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.params["granularity"] == "86400"
            return httpx.Response(200, json=rows)

        candles = exchange_source(handler).fetch_candles("BTC", days=2)

        assert [c.close for c in candles] == [Decimal("100"), Decimal("102")]
        assert candles[1].low == Decimal("95")
        assert candles[1].high == Decimal("105")
        assert candles[1].volume == Decimal("12.5")
        assert candles[0].timestamp < candles[1].timestamp

    def test_malformed_candles(self):
        source = exchange_source(lambda request: httpx.Response(200, json={"message": "oops"}))

        with pytest.raises(ProviderUnavailableError):
            source.fetch_candles("BTC", days=2)


class TestCoinbasePublicSource:
    """Tests for the exchange-rates source."""

    def test_quote_without_movement(self):
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.params["currency"] == "ETH"
            return httpx.Response(200, json={
                "data": {"currency": "ETH", "rates": {"USD": "3742.85", "EUR": "3450.10"}},
            })

        quote = public_source(handler).fetch_quote("ETH")

        assert quote.price == Decimal("3742.85")
        assert quote.change_24h == Decimal("0")
        assert quote.change_percent_24h == Decimal("0")
        assert quote.source == "coinbase_public"

    def test_unknown_currency(self):
        source = public_source(lambda request: httpx.Response(400, json={"errors": []}))

        with pytest.raises(SymbolNotFoundError):
            source.fetch_quote("NOPE")

    def test_network_error(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(ProviderUnavailableError, match="network error"):
            public_source(handler).fetch_quote("BTC")

    def test_timeout(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("timed out", request=request)

        with pytest.raises(ProviderUnavailableError, match="timeout"):
            public_source(handler).fetch_quote("BTC")

    def test_retries_transient_failure(self):
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            if len(calls) == 1:
                return httpx.Response(502)
            return httpx.Response(200, json={"data": {"rates": {"USD": "100"}}})

        source = public_source(handler)
        source.MAX_RETRY_ATTEMPTS = 2
        source.RETRY_MIN_WAIT = 0
        source.RETRY_MAX_WAIT = 0
        source.RETRY_MULTIPLIER = 0

        quote = source.fetch_quote("BTC")

        assert quote.price == Decimal("100")
        assert len(calls) == 2

    @pytest.mark.parametrize("usd", ["1e30", "10000000000"])
    def test_price_too_large_is_provider_unavailable(self, usd):
        source = public_source(lambda request: httpx.Response(200, json={"data": {"rates": {"USD": usd}}}))

        with pytest.raises(ProviderUnavailableError, match="out of range"):
            source.fetch_quote("BTC")

    def test_price_too_large_falls_back_in_provider(self):
        source = public_source(lambda request: httpx.Response(200, json={"data": {"rates": {"USD": "1e30"}}}))
        provider = PriceProvider(crypto_sources=[source])

        quote = provider.fetch_price("BTC", AssetType.CRYPTO)

        assert quote.source == FALLBACK_SOURCE
        assert quote.price == Decimal("67842.30")
