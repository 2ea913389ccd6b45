"""Tests for fxsignal.market — provider client, cache, and synthetic fallback.

The Alpha Vantage client is exercised with a patched ``httpx.AsyncClient``
so no network traffic happens.
"""

import httpx
import numpy as np
import pytest

from fxsignal.market.alpha_vantage_client import AlphaVantageClient, DataProviderError
from fxsignal.market.models import (
    Candle,
    Quote,
    UnknownPairError,
    normalize_pair,
    pip_value,
    split_pair,
)
from fxsignal.market.source import MarketDataSource
from fxsignal.market.synthetic import generate_candles, generate_quote


INTRADAY = {
    "Meta Data": {"1. Information": "FX Intraday (15min) Time Series"},
    "Time Series FX (15min)": {
        "2025-01-10 14:30:00": {"1. open": "1.0310", "2. high": "1.0320", "3. low": "1.0300", "4. close": "1.0315"},
        "2025-01-10 14:15:00": {"1. open": "1.0300", "2. high": "1.0312", "3. low": "1.0295", "4. close": "1.0310"},
    },
}

EXCHANGE_RATE = {
    "Realtime Currency Exchange Rate": {
        "1. From_Currency Code": "EUR",
        "3. To_Currency Code": "USD",
        "5. Exchange Rate": "1.08500",
        "8. Bid Price": "1.08495",
        "9. Ask Price": "-",
    }
}


def _patch_get(monkeypatch, payloads):
    """Serve *payloads* in order; an Exception instance is raised instead."""
    calls = []

    async def _mock_get(self, url, *, params=None, timeout=None):
        calls.append(params)
        item = payloads[min(len(calls), len(payloads)) - 1]
        if isinstance(item, Exception):
            raise item
        return httpx.Response(200, json=item, request=httpx.Request("GET", url))

    monkeypatch.setattr(httpx.AsyncClient, "get", _mock_get)
    return calls


# ── Models ───────────────────────────────────────────────────────────────


class TestPairs:
    def test_normalize(self):
        assert normalize_pair(" eur_usd ") == "EUR/USD"

    def test_split_known(self):
        assert split_pair("GBP/JPY") == ("GBP", "JPY")

    def test_split_unknown(self):
        with pytest.raises(UnknownPairError):
            split_pair("BTC/USD")

    def test_pip_value(self):
        assert pip_value("USD/JPY") == 0.01
        assert pip_value("EUR/USD") == 0.0001


# ── Client ───────────────────────────────────────────────────────────────


class TestAlphaVantageClient:
    @pytest.mark.asyncio
    async def test_fetch_candles_parses_and_sorts(self, monkeypatch):
        calls = _patch_get(monkeypatch, [INTRADAY])
        client = AlphaVantageClient("demo-key")
        candles = await client.fetch_candles("EUR/USD", "15min")

        assert [c.close for c in candles] == [1.0310, 1.0315]
        assert candles[0].timestamp < candles[1].timestamp
        assert calls[0]["function"] == "FX_INTRADAY"
        assert calls[0]["from_symbol"] == "EUR"
        assert calls[0]["apikey"] == "demo-key"

    @pytest.mark.asyncio
    async def test_fetch_candles_keeps_most_recent(self, monkeypatch):
        _patch_get(monkeypatch, [INTRADAY])
        candles = await AlphaVantageClient("k").fetch_candles("EUR/USD", "15min", count=1)
        assert len(candles) == 1
        assert candles[0].close == 1.0315

    @pytest.mark.asyncio
    async def test_rate_limit_note_raises(self, monkeypatch):
        _patch_get(monkeypatch, [{"Note": "API call frequency exceeded"}])
        with pytest.raises(DataProviderError, match="frequency"):
            await AlphaVantageClient("k").fetch_candles("EUR/USD", "15min")

    @pytest.mark.asyncio
    async def test_retries_transport_errors(self, monkeypatch):
        calls = _patch_get(monkeypatch, [
            httpx.ConnectError("boom"),
            httpx.ConnectError("boom"),
            INTRADAY,
        ])
        client = AlphaVantageClient("k", retry_delay=0)
        candles = await client.fetch_candles("EUR/USD", "15min")
        assert len(calls) == 3
        assert len(candles) == 2

    @pytest.mark.asyncio
    async def test_gives_up_after_three_attempts(self, monkeypatch):
        calls = _patch_get(monkeypatch, [httpx.ConnectError("down")])
        with pytest.raises(httpx.ConnectError):
            await AlphaVantageClient("k", retry_delay=0).fetch_candles("EUR/USD", "15min")
        assert len(calls) == 3

    @pytest.mark.asyncio
    async def test_fetch_quote_fills_missing_ask(self, monkeypatch):
        _patch_get(monkeypatch, [EXCHANGE_RATE])
        quote = await AlphaVantageClient("k").fetch_quote("EUR/USD")
        assert quote.price == 1.085
        assert quote.bid == 1.08495
        assert quote.ask == pytest.approx(1.085 * 1.00005)


# ── Synthetic data ───────────────────────────────────────────────────────


class TestSynthetic:
    def test_candles_are_well_formed(self):
        candles = generate_candles("USD/JPY", 50, rng=np.random.default_rng(1), now_ms=10_000_000)
        assert len(candles) == 50
        assert candles[-1].timestamp == 10_000_000
        for prev, cur in zip(candles, candles[1:]):
            assert cur.open == prev.close
            assert cur.timestamp - prev.timestamp == 900_000
        for c in candles:
            assert c.low <= min(c.open, c.close) <= max(c.open, c.close) <= c.high

    def test_seeded_generator_is_reproducible(self):
        a = generate_candles("EUR/USD", 30, rng=np.random.default_rng(9), now_ms=0)
        b = generate_candles("EUR/USD", 30, rng=np.random.default_rng(9), now_ms=0)
        assert a == b

    def test_quote_spread(self):
        quote = generate_quote("EUR/USD", rng=np.random.default_rng(2), now_ms=0)
        assert quote.bid < quote.price < quote.ask
        assert quote.ask - quote.bid == pytest.approx(0.00002)


# ── Source ───────────────────────────────────────────────────────────────


class _FakeClient:
    def __init__(self, candles=None, error=None):
        self.candles = candles
        self.error = error
        self.calls = 0

    async def fetch_candles(self, pair, interval, count=100):
        self.calls += 1
        if self.error:
            raise self.error
        return self.candles

    async def fetch_quote(self, pair):
        self.calls += 1
        if self.error:
            raise self.error
        return Quote(pair=pair, price=1.1, bid=1.09, ask=1.11, timestamp=0)


class _Clock:
    def __init__(self):
        self.now = 100.0

    def __call__(self):
        return self.now


LIVE = [Candle(timestamp=i, open=1.0, high=1.1, low=0.9, close=1.05) for i in range(3)]


def _source(client, **kwargs):
    return MarketDataSource(
        api_key="k",
        client_factory=lambda key: client,
        rng=np.random.default_rng(0),
        **kwargs,
    )


class TestMarketDataSource:
    @pytest.mark.asyncio
    async def test_without_key_uses_synthetic(self):
        source = MarketDataSource(candle_count=40, rng=np.random.default_rng(0))
        candles = await source.fetch_candles("EUR/USD", "15min")
        assert len(candles) == 40

    @pytest.mark.asyncio
    async def test_live_candles_are_cached(self):
        client = _FakeClient(candles=LIVE)
        source = _source(client)
        first = await source.fetch_candles("EUR/USD", "15min")
        second = await source.fetch_candles("EUR/USD", "15min")
        assert first == LIVE
        assert second == LIVE
        assert client.calls == 1

    @pytest.mark.asyncio
    async def test_refresh_bypasses_cache(self):
        client = _FakeClient(candles=LIVE)
        source = _source(client)
        await source.fetch_candles("EUR/USD", "15min")
        await source.fetch_candles("EUR/USD", "15min", refresh=True)
        assert client.calls == 2

    @pytest.mark.asyncio
    async def test_cache_expires(self):
        clock = _Clock()
        client = _FakeClient(candles=LIVE)
        source = _source(client, cache_ttl=60, clock=clock)
        await source.fetch_candles("EUR/USD", "15min")
        clock.now += 61
        await source.fetch_candles("EUR/USD", "15min")
        assert client.calls == 2

    @pytest.mark.asyncio
    async def test_provider_error_falls_back(self):
        client = _FakeClient(error=DataProviderError("Note: rate limited"))
        source = _source(client, candle_count=25)
        candles = await source.fetch_candles("GBP/USD", "60min")
        assert len(candles) == 25
        assert candles != LIVE

    @pytest.mark.asyncio
    async def test_transport_error_falls_back_for_quotes(self):
        client = _FakeClient(error=httpx.ConnectError("down"))
        quote = await _source(client).fetch_quote("EUR/USD")
        assert quote.pair == "EUR/USD"
        assert quote.bid < quote.ask

    @pytest.mark.asyncio
    async def test_unknown_pair_fails_fast(self):
        client = _FakeClient(candles=LIVE)
        with pytest.raises(UnknownPairError):
            await _source(client).fetch_candles("XAU/USD", "15min")
        assert client.calls == 0

    @pytest.mark.asyncio
    async def test_fetch_all_quotes(self):
        client = _FakeClient()
        quotes = await _source(client).fetch_all_quotes(["EUR/USD", "USD/JPY"])
        assert [q.pair for q in quotes] == ["EUR/USD", "USD/JPY"]

    @pytest.mark.asyncio
    async def test_clear_cache(self):
        client = _FakeClient()
        source = _source(client)
        await source.fetch_quote("EUR/USD")
        source.clear_cache()
        await source.fetch_quote("EUR/USD")
        assert client.calls == 2
