"""Market data source — read-through TTL cache over the live provider,
with synthetic fallback.

Provider failures never propagate: they are logged and masked by
synthetic data.  Unknown pairs fail fast before any fetch.
"""

import asyncio
import logging
import time
from typing import Callable, Optional

import httpx
import numpy as np

from fxsignal.market.alpha_vantage_client import AlphaVantageClient, DataProviderError
from fxsignal.market.models import Candle, Quote, split_pair
from fxsignal.market.synthetic import generate_candles, generate_quote

logger = logging.getLogger("fxsignal.market")

_PROVIDER_ERRORS = (httpx.HTTPError, DataProviderError, KeyError, ValueError)


class MarketDataSource:
    """Candle and quote supplier for the signal engine.

    Args:
        api_key: Default Alpha Vantage key.  ``None`` means synthetic only
            unless a key is passed per call.
        cache_ttl: Seconds a live response stays fresh.
        candle_count: Candles kept per series.
        client_factory: Builds a provider client from an API key.
        clock: Monotonic time source (seconds), swappable in tests.
        rng: Random generator for the synthetic fallback.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        cache_ttl: float = 60.0,
        candle_count: int = 100,
        client_factory: Callable[[str], AlphaVantageClient] = AlphaVantageClient,
        clock: Callable[[], float] = time.monotonic,
        rng: Optional[np.random.Generator] = None,
    ) -> None:
        self._api_key = api_key
        self._cache_ttl = cache_ttl
        self._candle_count = candle_count
        self._client_factory = client_factory
        self._clock = clock
        self._rng = rng if rng is not None else np.random.default_rng()
        self._candle_cache: dict[tuple[str, str], tuple[float, list[Candle]]] = {}
        self._quote_cache: dict[str, tuple[float, Quote]] = {}

    def _fresh(self, stamp: float) -> bool:
        return self._clock() - stamp < self._cache_ttl

    def clear_cache(self) -> None:
        self._candle_cache.clear()
        self._quote_cache.clear()

    # ── Candles ──────────────────────────────────────────────────────────

    async def fetch_candles(
        self,
        pair: str,
        interval: str = "15min",
        api_key: Optional[str] = None,
        refresh: bool = False,
    ) -> list[Candle]:
        """Return candles for *pair* at *interval*, oldest first.

        Args:
            pair: e.g. ``"EUR/USD"``.
            interval: provider interval, e.g. ``"15min"``.
            api_key: Overrides the default key for this call.
            refresh: Skip the cache lookup (the result is still cached).

        Raises:
            UnknownPairError: if *pair* is not supported.
        """
        split_pair(pair)
        cache_key = (pair, interval)

        if not refresh:
            cached = self._candle_cache.get(cache_key)
            if cached and self._fresh(cached[0]):
                return list(cached[1])

        key = api_key or self._api_key
        if key:
            try:
                client = self._client_factory(key)
                candles = await client.fetch_candles(
                    pair, interval, count=self._candle_count,
                )
                if candles:
                    self._candle_cache[cache_key] = (self._clock(), candles)
                    return list(candles)
            except _PROVIDER_ERRORS as exc:
                logger.warning(
                    "Live candles unavailable for %s %s (%s) — using synthetic data",
                    pair, interval, exc,
                )

        return generate_candles(
            pair, self._candle_count, interval=interval, rng=self._rng,
        )

    # ── Quotes ───────────────────────────────────────────────────────────

    async def fetch_quote(
        self,
        pair: str,
        api_key: Optional[str] = None,
    ) -> Quote:
        """Return a spot quote for *pair*; same cache and fallback policy."""
        split_pair(pair)

        cached = self._quote_cache.get(pair)
        if cached and self._fresh(cached[0]):
            return cached[1]

        key = api_key or self._api_key
        if key:
            try:
                client = self._client_factory(key)
                quote = await client.fetch_quote(pair)
                self._quote_cache[pair] = (self._clock(), quote)
                return quote
            except _PROVIDER_ERRORS as exc:
                logger.warning(
                    "Live quote unavailable for %s (%s) — using synthetic data",
                    pair, exc,
                )

        return generate_quote(pair, rng=self._rng)

    async def fetch_all_quotes(
        self,
        pairs: list[str],
        api_key: Optional[str] = None,
    ) -> list[Quote]:
        """Fetch quotes for several pairs concurrently."""
        return list(
            await asyncio.gather(*(self.fetch_quote(p, api_key) for p in pairs))
        )
