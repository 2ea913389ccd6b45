"""Alpha Vantage FX REST API async client.

Handles live candle and quote fetching.  Callers are expected to catch
failures and fall back to synthetic data (see ``market.source``).
"""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Optional

import httpx

from fxsignal.market.models import Candle, Quote, split_pair

logger = logging.getLogger("fxsignal.market")

_BASE_URL = "https://www.alphavantage.co/query"

# Retry settings
_MAX_RETRIES = 3
_RETRY_BASE_DELAY = 1.0  # seconds; multiplied by the attempt number


class DataProviderError(Exception):
    """The provider answered, but the payload carried no usable data."""


class AlphaVantageClient:
    """Async client wrapping the Alpha Vantage FX endpoints."""

    def __init__(
        self,
        api_key: str,
        base_url: str = _BASE_URL,
        retry_delay: float = _RETRY_BASE_DELAY,
    ) -> None:
        self._api_key = api_key
        self._base_url = base_url
        self._retry_delay = retry_delay

    # ── Retry helper ─────────────────────────────────────────────────────

    async def _request_with_retry(self, params: dict) -> dict:
        """GET the query endpoint with linear-backoff retry.

        Any transport error or non-2xx status is retried up to
        ``_MAX_RETRIES`` attempts, sleeping ``retry_delay × attempt``
        between them.  The last error is re-raised.
        """
        last_exc: Optional[Exception] = None

        for attempt in range(1, _MAX_RETRIES + 1):
            try:
                async with httpx.AsyncClient() as client:
                    resp = await client.get(
                        self._base_url,
                        params={**params, "apikey": self._api_key},
                        timeout=30.0,
                    )
                resp.raise_for_status()
                return resp.json()

            except httpx.HTTPError as exc:
                last_exc = exc
                if attempt == _MAX_RETRIES:
                    break
                delay = self._retry_delay * attempt
                logger.warning(
                    "Alpha Vantage %s failed (%s) — retry %d/%d in %.1fs",
                    params.get("function"), exc, attempt, _MAX_RETRIES, delay,
                )
                await asyncio.sleep(delay)

        raise last_exc  # type: ignore[misc]

    # ── Candle data ──────────────────────────────────────────────────────

    async def fetch_candles(
        self,
        pair: str,
        interval: str,
        count: int = 100,
    ) -> list[Candle]:
        """Fetch intraday FX candles.

        Args:
            pair: e.g. ``"EUR/USD"``
            interval: provider interval, e.g. ``"15min"``
            count: number of most recent candles to keep

        Returns:
            List of ``Candle`` objects ordered oldest-first.

        Raises:
            DataProviderError: if the payload has no time series
                (rate-limit notes and error messages look like this).
        """
        from_symbol, to_symbol = split_pair(pair)
        data = await self._request_with_retry({
            "function": "FX_INTRADAY",
            "from_symbol": from_symbol,
            "to_symbol": to_symbol,
            "interval": interval,
        })

        series_key = next((k for k in data if "Time Series" in k), None)
        if series_key is None or not data[series_key]:
            raise DataProviderError(
                data.get("Note") or data.get("Error Message")
                or f"No time series in response for {pair}"
            )

        candles: list[Candle] = []
        for stamp, values in data[series_key].items():
            candles.append(
                Candle(
                    timestamp=_parse_timestamp(stamp),
                    open=float(values["1. open"]),
                    high=float(values["2. high"]),
                    low=float(values["3. low"]),
                    close=float(values["4. close"]),
                )
            )
        candles.sort(key=lambda c: c.timestamp)
        return candles[-count:]

    # ── Quotes ───────────────────────────────────────────────────────────

    async def fetch_quote(self, pair: str) -> Quote:
        """Fetch the realtime exchange rate for *pair*.

        Bid/ask fall back to ±0.005 % of the rate when the provider
        leaves them blank.
        """
        from_currency, to_currency = split_pair(pair)
        data = await self._request_with_retry({
            "function": "CURRENCY_EXCHANGE_RATE",
            "from_currency": from_currency,
            "to_currency": to_currency,
        })

        rate = data.get("Realtime Currency Exchange Rate")
        if not rate:
            raise DataProviderError(
                data.get("Note") or data.get("Error Message")
                or f"No exchange rate in response for {pair}"
            )

        price = float(rate["5. Exchange Rate"])
        bid = _optional_float(rate.get("8. Bid Price")) or price * 0.99995
        ask = _optional_float(rate.get("9. Ask Price")) or price * 1.00005
        return Quote(
            pair=pair,
            price=price,
            bid=bid,
            ask=ask,
            timestamp=int(datetime.now(timezone.utc).timestamp() * 1000),
        )


def _parse_timestamp(stamp: str) -> int:
    """Convert ``"2025-01-10 14:15:00"`` (UTC) to epoch milliseconds."""
    dt = datetime.fromisoformat(stamp).replace(tzinfo=timezone.utc)
    return int(dt.timestamp() * 1000)


def _optional_float(value: Optional[str]) -> Optional[float]:
    try:
        return float(value) if value not in (None, "", "-") else None
    except ValueError:
        return None
