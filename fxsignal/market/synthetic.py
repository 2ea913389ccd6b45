"""Synthetic market data — fallback when no live provider is available.

The series shape is deterministic (a slow sine drift around the pair's
reference price) with random noise layered on top.  Pass a seeded
``numpy.random.Generator`` for reproducible output.
"""

import math
import time
from typing import Optional

import numpy as np

from fxsignal.market.models import BASE_PRICES, INTERVAL_MINUTES, Candle, Quote, is_jpy_pair


def _now_ms() -> int:
    return int(time.time() * 1000)


def generate_candles(
    pair: str,
    count: int = 100,
    interval: str = "15min",
    rng: Optional[np.random.Generator] = None,
    now_ms: Optional[int] = None,
) -> list[Candle]:
    """Generate *count* candles ending at *now_ms*, oldest first.

    Each candle opens at the previous close.  Its body is
    ``sin(i × 0.1) × vol × price`` plus uniform noise, and the wicks
    extend up to half a volatility unit beyond the body.
    """
    rng = rng if rng is not None else np.random.default_rng()
    now_ms = now_ms if now_ms is not None else _now_ms()
    step_ms = INTERVAL_MINUTES.get(interval, 15) * 60 * 1000
    volatility = 0.001 if is_jpy_pair(pair) else 0.0001

    price = BASE_PRICES.get(pair, 1.0)
    candles: list[Candle] = []

    for i in range(count - 1, -1, -1):
        unit = volatility * price
        trend = math.sin(i * 0.1) * unit
        noise = (rng.random() - 0.5) * unit

        open_ = price
        close = open_ + trend + noise
        high = max(open_, close) + rng.random() * unit * 0.5
        low = min(open_, close) - rng.random() * unit * 0.5

        candles.append(
            Candle(
                timestamp=now_ms - i * step_ms,
                open=open_,
                high=high,
                low=low,
                close=close,
            )
        )
        price = close

    return candles


def generate_quote(
    pair: str,
    rng: Optional[np.random.Generator] = None,
    now_ms: Optional[int] = None,
) -> Quote:
    """Generate a quote within a tight random walk of the reference price."""
    rng = rng if rng is not None else np.random.default_rng()
    base = BASE_PRICES.get(pair, 1.0)
    volatility = 0.0002 if is_jpy_pair(pair) else 0.00002
    walk = (rng.random() - 0.5) * 2 * volatility * base
    price = base + walk
    spread = 0.02 if is_jpy_pair(pair) else 0.00002

    return Quote(
        pair=pair,
        price=price,
        bid=price - spread / 2,
        ask=price + spread / 2,
        timestamp=now_ms if now_ms is not None else _now_ms(),
        change=walk,
        change_percent=walk / base * 100,
    )
