"""Technical indicators — SMA, EMA, RSI, MACD, Bollinger, Stochastic, ATR,
ADX, Supertrend.  Pure functions, no I/O.

Every function returns a single latest value and never raises on short
input: each has a documented fallback instead.
"""

import math
from dataclasses import dataclass
from typing import Literal

from fxsignal.market.models import Candle


Direction = Literal["BULLISH", "BEARISH"]


@dataclass(frozen=True)
class MACD:
    macd_line: float
    signal_line: float
    histogram: float


@dataclass(frozen=True)
class BollingerBands:
    upper: float
    middle: float
    lower: float
    percent_b: float
    breakout: bool


@dataclass(frozen=True)
class Stochastic:
    k: float
    d: float


@dataclass(frozen=True)
class Supertrend:
    direction: Direction
    value: float


# ── Moving averages ──────────────────────────────────────────────────────


def calculate_sma(prices: list[float], period: int) -> float:
    """Mean of the last *period* prices.

    With fewer than *period* prices, returns the most recent price.
    """
    if len(prices) < period:
        return prices[-1]
    window = prices[-period:]
    return sum(window) / period


def calculate_ema(prices: list[float], period: int) -> float:
    """Latest value of an Exponential Moving Average.

    ``EMA_today = price × k + EMA_yesterday × (1 - k)`` with
    ``k = 2 / (period + 1)``, seeded with the SMA of the first *period*
    prices.  With fewer than *period* prices, returns the most recent one.
    """
    if len(prices) < period:
        return prices[-1]

    k = 2.0 / (period + 1)
    ema = sum(prices[:period]) / period
    for price in prices[period:]:
        ema = price * k + ema * (1 - k)
    return ema


# ── RSI ──────────────────────────────────────────────────────────────────


def calculate_rsi(prices: list[float], period: int = 14) -> float:
    """Relative Strength Index over the last *period* deltas.

    Average gain and loss are simple means over the window (no Wilder
    smoothing).  Returns 100 when there are no losses and 50 when fewer
    than ``period + 1`` prices are available.
    """
    if len(prices) < period + 1:
        return 50.0

    gains = 0.0
    losses = 0.0
    for i in range(len(prices) - period, len(prices)):
        change = prices[i] - prices[i - 1]
        if change > 0:
            gains += change
        else:
            losses -= change

    avg_gain = gains / period
    avg_loss = losses / period
    if avg_loss == 0:
        return 100.0
    rs = avg_gain / avg_loss
    return 100.0 - 100.0 / (1.0 + rs)


# ── MACD ─────────────────────────────────────────────────────────────────


def calculate_macd(prices: list[float]) -> MACD:
    """MACD(12, 26, 9).

    The signal line is EMA(9) over the MACD history, where each history
    point is recomputed from scratch on the price prefix ending at that
    bar (prefix lengths 26 … n).  With fewer than 9 history points the
    signal line equals the MACD line.
    """
    macd_line = calculate_ema(prices, 12) - calculate_ema(prices, 26)

    history: list[float] = []
    for end in range(26, len(prices) + 1):
        prefix = prices[:end]
        history.append(calculate_ema(prefix, 12) - calculate_ema(prefix, 26))

    signal_line = calculate_ema(history, 9) if len(history) >= 9 else macd_line
    return MACD(
        macd_line=macd_line,
        signal_line=signal_line,
        histogram=macd_line - signal_line,
    )


# ── Bollinger Bands ──────────────────────────────────────────────────────


def calculate_bollinger(
    prices: list[float],
    period: int = 20,
    std_dev: float = 2.0,
) -> BollingerBands:
    """Bollinger Bands on the latest price.

    Middle = SMA(*period*); upper/lower = middle ± *std_dev* × σ, where σ
    is the population deviation of the last *period* prices around the
    middle.  ``percent_b`` is 0.5 when the bands have zero width.
    """
    middle = calculate_sma(prices, period)
    window = prices[-period:]
    variance = sum((p - middle) ** 2 for p in window) / period
    sigma = math.sqrt(variance)

    upper = middle + std_dev * sigma
    lower = middle - std_dev * sigma
    price = prices[-1]
    width = upper - lower
    percent_b = (price - lower) / width if width > 0 else 0.5

    return BollingerBands(
        upper=upper,
        middle=middle,
        lower=lower,
        percent_b=percent_b,
        breakout=price > upper or price < lower,
    )


# ── Stochastic ───────────────────────────────────────────────────────────


def _percent_k(window: list[Candle]) -> float:
    lowest = min(c.low for c in window)
    highest = max(c.high for c in window)
    if highest == lowest:
        return 50.0
    return (window[-1].close - lowest) / (highest - lowest) * 100.0


def calculate_stochastic(
    candles: list[Candle],
    k_period: int = 14,
    d_period: int = 3,
) -> Stochastic:
    """Stochastic oscillator %K / %D.

    %D is the simple mean of the last *d_period* values of a rolling %K
    series computed over the whole history.  Returns ``(50, 50)`` with
    fewer than *k_period* candles.
    """
    if len(candles) < k_period:
        return Stochastic(k=50.0, d=50.0)

    k_values = [
        _percent_k(candles[i - k_period + 1 : i + 1])
        for i in range(k_period - 1, len(candles))
    ]
    k = k_values[-1]
    d = sum(k_values[-d_period:]) / d_period if len(k_values) >= d_period else k
    return Stochastic(k=k, d=d)


# ── ATR ──────────────────────────────────────────────────────────────────


def _true_ranges(candles: list[Candle]) -> list[float]:
    return [
        max(
            candles[i].high - candles[i].low,
            abs(candles[i].high - candles[i - 1].close),
            abs(candles[i].low - candles[i - 1].close),
        )
        for i in range(1, len(candles))
    ]


def calculate_atr(candles: list[Candle], period: int = 14) -> float:
    """Average True Range: mean of the last *period* true ranges.

    ``TR = max(high - low, |high - prev_close|, |low - prev_close|)``.
    With fewer than ``period + 1`` candles, returns the last candle's
    high-low range.
    """
    if len(candles) < period + 1:
        return candles[-1].high - candles[-1].low
    return sum(_true_ranges(candles)[-period:]) / period


# ── ADX ──────────────────────────────────────────────────────────────────


def calculate_adx(candles: list[Candle], period: int = 14) -> float:
    """Directional index over a single window.

    Algorithm:
        1. +DM / -DM and TR per bar.
        2. Sum each over the last *period* bars (no Wilder smoothing).
        3. +DI = 100 × Σ+DM / ΣTR,  -DI = 100 × Σ-DM / ΣTR
        4. DX = 100 × |+DI − −DI| / (+DI + −DI)

    The DX itself is returned; it is not averaged into a smoothed ADX.
    Returns 25 with fewer than ``period + 1`` candles and 0 when the
    window has no range or no directional movement.
    """
    if len(candles) < period + 1:
        return 25.0

    plus_dm: list[float] = []
    minus_dm: list[float] = []
    for i in range(1, len(candles)):
        up_move = candles[i].high - candles[i - 1].high
        down_move = candles[i - 1].low - candles[i].low
        plus_dm.append(up_move if up_move > down_move and up_move > 0 else 0.0)
        minus_dm.append(down_move if down_move > up_move and down_move > 0 else 0.0)

    sum_tr = sum(_true_ranges(candles)[-period:])
    if sum_tr == 0:
        return 0.0

    plus_di = sum(plus_dm[-period:]) / sum_tr * 100.0
    minus_di = sum(minus_dm[-period:]) / sum_tr * 100.0
    di_sum = plus_di + minus_di
    if di_sum == 0:
        return 0.0
    return abs(plus_di - minus_di) / di_sum * 100.0


# ── Supertrend ───────────────────────────────────────────────────────────


def calculate_supertrend(
    candles: list[Candle],
    period: int = 10,
    multiplier: float = 3.0,
) -> Supertrend:
    """Supertrend direction on the latest candle.

    Bands are ``hl2 ± multiplier × ATR(period)``.  A close above the upper
    band is bullish, below the lower band bearish; otherwise the previous
    close relative to ``hl2`` decides.  The value is the band on the
    trailing side of price.

    With fewer than ``period + 1`` candles the last candle's body decides
    the direction and the value is its close.
    """
    current = candles[-1]
    if len(candles) < period + 1:
        direction: Direction = "BULLISH" if current.close >= current.open else "BEARISH"
        return Supertrend(direction=direction, value=current.close)

    atr = calculate_atr(candles, period)
    hl2 = (current.high + current.low) / 2
    upper_band = hl2 + multiplier * atr
    lower_band = hl2 - multiplier * atr

    if current.close > upper_band:
        return Supertrend(direction="BULLISH", value=lower_band)
    if current.close < lower_band:
        return Supertrend(direction="BEARISH", value=upper_band)

    direction = "BULLISH" if candles[-2].close > hl2 else "BEARISH"
    return Supertrend(
        direction=direction,
        value=lower_band if direction == "BULLISH" else upper_band,
    )
