"""Shared test helpers — deterministic candles and hand-built indicator snapshots."""

from dataclasses import replace

from fxsignal.market.models import Candle
from fxsignal.strategy.indicators import MACD, BollingerBands, Stochastic, Supertrend
from fxsignal.strategy.technicals import TechnicalAnalysis


def trending_candles(
    count: int = 20,
    start: float = 1.2600,
    step: float = 0.0008,
    wick: float = 0.0001,
    bullish: bool = True,
) -> list[Candle]:
    """Equal-range strong candles all moving the same way.

    Every candle has a body of *step* and a range of ``step + 2·wick``,
    so there is no volatility spike and the confirmation strength is 3.
    """
    candles = []
    price = start
    for i in range(count):
        close = price + step if bullish else price - step
        candles.append(
            Candle(
                timestamp=1_700_000_000_000 + i * 900_000,
                open=price,
                high=max(price, close) + wick,
                low=min(price, close) - wick,
                close=close,
            )
        )
        price = close
    return candles


def choppy_candles(count: int = 20, price: float = 1.2600) -> list[Candle]:
    """Alternating bullish/bearish candles (no confirmation)."""
    candles = []
    for i in range(count):
        up = i % 2 == 0
        open_ = price
        close = price + 0.0005 if up else price - 0.0005
        candles.append(
            Candle(
                timestamp=1_700_000_000_000 + i * 900_000,
                open=open_,
                high=max(open_, close) + 0.0001,
                low=min(open_, close) - 0.0001,
                close=close,
            )
        )
        price = close
    return candles


_BASE_TECHNICALS = TechnicalAnalysis(
    rsi=45.0,
    macd=MACD(macd_line=0.0010, signal_line=0.0005, histogram=0.0005),
    sma20=1.2000,
    sma50=1.1900,
    sma200=1.1800,
    ema12=1.2100,
    ema26=1.2050,
    bollinger=BollingerBands(upper=10.0, middle=1.2000, lower=0.0, percent_b=0.5, breakout=False),
    stochastic=Stochastic(k=50.0, d=50.0),
    atr=0.0020,
    adx=20.0,
    supertrend=Supertrend(direction="BULLISH", value=1.2500),
    candle_pattern=None,
    trend="BULLISH",
    momentum="MODERATE",
    volatility="MEDIUM",
)


def make_technicals(**overrides) -> TechnicalAnalysis:
    """Bullish, non-extreme snapshot; override any field."""
    return replace(_BASE_TECHNICALS, **overrides)
