"""Technical snapshot — runs every indicator over a candle series and
classifies trend, momentum, and volatility.
"""

from dataclasses import dataclass
from typing import Literal, Optional

from fxsignal.market.models import Candle
from fxsignal.strategy.indicators import (
    MACD,
    BollingerBands,
    Stochastic,
    Supertrend,
    calculate_adx,
    calculate_atr,
    calculate_bollinger,
    calculate_ema,
    calculate_macd,
    calculate_rsi,
    calculate_sma,
    calculate_stochastic,
    calculate_supertrend,
)
from fxsignal.strategy.patterns import detect_candle_pattern


@dataclass(frozen=True)
class TechnicalAnalysis:
    """Indicator outputs for the latest candle of a series."""

    rsi: float
    macd: MACD
    sma20: float
    sma50: float
    sma200: float
    ema12: float
    ema26: float
    bollinger: BollingerBands
    stochastic: Stochastic
    atr: float
    adx: float
    supertrend: Supertrend
    candle_pattern: Optional[str]
    trend: Literal["BULLISH", "BEARISH", "NEUTRAL"]
    momentum: Literal["STRONG", "MODERATE", "WEAK"]
    volatility: Literal["HIGH", "MEDIUM", "LOW"]


def analyze_technicals(candles: list[Candle]) -> TechnicalAnalysis:
    """Compute the full indicator set for *candles* (oldest first).

    Raises ``ValueError`` on an empty series; every shorter-than-period
    case is handled by the individual indicator fallbacks.
    """
    if not candles:
        raise ValueError("Need at least 1 candle for technical analysis")

    closes = [c.close for c in candles]
    price = closes[-1]

    rsi = calculate_rsi(closes, 14)
    macd = calculate_macd(closes)
    sma20 = calculate_sma(closes, 20)
    sma50 = calculate_sma(closes, 50)
    sma200 = calculate_sma(closes, 200)
    ema12 = calculate_ema(closes, 12)
    ema26 = calculate_ema(closes, 26)
    bollinger = calculate_bollinger(closes, 20, 2.0)
    stochastic = calculate_stochastic(candles, 14, 3)
    atr = calculate_atr(candles, 14)
    adx = calculate_adx(candles, 14)
    supertrend = calculate_supertrend(candles, 10, 3.0)

    # ── Trend: weighted vote ──
    bullish = 0.0
    bearish = 0.0

    for sma, weight in ((sma20, 1.5), (sma50, 2.0), (sma200, 2.5)):
        if price > sma:
            bullish += weight
        else:
            bearish += weight

    if ema12 > ema26:
        bullish += 2
    else:
        bearish += 2

    if macd.histogram > 0 and macd.macd_line > macd.signal_line:
        bullish += 2.5
    elif macd.histogram < 0 and macd.macd_line < macd.signal_line:
        bearish += 2.5

    if rsi < 30:
        bullish += 3
    elif rsi < 40:
        bullish += 1
    elif rsi > 70:
        bearish += 3
    elif rsi > 60:
        bearish += 1

    if bollinger.percent_b < 0.2:
        bullish += 2
    elif bollinger.percent_b > 0.8:
        bearish += 2

    if stochastic.k < 20 and stochastic.d < 20:
        bullish += 2
    elif stochastic.k > 80 and stochastic.d > 80:
        bearish += 2

    if stochastic.k > stochastic.d and stochastic.k < 50:
        bullish += 1
    elif stochastic.k < stochastic.d and stochastic.k > 50:
        bearish += 1

    if supertrend.direction == "BULLISH":
        bullish += 3
    else:
        bearish += 3

    if adx > 25:
        if bullish > bearish:
            bullish += 1.5
        else:
            bearish += 1.5

    if bullish > bearish + 2:
        trend = "BULLISH"
    elif bearish > bullish + 2:
        trend = "BEARISH"
    else:
        trend = "NEUTRAL"

    # ── Momentum / volatility ──
    hist = abs(macd.histogram)
    signal = abs(macd.signal_line)
    if adx > 40 or hist > signal * 0.5:
        momentum = "STRONG"
    elif adx > 25 or hist > signal * 0.2:
        momentum = "MODERATE"
    else:
        momentum = "WEAK"

    if atr > bollinger.middle * 0.015:
        volatility = "HIGH"
    elif atr > bollinger.middle * 0.008:
        volatility = "MEDIUM"
    else:
        volatility = "LOW"

    return TechnicalAnalysis(
        rsi=rsi,
        macd=macd,
        sma20=sma20,
        sma50=sma50,
        sma200=sma200,
        ema12=ema12,
        ema26=ema26,
        bollinger=bollinger,
        stochastic=stochastic,
        atr=atr,
        adx=adx,
        supertrend=supertrend,
        candle_pattern=detect_candle_pattern(candles),
        trend=trend,
        momentum=momentum,
        volatility=volatility,
    )


def neutral_technicals() -> TechnicalAnalysis:
    """Placeholder snapshot for a signal produced without any data."""
    return TechnicalAnalysis(
        rsi=50.0,
        macd=MACD(macd_line=0.0, signal_line=0.0, histogram=0.0),
        sma20=0.0,
        sma50=0.0,
        sma200=0.0,
        ema12=0.0,
        ema26=0.0,
        bollinger=BollingerBands(upper=0.0, middle=0.0, lower=0.0, percent_b=0.5, breakout=False),
        stochastic=Stochastic(k=50.0, d=50.0),
        atr=0.0,
        adx=0.0,
        supertrend=Supertrend(direction="BULLISH", value=0.0),
        candle_pattern=None,
        trend="NEUTRAL",
        momentum="WEAK",
        volatility="LOW",
    )
