"""Signal filter stage — hard vetoes evaluated before any scoring.

Every check runs, even after an earlier one has fired, so the reasoning
trail is complete.  The pass is blocked if any veto fired.
"""

from dataclasses import dataclass

from fxsignal.market.models import Candle, is_jpy_pair
from fxsignal.strategy.models import (
    BLOCK_BOLLINGER_EXTREME,
    BLOCK_EXTREME_RSI,
    BLOCK_EXTREME_STOCHASTIC,
    BLOCK_HTF_MISALIGNED,
    BLOCK_NO_CANDLE_CONFIRMATION,
    BLOCK_SESSION_AFTERNOON_LOW_ACCURACY,
    BLOCK_SESSION_EVENING,
    BLOCK_VOLATILITY_SPIKE,
    BLOCK_WEAK_PATTERN_EXTREME_ZONE,
    HTFAlignment,
)
from fxsignal.strategy.patterns import STRONG_PATTERNS, confirmation_strength
from fxsignal.strategy.session_filter import PairAccuracy, SessionTime
from fxsignal.strategy.technicals import TechnicalAnalysis

# Oscillator hard limits (exclusive)
STOCH_EXTREME_LOW = 3.0
STOCH_EXTREME_HIGH = 97.0

# Softer zone used by the Bollinger and weak-pattern vetoes
EXTREME_ZONE_LOW = 10.0
EXTREME_ZONE_HIGH = 90.0

VOLATILITY_LOOKBACK = 14
VOLATILITY_SPIKE_RATIO = 1.5


@dataclass(frozen=True)
class FilterResult:
    """Outcome of the filter stage."""

    blocked: bool
    block_reasons: tuple[str, ...]
    reasoning: tuple[str, ...]
    confirmation_strength: int


def rsi_limits(pair: str) -> tuple[float, float]:
    """Return the ``(lower, upper)`` hard RSI limits for *pair*."""
    if is_jpy_pair(pair):
        return 4.0, 96.0
    return 3.0, 97.0


def in_extreme_zone(technicals: TechnicalAnalysis) -> bool:
    """RSI or %K beyond the [10, 90] band."""
    return (
        not EXTREME_ZONE_LOW <= technicals.rsi <= EXTREME_ZONE_HIGH
        or not EXTREME_ZONE_LOW <= technicals.stochastic.k <= EXTREME_ZONE_HIGH
    )


def is_volatility_spike(candles: list[Candle]) -> bool:
    """Last candle's range is at least 1.5× the mean range of the last 14."""
    if len(candles) < VOLATILITY_LOOKBACK:
        return False
    window = candles[-VOLATILITY_LOOKBACK:]
    avg_range = sum(c.range for c in window) / VOLATILITY_LOOKBACK
    return candles[-1].range >= avg_range * VOLATILITY_SPIKE_RATIO


def evaluate_filters(
    pair: str,
    candles: list[Candle],
    technicals: TechnicalAnalysis,
    htf: HTFAlignment,
    session: SessionTime,
    pair_accuracy: PairAccuracy,
) -> FilterResult:
    """Run all hard vetoes in order.

    Args:
        pair: e.g. ``"EUR/USD"`` (JPY pairs get wider RSI limits).
        candles: Base-timeframe candles, oldest first.
        technicals: Indicator snapshot of *candles*.
        htf: Supertrend directions across timeframes.
        session: Current trading session.
        pair_accuracy: Accuracy tier of *pair*.

    Returns:
        ``FilterResult`` with the reason codes of every veto that fired
        and the candle-confirmation strength (0, 2, or 3).
    """
    reasons: list[str] = []
    reasoning: list[str] = []
    price = candles[-1].close
    rsi = technicals.rsi
    stoch = technicals.stochastic

    # 1. Multi-timeframe alignment
    if htf.aligned:
        reasoning.append(f"PERFECT HTF ALIGNMENT: {htf.describe()}")
    else:
        reasons.append(BLOCK_HTF_MISALIGNED)
        reasoning.append(
            f"CRITICAL: Multi-timeframe misalignment - {htf.describe()} - ALL must match"
        )
        reasoning.append("TRADE BLOCKED: Higher timeframe conflict detected")

    # 2. Extreme oscillator zones
    rsi_low, rsi_high = rsi_limits(pair)
    if rsi > rsi_high or rsi < rsi_low:
        reasons.append(BLOCK_EXTREME_RSI)
        reasoning.append(f"SKIP: EXTREME RSI blocking trade: {rsi:.1f}")

    if any(
        v > STOCH_EXTREME_HIGH or v < STOCH_EXTREME_LOW for v in (stoch.k, stoch.d)
    ):
        reasons.append(BLOCK_EXTREME_STOCHASTIC)
        reasoning.append(
            f"SKIP: EXTREME Stochastic blocking trade: K={stoch.k:.1f}, D={stoch.d:.1f}"
        )

    # 3. Price outside Bollinger Bands with extreme readings
    bands = technicals.bollinger
    outside_bands = price > bands.upper or price < bands.lower
    extreme_zone = in_extreme_zone(technicals)
    if outside_bands and extreme_zone:
        reasons.append(BLOCK_BOLLINGER_EXTREME)
        reasoning.append(
            "SKIP: Price outside Bollinger Bands with extreme indicator readings"
        )

    # 4. Short-term volatility spike
    if is_volatility_spike(candles):
        reasons.append(BLOCK_VOLATILITY_SPIKE)
        reasoning.append(
            "SKIP: High volatility spike - last candle range >= 1.5x "
            f"{VOLATILITY_LOOKBACK}-candle average"
        )

    # 5. Session / pair restriction
    if session == "EVENING" and pair_accuracy != "HIGH":
        reasons.append(BLOCK_SESSION_EVENING)
        reasoning.append("SKIP: Evening session - only HIGH accuracy pairs allowed")
    if session == "AFTERNOON" and pair_accuracy == "LOW":
        reasons.append(BLOCK_SESSION_AFTERNOON_LOW_ACCURACY)
        reasoning.append("SKIP: Afternoon session - LOW accuracy pair blocked")

    # 6. Consecutive candle confirmation
    strength = confirmation_strength(candles)
    if strength >= 2:
        reasoning.append(f"{strength} consecutive strong trend-confirming candles")
    else:
        reasons.append(BLOCK_NO_CANDLE_CONFIRMATION)
        reasoning.append(
            "SKIP: No 2+ consecutive strong trend-confirming candles for entry"
        )

    # 7. Weak or missing pattern in an extreme zone
    if extreme_zone and technicals.candle_pattern not in STRONG_PATTERNS:
        reasons.append(BLOCK_WEAK_PATTERN_EXTREME_ZONE)
        reasoning.append("SKIP: Weak/indecision candle pattern in extreme zone")

    if reasons:
        reasoning.append(f"TRADE BLOCKED: {', '.join(reasons)}")

    return FilterResult(
        blocked=bool(reasons),
        block_reasons=tuple(reasons),
        reasoning=tuple(reasoning),
        confirmation_strength=strength,
    )
