"""Confluence scorer — turns a filtered technical snapshot into a signal
direction, a confidence in [0, 100], and risk levels.

Runs only after the filter stage has passed.  Pure: no I/O, no logging.
"""

import math
from dataclasses import dataclass

from fxsignal.risk.sl_tp import RiskLevels, calculate_risk_levels
from fxsignal.strategy.filters import rsi_limits
from fxsignal.strategy.models import (
    BLOCK_SESSION_CONFIDENCE_GATE,
    HTFAlignment,
    SignalType,
)
from fxsignal.strategy.patterns import (
    BEARISH_PATTERNS,
    BULLISH_PATTERNS,
    NEUTRAL_PATTERNS,
)
from fxsignal.strategy.session_filter import PairAccuracy, SessionTime
from fxsignal.strategy.technicals import TechnicalAnalysis

MIN_CLAMPED_CONFIDENCE = 45
PENALTY_FLOOR = 30
STRICT_MODE_CAP = 55
SESSION_GATE_CONFIDENCE = 85
SESSION_GATE_DIFF = 60


@dataclass(frozen=True)
class ScoreResult:
    """Output of one scoring pass."""

    signal_type: SignalType
    confidence: int
    score_diff: int
    bullish_score: int
    bearish_score: int
    risk: RiskLevels
    reasoning: tuple[str, ...]
    block_reasons: tuple[str, ...] = ()


def round_half_up(value: float) -> int:
    """Round .5 towards +infinity (``round`` in Python is banker's)."""
    return math.floor(value + 0.5)


def confidence_tier(score_diff: int) -> tuple[int, int]:
    """Map a score difference to ``(base_confidence, cap)``."""
    if score_diff < 20:
        return 50 + round_half_up(score_diff * 0.3), 56
    if score_diff < 40:
        return 55 + round_half_up((score_diff - 20) * 0.4), 70
    if score_diff < 60:
        return 65 + round_half_up((score_diff - 40) * 0.5), 85
    return 75 + round_half_up((score_diff - 60) * 0.3), 98


def is_strict_mode(session: SessionTime, pair_accuracy: PairAccuracy) -> bool:
    """Afternoon trading on anything below HIGH accuracy."""
    return session == "AFTERNOON" and pair_accuracy in ("MEDIUM", "LOW")


# ── Evidence accumulation ────────────────────────────────────────────────


def _accumulate(
    price: float,
    t: TechnicalAnalysis,
    htf: HTFAlignment,
    strength: int,
    reasoning: list[str],
) -> tuple[int, int]:
    bull = 0
    bear = 0
    base_bullish = htf.base == "BULLISH"

    if htf.aligned:
        if base_bullish:
            bull += 50
        else:
            bear += 50
        reasoning.append(f"{htf.describe()} all {htf.base} - perfect alignment (+50)")
    elif htf.partial:
        if base_bullish:
            bull += 20
        else:
            bear += 20
        reasoning.append(f"Partial HTF alignment: {htf.describe()} (+20)")

    if strength in (2, 3):
        points = 25 if strength == 3 else 15
        if base_bullish:
            bull += points
        else:
            bear += points
        reasoning.append(f"{strength} consecutive strong trend candles (+{points})")

    macd = t.macd
    if macd.histogram > 0 and macd.macd_line > macd.signal_line:
        bull += 40
        reasoning.append("MACD bullish crossover with positive histogram (+40)")
    elif macd.histogram < 0 and macd.macd_line < macd.signal_line:
        bear += 40
        reasoning.append("MACD bearish crossover with negative histogram (+40)")

    if t.supertrend.direction == "BULLISH":
        bull += 40
        reasoning.append("Supertrend bullish - trend confirmation (+40)")
    else:
        bear += 40
        reasoning.append("Supertrend bearish - trend confirmation (+40)")

    bands = t.bollinger
    if bands.breakout:
        if price > bands.upper:
            bear += 30
            reasoning.append("Bollinger Band upper breakout - potential reversal (+30)")
        else:
            bull += 30
            reasoning.append("Bollinger Band lower breakout - potential reversal (+30)")
    elif bands.percent_b < 0.2:
        bull += 15
        reasoning.append("Price near lower Bollinger Band (+15)")
    elif bands.percent_b > 0.8:
        bear += 15
        reasoning.append("Price near upper Bollinger Band (+15)")

    if t.rsi >= 70:
        bear += 20
        reasoning.append(f"RSI overbought at {t.rsi:.1f} - reversal signal (+20)")
    elif t.rsi <= 30:
        bull += 20
        reasoning.append(f"RSI oversold at {t.rsi:.1f} - reversal signal (+20)")
    elif t.rsi > 60:
        bear += 10
        reasoning.append(f"RSI elevated at {t.rsi:.1f} - bearish bias (+10)")
    elif t.rsi < 40:
        bull += 10
        reasoning.append(f"RSI depressed at {t.rsi:.1f} - bullish bias (+10)")

    if price > t.sma20 and price > t.sma50 and price > t.sma200:
        bull += 15
        reasoning.append("Price above all major SMAs - strong uptrend (+15)")
    elif price < t.sma20 and price < t.sma50 and price < t.sma200:
        bear += 15
        reasoning.append("Price below all major SMAs - strong downtrend (+15)")
    elif price > t.sma20 and price > t.sma50:
        bull += 10
        reasoning.append("Price above SMA20 and SMA50 (+10)")
    elif price < t.sma20 and price < t.sma50:
        bear += 10
        reasoning.append("Price below SMA20 and SMA50 (+10)")

    k, d = t.stochastic.k, t.stochastic.d
    if k < 20 and d < 20:
        bull += 15
        reasoning.append(f"Stochastic oversold (K:{k:.1f}, D:{d:.1f}) (+15)")
    elif k > 80 and d > 80:
        bear += 15
        reasoning.append(f"Stochastic overbought (K:{k:.1f}, D:{d:.1f}) (+15)")

    pattern = t.candle_pattern
    if pattern in BULLISH_PATTERNS:
        bull += 15
        reasoning.append(f"Candle pattern: {pattern.replace('_', ' ')} (bullish +15)")
    elif pattern in BEARISH_PATTERNS:
        bear += 15
        reasoning.append(f"Candle pattern: {pattern.replace('_', ' ')} (bearish +15)")
    elif pattern == "doji":
        reasoning.append("Candle pattern: doji (neutral - indecision)")

    if t.adx > 40:
        if bull > bear:
            bull += 10
        else:
            bear += 10
        reasoning.append(f"Very strong trend (ADX: {t.adx:.1f}) - high conviction (+10)")
    elif t.adx > 25:
        if bull > bear:
            bull += 5
        else:
            bear += 5
        reasoning.append(f"Strong trend (ADX: {t.adx:.1f}) (+5)")

    return bull, bear


# ── Scoring ──────────────────────────────────────────────────────────────


def score_signal(
    pair: str,
    price: float,
    technicals: TechnicalAnalysis,
    htf: HTFAlignment,
    confirmation_strength: int,
    session: SessionTime,
    pair_accuracy: PairAccuracy,
) -> ScoreResult:
    """Score a snapshot that passed every filter.

    Confidence is built from the tiered score difference, then adjusted
    for trend strength, pair accuracy, pattern alignment, oscillator
    extremes, HTF alignment, and session strictness.  The session gate
    may zero it with ``session_confidence_gate``.

    Returns:
        ``ScoreResult``.  Risk levels are derived from the confidence
        after the first clamp, before the second penalty pass.
    """
    reasoning: list[str] = []
    t = technicals

    bull, bear = _accumulate(price, t, htf, confirmation_strength, reasoning)

    signal_type: SignalType = "CALL" if bull >= bear else "PUT"
    score_diff = max(bull, bear) - min(bull, bear)

    pattern = t.candle_pattern
    directional_pattern = pattern in BULLISH_PATTERNS or pattern in BEARISH_PATTERNS
    pattern_aligned = (
        (signal_type == "CALL" and pattern in BULLISH_PATTERNS)
        or (signal_type == "PUT" and pattern in BEARISH_PATTERNS)
    )
    strict = is_strict_mode(session, pair_accuracy)

    confidence, cap = confidence_tier(score_diff)
    reasoning.append(f"Score diff {score_diff} -> base confidence {confidence}% (cap {cap}%)")

    if score_diff >= 40:
        if t.adx > 40:
            confidence += 5
        elif t.adx > 25:
            confidence += 3
        if t.momentum == "STRONG":
            confidence += 3
        if t.volatility == "LOW":
            confidence += 2
        if pair_accuracy == "HIGH":
            confidence += 5
        elif pair_accuracy == "LOW":
            confidence -= 5
        if pattern_aligned:
            confidence += 8
        elif directional_pattern:
            confidence -= 10
    elif score_diff >= 20:
        if pair_accuracy == "LOW":
            confidence -= 3
        if directional_pattern and not pattern_aligned:
            confidence -= 5

    rsi_low, rsi_high = rsi_limits(pair)
    k, d = t.stochastic.k, t.stochastic.d

    if 90 <= t.rsi <= rsi_high or rsi_low <= t.rsi <= 10:
        confidence -= 12
        reasoning.append(f"Extreme RSI zone ({t.rsi:.1f}) - confidence reduced by 12%")
    if k >= 90 or d >= 90 or k <= 10 or d <= 10:
        confidence -= 10
        reasoning.append("Extreme Stochastic zone - confidence reduced by 10%")

    if htf.aligned:
        confidence += 15
        reasoning.append("Perfect HTF alignment - confidence boosted by 15%")
    elif not htf.partial:
        confidence -= 20
        reasoning.append("No HTF alignment - confidence reduced by 20%")

    if strict:
        confidence -= 20
        cap = min(cap, STRICT_MODE_CAP)
        reasoning.append(
            f"[Strict Mode] Afternoon session with {pair_accuracy} accuracy pair "
            "- confidence reduced by 20"
        )

    confidence = min(cap, max(MIN_CLAMPED_CONFIDENCE, round_half_up(confidence)))

    risk = calculate_risk_levels(
        pair, price, signal_type, t.atr, t.volatility, confidence,
    )

    # Second penalty pass
    penalty = 0
    if 90 < t.rsi <= rsi_high:
        penalty += 7
        reasoning.append(f"RSI overbought zone ({t.rsi:.1f}) - confidence reduced by 7%")
    elif rsi_low <= t.rsi < 10:
        penalty += 7
        reasoning.append(f"RSI oversold zone ({t.rsi:.1f}) - confidence reduced by 7%")

    if 90 < k <= 97 or 90 < d <= 97:
        penalty += 5
        reasoning.append(f"Stochastic overbought zone (K:{k:.1f}, D:{d:.1f}) - reduced by 5%")
    elif 3 <= k < 10 or 3 <= d < 10:
        penalty += 5
        reasoning.append(f"Stochastic oversold zone (K:{k:.1f}, D:{d:.1f}) - reduced by 5%")

    if pattern in NEUTRAL_PATTERNS:
        penalty += 8
        reasoning.append("Neutral candle pattern (doji/spinning top) - reduced confidence by 8%")

    confidence = max(PENALTY_FLOOR, confidence - penalty)
    _, tier_cap = confidence_tier(score_diff)
    confidence = min(confidence, tier_cap)

    if strict:
        confidence = min(max(PENALTY_FLOOR, confidence - 20), STRICT_MODE_CAP)
        reasoning.append(
            "STRICT MODE: Medium/Low accuracy pair in afternoon "
            "- confidence reduced by 20% and capped at 55%"
        )

    block_reasons: tuple[str, ...] = ()
    if (
        (session == "AFTERNOON" or pair_accuracy == "LOW")
        and confidence < SESSION_GATE_CONFIDENCE
        and score_diff < SESSION_GATE_DIFF
    ):
        label = "Afternoon" if session == "AFTERNOON" else "Low-accuracy"
        reasoning.append(
            f"BLOCKED: {label} session requires confidence >= "
            f"{SESSION_GATE_CONFIDENCE}% (was {confidence}%)"
        )
        confidence = 0
        block_reasons = (BLOCK_SESSION_CONFIDENCE_GATE,)

    reasoning.append(
        f"Pair accuracy: {pair_accuracy} | Session: {session}{' (STRICT)' if strict else ''}"
    )
    reasoning.append(
        f"Score diff: {score_diff} | R/R: 1:{risk.rr_ratio:.1f} | Confidence: {confidence}%"
    )

    return ScoreResult(
        signal_type=signal_type,
        confidence=confidence,
        score_diff=score_diff,
        bullish_score=bull,
        bearish_score=bear,
        risk=risk,
        reasoning=tuple(reasoning),
        block_reasons=block_reasons,
    )
