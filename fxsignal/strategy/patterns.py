"""Candle pattern recognition — pure functions, no I/O.

Works on the last three candles of a series (oldest first).
"""

from typing import Optional

from fxsignal.market.models import Candle


# A candle whose body is under this share of its range is indecisive
# (doji / spinning top).
INDECISION_BODY_RATIO = 0.3

STRONG_BULLISH_PATTERNS = frozenset({"bullish_engulfing", "hammer", "morning_star"})
STRONG_BEARISH_PATTERNS = frozenset({"bearish_engulfing", "shooting_star", "evening_star"})
STRONG_PATTERNS = STRONG_BULLISH_PATTERNS | STRONG_BEARISH_PATTERNS

NEUTRAL_PATTERNS = frozenset({"doji", "spinning_top"})

BULLISH_PATTERNS = frozenset({"bullish_engulfing", "pin_bar_bullish", "hammer", "morning_star"})
BEARISH_PATTERNS = frozenset({"bearish_engulfing", "pin_bar_bearish", "shooting_star", "evening_star"})


def is_bullish(candle: Candle) -> bool:
    return candle.close > candle.open


def is_bearish(candle: Candle) -> bool:
    return candle.close < candle.open


def is_indecision_candle(candle: Candle) -> bool:
    """True when the body is under 30 % of the high-low range."""
    return candle.body < candle.range * INDECISION_BODY_RATIO


def confirmation_strength(candles: list[Candle]) -> int:
    """Count of consecutive strong same-direction candles at the tail.

    Returns 3 when the last three candles are all strong bullish (or all
    strong bearish), 2 when only the last two are, and 0 otherwise.
    "Strong" means directional and not an indecision candle.  Needs at
    least four candles of history.
    """
    if len(candles) < 4:
        return 0

    last, prev, prev2 = candles[-1], candles[-2], candles[-3]

    def strong(c: Candle, bullish: bool) -> bool:
        directional = is_bullish(c) if bullish else is_bearish(c)
        return directional and not is_indecision_candle(c)

    for bullish in (True, False):
        if strong(last, bullish) and strong(prev, bullish):
            return 3 if strong(prev2, bullish) else 2
    return 0


def detect_candle_pattern(candles: list[Candle]) -> Optional[str]:
    """Classify the latest candle, using the two before it for context.

    Checked in priority order (first match wins): bullish/bearish
    engulfing, doji, hammer or bullish pin bar, shooting star or bearish
    pin bar, morning star, evening star.  Returns ``None`` when nothing
    matches or the latest candle has no range.
    """
    if len(candles) < 3:
        return None

    current, prev, prev2 = candles[-1], candles[-2], candles[-3]
    body = current.body
    total_range = current.range
    upper_wick = current.high - max(current.open, current.close)
    lower_wick = min(current.open, current.close) - current.low
    prev_body = prev.body

    if total_range <= 0:
        return None

    if (
        is_bullish(current) and is_bearish(prev)
        and current.close > prev.open and current.open < prev.close
        and body > prev_body * 0.8
    ):
        return "bullish_engulfing"

    if (
        is_bearish(current) and is_bullish(prev)
        and current.open > prev.close and current.close < prev.open
        and body > prev_body * 0.8
    ):
        return "bearish_engulfing"

    if body / total_range < 0.1 and upper_wick > body * 2 and lower_wick > body * 2:
        return "doji"

    if lower_wick > body * 2 and upper_wick < body * 0.5:
        # After two down candles a long lower wick is a hammer
        if is_bearish(prev) and is_bearish(prev2):
            return "hammer"
        return "pin_bar_bullish"

    if upper_wick > body * 2 and lower_wick < body * 0.5:
        if is_bullish(prev) and is_bullish(prev2):
            return "shooting_star"
        return "pin_bar_bearish"

    if (
        is_bullish(current) and is_bearish(prev) and is_bearish(prev2)
        and current.close > (prev.open + prev.close) / 2
    ):
        return "morning_star"

    if (
        is_bearish(current) and is_bullish(prev) and is_bullish(prev2)
        and current.close < (prev.open + prev.close) / 2
    ):
        return "evening_star"

    return None
