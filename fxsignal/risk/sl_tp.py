"""Stop-loss and take-profit calculation — pure math, no I/O.

Volatility-scaled approach:
    SL distance is ATR × a volatility multiplier, floored at 15 pips.
    TP distance is SL distance × a risk-reward ratio that grows with
    signal confidence.
"""

from dataclasses import dataclass

from fxsignal.market.models import pip_value

MIN_SL_PIPS = 15
BLOCKED_TP_PIPS = 30

ATR_MULTIPLIERS: dict[str, float] = {
    "HIGH": 2.0,
    "MEDIUM": 1.5,
    "LOW": 1.2,
}


@dataclass
class RiskLevels:
    """Computed stop-loss and take-profit for a trade."""
    entry: float
    sl: float
    tp: float
    rr_ratio: float


def risk_reward_ratio(confidence: int) -> float:
    """Reward multiple for a given confidence: 3.0 / 2.5 / 2.0 / 1.8."""
    if confidence > 90:
        return 3.0
    if confidence > 80:
        return 2.5
    if confidence > 70:
        return 2.0
    return 1.8


def calculate_risk_levels(
    pair: str,
    entry_price: float,
    direction: str,
    atr: float,
    volatility: str,
    confidence: int,
) -> RiskLevels:
    """Calculate SL and TP around *entry_price*.

    Args:
        pair: Currency pair, used for the pip size.
        entry_price: Trade entry price (the last close).
        direction: ``"CALL"`` or ``"PUT"``.
        atr: Current ATR(14) value.
        volatility: ``"HIGH"``, ``"MEDIUM"`` or ``"LOW"``.
        confidence: Signal confidence used to pick the R:R ratio.

    Returns:
        ``RiskLevels`` with the SL/TP prices and the ratio applied.

    Raises:
        ValueError: If *direction* is not ``"CALL"`` or ``"PUT"``.
    """
    if direction not in ("CALL", "PUT"):
        raise ValueError(f"direction must be 'CALL' or 'PUT', got '{direction}'")

    multiplier = ATR_MULTIPLIERS.get(volatility, ATR_MULTIPLIERS["LOW"])
    sl_dist = max(atr * multiplier, pip_value(pair) * MIN_SL_PIPS)
    rr_ratio = risk_reward_ratio(confidence)
    tp_dist = sl_dist * rr_ratio

    if direction == "CALL":
        sl_price = entry_price - sl_dist
        tp_price = entry_price + tp_dist
    else:
        sl_price = entry_price + sl_dist
        tp_price = entry_price - tp_dist

    return RiskLevels(entry=entry_price, sl=sl_price, tp=tp_price, rr_ratio=rr_ratio)


def blocked_placeholder_levels(pair: str, price: float) -> RiskLevels:
    """Nominal CALL-side levels attached to a vetoed signal."""
    pip = pip_value(pair)
    return RiskLevels(
        entry=price,
        sl=price - pip * MIN_SL_PIPS,
        tp=price + pip * BLOCKED_TP_PIPS,
        rr_ratio=BLOCKED_TP_PIPS / MIN_SL_PIPS,
    )
