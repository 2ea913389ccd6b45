"""Pre-send safety verification — decides whether a signal may leave
the system.

Works on the typed ``blocked`` / ``block_reasons`` fields; reasoning text
is never parsed.
"""

import logging
from dataclasses import dataclass, field
from typing import Optional

from fxsignal.strategy.models import (
    BLOCK_EXTREME_RSI,
    BLOCK_EXTREME_STOCHASTIC,
    BLOCK_HTF_MISALIGNED,
    BLOCK_NO_CANDLE_CONFIRMATION,
    BLOCK_SESSION_AFTERNOON_LOW_ACCURACY,
    BLOCK_SESSION_CONFIDENCE_GATE,
    BLOCK_SESSION_EVENING,
    BLOCK_VOLATILITY_SPIKE,
    Signal,
    SignalAnalysis,
)

logger = logging.getLogger("fxsignal.notify")

_SESSION_CODES = frozenset({
    BLOCK_SESSION_EVENING,
    BLOCK_SESSION_AFTERNOON_LOW_ACCURACY,
    BLOCK_SESSION_CONFIDENCE_GATE,
})


@dataclass
class VerificationResult:
    """Outcome of ``verify_signal_safety``."""
    is_valid: bool
    confidence: int
    block_reasons: list[str] = field(default_factory=list)
    passed_checks: dict[str, bool] = field(default_factory=dict)


def verify_signal_safety(
    signal: Signal,
    analysis: Optional[SignalAnalysis] = None,
) -> VerificationResult:
    """Check that *signal* carries confidence and that *analysis* (when
    given) passed every filter.
    """
    reasons: list[str] = []
    codes = set(analysis.block_reasons) if analysis is not None else set()

    checks = {
        "confidence_threshold": signal.confidence > 0,
        "htf_alignment": BLOCK_HTF_MISALIGNED not in codes,
        "candle_confirmation": BLOCK_NO_CANDLE_CONFIRMATION not in codes,
        "extreme_zones": not codes & {BLOCK_EXTREME_RSI, BLOCK_EXTREME_STOCHASTIC},
        "volatility_check": BLOCK_VOLATILITY_SPIKE not in codes,
        "session_filter": not codes & _SESSION_CODES,
    }

    if not checks["confidence_threshold"]:
        reasons.append("Confidence is 0% - signal was blocked by risk filters")
    if analysis is not None and analysis.blocked:
        reasons.extend(analysis.block_reasons or ("blocked",))

    is_valid = not reasons

    logger.info(
        "[VERIFICATION] %s — valid=%s confidence=%d%% checks=%s",
        signal.pair, is_valid, signal.confidence, checks,
    )
    if not is_valid:
        logger.warning("[VERIFICATION FAILED] %s — %s", signal.pair, ", ".join(reasons))

    return VerificationResult(
        is_valid=is_valid,
        confidence=signal.confidence,
        block_reasons=reasons,
        passed_checks=checks,
    )
