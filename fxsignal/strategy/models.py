"""Strategy data models — typed representations for signal outputs."""

from dataclasses import dataclass
from typing import Literal, Optional

from fxsignal.strategy.indicators import Direction
from fxsignal.strategy.session_filter import PairAccuracy, SessionTime
from fxsignal.strategy.technicals import TechnicalAnalysis

SignalType = Literal["CALL", "PUT"]

# ── Block reason codes ───────────────────────────────────────────────────
# Stable identifiers for every veto or gate that zeroes a signal.

BLOCK_HTF_MISALIGNED = "htf_misaligned"
BLOCK_EXTREME_RSI = "extreme_rsi"
BLOCK_EXTREME_STOCHASTIC = "extreme_stochastic"
BLOCK_BOLLINGER_EXTREME = "bollinger_extreme"
BLOCK_VOLATILITY_SPIKE = "volatility_spike"
BLOCK_SESSION_EVENING = "session_evening"
BLOCK_SESSION_AFTERNOON_LOW_ACCURACY = "session_afternoon_low_accuracy"
BLOCK_NO_CANDLE_CONFIRMATION = "no_candle_confirmation"
BLOCK_WEAK_PATTERN_EXTREME_ZONE = "weak_pattern_extreme_zone"
BLOCK_SESSION_CONFIDENCE_GATE = "session_confidence_gate"
BLOCK_BELOW_THRESHOLD = "below_threshold"


@dataclass(frozen=True)
class HTFAlignment:
    """Supertrend direction on the base, M15, and H1 timeframes."""

    base: Direction
    m15: Direction
    h1: Direction

    @property
    def aligned(self) -> bool:
        return self.base == self.m15 == self.h1

    @property
    def partial(self) -> bool:
        return self.base == self.m15 or self.base == self.h1

    def describe(self) -> str:
        return f"BASE={self.base},M15={self.m15},H1={self.h1}"


@dataclass(frozen=True)
class SignalAnalysis:
    """Result of one analysis pass.

    ``confidence == 0`` means no trade.  ``blocked`` and
    ``block_reasons`` say why; ``reasoning`` is for display only.
    """

    pair: str
    timeframe: str
    current_price: float
    signal_type: SignalType
    confidence: int
    entry: float
    stop_loss: float
    take_profit: float
    technicals: TechnicalAnalysis
    reasoning: tuple[str, ...]
    blocked: bool = False
    block_reasons: tuple[str, ...] = ()
    score_diff: Optional[int] = None
    session: Optional[SessionTime] = None
    pair_accuracy: Optional[PairAccuracy] = None
    htf: Optional[HTFAlignment] = None
    trade_id: Optional[str] = None

    @property
    def actionable(self) -> bool:
        return self.confidence > 0 and not self.blocked


@dataclass(frozen=True)
class Signal:
    """Notification payload handed to downstream collaborators."""

    id: str
    pair: str
    timeframe: str
    type: SignalType
    entry: float
    stop_loss: float
    take_profit: float
    confidence: int
    timestamp: int
    start_time: str
    end_time: str
    status: Literal["active", "won", "lost"] = "active"
