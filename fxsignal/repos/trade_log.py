"""Trade log — bounded in-memory record of every issued signal.

Entries start PENDING and are settled to WIN or LOSS exactly once.  The
oldest entry is evicted once the log reaches capacity.
"""

import logging
import threading
import time
import uuid
from collections import deque
from dataclasses import dataclass, replace
from typing import Callable, Literal, Optional

from fxsignal.repos.stats import best_setups, calculate_performance

logger = logging.getLogger("fxsignal.trade_log")

TradeResult = Literal["WIN", "LOSS", "PENDING"]

DEFAULT_CAPACITY = 500

# Legacy settlement matches an entry logged within this window of the exit.
SETTLE_MATCH_WINDOW_MS = 10 * 60 * 1000


@dataclass(frozen=True)
class TradeLogEntry:
    """A single logged signal.  ``timestamp`` is epoch milliseconds."""

    trade_id: str
    timestamp: int
    pair: str
    signal_type: str
    entry: float
    stop_loss: float
    take_profit: float
    confidence: int
    rsi: float
    stochastic_k: float
    stochastic_d: float
    candle_pattern: Optional[str]
    htf_alignment: str
    session: str
    pair_accuracy: str
    result: TradeResult = "PENDING"
    exit_price: Optional[float] = None
    exit_time: Optional[int] = None

    def to_dict(self) -> dict:
        return {
            "trade_id": self.trade_id,
            "timestamp": self.timestamp,
            "pair": self.pair,
            "signal_type": self.signal_type,
            "entry": self.entry,
            "stop_loss": self.stop_loss,
            "take_profit": self.take_profit,
            "confidence": self.confidence,
            "rsi": self.rsi,
            "stochastic": {"k": self.stochastic_k, "d": self.stochastic_d},
            "candle_pattern": self.candle_pattern,
            "htf_alignment": self.htf_alignment,
            "session": self.session,
            "pair_accuracy": self.pair_accuracy,
            "result": self.result,
            "exit_price": self.exit_price,
            "exit_time": self.exit_time,
        }


def _now_ms() -> int:
    return int(time.time() * 1000)


class TradeLog:
    """Thread-safe ring buffer of ``TradeLogEntry`` records.

    Args:
        capacity: Maximum number of entries kept (oldest evicted first).
        clock: Returns the current time in epoch milliseconds.
    """

    def __init__(
        self,
        capacity: int = DEFAULT_CAPACITY,
        clock: Callable[[], int] = _now_ms,
    ) -> None:
        if capacity < 1:
            raise ValueError(f"capacity must be >= 1, got {capacity}")
        self._entries: deque[TradeLogEntry] = deque(maxlen=capacity)
        self._lock = threading.Lock()
        self._clock = clock

    @property
    def capacity(self) -> int:
        return self._entries.maxlen

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    # ── Write ────────────────────────────────────────────────────────────

    def log_trade(
        self,
        pair: str,
        signal_type: str,
        entry: float,
        stop_loss: float,
        take_profit: float,
        confidence: int,
        rsi: float,
        stochastic_k: float,
        stochastic_d: float,
        candle_pattern: Optional[str],
        htf_alignment: str,
        session: str,
        pair_accuracy: str,
    ) -> TradeLogEntry:
        """Append a PENDING entry and return it."""
        record = TradeLogEntry(
            trade_id=uuid.uuid4().hex,
            timestamp=self._clock(),
            pair=pair,
            signal_type=signal_type,
            entry=entry,
            stop_loss=stop_loss,
            take_profit=take_profit,
            confidence=confidence,
            rsi=rsi,
            stochastic_k=stochastic_k,
            stochastic_d=stochastic_d,
            candle_pattern=candle_pattern,
            htf_alignment=htf_alignment,
            session=session,
            pair_accuracy=pair_accuracy,
        )
        with self._lock:
            self._entries.append(record)
        logger.info(
            "Trade logged: %s %s @ %.5f | confidence %d%% (id=%s)",
            pair, signal_type, entry, confidence, record.trade_id,
        )
        return record

    def settle(
        self,
        trade_id: str,
        exit_price: float,
        exit_time: int,
        result: Literal["WIN", "LOSS"],
    ) -> Optional[TradeLogEntry]:
        """Settle the PENDING entry with *trade_id*.

        Returns the updated entry, or ``None`` if the id is unknown (or
        evicted) or the entry was already settled.
        """
        _check_result(result)
        with self._lock:
            for i, e in enumerate(self._entries):
                if e.trade_id == trade_id:
                    if e.result != "PENDING":
                        logger.warning("Trade %s already settled as %s", trade_id, e.result)
                        return None
                    return self._settle_at(i, exit_price, exit_time, result)
        logger.warning("Trade %s not found for settlement", trade_id)
        return None

    def update_trade_result(
        self,
        entry_price: float,
        exit_price: float,
        exit_time: int,
        result: Literal["WIN", "LOSS"],
    ) -> Optional[TradeLogEntry]:
        """Settle the first PENDING entry at *entry_price* logged within
        10 minutes of *exit_time*.  No match is a silent no-op.
        """
        _check_result(result)
        with self._lock:
            for i, e in enumerate(self._entries):
                if (
                    e.entry == entry_price
                    and e.result == "PENDING"
                    and abs(e.timestamp - exit_time) < SETTLE_MATCH_WINDOW_MS
                ):
                    return self._settle_at(i, exit_price, exit_time, result)
        return None

    def _settle_at(
        self, index: int, exit_price: float, exit_time: int, result: str,
    ) -> TradeLogEntry:
        # Caller holds the lock.
        updated = replace(
            self._entries[index],
            result=result,
            exit_price=exit_price,
            exit_time=exit_time,
        )
        self._entries[index] = updated
        logger.info(
            "Trade updated: %s %s | exit %.5f (id=%s)",
            updated.pair, result, exit_price, updated.trade_id,
        )
        return updated

    # ── Read ─────────────────────────────────────────────────────────────

    def entries(self) -> list[TradeLogEntry]:
        """Snapshot of all entries, oldest first."""
        with self._lock:
            return list(self._entries)

    def get(self, trade_id: str) -> Optional[TradeLogEntry]:
        with self._lock:
            for e in self._entries:
                if e.trade_id == trade_id:
                    return e
        return None

    def get_performance_stats(
        self,
        pair: Optional[str] = None,
        session: Optional[str] = None,
    ) -> dict:
        return calculate_performance(self.entries(), pair=pair, session=session)

    def get_best_performing_setups(self) -> list[dict]:
        return best_setups(self.entries())


def _check_result(result: str) -> None:
    if result not in ("WIN", "LOSS"):
        raise ValueError(f"result must be 'WIN' or 'LOSS', got '{result}'")
