"""fxsignal — Signal engine (analysis pipeline + rescan loop).

Connects market data, indicators, filters, and the confluence scorer.
One pass: fetch → technicals → filters → score → trade log.  The rescan
loop repeats passes until one clears the confidence threshold.
"""

import asyncio
import logging
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from typing import Awaitable, Callable, Optional

from fxsignal.config import Config
from fxsignal.market.models import FOREX_PAIRS, TIMEFRAME_INTERVALS, split_pair
from fxsignal.market.source import MarketDataSource
from fxsignal.repos.trade_log import TradeLog
from fxsignal.risk.sl_tp import blocked_placeholder_levels
from fxsignal.strategy.filters import evaluate_filters, is_volatility_spike
from fxsignal.strategy.indicators import calculate_supertrend
from fxsignal.strategy.models import BLOCK_BELOW_THRESHOLD, HTFAlignment, SignalAnalysis
from fxsignal.strategy.scorer import score_signal
from fxsignal.strategy.session_filter import get_pair_accuracy, get_session_time
from fxsignal.strategy.technicals import analyze_technicals, neutral_technicals

logger = logging.getLogger("fxsignal.engine")

M15_INTERVAL = "15min"
H1_INTERVAL = "60min"


@dataclass(frozen=True)
class ScanResult:
    """Outcome of scanning every supported pair."""

    timestamp: datetime
    timeframe: str
    signals: list[SignalAnalysis]
    best_signal: Optional[SignalAnalysis]
    max_rescans: int
    min_confidence_threshold: int

    @property
    def valid(self) -> list[SignalAnalysis]:
        return [s for s in self.signals if s.confidence > 0]

    @property
    def stats(self) -> dict:
        valid = len(self.valid)
        return {
            "total": len(self.signals),
            "valid": valid,
            "blocked": len(self.signals) - valid,
            "max_rescans": self.max_rescans,
            "min_confidence_threshold": self.min_confidence_threshold,
        }


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def verification_checks(
    candles: list,
    technicals,
    htf: HTFAlignment,
    confirmation_strength: int,
    session: str,
    confidence: int,
) -> dict[str, bool]:
    """Post-scoring checklist summarised in the reasoning of scored passes.

    Strict sessions (AFTERNOON, EVENING) need 85 % confidence, others 70 %.
    """
    rsi = technicals.rsi
    k = technicals.stochastic.k
    return {
        "htf_alignment": htf.aligned,
        "candle_confirmation": confirmation_strength >= 2,
        "extreme_zones": not (rsi > 97 or rsi < 3 or k > 97 or k < 3),
        "volatility_check": not is_volatility_spike(candles),
        "session_filter": confidence > 0,
        "confidence_threshold": confidence >= (85 if session in ("AFTERNOON", "EVENING") else 70),
    }


class SignalEngine:
    """Generates scored trade signals for forex pairs.

    Args:
        source: Candle supplier (``MarketDataSource`` or a duck-type).
        trade_log: Receives every pass with non-zero confidence.
        max_rescans: Default number of analysis attempts.
        min_confidence_threshold: Default acceptance threshold.
        rescan_delay: Seconds between rejected attempts.
        session_utc_offset_hours: Desk timezone used for sessions.
        now: Wall-clock source (UTC), swappable in tests.
        sleep: Awaitable sleep, swappable in tests.
    """

    def __init__(
        self,
        source: MarketDataSource,
        trade_log: TradeLog,
        max_rescans: int = 5,
        min_confidence_threshold: int = 70,
        rescan_delay: float = 1.0,
        session_utc_offset_hours: int = 3,
        now: Callable[[], datetime] = _utc_now,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._source = source
        self._trade_log = trade_log
        self._max_rescans = max_rescans
        self._min_confidence = min_confidence_threshold
        self._rescan_delay = rescan_delay
        self._utc_offset = session_utc_offset_hours
        self._now = now
        self._sleep = sleep

    @classmethod
    def from_config(
        cls,
        config: Config,
        source: Optional[MarketDataSource] = None,
        trade_log: Optional[TradeLog] = None,
    ) -> "SignalEngine":
        """Build an engine (and default collaborators) from ``Config``."""
        if source is None:
            source = MarketDataSource(
                api_key=config.alpha_vantage_api_key,
                cache_ttl=config.cache_ttl_seconds,
            )
        if trade_log is None:
            trade_log = TradeLog(capacity=config.trade_log_capacity)
        return cls(
            source=source,
            trade_log=trade_log,
            max_rescans=config.max_rescans,
            min_confidence_threshold=config.min_confidence_threshold,
            rescan_delay=config.rescan_delay_seconds,
            session_utc_offset_hours=config.session_utc_offset_hours,
        )

    @property
    def source(self) -> MarketDataSource:
        return self._source

    @property
    def trade_log(self) -> TradeLog:
        return self._trade_log

    # ── Single pass ──────────────────────────────────────────────────────

    async def analyze_once(
        self,
        pair: str,
        timeframe: str,
        api_key: Optional[str] = None,
        refresh: bool = False,
    ) -> SignalAnalysis:
        """Run one fetch → filter → score pass.

        Raises:
            UnknownPairError: if *pair* is not supported.
            ValueError: if *timeframe* is not one of M1..H4.
        """
        interval = TIMEFRAME_INTERVALS.get(timeframe)
        if interval is None:
            raise ValueError(f"Unknown timeframe: {timeframe}")

        candles = await self._source.fetch_candles(pair, interval, api_key, refresh=refresh)
        m15_candles = await self._source.fetch_candles(pair, M15_INTERVAL, api_key)
        h1_candles = await self._source.fetch_candles(pair, H1_INTERVAL, api_key)

        technicals = analyze_technicals(candles)
        price = candles[-1].close
        htf = HTFAlignment(
            base=technicals.supertrend.direction,
            m15=calculate_supertrend(m15_candles).direction,
            h1=calculate_supertrend(h1_candles).direction,
        )
        session = get_session_time(self._now(), self._utc_offset)
        accuracy = get_pair_accuracy(pair)

        filters = evaluate_filters(pair, candles, technicals, htf, session, accuracy)

        if filters.blocked:
            logger.info(
                "[FILTER BLOCKED] %s — %s", pair, ", ".join(filters.block_reasons),
            )
            levels = blocked_placeholder_levels(pair, price)
            return SignalAnalysis(
                pair=pair,
                timeframe=timeframe,
                current_price=price,
                signal_type="CALL",
                confidence=0,
                entry=levels.entry,
                stop_loss=levels.sl,
                take_profit=levels.tp,
                technicals=technicals,
                reasoning=filters.reasoning + ("Final Confluence: 0% | Confidence: 0% (SKIPPED)",),
                blocked=True,
                block_reasons=filters.block_reasons,
                session=session,
                pair_accuracy=accuracy,
                htf=htf,
            )

        logger.info(
            "[FILTER PASSED] %s — HTF:%s, Candles:%d, Session:%s",
            pair, htf.aligned, filters.confirmation_strength, session,
        )

        score = score_signal(
            pair, price, technicals, htf, filters.confirmation_strength, session, accuracy,
        )

        trade_id = None
        verification: tuple[str, ...] = ()
        if score.confidence > 0:
            checks = verification_checks(
                candles, technicals, htf, filters.confirmation_strength,
                session, score.confidence,
            )
            if all(checks.values()):
                verification = ("ALL SAFETY CHECKS PASSED - Signal approved for trading",)
                logger.info(
                    "[VERIFIED SIGNAL] %s %s - confidence %d%%",
                    pair, score.signal_type, score.confidence,
                )
            else:
                failed = ", ".join(name for name, ok in checks.items() if not ok)
                verification = (f"PARTIAL VERIFICATION - Some checks failed: {failed}",)
                logger.info("[PARTIAL SIGNAL] %s - failed checks: %s", pair, failed)

            record = self._trade_log.log_trade(
                pair=pair,
                signal_type=score.signal_type,
                entry=score.risk.entry,
                stop_loss=score.risk.sl,
                take_profit=score.risk.tp,
                confidence=score.confidence,
                rsi=technicals.rsi,
                stochastic_k=technicals.stochastic.k,
                stochastic_d=technicals.stochastic.d,
                candle_pattern=technicals.candle_pattern,
                htf_alignment=htf.describe(),
                session=session,
                pair_accuracy=accuracy,
            )
            trade_id = record.trade_id

        return SignalAnalysis(
            pair=pair,
            timeframe=timeframe,
            current_price=price,
            signal_type=score.signal_type,
            confidence=score.confidence,
            entry=score.risk.entry,
            stop_loss=score.risk.sl,
            take_profit=score.risk.tp,
            technicals=technicals,
            reasoning=filters.reasoning + score.reasoning + verification,
            blocked=bool(score.block_reasons),
            block_reasons=score.block_reasons,
            score_diff=score.score_diff,
            session=session,
            pair_accuracy=accuracy,
            htf=htf,
            trade_id=trade_id,
        )

    # ── Rescan loop ──────────────────────────────────────────────────────

    async def generate_signal_analysis(
        self,
        pair: str,
        timeframe: str,
        api_key: Optional[str] = None,
        max_rescans: Optional[int] = None,
        min_confidence_threshold: Optional[int] = None,
    ) -> SignalAnalysis:
        """Analyse *pair*, rescanning until a pass clears the threshold.

        Returns the first accepted pass, or after *max_rescans* attempts
        the best pass seen.  A best pass still below the threshold comes
        back with confidence 0 and the ``below_threshold`` reason.

        Raises:
            UnknownPairError: if *pair* is not supported (before any fetch).
        """
        split_pair(pair)
        attempts = self._max_rescans if max_rescans is None else max_rescans
        threshold = self._min_confidence if min_confidence_threshold is None else min_confidence_threshold

        best: Optional[SignalAnalysis] = None

        for attempt in range(1, attempts + 1):
            result = await self.analyze_once(pair, timeframe, api_key, refresh=attempt > 1)

            if best is None or result.confidence > best.confidence:
                best = result

            if result.confidence >= threshold and result.confidence > 0:
                logger.info(
                    "[RESCAN SUCCESS] %s — attempt %d/%d with %d%% confidence",
                    pair, attempt, attempts, result.confidence,
                )
                return replace(
                    result,
                    reasoning=result.reasoning + (
                        f"RESCAN: Found quality signal on attempt {attempt}/{attempts}",
                    ),
                )

            if attempt < attempts:
                logger.info(
                    "[RESCAN %d/%d] %s — confidence %d%% below threshold %d%%, rescanning",
                    attempt, attempts, pair, result.confidence, threshold,
                )
                await self._sleep(self._rescan_delay)

        if best is None:
            return self._fallback(pair, timeframe)

        logger.info(
            "[RESCAN FAILED] %s — max rescans (%d) reached, best confidence %d%%",
            pair, attempts, best.confidence,
        )
        notes = (f"RESCAN: Max attempts ({attempts}) reached. Best confidence: {best.confidence}%",)
        if best.confidence < threshold:
            return replace(
                best,
                confidence=0,
                blocked=True,
                block_reasons=best.block_reasons + (BLOCK_BELOW_THRESHOLD,),
                reasoning=best.reasoning + notes + (
                    f"BLOCKED: Best confidence {best.confidence}% still below "
                    f"threshold {threshold}%",
                ),
            )
        return replace(best, reasoning=best.reasoning + notes)

    def _fallback(self, pair: str, timeframe: str) -> SignalAnalysis:
        logger.warning("No analysis attempted for %s — returning neutral signal", pair)
        return SignalAnalysis(
            pair=pair,
            timeframe=timeframe,
            current_price=0.0,
            signal_type="CALL",
            confidence=0,
            entry=0.0,
            stop_loss=0.0,
            take_profit=0.0,
            technicals=neutral_technicals(),
            reasoning=("No analysis attempted",),
        )

    # ── Batch scan ───────────────────────────────────────────────────────

    async def scan_all_pairs(
        self,
        timeframe: str,
        api_key: Optional[str] = None,
        max_rescans: Optional[int] = None,
        min_confidence_threshold: Optional[int] = None,
        pairs: tuple[str, ...] = FOREX_PAIRS,
    ) -> ScanResult:
        """Run ``generate_signal_analysis`` for every pair concurrently."""
        attempts = self._max_rescans if max_rescans is None else max_rescans
        threshold = self._min_confidence if min_confidence_threshold is None else min_confidence_threshold

        logger.info(
            "[SCAN] Starting rescan for %d pairs (max_rescans=%d, threshold=%d%%)",
            len(pairs), attempts, threshold,
        )
        results = await asyncio.gather(*(
            self.generate_signal_analysis(p, timeframe, api_key, attempts, threshold)
            for p in pairs
        ))
        ranked = sorted(results, key=lambda s: s.confidence, reverse=True)

        scan = ScanResult(
            timestamp=self._now(),
            timeframe=timeframe,
            signals=ranked,
            best_signal=ranked[0] if ranked else None,
            max_rescans=attempts,
            min_confidence_threshold=threshold,
        )
        logger.info(
            "[SCAN] Complete — %d/%d valid signals, best %d%%",
            len(scan.valid), len(ranked), ranked[0].confidence if ranked else 0,
        )
        return scan
