"""AutoScanner — periodic scan of every pair with Telegram hand-off.

Runs as a background ``asyncio`` task.  Each cycle scans all pairs on
M15 and forwards high-probability signals to the notifier.  The scanner
can be paused, resumed, and triggered manually.
"""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Awaitable, Callable, Optional

from fxsignal.config import Config
from fxsignal.engine import ScanResult, SignalEngine
from fxsignal.notify.telegram import TelegramNotifier, signal_from_analysis

logger = logging.getLogger("fxsignal.scanner")

AUTOSCAN_TIMEFRAME = "M15"
STARTUP_DELAY_SECONDS = 30.0


class AutoScanner:
    """Lifecycle manager for the periodic scan loop.

    Args:
        engine: ``SignalEngine`` used for every scan.
        notifier: Receives signals at or above *notify_confidence*.
        interval_seconds: Pause between cycles.
        min_confidence: Rescan threshold passed to the engine.
        notify_confidence: Minimum confidence forwarded to the notifier.
    """

    def __init__(
        self,
        engine: SignalEngine,
        notifier: TelegramNotifier,
        interval_seconds: float = 360.0,
        min_confidence: int = 75,
        notify_confidence: int = 85,
        timeframe: str = AUTOSCAN_TIMEFRAME,
        startup_delay: float = STARTUP_DELAY_SECONDS,
        session_utc_offset_hours: int = 3,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._engine = engine
        self._notifier = notifier
        self._interval = interval_seconds
        self._min_confidence = min_confidence
        self._notify_confidence = notify_confidence
        self._timeframe = timeframe
        self._startup_delay = startup_delay
        self._utc_offset = session_utc_offset_hours
        self._sleep = sleep
        self._task: Optional[asyncio.Task] = None
        self.enabled: bool = True
        self.last_scan_time: Optional[datetime] = None
        self.scan_count: int = 0

    @classmethod
    def from_config(
        cls,
        config: Config,
        engine: SignalEngine,
        notifier: TelegramNotifier,
    ) -> "AutoScanner":
        return cls(
            engine=engine,
            notifier=notifier,
            interval_seconds=config.autoscan_interval_seconds,
            min_confidence=config.autoscan_min_confidence,
            notify_confidence=config.autoscan_notify_confidence,
            session_utc_offset_hours=config.session_utc_offset_hours,
        )

    # ── Public API ───────────────────────────────────────────────────────

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def toggle(self) -> bool:
        """Flip the enabled flag and return the new value."""
        self.enabled = not self.enabled
        logger.info("[AUTO-SCAN %s] %s", self._timeframe, "ENABLED" if self.enabled else "DISABLED")
        return self.enabled

    def get_status(self) -> dict:
        return {
            "enabled": self.enabled,
            "running": self.running,
            "interval_minutes": self._interval / 60,
            "last_scan_time": self.last_scan_time.isoformat() if self.last_scan_time else None,
            "scan_count": self.scan_count,
            "timeframe": self._timeframe,
        }

    async def run_once(self) -> dict:
        """Scan every pair once and notify on high-probability signals.

        Returns:
            Summary dict with ``valid``, ``high_probability`` and ``sent``
            counts.
        """
        logger.info("[AUTO-SCAN %s] Starting scan", self._timeframe)
        self.last_scan_time = datetime.now(timezone.utc)
        self.scan_count += 1

        scan: ScanResult = await self._engine.scan_all_pairs(
            self._timeframe, min_confidence_threshold=self._min_confidence,
        )
        valid = [s for s in scan.signals if s.confidence >= self._min_confidence]
        high_prob = [s for s in scan.signals if s.confidence >= self._notify_confidence]

        logger.info(
            "[AUTO-SCAN %s] Complete — %d valid, %d high-probability (%d%%+)",
            self._timeframe, len(valid), len(high_prob), self._notify_confidence,
        )

        sent = 0
        for analysis in high_prob:
            signal = signal_from_analysis(analysis, utc_offset_hours=self._utc_offset)
            logger.info(
                "[AUTO-SCAN %s] Sending %s %s (%d%%)",
                self._timeframe, analysis.pair, analysis.signal_type, analysis.confidence,
            )
            if await self._notifier.send_signal(signal, analysis, is_auto=True):
                sent += 1

        for s in scan.signals:
            if s.confidence >= self._notify_confidence:
                status = "HIGH-PROB"
            elif s.confidence >= self._min_confidence:
                status = "VALID"
            elif s.confidence > 0:
                status = "LOW"
            else:
                status = "BLOCKED"
            logger.debug(
                "[%s SIGNAL] %s: %s | confidence %d%% | %s",
                self._timeframe, s.pair, s.signal_type, s.confidence, status,
            )

        return {"valid": len(valid), "high_probability": len(high_prob), "sent": sent}

    def start(self) -> None:
        """Launch the background loop (no-op if already running)."""
        if self.running:
            return
        self._task = asyncio.create_task(self._loop())
        logger.info(
            "[AUTO-SCAN %s] Initialised — scanning every %.0f minutes",
            self._timeframe, self._interval / 60,
        )

    async def stop(self) -> None:
        """Cancel the background loop and wait for it to exit."""
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("[AUTO-SCAN %s] Stopped", self._timeframe)

    # ── Loop ─────────────────────────────────────────────────────────────

    async def _loop(self) -> None:
        await self._sleep(self._startup_delay)
        while True:
            if self.enabled:
                try:
                    await self.run_once()
                except Exception as exc:  # pragma: no cover
                    logger.error("[AUTO-SCAN ERROR] %s", exc)
            await self._sleep(self._interval)
