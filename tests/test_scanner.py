"""Tests for the AutoScanner lifecycle and notification hand-off."""

import asyncio
from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest

from conftest import make_technicals

from fxsignal.engine import ScanResult
from fxsignal.scanner import AutoScanner
from fxsignal.strategy.models import SignalAnalysis


def _analysis(pair: str, confidence: int) -> SignalAnalysis:
    return SignalAnalysis(
        pair=pair,
        timeframe="M15",
        current_price=1.1,
        signal_type="PUT",
        confidence=confidence,
        entry=1.1,
        stop_loss=1.1015,
        take_profit=1.097,
        technicals=make_technicals(),
        reasoning=(),
    )


def _scan(*confidences: int) -> ScanResult:
    signals = [_analysis(f"P{i}", c) for i, c in enumerate(confidences)]
    return ScanResult(
        timestamp=datetime.now(timezone.utc),
        timeframe="M15",
        signals=signals,
        best_signal=signals[0] if signals else None,
        max_rescans=5,
        min_confidence_threshold=75,
    )


def _scanner(scan: ScanResult, sent_ok: bool = True, **kwargs) -> AutoScanner:
    engine = MagicMock()
    engine.scan_all_pairs = AsyncMock(return_value=scan)
    notifier = MagicMock()
    notifier.send_signal = AsyncMock(return_value=sent_ok)
    return AutoScanner(engine, notifier, **kwargs)


class TestRunOnce:
    @pytest.mark.asyncio
    async def test_notifies_high_probability_only(self):
        scanner = _scanner(_scan(92, 86, 80, 40, 0))
        summary = await scanner.run_once()

        assert summary == {"valid": 3, "high_probability": 2, "sent": 2}
        scanner._engine.scan_all_pairs.assert_awaited_once_with("M15", min_confidence_threshold=75)
        calls = scanner._notifier.send_signal.await_args_list
        assert [c.args[1].pair for c in calls] == ["P0", "P1"]
        assert all(c.kwargs["is_auto"] for c in calls)
        assert calls[0].args[0].id.startswith("auto-")
        assert scanner.scan_count == 1
        assert scanner.last_scan_time is not None

    @pytest.mark.asyncio
    async def test_failed_delivery_not_counted(self):
        scanner = _scanner(_scan(95), sent_ok=False)
        summary = await scanner.run_once()
        assert summary["high_probability"] == 1
        assert summary["sent"] == 0

    @pytest.mark.asyncio
    async def test_custom_thresholds(self):
        scanner = _scanner(_scan(72, 65), min_confidence=60, notify_confidence=70)
        summary = await scanner.run_once()
        assert summary == {"valid": 2, "high_probability": 1, "sent": 1}


class TestLifecycle:
    def test_toggle(self):
        scanner = _scanner(_scan())
        assert scanner.enabled is True
        assert scanner.toggle() is False
        assert scanner.toggle() is True

    def test_status(self):
        status = _scanner(_scan(), interval_seconds=360).get_status()
        assert status == {
            "enabled": True,
            "running": False,
            "interval_minutes": 6.0,
            "last_scan_time": None,
            "scan_count": 0,
            "timeframe": "M15",
        }

    @pytest.mark.asyncio
    async def test_loop_waits_then_scans(self):
        delays = []
        ticks = asyncio.Event()

        async def _sleep(seconds):
            delays.append(seconds)
            if len(delays) >= 3:
                ticks.set()
            await asyncio.sleep(0)

        scanner = _scanner(_scan(90), sleep=_sleep, interval_seconds=360, startup_delay=30)
        scanner.start()
        assert scanner.running
        await asyncio.wait_for(ticks.wait(), timeout=1.0)
        await scanner.stop()

        assert delays[:3] == [30, 360, 360]
        assert scanner.scan_count >= 2
        assert not scanner.running

    @pytest.mark.asyncio
    async def test_disabled_loop_skips_scans(self):
        ticks = asyncio.Event()
        count = 0

        async def _sleep(seconds):
            nonlocal count
            count += 1
            if count >= 3:
                ticks.set()
            await asyncio.sleep(0)

        scanner = _scanner(_scan(90), sleep=_sleep)
        scanner.toggle()
        scanner.start()
        await asyncio.wait_for(ticks.wait(), timeout=1.0)
        await scanner.stop()
        scanner._engine.scan_all_pairs.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_stop_without_start(self):
        await _scanner(_scan()).stop()
