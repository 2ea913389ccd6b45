"""Tests for fxsignal.repos.trade_log and the performance statistics."""

import threading

import pytest

from fxsignal.repos.stats import best_setups, calculate_performance
from fxsignal.repos.trade_log import DEFAULT_CAPACITY, TradeLog


class _Clock:
    def __init__(self, start: int = 1_700_000_000_000) -> None:
        self.now = start

    def __call__(self) -> int:
        return self.now


def _log(tlog: TradeLog, pair="EUR/USD", entry=1.0850, confidence=80, session="MORNING"):
    return tlog.log_trade(
        pair=pair,
        signal_type="CALL",
        entry=entry,
        stop_loss=entry - 0.0015,
        take_profit=entry + 0.0030,
        confidence=confidence,
        rsi=45.0,
        stochastic_k=50.0,
        stochastic_d=48.0,
        candle_pattern=None,
        htf_alignment="BULLISH/BULLISH/BULLISH",
        session=session,
        pair_accuracy="MEDIUM",
    )


class TestLogging:
    def test_new_entry_is_pending(self):
        tlog = TradeLog(clock=_Clock())
        e = _log(tlog)
        assert e.result == "PENDING"
        assert e.exit_price is None
        assert e.timestamp == 1_700_000_000_000
        assert len(tlog) == 1
        assert tlog.get(e.trade_id) == e

    def test_trade_ids_are_unique(self):
        tlog = TradeLog()
        ids = {_log(tlog).trade_id for _ in range(20)}
        assert len(ids) == 20

    def test_capacity_evicts_oldest(self):
        tlog = TradeLog(capacity=3)
        first = _log(tlog, entry=1.0)
        for i in range(3):
            _log(tlog, entry=10.0 + i)
        assert len(tlog) == 3
        assert tlog.get(first.trade_id) is None
        assert [e.entry for e in tlog.entries()] == [10.0, 11.0, 12.0]

    def test_default_capacity_evicts_oldest(self):
        tlog = TradeLog()
        assert tlog.capacity == DEFAULT_CAPACITY == 500
        first = _log(tlog, entry=1.0)
        for i in range(DEFAULT_CAPACITY):
            _log(tlog, entry=10.0 + i)
        assert len(tlog) == DEFAULT_CAPACITY
        assert tlog.get(first.trade_id) is None
        entries = tlog.entries()
        assert entries[0].entry == 10.0
        assert entries[-1].entry == 10.0 + DEFAULT_CAPACITY - 1

    def test_invalid_capacity(self):
        with pytest.raises(ValueError, match="capacity"):
            TradeLog(capacity=0)

    def test_to_dict(self):
        d = _log(TradeLog()).to_dict()
        assert d["stochastic"] == {"k": 50.0, "d": 48.0}
        assert d["result"] == "PENDING"

    def test_concurrent_logging(self):
        tlog = TradeLog(capacity=1000)
        threads = [threading.Thread(target=lambda: [_log(tlog) for _ in range(50)]) for _ in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        assert len(tlog) == 200


class TestSettlement:
    def test_settle_by_id(self):
        tlog = TradeLog()
        e = _log(tlog)
        updated = tlog.settle(e.trade_id, 1.0880, 1_700_000_600_000, "WIN")
        assert updated.result == "WIN"
        assert updated.exit_price == 1.0880
        assert tlog.get(e.trade_id).result == "WIN"

    def test_settle_twice_is_rejected(self):
        tlog = TradeLog()
        e = _log(tlog)
        tlog.settle(e.trade_id, 1.0880, 1, "WIN")
        assert tlog.settle(e.trade_id, 1.0800, 2, "LOSS") is None
        assert tlog.get(e.trade_id).result == "WIN"

    def test_unknown_id(self):
        assert TradeLog().settle("missing", 1.0, 0, "LOSS") is None

    def test_rejects_pending_result(self):
        tlog = TradeLog()
        e = _log(tlog)
        with pytest.raises(ValueError, match="result"):
            tlog.settle(e.trade_id, 1.0, 0, "PENDING")

    def test_legacy_match_within_window(self):
        clock = _Clock()
        tlog = TradeLog(clock=clock)
        _log(tlog, entry=1.0850)
        updated = tlog.update_trade_result(1.0850, 1.0830, clock.now + 5 * 60_000, "LOSS")
        assert updated is not None
        assert updated.result == "LOSS"

    def test_legacy_match_outside_window_is_noop(self):
        clock = _Clock()
        tlog = TradeLog(clock=clock)
        _log(tlog, entry=1.0850)
        assert tlog.update_trade_result(1.0850, 1.0830, clock.now + 11 * 60_000, "WIN") is None
        assert tlog.entries()[0].result == "PENDING"

    def test_legacy_match_skips_settled(self):
        clock = _Clock()
        tlog = TradeLog(clock=clock)
        first = _log(tlog, entry=1.0850)
        second = _log(tlog, entry=1.0850)
        tlog.settle(first.trade_id, 1.0870, clock.now, "WIN")
        updated = tlog.update_trade_result(1.0850, 1.0830, clock.now, "LOSS")
        assert updated.trade_id == second.trade_id


class TestStats:
    def test_empty_stats(self):
        stats = TradeLog().get_performance_stats()
        assert stats == {
            "total_trades": 0, "wins": 0, "losses": 0,
            "win_rate": 0.0, "avg_confidence": 0.0,
        }

    def test_pending_entries_are_excluded(self):
        tlog = TradeLog()
        a = _log(tlog, confidence=80)
        b = _log(tlog, confidence=90)
        _log(tlog, confidence=99)
        tlog.settle(a.trade_id, 1.09, 0, "WIN")
        tlog.settle(b.trade_id, 1.08, 0, "LOSS")
        stats = tlog.get_performance_stats()
        assert stats["total_trades"] == 2
        assert stats["win_rate"] == 50.0
        assert stats["avg_confidence"] == 85.0

    def test_filters_by_pair_and_session(self):
        tlog = TradeLog()
        for pair, session in (("EUR/USD", "MORNING"), ("GBP/USD", "MORNING"), ("EUR/USD", "EVENING")):
            e = _log(tlog, pair=pair, session=session)
            tlog.settle(e.trade_id, 1.0, 0, "WIN")
        assert calculate_performance(tlog.entries(), pair="EUR/USD")["total_trades"] == 2
        assert calculate_performance(tlog.entries(), session="MORNING")["total_trades"] == 2
        assert tlog.get_performance_stats("EUR/USD", "EVENING")["total_trades"] == 1

    def test_best_setups_need_five_trades(self):
        tlog = TradeLog()
        for i in range(5):
            e = _log(tlog, pair="GBP/USD")
            tlog.settle(e.trade_id, 1.0, 0, "WIN" if i < 4 else "LOSS")
        for i in range(5):
            e = _log(tlog, pair="EUR/USD")
            tlog.settle(e.trade_id, 1.0, 0, "WIN" if i < 2 else "LOSS")
        for _ in range(4):
            e = _log(tlog, pair="USD/JPY")
            tlog.settle(e.trade_id, 1.0, 0, "WIN")

        setups = tlog.get_best_performing_setups()
        assert [s["pair"] for s in setups] == ["GBP/USD", "EUR/USD"]
        assert setups[0]["win_rate"] == 80.0
        assert setups[0]["trades"] == 5

    def test_best_setups_limit(self):
        tlog = TradeLog()
        for session in range(12):
            for _ in range(5):
                e = _log(tlog, session=f"S{session}")
                tlog.settle(e.trade_id, 1.0, 0, "WIN")
        assert len(best_setups(tlog.entries())) == 10
