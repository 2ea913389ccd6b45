"""Trade-log statistics — pure functions over settled entries."""

from collections import defaultdict
from typing import Iterable, Optional

MIN_SETUP_TRADES = 5
MAX_SETUPS = 10


def calculate_performance(
    entries: Iterable,
    pair: Optional[str] = None,
    session: Optional[str] = None,
) -> dict:
    """Win/loss summary of settled entries, optionally filtered.

    Returns:
        Dict with ``total_trades``, ``wins``, ``losses``, ``win_rate``
        (percent), and ``avg_confidence``.  Rates are 0 when nothing
        has settled.
    """
    settled = [
        e for e in entries
        if e.result != "PENDING"
        and (pair is None or e.pair == pair)
        and (session is None or e.session == session)
    ]

    total = len(settled)
    wins = sum(1 for e in settled if e.result == "WIN")
    losses = sum(1 for e in settled if e.result == "LOSS")

    return {
        "total_trades": total,
        "wins": wins,
        "losses": losses,
        "win_rate": (wins / total) * 100 if total else 0.0,
        "avg_confidence": sum(e.confidence for e in settled) / total if total else 0.0,
    }


def best_setups(
    entries: Iterable,
    min_trades: int = MIN_SETUP_TRADES,
    limit: int = MAX_SETUPS,
) -> list[dict]:
    """Rank (pair, session) groups of settled entries by win rate.

    Groups with fewer than *min_trades* settled entries are ignored.
    """
    groups: dict[tuple[str, str], list[int]] = defaultdict(lambda: [0, 0])
    for e in entries:
        if e.result == "PENDING":
            continue
        counts = groups[(e.pair, e.session)]
        counts[1] += 1
        if e.result == "WIN":
            counts[0] += 1

    setups = [
        {
            "pair": pair,
            "session": session,
            "win_rate": (wins / total) * 100,
            "trades": total,
        }
        for (pair, session), (wins, total) in groups.items()
        if total >= min_trades
    ]
    setups.sort(key=lambda s: s["win_rate"], reverse=True)
    return setups[:limit]
