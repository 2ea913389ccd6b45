"""Session and pair classification — pure functions.

Sessions are defined on local wall-clock hours of the trading desk
(Kenya, UTC+3, by default):

    MORNING    07:00–12:00  (London)
    AFTERNOON  12:00–17:00  (London / New York overlap)
    EVENING    everything else (Asian session)
"""

from datetime import datetime, timedelta, timezone
from typing import Literal, Optional

SessionTime = Literal["MORNING", "AFTERNOON", "EVENING"]
PairAccuracy = Literal["HIGH", "MEDIUM", "LOW"]

HIGH_ACCURACY_PAIRS = frozenset({"GBP/USD", "EUR/JPY", "USD/JPY", "USD/CAD", "GBP/JPY"})
MEDIUM_ACCURACY_PAIRS = frozenset({"EUR/USD", "AUD/USD", "EUR/AUD", "EUR/GBP"})


def session_for_hour(local_hour: int) -> SessionTime:
    """Map a local hour (0–23) to its session."""
    if 7 <= local_hour < 12:
        return "MORNING"
    if 12 <= local_hour < 17:
        return "AFTERNOON"
    return "EVENING"


def local_hour(now: Optional[datetime] = None, utc_offset_hours: int = 3) -> int:
    """Return the desk-local hour for *now* (defaults to the current time)."""
    now = now if now is not None else datetime.now(timezone.utc)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    return (now.astimezone(timezone.utc) + timedelta(hours=utc_offset_hours)).hour


def get_session_time(
    now: Optional[datetime] = None,
    utc_offset_hours: int = 3,
) -> SessionTime:
    """Return the trading session for *now*.

    Naive datetimes are treated as UTC.
    """
    return session_for_hour(local_hour(now, utc_offset_hours))


def get_pair_accuracy(pair: str) -> PairAccuracy:
    """Historical accuracy tier of *pair*; unlisted pairs are LOW."""
    if pair in HIGH_ACCURACY_PAIRS:
        return "HIGH"
    if pair in MEDIUM_ACCURACY_PAIRS:
        return "MEDIUM"
    return "LOW"
