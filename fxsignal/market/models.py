"""Market data models — candles, quotes, and the supported pair universe."""

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class Candle:
    """A single candlestick bar.

    ``timestamp`` is milliseconds since the Unix epoch.
    """

    timestamp: int
    open: float
    high: float
    low: float
    close: float
    volume: Optional[float] = None

    @property
    def range(self) -> float:
        return self.high - self.low

    @property
    def body(self) -> float:
        return abs(self.close - self.open)


@dataclass(frozen=True)
class Quote:
    """A spot quote for a currency pair."""

    pair: str
    price: float
    bid: float
    ask: float
    timestamp: int
    change: float = 0.0
    change_percent: float = 0.0


class UnknownPairError(ValueError):
    """Raised when a pair is not part of the supported universe."""


# ── Pair universe ────────────────────────────────────────────────────────

FOREX_PAIRS: tuple[str, ...] = (
    "EUR/USD", "GBP/USD", "USD/JPY", "USD/CHF",
    "AUD/USD", "USD/CAD", "NZD/USD", "EUR/GBP",
    "EUR/JPY", "GBP/JPY", "AUD/JPY", "EUR/AUD",
)

# Reference prices for the synthetic generator.
BASE_PRICES: dict[str, float] = {
    "EUR/USD": 1.0850,
    "GBP/USD": 1.2650,
    "USD/JPY": 149.50,
    "USD/CHF": 0.8850,
    "AUD/USD": 0.6550,
    "USD/CAD": 1.3650,
    "NZD/USD": 0.6050,
    "EUR/GBP": 0.8580,
    "EUR/JPY": 162.20,
    "GBP/JPY": 189.10,
    "AUD/JPY": 97.90,
    "EUR/AUD": 1.6560,
}

# Provider interval names and their length in minutes.
TIMEFRAME_INTERVALS: dict[str, str] = {
    "M1": "1min",
    "M5": "5min",
    "M15": "15min",
    "M30": "30min",
    "H1": "60min",
    "H4": "60min",  # provider has no 4h intraday series
}

INTERVAL_MINUTES: dict[str, int] = {
    "1min": 1,
    "5min": 5,
    "15min": 15,
    "30min": 30,
    "60min": 60,
}


def normalize_pair(pair: str) -> str:
    """Accept ``EUR_USD`` / ``eur/usd`` spellings and return ``EUR/USD``."""
    return pair.strip().upper().replace("_", "/")


def split_pair(pair: str) -> tuple[str, str]:
    """Return ``(from_currency, to_currency)`` for a supported pair.

    Raises ``UnknownPairError`` for anything outside ``FOREX_PAIRS``.
    """
    if pair not in FOREX_PAIRS:
        raise UnknownPairError(f"Unknown pair: {pair}")
    base, quote = pair.split("/")
    return base, quote


def is_jpy_pair(pair: str) -> bool:
    return "JPY" in pair


def pip_value(pair: str) -> float:
    """Smallest standard price increment: 0.01 for JPY pairs, else 0.0001."""
    return 0.01 if is_jpy_pair(pair) else 0.0001
