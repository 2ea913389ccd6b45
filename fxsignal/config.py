"""fxsignal — application configuration.

Loads .env variables into a typed config object.
Validates value ranges on startup.
"""

import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv


TIMEFRAMES = ("M1", "M5", "M15", "M30", "H1", "H4")


@dataclass(frozen=True)
class Config:
    """Typed configuration loaded from environment variables."""

    alpha_vantage_api_key: Optional[str]
    telegram_bot_token: Optional[str]
    telegram_chat_id: Optional[str]
    default_timeframe: str
    max_rescans: int
    min_confidence_threshold: int
    rescan_delay_seconds: float
    cache_ttl_seconds: float
    trade_log_capacity: int
    session_utc_offset_hours: int  # Kenya (EAT) = +3
    autoscan_interval_seconds: int
    autoscan_min_confidence: int
    autoscan_notify_confidence: int
    log_level: str
    health_port: int

    @property
    def telegram_configured(self) -> bool:
        """Return True when both Telegram credentials are present."""
        return bool(self.telegram_bot_token and self.telegram_chat_id)


def _percentage(name: str, default: str) -> int:
    value = int(os.environ.get(name, default))
    if not 0 <= value <= 100:
        raise ValueError(f"{name} must be between 0 and 100, got {value}")
    return value


def load_config(env_path: str | None = None) -> Config:
    """Load configuration from environment variables.

    Every variable is optional.  Raises ``ValueError`` with a message
    naming the offending variable when a value is out of range.
    """
    load_dotenv(dotenv_path=env_path)

    max_rescans = int(os.environ.get("MAX_RESCANS", "5"))
    if max_rescans < 0:
        raise ValueError(f"MAX_RESCANS must be >= 0, got {max_rescans}")

    capacity = int(os.environ.get("TRADE_LOG_CAPACITY", "500"))
    if capacity < 1:
        raise ValueError(f"TRADE_LOG_CAPACITY must be >= 1, got {capacity}")

    timeframe = os.environ.get("DEFAULT_TIMEFRAME", "M15")
    if timeframe not in TIMEFRAMES:
        raise ValueError(
            f"DEFAULT_TIMEFRAME must be one of {', '.join(TIMEFRAMES)}, "
            f"got '{timeframe}'"
        )

    return Config(
        alpha_vantage_api_key=os.environ.get("ALPHA_VANTAGE_API_KEY") or None,
        telegram_bot_token=os.environ.get("TELEGRAM_BOT_TOKEN") or None,
        telegram_chat_id=os.environ.get("TELEGRAM_CHAT_ID") or None,
        default_timeframe=timeframe,
        max_rescans=max_rescans,
        min_confidence_threshold=_percentage("MIN_CONFIDENCE_THRESHOLD", "70"),
        rescan_delay_seconds=float(os.environ.get("RESCAN_DELAY_SECONDS", "1.0")),
        cache_ttl_seconds=float(os.environ.get("CACHE_TTL_SECONDS", "60")),
        trade_log_capacity=capacity,
        session_utc_offset_hours=int(os.environ.get("SESSION_UTC_OFFSET_HOURS", "3")),
        autoscan_interval_seconds=int(os.environ.get("AUTOSCAN_INTERVAL_SECONDS", "360")),
        autoscan_min_confidence=_percentage("AUTOSCAN_MIN_CONFIDENCE", "75"),
        autoscan_notify_confidence=_percentage("AUTOSCAN_NOTIFY_CONFIDENCE", "85"),
        log_level=os.environ.get("LOG_LEVEL", "INFO"),
        health_port=int(os.environ.get("HEALTH_PORT", "8080")),
    )
