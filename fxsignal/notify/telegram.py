"""Telegram notifier — formats approved signals and posts them to a chat.

Never raises on delivery problems: missing credentials or HTTP errors
are logged and reported as ``False``.
"""

import logging
import time
from datetime import datetime, timedelta, timezone
from typing import Optional

import httpx

from fxsignal.market.models import pip_value
from fxsignal.notify.verification import verify_signal_safety
from fxsignal.strategy.models import Signal, SignalAnalysis
from fxsignal.strategy.session_filter import get_session_time

logger = logging.getLogger("fxsignal.notify")

_API_BASE = "https://api.telegram.org"

SIGNAL_DURATION_MINUTES = 15


def signal_from_analysis(
    analysis: SignalAnalysis,
    now: Optional[datetime] = None,
    utc_offset_hours: int = 3,
    prefix: str = "auto",
) -> Signal:
    """Build the notification payload for *analysis*.

    Start/end times are desk-local ``HH:MM`` strings one candle apart.
    """
    now = now if now is not None else datetime.now(timezone.utc)
    local = now.astimezone(timezone.utc) + timedelta(hours=utc_offset_hours)
    timestamp = int(now.timestamp() * 1000)
    return Signal(
        id=f"{prefix}-{timestamp}-{analysis.pair.replace('/', '')}",
        pair=analysis.pair,
        timeframe=analysis.timeframe,
        type=analysis.signal_type,
        entry=analysis.entry,
        stop_loss=analysis.stop_loss,
        take_profit=analysis.take_profit,
        confidence=analysis.confidence,
        timestamp=timestamp,
        start_time=local.strftime("%H:%M"),
        end_time=(local + timedelta(minutes=SIGNAL_DURATION_MINUTES)).strftime("%H:%M"),
    )


# ── Message formatting ───────────────────────────────────────────────────


def _rsi_status(rsi: float) -> str:
    if rsi < 30:
        return "Oversold"
    if rsi > 70:
        return "Overbought"
    if rsi < 45:
        return "Slightly Oversold"
    if rsi > 55:
        return "Slightly Overbought"
    return "Neutral"


def _sma_status(price: float, sma20: float, sma50: float, sma200: float) -> str:
    if price > sma20 and price > sma50 and price > sma200:
        return "Above all SMAs (bullish)"
    if price < sma20 and price < sma50 and price < sma200:
        return "Below all SMAs (bearish)"
    if price > sma20 and price > sma50:
        return "Above SMA20/50"
    if price < sma20 and price < sma50:
        return "Below SMA20/50"
    return "Mixed"


def _risk_warnings(analysis: SignalAnalysis) -> list[str]:
    t = analysis.technicals
    k, d = t.stochastic.k, t.stochastic.d
    warnings = []
    if t.rsi > 95 or k > 95 or d > 95:
        warnings.append("<b>EXTREME OVERBOUGHT</b> - High reversal risk!")
    elif t.rsi > 90 or k > 90:
        warnings.append("<b>CAUTION:</b> Extreme overbought zone - monitor closely")
    elif t.rsi > 70:
        warnings.append("Overbought territory - watch for potential reversal")

    if t.rsi < 5 or k < 5 or d < 5:
        warnings.append("<b>EXTREME OVERSOLD</b> - High reversal risk!")
    elif t.rsi < 10 or k < 10:
        warnings.append("<b>CAUTION:</b> Extreme oversold zone - monitor closely")
    elif t.rsi < 30:
        warnings.append("Oversold territory - watch for potential reversal")

    if t.candle_pattern in ("doji", "spinning_top"):
        warnings.append("<b>Indecision pattern detected</b> - Entry timing is critical")
    if t.bollinger.breakout:
        warnings.append("<b>Bollinger breakout</b> - High volatility expected")
    if t.volatility == "HIGH":
        warnings.append("<b>High volatility</b> - Wider stops recommended")
    return warnings


def format_signal_message(
    signal: Signal,
    analysis: Optional[SignalAnalysis] = None,
    is_auto: bool = False,
    session: Optional[str] = None,
) -> str:
    """Render *signal* as a Telegram HTML message."""
    rule = "━━━━━━━━━━━━━━━━━━━━━"
    pip = pip_value(signal.pair)
    sl_pips = abs(signal.entry - signal.stop_loss) / pip
    tp_pips = abs(signal.take_profit - signal.entry) / pip
    rr = tp_pips / sl_pips if sl_pips else 0.0
    direction = "BUY/CALL" if signal.type == "CALL" else "SELL/PUT"

    lines = [
        f"<b>NEW SIGNAL ({'AUTO' if is_auto else 'MANUAL'})</b>",
        rule,
        f"<b>PAIR:</b> {signal.pair}",
        f"<b>DIRECTION:</b> {direction}",
        f"<b>TIMEFRAME:</b> {signal.timeframe}",
        f"<b>START TIME:</b> {signal.start_time} EAT",
        f"<b>EXPIRY TIME:</b> {signal.end_time} EAT",
        "",
        rule,
        "<b>TRADE SETUP</b>",
        f"<b>ENTRY:</b> {signal.entry:.5f}",
        f"<b>STOP LOSS:</b> {signal.stop_loss:.5f} ({sl_pips:.1f} pips)",
        f"<b>TAKE PROFIT:</b> {signal.take_profit:.5f} ({tp_pips:.1f} pips)",
        f"<b>RISK/REWARD:</b> 1:{rr:.1f}",
        "",
        rule,
        "<b>SIGNAL QUALITY</b>",
        f"<b>CONFIDENCE:</b> {signal.confidence}%",
    ]

    if analysis is not None:
        t = analysis.technicals
        if analysis.score_diff is not None:
            lines.append(f"<b>SCORE DIFFERENCE:</b> {analysis.score_diff}")
        if analysis.htf is not None:
            lines.append(f"<b>TIMEFRAME ALIGNMENT:</b> {analysis.htf.describe()}")
        adx_strength = "Very Strong" if t.adx > 40 else "Strong" if t.adx > 25 else "Weak"
        pattern = t.candle_pattern.replace("_", " ").upper() if t.candle_pattern else "None"
        lines += [
            "",
            rule,
            "<b>TECHNICAL ANALYSIS</b>",
            f"<b>RSI (14):</b> {t.rsi:.1f} - {_rsi_status(t.rsi)}",
            f"<b>Stochastic:</b> K={t.stochastic.k:.1f}, D={t.stochastic.d:.1f}",
            f"<b>MACD:</b> {'Bullish' if t.macd.histogram > 0 else 'Bearish'} "
            f"(Hist: {t.macd.histogram:.5f})",
            f"<b>Supertrend:</b> {t.supertrend.direction}",
            f"<b>ADX:</b> {t.adx:.1f} - {adx_strength} Trend",
            f"<b>SMA Position:</b> "
            f"{_sma_status(analysis.current_price, t.sma20, t.sma50, t.sma200)}",
            f"<b>Volatility:</b> {t.volatility} (ATR: {t.atr / pip:.1f} pips)",
            f"<b>Candle Pattern:</b> {pattern}",
            f"<b>Momentum:</b> {t.momentum}",
        ]
        warnings = _risk_warnings(analysis)
        if warnings:
            lines += ["", rule, "<b>RISK WARNINGS</b>", *warnings]

    if session is not None:
        lines += ["", rule, f"<b>Current Session:</b> {session}"]
        if session == "AFTERNOON":
            lines.append("<b>Filter Mode:</b> STRICT (85%+ confidence required)")
        elif session == "EVENING":
            lines.append("<b>Filter Mode:</b> ULTRA-STRICT (HIGH accuracy pairs only)")

    lines += [
        "",
        "<i>Trading involves risk. This is not financial advice. "
        "Always use proper risk management.</i>",
    ]
    return "\n".join(lines)


# ── Client ───────────────────────────────────────────────────────────────


class TelegramNotifier:
    """Sends signals to a Telegram chat through the Bot API.

    Args:
        bot_token: Bot API token.  ``None`` disables sending.
        chat_id: Target chat / channel id.
        session_utc_offset_hours: Desk timezone for the session line.
    """

    def __init__(
        self,
        bot_token: Optional[str],
        chat_id: Optional[str],
        session_utc_offset_hours: int = 3,
        api_base: str = _API_BASE,
    ) -> None:
        self._bot_token = bot_token
        self._chat_id = chat_id
        self._utc_offset = session_utc_offset_hours
        self._api_base = api_base
        self.sent_count: int = 0
        self.last_sent_at: Optional[float] = None

    @property
    def configured(self) -> bool:
        return bool(self._bot_token and self._chat_id)

    async def send_signal(
        self,
        signal: Signal,
        analysis: Optional[SignalAnalysis] = None,
        is_auto: bool = False,
    ) -> bool:
        """Post *signal* unless it has no confidence or its analysis was
        blocked.  Returns ``True`` only when Telegram accepted the message.
        """
        if not self.configured:
            logger.info("Telegram credentials not configured — %s not sent", signal.pair)
            return False

        verification = verify_signal_safety(signal, analysis)
        if not verification.is_valid:
            logger.warning(
                "[TELEGRAM BLOCKED] %s — %s",
                signal.pair, ", ".join(verification.block_reasons),
            )
            return False

        session = get_session_time(utc_offset_hours=self._utc_offset)
        text = format_signal_message(signal, analysis, is_auto=is_auto, session=session)

        logger.info(
            "[TELEGRAM SENDING] %s %s — confidence %d%%",
            signal.pair, signal.type, signal.confidence,
        )
        try:
            async with httpx.AsyncClient() as client:
                resp = await client.post(
                    f"{self._api_base}/bot{self._bot_token}/sendMessage",
                    json={"chat_id": self._chat_id, "text": text, "parse_mode": "HTML"},
                    timeout=15.0,
                )
            resp.raise_for_status()
            body = resp.json()
        except (httpx.HTTPError, ValueError) as exc:
            logger.error("[TELEGRAM ERROR] %s — %s", signal.pair, exc)
            return False

        if not body.get("ok"):
            logger.error(
                "[TELEGRAM ERROR] %s — code=%s description=%s",
                signal.pair, body.get("error_code"), body.get("description"),
            )
            return False

        self.sent_count += 1
        self.last_sent_at = time.time()
        return True
