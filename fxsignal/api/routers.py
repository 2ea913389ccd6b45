"""Internal API routers — /quote, /candles, /signal, /scan, /trades,
/autoscan endpoints.

No business logic. Delegates to the market source, signal engine, trade
log, and auto-scanner injected through ``configure_routers``.  Pairs in
paths use an underscore (``EUR_USD``).
"""

import logging
import time
from dataclasses import asdict
from typing import Optional

from fastapi import APIRouter, Query
from fastapi.responses import JSONResponse

from fxsignal.market.models import FOREX_PAIRS, UnknownPairError, normalize_pair
from fxsignal.strategy.models import SignalAnalysis
from fxsignal.strategy.technicals import analyze_technicals

logger = logging.getLogger("fxsignal")
router = APIRouter()

# ── Shared state (set during app startup) ────────────────────────────────

_source = None       # Set via configure_routers()
_engine = None       # Set via configure_routers()
_trade_log = None    # Set via configure_routers()
_scanner = None      # Set via configure_routers()
_notifier = None     # Set via configure_routers()
_api_key: Optional[str] = None


def configure_routers(
    source,
    engine,
    trade_log,
    scanner=None,
    notifier=None,
    api_key: Optional[str] = None,
) -> None:
    """Inject dependencies from the application startup.

    Args:
        source: A ``MarketDataSource`` (or duck-type for tests).
        engine: A ``SignalEngine``.
        trade_log: The ``TradeLog`` the engine writes to.
        scanner: Optional ``AutoScanner`` for the /autoscan endpoints.
        notifier: Optional ``TelegramNotifier`` for /telegram/status.
        api_key: Default Alpha Vantage key passed on every fetch.
    """
    global _source, _engine, _trade_log, _scanner, _notifier, _api_key  # noqa: PLW0603
    _source = source
    _engine = engine
    _trade_log = trade_log
    _scanner = scanner
    _notifier = notifier
    _api_key = api_key


def _bad_request(message: str) -> JSONResponse:
    return JSONResponse(status_code=400, content={"error": message})


def _loop_overrides(body: dict) -> dict:
    """Validated rescan-loop overrides from a request body.

    Raises:
        ValueError: if an override is not a non-negative integer, or the
            threshold exceeds 100.
    """
    overrides = {}
    for key in ("max_rescans", "min_confidence_threshold"):
        value = body.get(key)
        if value is not None and (
            isinstance(value, bool) or not isinstance(value, int) or value < 0
        ):
            raise ValueError(f"{key} must be a non-negative integer")
        overrides[key] = value
    threshold = overrides["min_confidence_threshold"]
    if threshold is not None and threshold > 100:
        raise ValueError("min_confidence_threshold must be at most 100")
    return overrides


def analysis_to_dict(analysis: SignalAnalysis) -> dict:
    """JSON-ready view of a ``SignalAnalysis``."""
    data = asdict(analysis)
    data["actionable"] = analysis.actionable
    return data


# ── Market data ──────────────────────────────────────────────────────────


@router.get("/quote/{pair}")
async def get_quote(pair: str):
    """Return a spot quote for one pair."""
    try:
        quote = await _source.fetch_quote(normalize_pair(pair), _api_key)
    except UnknownPairError as exc:
        return _bad_request(str(exc))
    return asdict(quote)


@router.get("/quotes")
async def get_quotes():
    """Return quotes for every supported pair."""
    quotes = await _source.fetch_all_quotes(list(FOREX_PAIRS), _api_key)
    return [asdict(q) for q in quotes]


@router.get("/candles/{pair}")
async def get_candles(pair: str, interval: str = Query(default="15min")):
    """Return the candle series for one pair, oldest first."""
    try:
        candles = await _source.fetch_candles(normalize_pair(pair), interval, _api_key)
    except UnknownPairError as exc:
        return _bad_request(str(exc))
    return [asdict(c) for c in candles]


@router.get("/analysis/{pair}")
async def get_analysis(pair: str, interval: str = Query(default="15min")):
    """Return the indicator snapshot for one pair (no scoring)."""
    name = normalize_pair(pair)
    try:
        candles = await _source.fetch_candles(name, interval, _api_key)
    except UnknownPairError as exc:
        return _bad_request(str(exc))
    return {
        "pair": name,
        "current_price": candles[-1].close,
        "technicals": asdict(analyze_technicals(candles)),
    }


# ── Signals ──────────────────────────────────────────────────────────────


@router.post("/signal")
async def post_signal(body: dict):
    """Run the rescan loop for one pair.

    Body: ``{"pair", "timeframe", "max_rescans"?, "min_confidence_threshold"?}``.
    """
    pair = body.get("pair")
    timeframe = body.get("timeframe")
    if not pair or not timeframe:
        return _bad_request("Missing pair or timeframe")
    try:
        analysis = await _engine.generate_signal_analysis(
            normalize_pair(pair),
            timeframe,
            _api_key,
            **_loop_overrides(body),
        )
    except ValueError as exc:
        return _bad_request(str(exc))
    return analysis_to_dict(analysis)


@router.post("/scan")
async def post_scan(body: Optional[dict] = None):
    """Scan every pair and return signals ranked by confidence."""
    body = body or {}
    try:
        scan = await _engine.scan_all_pairs(
            body.get("timeframe", "M15"),
            _api_key,
            **_loop_overrides(body),
        )
    except ValueError as exc:
        return _bad_request(str(exc))
    return {
        "timestamp": scan.timestamp.isoformat(),
        "timeframe": scan.timeframe,
        "signals": [analysis_to_dict(s) for s in scan.signals],
        "best_signal": analysis_to_dict(scan.best_signal) if scan.best_signal else None,
        "stats": scan.stats,
    }


# ── Trade log ────────────────────────────────────────────────────────────


@router.get("/trades")
async def get_trades(
    limit: int = Query(default=50, ge=1, le=500),
    pair: Optional[str] = Query(default=None),
):
    """Return the most recent trade-log entries, newest first."""
    entries = _trade_log.entries()
    if pair:
        name = normalize_pair(pair)
        entries = [e for e in entries if e.pair == name]
    recent = list(reversed(entries))[:limit]
    return {"trades": [e.to_dict() for e in recent], "total": len(entries)}


@router.get("/trades/stats")
async def get_trade_stats(
    pair: Optional[str] = Query(default=None),
    session: Optional[str] = Query(default=None),
):
    """Win/loss summary over settled entries."""
    return _trade_log.get_performance_stats(
        pair=normalize_pair(pair) if pair else None,
        session=session,
    )


@router.get("/trades/best-setups")
async def get_best_setups():
    """Top (pair, session) groups by win rate."""
    return {"setups": _trade_log.get_best_performing_setups()}


@router.post("/trades/{trade_id}/settle")
async def settle_trade(trade_id: str, body: dict):
    """Settle one PENDING entry.

    Body: ``{"exit_price", "result": "WIN"|"LOSS", "exit_time"?}``.
    """
    if "exit_price" not in body or "result" not in body:
        return _bad_request("Missing exit_price or result")
    try:
        entry = _trade_log.settle(
            trade_id,
            float(body["exit_price"]),
            int(body.get("exit_time") or time.time() * 1000),
            body["result"],
        )
    except ValueError as exc:
        return _bad_request(str(exc))
    if entry is None:
        return JSONResponse(
            status_code=404,
            content={"error": f"No pending trade with id {trade_id}"},
        )
    return entry.to_dict()


@router.post("/trades/update-result")
async def update_trade_result(body: dict):
    """Settle by entry price (first PENDING match within 10 minutes).

    Body: ``{"entry_price", "exit_price", "exit_time", "result"}``.
    """
    missing = [k for k in ("entry_price", "exit_price", "exit_time", "result") if k not in body]
    if missing:
        return _bad_request(f"Missing {', '.join(missing)}")
    try:
        entry = _trade_log.update_trade_result(
            float(body["entry_price"]),
            float(body["exit_price"]),
            int(body["exit_time"]),
            body["result"],
        )
    except ValueError as exc:
        return _bad_request(str(exc))
    return {"updated": entry is not None, "trade": entry.to_dict() if entry else None}


# ── Auto-scanner / notifier ──────────────────────────────────────────────


@router.get("/autoscan/status")
async def get_autoscan_status():
    if _scanner is None:
        return {"enabled": False, "running": False}
    return _scanner.get_status()


@router.post("/autoscan/toggle")
async def toggle_autoscan():
    if _scanner is None:
        return {"error": "Auto-scanner not configured"}
    return {"enabled": _scanner.toggle()}


@router.post("/autoscan/run")
async def run_autoscan():
    """Trigger one scan immediately."""
    if _scanner is None:
        return {"error": "Auto-scanner not configured"}
    logger.info("[AUTO-SCAN] Manual scan triggered")
    summary = await _scanner.run_once()
    return {"success": True, **summary}


@router.get("/telegram/status")
async def get_telegram_status():
    return {"configured": bool(_notifier is not None and _notifier.configured)}
