"""fxsignal — application entry point.

Boots the FastAPI internal server and provides the CLI entry point for
the serve, scan, and signal modes.
"""

import logging

from fastapi import FastAPI

from fxsignal.api.routers import router

app = FastAPI(title="fxsignal Internal API", version="0.1.0")
app.include_router(router)

logger = logging.getLogger("fxsignal")


@app.get("/health")
async def health():
    """Liveness probe."""
    return {"status": "ok"}


# ── CLI ──────────────────────────────────────────────────────────────────


def _run_cli() -> None:
    """Parse CLI arguments and dispatch to the appropriate mode."""
    import argparse
    import asyncio

    from fxsignal.api.routers import configure_routers
    from fxsignal.config import load_config
    from fxsignal.engine import SignalEngine
    from fxsignal.market.models import normalize_pair
    from fxsignal.notify.telegram import TelegramNotifier
    from fxsignal.scanner import AutoScanner

    parser = argparse.ArgumentParser(description="fxsignal forex signal engine")
    parser.add_argument(
        "--mode",
        choices=["serve", "scan", "signal"],
        default="serve",
        help="Run mode (default: serve)",
    )
    parser.add_argument("--pair", default="EUR/USD", help="Pair for --mode signal")
    parser.add_argument("--timeframe", help="Timeframe (default: DEFAULT_TIMEFRAME)")
    args = parser.parse_args()

    config = load_config()

    logging.basicConfig(
        level=getattr(logging, config.log_level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

    engine = SignalEngine.from_config(config)
    timeframe = args.timeframe or config.default_timeframe

    if args.mode == "scan":
        from fxsignal.cli.report import print_scan

        print_scan(asyncio.run(engine.scan_all_pairs(timeframe)))
        return

    if args.mode == "signal":
        from fxsignal.cli.report import print_analysis

        print_analysis(asyncio.run(
            engine.generate_signal_analysis(normalize_pair(args.pair), timeframe)
        ))
        return

    notifier = TelegramNotifier(
        config.telegram_bot_token,
        config.telegram_chat_id,
        session_utc_offset_hours=config.session_utc_offset_hours,
    )
    scanner = AutoScanner.from_config(config, engine, notifier)
    configure_routers(
        source=engine.source,
        engine=engine,
        trade_log=engine.trade_log,
        scanner=scanner,
        notifier=notifier,
        api_key=config.alpha_vantage_api_key,
    )
    asyncio.run(_serve(scanner, config.health_port))


async def _serve(scanner, port: int = 8080) -> None:
    """Start the API server and the auto-scanner concurrently."""
    import uvicorn

    uvi_config = uvicorn.Config(app, host="0.0.0.0", port=port, log_level="info")
    server = uvicorn.Server(uvi_config)

    scanner.start()
    logger.info("API available at http://localhost:%d", port)
    try:
        await server.serve()
    finally:
        await scanner.stop()
        logger.info("fxsignal stopped.")


if __name__ == "__main__":
    _run_cli()
