"""CLI report — prints scan results and single analyses to the console."""

from fxsignal.engine import ScanResult
from fxsignal.strategy.models import SignalAnalysis


def _status(analysis: SignalAnalysis) -> str:
    if analysis.actionable:
        return "OK"
    if analysis.block_reasons:
        return "BLOCKED (" + ", ".join(analysis.block_reasons) + ")"
    return "NO TRADE"


def print_scan(scan: ScanResult) -> str:
    """Format and print a ranked scan table.

    Returns:
        The formatted string (also printed to stdout).
    """
    stats = scan.stats
    lines = [
        f"──────────────── fxsignal scan {scan.timeframe} ────────────────",
        f"  Time:     {scan.timestamp:%Y-%m-%d %H:%M:%S} UTC",
        f"  Valid:    {stats['valid']}/{stats['total']}  "
        f"(threshold {stats['min_confidence_threshold']}%, "
        f"max rescans {stats['max_rescans']})",
        "",
    ]
    for s in scan.signals:
        lines.append(
            f"  {s.pair:<8} {s.signal_type:<4} {s.confidence:>3}%  "
            f"entry {s.entry:<10.5f} {_status(s)}"
        )
    if scan.best_signal is not None and scan.best_signal.confidence > 0:
        best = scan.best_signal
        lines += ["", f"  Best:     {best.pair} {best.signal_type} {best.confidence}%"]
    lines.append("──────────────────────────────────────────────────")
    output = "\n".join(lines)
    print(output)
    return output


def print_analysis(analysis: SignalAnalysis) -> str:
    """Format and print one analysis with its reasoning trail."""
    t = analysis.technicals
    lines = [
        f"──────────────── {analysis.pair} {analysis.timeframe} ────────────────",
        f"  Signal:      {analysis.signal_type}  {analysis.confidence}%  {_status(analysis)}",
        f"  Price:       {analysis.current_price:.5f}",
        f"  Entry:       {analysis.entry:.5f}",
        f"  Stop Loss:   {analysis.stop_loss:.5f}",
        f"  Take Profit: {analysis.take_profit:.5f}",
        f"  Session:     {analysis.session or 'N/A'} / accuracy {analysis.pair_accuracy or 'N/A'}",
        f"  RSI {t.rsi:.1f} | Stoch {t.stochastic.k:.1f}/{t.stochastic.d:.1f} "
        f"| ADX {t.adx:.1f} | Trend {t.trend}",
        "",
    ]
    lines += [f"  - {r}" for r in analysis.reasoning]
    lines.append("──────────────────────────────────────────────────")
    output = "\n".join(lines)
    print(output)
    return output
