"""Reporting helpers for backtest results."""
from __future__ import annotations

import csv
from dataclasses import asdict
from pathlib import Path
from typing import Any

import matplotlib

matplotlib.use("Agg")

import matplotlib.pyplot as plt  # noqa: E402

from legendtrail.analysis import PerformanceSummary, summarize_result  # noqa: E402
from legendtrail.backtest import BacktestResult  # noqa: E402
from legendtrail.logging_utils import format_time, write_state  # noqa: E402
from legendtrail.models import Candle, Side, Trade  # noqa: E402


def _candle_details(candle: Candle | None) -> dict[str, float] | None:
    if candle is None:
        return None
    return {
        "open": candle.open,
        "high": candle.high,
        "low": candle.low,
        "close": candle.close,
        "volume": candle.volume,
    }


def _pct(part: float, whole: float) -> float:
    return part / whole * 100 if whole else 0.0


def trade_details(trade: Trade) -> dict[str, Any]:
    """Detailed, JSON-ready view of one finalized trade."""
    legend = trade.legend
    side = trade.side
    initial_stop = trade.initial_stop
    initial_distance = side.profit(trade.entry_price, initial_stop)

    trails = []
    old_stop = initial_stop
    for number, event in enumerate(trade.trails, start=1):
        trails.append(
            {
                "trail_number": number,
                "time": format_time(event.time),
                "trigger_value": event.trigger,
                "market_price": event.market_price,
                "old_stop_loss": old_stop,
                "new_stop_loss": event.price,
                "stop_loss_movement_pct": _pct(abs(event.price - old_stop), old_stop),
                "profit_at_this_trail": side.profit(old_stop, event.price),
                "profit_at_trigger_pct": event.profit_pct,
                "triggered_by": f"trigger{event.ordinal:02d}",
                "stop_distance_from_entry_pct": _pct(
                    abs(event.price - trade.entry_price), trade.entry_price
                ),
                "profit_so_far": side.profit(trade.entry_price, event.price),
                "trigger_candle": _candle_details(event.candle),
            }
        )
        old_stop = event.price

    return {
        "trade_number": trade.trade_number,
        "timestamp": format_time(trade.entry_time),
        "legend_candle": {
            "time": format_time(legend.candle.open_time),
            "dynamic_threshold_pct": legend.dynamic_threshold,
            "average_movement_pct": legend.average_movement,
            "movement_pct": legend.movement,
            "upward_threshold": legend.upward_threshold,
            "downward_threshold": legend.downward_threshold,
            "candle": _candle_details(legend.candle),
        },
        "entry": {
            "reason": "UpwardThresholdMet" if side is Side.LONG else "DownwardThresholdMet",
            "side": side.value,
            "price": trade.entry_price,
            "time": format_time(trade.entry_time),
            "candles_until_entry": trade.entry.candles_until_entry,
            "position_size": trade.position_size,
            "position_value": trade.position_value,
            "entry_candle": _candle_details(trade.entry.candle),
            "initial_stop": {
                "price": initial_stop,
                "distance_from_entry": initial_distance,
                "percentage_from_entry": _pct(initial_distance, trade.entry_price),
            },
        },
        "trailing_details": {
            "trails": trails,
            "exit_details": {
                "time": format_time(trade.exit_time),
                "exit_reason": f"stoploss {len(trails)} hit",
                "final_stop_loss_price": trade.exit_price,
                "candles_until_exit": trade.candles_until_exit,
                "total_trails_before_exit": len(trails),
                "pnl_pct": trade.pnl_pct,
                "pnl": trade.pnl,
            },
            "metrics": asdict(trade.metrics),
        },
        "balance_after_trade": trade.balance_after,
    }


def performance_dict(summary: PerformanceSummary) -> dict[str, Any]:
    payload = asdict(summary)
    payload["by_direction"] = {
        name: {
            "total_trades": row.trades,
            "profitable_trades": row.profitable,
            "total_pnl": row.total_pnl,
        }
        for name, row in summary.by_direction.items()
    }
    return payload


def build_report(result: BacktestResult) -> dict[str, Any]:
    summary = summarize_result(result)
    return {
        "config": {
            "symbol": result.symbol,
            "timeframe": result.timeframe,
            **result.config.model_dump(),
        },
        "run": {
            "candle_count": result.candle_count,
            "legends_found": result.legends_found,
            "entries_found": result.entries_found,
            "abandoned_trades": result.abandoned_trades,
        },
        "trade_performance": performance_dict(summary),
        "balance_history": [
            {
                "timestamp": format_time(update.timestamp),
                "balance": update.balance,
                "trade_pnl": update.pnl,
                "trade_type": update.kind,
            }
            for update in result.balance_history
        ],
        "detailed_trades": [trade_details(trade) for trade in result.trades],
    }


def result_path(results_dir: str | Path, symbol: str, timeframe: str) -> Path:
    return Path(results_dir) / (symbol or "default") / f"{timeframe or 'default'}_results.json"


def write_results(result: BacktestResult, results_dir: str | Path) -> Path:
    """Persist the JSON report as ``{results_dir}/{symbol}/{timeframe}_results.json``."""
    path = result_path(results_dir, result.symbol, result.timeframe)
    write_state(build_report(result), path)
    return path


def write_trades_csv(result: BacktestResult, path: str | Path) -> None:
    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    with target.open("w", newline="", encoding="utf-8") as handle:
        writer = csv.DictWriter(
            handle,
            fieldnames=[
                "trade_number",
                "side",
                "entry_time",
                "entry_price",
                "exit_time",
                "exit_price",
                "pnl",
                "pnl_pct",
                "total_trails",
                "balance_after",
            ],
        )
        writer.writeheader()
        for trade in result.trades:
            writer.writerow(
                {
                    "trade_number": trade.trade_number,
                    "side": trade.side.value,
                    "entry_time": format_time(trade.entry_time),
                    "entry_price": trade.entry_price,
                    "exit_time": format_time(trade.exit_time),
                    "exit_price": trade.exit_price,
                    "pnl": trade.pnl,
                    "pnl_pct": trade.pnl_pct,
                    "total_trails": trade.metrics.total_trails,
                    "balance_after": trade.balance_after,
                }
            )


def plot_balance(result: BacktestResult, path: str | Path) -> Path:
    """Save the balance curve as a PNG."""
    target = Path(path)
    balances = [result.config.initial_balance] + [u.balance for u in result.balance_history]
    plt.figure(figsize=(8, 5))
    plt.plot(range(len(balances)), balances, color="tab:blue", linewidth=1.2)
    plt.axhline(result.config.initial_balance, color="grey", linestyle="--", linewidth=0.8)
    plt.xlabel("Trade #")
    plt.ylabel("Balance")
    plt.title(f"{result.symbol or 'backtest'} {result.timeframe}: balance after each trade")
    plt.grid(True, linestyle="--", alpha=0.4)
    target.parent.mkdir(parents=True, exist_ok=True)
    plt.tight_layout()
    plt.savefig(target, dpi=150)
    plt.close()
    return target
