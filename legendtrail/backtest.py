"""Backtest loop for legend-candle trailing-stop runs."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

from legendtrail.config import BacktestConfig
from legendtrail.engine import (
    SimulationContext,
    evaluate_legend,
    first_scan_index,
    resolve_entry,
    simulate_trailing_stop,
)
from legendtrail.models import BalanceUpdate, Candle, Trade


@dataclass(frozen=True)
class BacktestResult:
    symbol: str
    timeframe: str
    config: BacktestConfig
    trades: list[Trade]
    balance_history: list[BalanceUpdate]
    final_balance: float
    candle_count: int
    legends_found: int
    entries_found: int
    abandoned_trades: int


def check_run_inputs(candles: Sequence[Candle], config: BacktestConfig) -> None:
    if not candles:
        raise ValueError("candle store is empty")
    if config.lookback_candles > len(candles):
        raise ValueError(
            f"lookback_candles={config.lookback_candles} exceeds candle count {len(candles)}"
        )


def run_backtest(
    candles: Sequence[Candle],
    config: BacktestConfig | None = None,
    symbol: str = "",
    timeframe: str = "",
) -> BacktestResult:
    """Walk the candle store and simulate one trade at a time."""
    config = config or BacktestConfig()
    check_run_inputs(candles, config)
    context = SimulationContext(config=config)

    idx = first_scan_index(config.lookback_candles)
    while idx < len(candles):
        legend = evaluate_legend(
            candles, idx, config.lookback_candles, config.threshold_multiplier
        )
        if legend is None:
            idx += 1
            continue
        context.legends_seen += 1

        entry = resolve_entry(candles, legend, config.max_look_forward_candles)
        if entry is None:
            idx += 1
            continue
        context.entries_seen += 1

        size = context.size_position(entry.price)
        exit_ = simulate_trailing_stop(
            candles,
            entry,
            config.max_look_forward_candles,
            config.max_trigger_levels,
        )
        if exit_ is None:
            context.abandoned += 1
            idx += 1
            continue

        context.record_trade(legend, entry, exit_, size)
        idx = exit_.index + 1

    return BacktestResult(
        symbol=symbol,
        timeframe=timeframe,
        config=config,
        trades=list(context.trades),
        balance_history=list(context.balance_history),
        final_balance=context.balance,
        candle_count=len(candles),
        legends_found=context.legends_seen,
        entries_found=context.entries_seen,
        abandoned_trades=context.abandoned,
    )
