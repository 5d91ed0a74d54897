"""Summary statistics for backtest results."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Iterable

from legendtrail.backtest import BacktestResult
from legendtrail.models import Side, Trade


@dataclass(frozen=True)
class SummaryRow:
    key: str
    trades: int
    profitable: int
    winrate: float
    total_pnl: float
    expectancy: float


@dataclass(frozen=True)
class PerformanceSummary:
    total_trades: int
    profitable_trades: int
    unprofitable_trades: int
    win_rate: float
    total_pnl: float
    total_return_pct: float
    initial_balance: float
    final_balance: float
    max_drawdown: float
    max_drawdown_pct: float
    by_direction: dict[str, SummaryRow]


def _max_drawdown(start: float, balances: Iterable[float]) -> tuple[float, float]:
    peak = start
    max_dd = 0.0
    max_dd_pct = 0.0
    for value in balances:
        peak = max(peak, value)
        drawdown = peak - value
        if drawdown > max_dd:
            max_dd = drawdown
            max_dd_pct = drawdown / peak * 100 if peak else 0.0
    return max_dd, max_dd_pct


def summarize(
    trades: list[Trade], key_fn: Callable[[Trade], str], label: str
) -> list[SummaryRow]:
    grouped: dict[str, list[Trade]] = {}
    for trade in trades:
        grouped.setdefault(key_fn(trade), []).append(trade)

    rows: list[SummaryRow] = []
    for key, group in grouped.items():
        pnls = [trade.pnl for trade in group]
        wins = sum(1 for pnl in pnls if pnl > 0)
        rows.append(
            SummaryRow(
                key=f"{label}:{key}",
                trades=len(group),
                profitable=wins,
                winrate=wins / len(group),
                total_pnl=sum(pnls),
                expectancy=sum(pnls) / len(group),
            )
        )
    return sorted(rows, key=lambda row: row.key)


def _direction_row(trades: list[Trade], side: Side) -> SummaryRow:
    rows = summarize([t for t in trades if t.side is side], lambda t: t.side.value, "Side")
    if rows:
        return rows[0]
    return SummaryRow(
        key=f"Side:{side.value}",
        trades=0,
        profitable=0,
        winrate=0.0,
        total_pnl=0.0,
        expectancy=0.0,
    )


def summarize_result(result: BacktestResult) -> PerformanceSummary:
    trades = result.trades
    initial = result.config.initial_balance
    profitable = sum(1 for trade in trades if trade.pnl > 0)
    total_pnl = sum(trade.pnl for trade in trades)
    max_dd, max_dd_pct = _max_drawdown(
        initial, (update.balance for update in result.balance_history)
    )
    return PerformanceSummary(
        total_trades=len(trades),
        profitable_trades=profitable,
        unprofitable_trades=len(trades) - profitable,
        win_rate=profitable / len(trades) * 100 if trades else 0.0,
        total_pnl=total_pnl,
        total_return_pct=(result.final_balance - initial) / initial * 100,
        initial_balance=initial,
        final_balance=result.final_balance,
        max_drawdown=max_dd,
        max_drawdown_pct=max_dd_pct,
        by_direction={
            "long": _direction_row(trades, Side.LONG),
            "short": _direction_row(trades, Side.SHORT),
        },
    )
