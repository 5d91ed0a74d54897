"""Trade accounting and running balance for one backtest run."""
from __future__ import annotations

from dataclasses import dataclass, field

from legendtrail.config import BacktestConfig
from legendtrail.models import (
    AccountState,
    BalanceUpdate,
    Entry,
    EventKind,
    LegendCandle,
    Side,
    Trade,
    TradeExit,
    TrailingMetrics,
    TrailingStopEvent,
)


def calculate_pnl(entry_price: float, exit_price: float, side: Side) -> tuple[float, float]:
    """P&L for one unit of notional, absolute and as a percentage of entry."""
    pnl = side.profit(entry_price, exit_price)
    return pnl, pnl / entry_price * 100


def position_size(balance: float, position_size_percent: float, entry_price: float) -> float:
    """Units bought with ``position_size_percent`` of ``balance``."""
    return balance * position_size_percent / 100 / entry_price


def trailing_metrics(
    side: Side,
    entry_price: float,
    exit_price: float,
    events: tuple[TrailingStopEvent, ...],
    max_favorable_price: float,
) -> TrailingMetrics:
    stops = [event.price for event in events if event.kind is not EventKind.HIT]
    distances = [abs(new - old) for old, new in zip(stops, stops[1:])]
    max_profit = max(0.0, side.profit(entry_price, max_favorable_price))
    initial_stop = stops[0]
    return TrailingMetrics(
        total_trails=len(distances),
        average_trail_distance=sum(distances) / len(distances) if distances else 0.0,
        largest_trail=max(distances, default=0.0),
        max_profit=max_profit,
        max_profit_pct=max_profit / entry_price * 100,
        profit_saved_by_trailing=side.profit(initial_stop, exit_price),
    )


@dataclass
class SimulationContext:
    """Single owner of the mutable state of one symbol/timeframe run."""

    config: BacktestConfig
    account: AccountState = field(init=False)
    trades: list[Trade] = field(default_factory=list)
    legends_seen: int = 0
    entries_seen: int = 0
    abandoned: int = 0

    def __post_init__(self) -> None:
        self.account = AccountState(balance=self.config.initial_balance)

    @property
    def balance(self) -> float:
        return self.account.balance

    @property
    def balance_history(self) -> list[BalanceUpdate]:
        return self.account.history

    def size_position(self, entry_price: float) -> float:
        return position_size(self.balance, self.config.position_size_percent, entry_price)

    def record_trade(
        self,
        legend: LegendCandle,
        entry: Entry,
        exit_: TradeExit,
        size: float,
    ) -> Trade:
        """Finalize a trade with a known exit and fold its P&L into the balance."""
        pnl, pnl_pct = calculate_pnl(entry.price, exit_.price, entry.side)
        self.account.balance += pnl
        self.account.history.append(
            BalanceUpdate(timestamp=exit_.time, balance=self.account.balance, pnl=pnl)
        )
        trade = Trade(
            trade_number=len(self.trades) + 1,
            side=entry.side,
            entry_price=entry.price,
            entry_time=entry.time,
            exit_price=exit_.price,
            exit_time=exit_.time,
            pnl=pnl,
            pnl_pct=pnl_pct,
            trigger_log=exit_.events,
            balance_after=self.account.balance,
            legend=legend,
            entry=entry,
            candles_until_exit=exit_.candles_until_exit,
            position_size=size,
            position_value=size * entry.price,
            metrics=trailing_metrics(
                entry.side,
                entry.price,
                exit_.price,
                exit_.events,
                exit_.max_favorable_price,
            ),
        )
        self.trades.append(trade)
        return trade
