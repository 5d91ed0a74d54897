"""Shared data models for legend-candle backtests."""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class Side(str, Enum):
    LONG = "LONG"
    SHORT = "SHORT"

    @property
    def sign(self) -> int:
        return 1 if self is Side.LONG else -1

    @property
    def trail_kind(self) -> "EventKind":
        return EventKind.TRAIL_UP if self is Side.LONG else EventKind.TRAIL_DOWN

    def favorable_price(self, candle: "Candle") -> float:
        """Price extreme that moves the trade into profit."""
        return candle.high if self is Side.LONG else candle.low

    def stop_hit(self, candle: "Candle", stop: float) -> bool:
        if self is Side.LONG:
            return candle.low <= stop
        return candle.high >= stop

    def reached(self, candle: "Candle", level: float) -> bool:
        if self is Side.LONG:
            return candle.high >= level
        return candle.low <= level

    def offset(self, price: float, distance: float) -> float:
        """Move ``price`` by ``distance`` in the profitable direction."""
        return price + self.sign * distance

    def profit(self, entry_price: float, price: float) -> float:
        return self.sign * (price - entry_price)


class EventKind(str, Enum):
    INITIAL = "INITIAL"
    TRAIL_UP = "TRAIL_UP"
    TRAIL_DOWN = "TRAIL_DOWN"
    HIT = "HIT"


@dataclass(frozen=True)
class Candle:
    open_time: int
    open: float
    high: float
    low: float
    close: float
    volume: float = 0.0
    close_time: int = 0


@dataclass(frozen=True)
class LegendCandle:
    index: int
    candle: Candle
    movement: float
    average_movement: float
    dynamic_threshold: float
    upward_threshold: float
    downward_threshold: float


@dataclass(frozen=True)
class Entry:
    side: Side
    price: float
    time: int
    index: int
    candles_until_entry: int
    candle: Candle
    dynamic_threshold: float


@dataclass(frozen=True)
class TriggerLevel:
    trigger: float
    stop_loss: float
    ordinal: int


@dataclass(frozen=True)
class TrailingStopEvent:
    price: float
    time: int
    kind: EventKind
    market_price: float
    profit_pct: float
    ordinal: int = 0
    trigger: float | None = None
    candle: Candle | None = None


@dataclass(frozen=True)
class TradeExit:
    price: float
    time: int
    index: int
    candles_until_exit: int
    events: tuple[TrailingStopEvent, ...]
    max_favorable_price: float


@dataclass(frozen=True)
class TrailingMetrics:
    total_trails: int
    average_trail_distance: float
    largest_trail: float
    max_profit: float
    max_profit_pct: float
    profit_saved_by_trailing: float


@dataclass(frozen=True)
class Trade:
    trade_number: int
    side: Side
    entry_price: float
    entry_time: int
    exit_price: float
    exit_time: int
    pnl: float
    pnl_pct: float
    trigger_log: tuple[TrailingStopEvent, ...]
    balance_after: float
    legend: LegendCandle
    entry: Entry
    candles_until_exit: int
    position_size: float
    position_value: float
    metrics: TrailingMetrics

    @property
    def initial_stop(self) -> float:
        return self.trigger_log[0].price

    @property
    def trails(self) -> list[TrailingStopEvent]:
        return [
            event
            for event in self.trigger_log
            if event.kind in {EventKind.TRAIL_UP, EventKind.TRAIL_DOWN}
        ]


@dataclass(frozen=True)
class BalanceUpdate:
    timestamp: int
    balance: float
    pnl: float
    kind: str = "TRAILING_STOP"


@dataclass
class AccountState:
    balance: float
    history: list[BalanceUpdate] = field(default_factory=list)
