"""Multi-level trailing stop simulation."""
from __future__ import annotations

from enum import Enum
from typing import Sequence

from legendtrail.models import (
    Candle,
    Entry,
    EventKind,
    Side,
    TradeExit,
    TrailingStopEvent,
    TriggerLevel,
)


class TrailStatus(str, Enum):
    ACTIVE = "ACTIVE"
    EXITED = "EXITED"
    ABANDONED = "ABANDONED"


def build_trigger_ladder(
    entry_price: float,
    side: Side,
    threshold_pct: float,
    max_levels: int,
) -> list[TriggerLevel]:
    """Build the initial stop (ordinal 0) and ``max_levels`` trigger levels.

    Levels are spaced by a fixed ``delta`` derived from the entry price.
    Crossing trigger ``j`` moves the stop to trigger ``j - 1``.
    """
    delta = entry_price * (threshold_pct / 100)
    levels = [
        TriggerLevel(
            trigger=entry_price,
            stop_loss=side.offset(entry_price, -delta),
            ordinal=0,
        )
    ]
    previous_trigger = entry_price
    for ordinal in range(1, max_levels + 1):
        trigger = side.offset(entry_price, ordinal * delta)
        levels.append(
            TriggerLevel(trigger=trigger, stop_loss=previous_trigger, ordinal=ordinal)
        )
        previous_trigger = trigger
    return levels


def _profit_pct(side: Side, entry_price: float, price: float) -> float:
    return side.profit(entry_price, price) / entry_price * 100


class TrailingStop:
    """Active stop for one open trade, advanced one candle at a time."""

    def __init__(self, entry: Entry, levels: list[TriggerLevel]) -> None:
        self.entry = entry
        self.side = entry.side
        self.levels = levels
        self.status = TrailStatus.ACTIVE
        self.current_stop = levels[0].stop_loss
        self.next_ordinal = 1
        self.max_favorable_price = entry.price
        self.exit_price: float | None = None
        self.exit_time: int | None = None
        self.events: list[TrailingStopEvent] = [
            TrailingStopEvent(
                price=self.current_stop,
                time=entry.time,
                kind=EventKind.INITIAL,
                market_price=entry.price,
                profit_pct=0.0,
                ordinal=0,
                trigger=entry.price,
                candle=entry.candle,
            )
        ]

    @property
    def is_active(self) -> bool:
        return self.status is TrailStatus.ACTIVE

    def on_candle(self, candle: Candle) -> TrailStatus:
        """Apply one candle: stop check first, then every crossed trigger."""
        if not self.is_active:
            raise ValueError(f"trailing stop already {self.status.value}")

        if self.side.stop_hit(candle, self.current_stop):
            self.exit_price = self.current_stop
            self.exit_time = candle.open_time
            self.events.append(
                TrailingStopEvent(
                    price=self.current_stop,
                    time=candle.open_time,
                    kind=EventKind.HIT,
                    market_price=self.current_stop,
                    profit_pct=_profit_pct(self.side, self.entry.price, self.current_stop),
                    ordinal=self.next_ordinal - 1,
                    candle=candle,
                )
            )
            self.status = TrailStatus.EXITED
            return self.status

        favorable = self.side.favorable_price(candle)
        if self.side.profit(self.max_favorable_price, favorable) > 0:
            self.max_favorable_price = favorable

        while self.next_ordinal < len(self.levels):
            level = self.levels[self.next_ordinal]
            if not self.side.reached(candle, level.trigger):
                break
            self.current_stop = level.stop_loss
            self.events.append(
                TrailingStopEvent(
                    price=level.stop_loss,
                    time=candle.open_time,
                    kind=self.side.trail_kind,
                    market_price=favorable,
                    profit_pct=_profit_pct(self.side, self.entry.price, level.trigger),
                    ordinal=level.ordinal,
                    trigger=level.trigger,
                    candle=candle,
                )
            )
            self.next_ordinal += 1
        return self.status

    def abandon(self) -> TrailStatus:
        """Drop a trade whose stop was never hit."""
        if not self.is_active:
            raise ValueError(f"cannot abandon a trailing stop that is {self.status.value}")
        self.status = TrailStatus.ABANDONED
        return self.status


def simulate_trailing_stop(
    candles: Sequence[Candle],
    entry: Entry,
    max_look_forward: int,
    max_trigger_levels: int,
) -> TradeExit | None:
    """Scan forward from the entry candle until the active stop is hit.

    Returns None when the horizon or the candle store runs out first.
    """
    levels = build_trigger_ladder(
        entry.price, entry.side, entry.dynamic_threshold, max_trigger_levels
    )
    stop = TrailingStop(entry, levels)
    for offset in range(1, max_look_forward + 1):
        idx = entry.index + offset
        if idx >= len(candles):
            break
        if stop.on_candle(candles[idx]) is TrailStatus.EXITED:
            return TradeExit(
                price=stop.exit_price,
                time=stop.exit_time,
                index=idx,
                candles_until_exit=offset,
                events=tuple(stop.events),
                max_favorable_price=stop.max_favorable_price,
            )
    stop.abandon()
    return None
