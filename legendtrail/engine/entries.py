"""Entry resolution after a legend candle."""
from __future__ import annotations

from typing import Sequence

from legendtrail.models import Candle, Entry, LegendCandle, Side


def resolve_entry(
    candles: Sequence[Candle],
    legend: LegendCandle,
    max_look_forward: int,
) -> Entry | None:
    """Find the first candle after ``legend`` that crosses an entry level.

    The upward level is checked before the downward one, so a candle that
    spans both opens a LONG.
    """
    for offset in range(1, max_look_forward + 1):
        idx = legend.index + offset
        if idx >= len(candles):
            break
        candle = candles[idx]
        if candle.high >= legend.upward_threshold:
            side, price = Side.LONG, legend.upward_threshold
        elif candle.low <= legend.downward_threshold:
            side, price = Side.SHORT, legend.downward_threshold
        else:
            continue
        return Entry(
            side=side,
            price=price,
            time=candle.open_time,
            index=idx,
            candles_until_entry=offset,
            candle=candle,
            dynamic_threshold=legend.dynamic_threshold,
        )
    return None
