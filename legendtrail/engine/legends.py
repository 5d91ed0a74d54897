"""Legend candle detection."""
from __future__ import annotations

from typing import Sequence

from legendtrail.config import WARMUP_EXTRA_CANDLES
from legendtrail.models import Candle, LegendCandle

from .threshold import average_movement, dynamic_threshold, movement_pct


def entry_levels(close: float, threshold_pct: float) -> tuple[float, float]:
    """Upward and downward entry prices around ``close``."""
    distance = close * (threshold_pct / 100)
    return close + distance, close - distance


def is_legend(movement: float, threshold_pct: float) -> bool:
    # A zero threshold still needs a real body to qualify.
    return movement > 0 and movement >= threshold_pct


def evaluate_legend(
    candles: Sequence[Candle],
    index: int,
    lookback: int,
    multiplier: float,
) -> LegendCandle | None:
    """Test candle ``index`` against the window ``[index - lookback, index)``."""
    candle = candles[index]
    window = candles[max(0, index - lookback) : index]
    movement = movement_pct(candle)
    average = average_movement(window)
    threshold_pct = dynamic_threshold(window, multiplier)
    if not is_legend(movement, threshold_pct):
        return None
    upward, downward = entry_levels(candle.close, threshold_pct)
    return LegendCandle(
        index=index,
        candle=candle,
        movement=movement,
        average_movement=average,
        dynamic_threshold=threshold_pct,
        upward_threshold=upward,
        downward_threshold=downward,
    )


def first_scan_index(lookback: int) -> int:
    return lookback + WARMUP_EXTRA_CANDLES


def detect_legends(
    candles: Sequence[Candle],
    lookback: int,
    multiplier: float,
) -> list[LegendCandle]:
    """Return every legend candle in the store, ignoring trade overlap."""
    legends: list[LegendCandle] = []
    for idx in range(first_scan_index(lookback), len(candles)):
        legend = evaluate_legend(candles, idx, lookback, multiplier)
        if legend is not None:
            legends.append(legend)
    return legends
