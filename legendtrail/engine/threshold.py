"""Volatility-adaptive movement threshold."""
from __future__ import annotations

from statistics import fmean
from typing import Sequence

from legendtrail.models import Candle


def movement_pct(candle: Candle) -> float:
    """Body size of ``candle`` as a percentage of its open."""
    return abs(candle.close - candle.open) / candle.open * 100


def average_movement(window: Sequence[Candle]) -> float:
    if not window:
        return 0.0
    return fmean(movement_pct(candle) for candle in window)


def dynamic_threshold(window: Sequence[Candle], multiplier: float) -> float:
    """Return ``multiplier`` times the mean body movement of ``window``.

    An empty or perfectly flat window yields 0.0.
    """
    average = average_movement(window)
    if average == 0:
        return 0.0
    return multiplier * average
