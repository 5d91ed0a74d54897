"""Legend detection, entry resolution and trailing-stop engine."""

from .accounting import SimulationContext, calculate_pnl, position_size, trailing_metrics
from .entries import resolve_entry
from .legends import detect_legends, entry_levels, evaluate_legend, first_scan_index
from .threshold import average_movement, dynamic_threshold, movement_pct
from .trailing import TrailingStop, TrailStatus, build_trigger_ladder, simulate_trailing_stop

__all__ = [
    "SimulationContext",
    "TrailStatus",
    "TrailingStop",
    "average_movement",
    "build_trigger_ladder",
    "calculate_pnl",
    "detect_legends",
    "dynamic_threshold",
    "entry_levels",
    "evaluate_legend",
    "first_scan_index",
    "movement_pct",
    "position_size",
    "resolve_entry",
    "simulate_trailing_stop",
    "trailing_metrics",
]
