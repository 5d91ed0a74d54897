"""Candle loading and validation for backtest runs."""
from __future__ import annotations

import csv
import random
from pathlib import Path
from typing import Iterable

from legendtrail.models import Candle

KLINE_COLUMNS = (
    "open_time",
    "open",
    "high",
    "low",
    "close",
    "volume",
    "close_time",
)

# Binance switched spot archives to microsecond timestamps in 2025.
_MICROSECOND_CUTOFF = 10**14


class CandleValidationError(ValueError):
    """Raised when a candle sequence breaks the OHLCV invariants."""


def _normalize_time(value: str) -> int:
    stamp = int(float(value))
    if stamp >= _MICROSECOND_CUTOFF:
        stamp //= 1000
    return stamp


def _is_header(row: list[str]) -> bool:
    try:
        float(row[0])
    except ValueError:
        return True
    return False


def _row_to_candle(row: dict[str, str]) -> Candle:
    return Candle(
        open_time=_normalize_time(row["open_time"]),
        open=float(row["open"]),
        high=float(row["high"]),
        low=float(row["low"]),
        close=float(row["close"]),
        volume=float(row["volume"]) if row.get("volume") else 0.0,
        close_time=_normalize_time(row["close_time"]) if row.get("close_time") else 0,
    )


def load_candles_csv(
    path: str | Path,
    start_ms: int | None = None,
    end_ms: int | None = None,
) -> list[Candle]:
    """Load candles from a kline CSV file.

    Accepts Binance archives without a header (column order open_time, open,
    high, low, close, volume, close_time, ...) as well as files that carry a
    header row with those names. Rows outside ``[start_ms, end_ms]`` are
    dropped.
    """
    candles: list[Candle] = []
    with Path(path).open("r", encoding="utf-8", newline="") as handle:
        reader = csv.reader(handle)
        header: list[str] | None = None
        for parts in reader:
            if not parts or len(parts) < 5:
                continue
            if header is None and not candles and _is_header(parts):
                header = [name.strip().lower() for name in parts]
                continue
            names = header or list(KLINE_COLUMNS)
            row = dict(zip(names, (part.strip() for part in parts)))
            candle = _row_to_candle(row)
            if start_ms is not None and candle.open_time < start_ms:
                continue
            if end_ms is not None and candle.open_time > end_ms:
                continue
            candles.append(candle)
    return candles


def load_candle_files(
    paths: Iterable[str | Path],
    start_ms: int | None = None,
    end_ms: int | None = None,
) -> list[Candle]:
    """Merge several kline files into one validated, time-sorted store."""
    by_time: dict[int, Candle] = {}
    for path in sorted(Path(p) for p in paths):
        for candle in load_candles_csv(path, start_ms=start_ms, end_ms=end_ms):
            by_time.setdefault(candle.open_time, candle)
    candles = [by_time[key] for key in sorted(by_time)]
    validate_candles(candles)
    return candles


def find_csv_files(csv_dir: str | Path) -> list[Path]:
    directory = Path(csv_dir)
    if not directory.exists():
        return []
    return sorted(directory.glob("*.csv"))


def validate_candles(candles: list[Candle]) -> None:
    """Reject malformed candles before they reach the engine."""
    previous: Candle | None = None
    for idx, candle in enumerate(candles):
        if candle.open <= 0:
            raise CandleValidationError(f"candle {idx}: open must be positive")
        if candle.high < candle.low:
            raise CandleValidationError(f"candle {idx}: high below low")
        if candle.high < max(candle.open, candle.close) or candle.low > min(
            candle.open, candle.close
        ):
            raise CandleValidationError(f"candle {idx}: open/close outside high-low range")
        if candle.volume < 0:
            raise CandleValidationError(f"candle {idx}: negative volume")
        if previous is not None and candle.open_time <= previous.open_time:
            raise CandleValidationError(
                f"candle {idx}: open_time {candle.open_time} not after {previous.open_time}"
            )
        previous = candle


def write_candles_csv(candles: Iterable[Candle], path: str | Path) -> None:
    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    lines = [",".join(KLINE_COLUMNS)]
    for candle in candles:
        lines.append(
            f"{candle.open_time},{candle.open:.5f},{candle.high:.5f},"
            f"{candle.low:.5f},{candle.close:.5f},{candle.volume},{candle.close_time}"
        )
    target.write_text("\n".join(lines), encoding="utf-8")


def generate_synthetic_candles(
    count: int = 2_000,
    start_price: float = 2_000.0,
    interval_ms: int = 3_600_000,
    start_ms: int = 1_704_067_200_000,
    seed: int = 7,
) -> list[Candle]:
    """Deterministic random walk with occasional large bars."""
    rng = random.Random(seed)
    candles: list[Candle] = []
    price = start_price
    for idx in range(count):
        scale = 0.004 if rng.random() > 0.03 else 0.05
        open_price = price
        close_price = max(1.0, open_price * (1 + rng.gauss(0, scale)))
        wick = abs(rng.gauss(0, scale / 2)) * open_price
        high = max(open_price, close_price) + wick
        low = max(0.5, min(open_price, close_price) - wick)
        open_time = start_ms + idx * interval_ms
        candles.append(
            Candle(
                open_time=open_time,
                open=open_price,
                high=high,
                low=low,
                close=close_price,
                volume=round(rng.uniform(10, 1_000), 3),
                close_time=open_time + interval_ms - 1,
            )
        )
        price = close_price
    return candles
