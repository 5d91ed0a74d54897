"""Configuration for legend-candle backtests."""
from __future__ import annotations

import os
from datetime import datetime, timezone
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, model_validator

BASE_DIR = Path(__file__).resolve().parents[1]


def _get_float(name: str, default: float) -> float:
    value = os.getenv(name)
    if value is None:
        return default
    try:
        return float(value)
    except ValueError:
        return default


def _get_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        return default


def _get_path(name: str, default: Path) -> Path:
    value = os.getenv(name)
    return Path(value) if value else default


KLINE_DIR = _get_path("KLINE_DIR", BASE_DIR / "kline")
RESULTS_DIR = _get_path("RESULTS_DIR", BASE_DIR / "results")
LOGS_DIR = _get_path("LOGS_DIR", BASE_DIR / "logs")

AVAILABLE_SYMBOLS = ("BTCUSDT", "ETHUSDT", "BNBUSDT", "SOLUSDT", "XRPUSDT")
AVAILABLE_TIMEFRAMES = ("15m", "30m", "1h", "4h", "1d")

WARMUP_EXTRA_CANDLES = 10


class BacktestConfig(BaseModel):
    """Recognized options for one symbol/timeframe run."""

    model_config = ConfigDict(frozen=True)

    lookback_candles: int = Field(default=72, gt=0)
    threshold_multiplier: float = Field(default=10.0, gt=0)
    max_look_forward_candles: int = Field(default=720, gt=0)
    max_trigger_levels: int = Field(default=20, ge=0)
    initial_balance: float = Field(default=10_000.0, gt=0)
    position_size_percent: float = Field(default=100.0, gt=0, le=100)

    @classmethod
    def from_env(cls) -> "BacktestConfig":
        defaults = cls()
        return cls(
            lookback_candles=_get_int("LOOKBACK_CANDLES", defaults.lookback_candles),
            threshold_multiplier=_get_float(
                "THRESHOLD_MULTIPLIER", defaults.threshold_multiplier
            ),
            max_look_forward_candles=_get_int(
                "MAX_LOOK_FORWARD_CANDLES", defaults.max_look_forward_candles
            ),
            max_trigger_levels=_get_int("MAX_TRIGGER_LEVELS", defaults.max_trigger_levels),
            initial_balance=_get_float("INITIAL_BALANCE", defaults.initial_balance),
            position_size_percent=_get_float(
                "POSITION_SIZE_PERCENT", defaults.position_size_percent
            ),
        )


class YearMonth(BaseModel):
    model_config = ConfigDict(frozen=True)

    year: int = Field(ge=2017)
    month: int = Field(ge=1, le=12)

    def label(self) -> str:
        return f"{self.year}-{self.month:02d}"


class DataFetchConfig(BaseModel):
    """Where and which months of kline archives to download."""

    model_config = ConfigDict(frozen=True)

    base_url: str = "https://data.binance.vision"
    market_type: str = "spot"
    start: YearMonth = YearMonth(year=2024, month=1)
    end: YearMonth | None = None
    kline_dir: Path = KLINE_DIR
    timeout: float = 30.0

    @model_validator(mode="after")
    def _check_range(self) -> "DataFetchConfig":
        if self.end is not None and (self.end.year, self.end.month) < (
            self.start.year,
            self.start.month,
        ):
            raise ValueError("end month must not precede start month")
        return self

    def time_range_ms(self) -> tuple[int, int | None]:
        """Epoch-ms bounds covering the start month through the end month."""
        start = datetime(self.start.year, self.start.month, 1, tzinfo=timezone.utc)
        start_ms = int(start.timestamp() * 1000)
        if self.end is None:
            return start_ms, None
        year, month = self.end.year, self.end.month + 1
        if month > 12:
            year, month = year + 1, 1
        after_end = datetime(year, month, 1, tzinfo=timezone.utc)
        return start_ms, int(after_end.timestamp() * 1000) - 1

    @classmethod
    def from_env(cls) -> "DataFetchConfig":
        start = YearMonth(
            year=_get_int("FETCH_START_YEAR", 2024),
            month=_get_int("FETCH_START_MONTH", 1),
        )
        end_year = os.getenv("FETCH_END_YEAR")
        end = None
        if end_year:
            end = YearMonth(year=int(end_year), month=_get_int("FETCH_END_MONTH", 12))
        return cls(
            market_type=os.getenv("MARKET_TYPE", "spot"),
            start=start,
            end=end,
            kline_dir=KLINE_DIR,
        )
