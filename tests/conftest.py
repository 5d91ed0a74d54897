import pytest

from legendtrail.config import BacktestConfig
from legendtrail.models import Candle

HOUR_MS = 3_600_000
START_MS = 1_704_067_200_000


def make_candle(idx: int, open_: float, high: float, low: float, close: float) -> Candle:
    open_time = START_MS + idx * HOUR_MS
    return Candle(
        open_time=open_time,
        open=open_,
        high=high,
        low=low,
        close=close,
        volume=1.0,
        close_time=open_time + HOUR_MS - 1,
    )


def quiet_candles(count: int, start_idx: int = 0) -> list[Candle]:
    """Candles with a 0.1% body, enough to give a 1% threshold at k=10."""
    return [
        make_candle(start_idx + i, 100.0, 100.15, 99.95, 100.1) for i in range(count)
    ]


@pytest.fixture
def small_config() -> BacktestConfig:
    return BacktestConfig(
        lookback_candles=5,
        threshold_multiplier=10.0,
        max_look_forward_candles=50,
        max_trigger_levels=20,
        initial_balance=10_000.0,
        position_size_percent=100.0,
    )


@pytest.fixture
def scripted_long_candles() -> list[Candle]:
    """One legend at index 15, LONG entry at 16, two trails at 17, exit at 18."""
    candles = quiet_candles(15)
    candles.append(make_candle(15, 100.0, 102.1, 99.9, 102.0))
    candles.append(make_candle(16, 102.0, 103.5, 101.5, 103.2))
    candles.append(make_candle(17, 103.2, 105.2, 102.8, 105.0))
    candles.append(make_candle(18, 105.0, 105.1, 103.9, 104.0))
    for idx in range(19, 22):
        candles.append(make_candle(idx, 104.0, 104.1, 103.9, 104.0))
    return candles


@pytest.fixture(autouse=True)
def _run_log(tmp_path, monkeypatch):
    monkeypatch.setattr("legendtrail.logging_utils.RUN_LOG", tmp_path / "logs" / "backtest.log")
