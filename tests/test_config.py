import pytest
from pydantic import ValidationError

from legendtrail.config import BacktestConfig, DataFetchConfig, YearMonth
from legendtrail.engine.legends import first_scan_index


def test_defaults():
    config = BacktestConfig()
    assert config.lookback_candles == 72
    assert config.threshold_multiplier == 10.0
    assert config.max_look_forward_candles == 720
    assert config.max_trigger_levels == 20
    assert config.initial_balance == 10_000.0
    assert config.position_size_percent == 100.0
    assert first_scan_index(config.lookback_candles) == 82


@pytest.mark.parametrize(
    "overrides",
    [
        {"lookback_candles": 0},
        {"threshold_multiplier": 0.0},
        {"max_look_forward_candles": -1},
        {"max_trigger_levels": -1},
        {"initial_balance": 0.0},
        {"position_size_percent": 150.0},
    ],
)
def test_rejects_out_of_range_values(overrides):
    with pytest.raises(ValidationError):
        BacktestConfig(**overrides)


def test_zero_trigger_levels_allowed():
    assert BacktestConfig(max_trigger_levels=0).max_trigger_levels == 0


def test_from_env(monkeypatch):
    monkeypatch.setenv("LOOKBACK_CANDLES", "48")
    monkeypatch.setenv("THRESHOLD_MULTIPLIER", "6.5")
    monkeypatch.setenv("MAX_TRIGGER_LEVELS", "not-a-number")
    config = BacktestConfig.from_env()
    assert config.lookback_candles == 48
    assert config.threshold_multiplier == 6.5
    assert config.max_trigger_levels == 20


def test_fetch_range_must_be_ordered():
    with pytest.raises(ValidationError):
        DataFetchConfig(start=YearMonth(year=2024, month=5), end=YearMonth(year=2024, month=4))
    with pytest.raises(ValidationError):
        YearMonth(year=2024, month=13)
    assert YearMonth(year=2024, month=3).label() == "2024-03"


def test_fetch_time_range_spans_whole_months():
    config = DataFetchConfig(start=YearMonth(year=2023, month=12), end=YearMonth(year=2024, month=1))
    start_ms, end_ms = config.time_range_ms()
    assert start_ms == 1_701_388_800_000
    assert end_ms == 1_706_745_599_999
    assert DataFetchConfig(start=YearMonth(year=2024, month=1)).time_range_ms() == (
        1_704_067_200_000,
        None,
    )
