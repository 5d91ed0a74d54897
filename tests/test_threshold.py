from math import isclose

from legendtrail.engine.threshold import average_movement, dynamic_threshold, movement_pct

from conftest import make_candle


def test_movement_pct_uses_absolute_body():
    up = make_candle(0, 100.0, 103.0, 99.0, 102.0)
    down = make_candle(1, 100.0, 101.0, 97.0, 98.0)
    assert isclose(movement_pct(up), 2.0)
    assert isclose(movement_pct(down), 2.0)


def test_threshold_is_multiplier_times_average():
    window = [
        make_candle(0, 100.0, 101.5, 99.5, 101.0),
        make_candle(1, 100.0, 100.5, 96.5, 97.0),
    ]
    assert isclose(average_movement(window), 2.0)
    assert isclose(dynamic_threshold(window, 10.0), 20.0)


def test_empty_window_gives_zero_threshold():
    assert dynamic_threshold([], 10.0) == 0.0


def test_flat_window_gives_zero_threshold():
    window = [make_candle(i, 100.0, 100.5, 99.5, 100.0) for i in range(10)]
    assert average_movement(window) == 0.0
    assert dynamic_threshold(window, 10.0) == 0.0
