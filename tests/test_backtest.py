from math import isclose

import pytest

from legendtrail.backtest import run_backtest
from legendtrail.config import BacktestConfig
from legendtrail.data import generate_synthetic_candles
from legendtrail.models import EventKind, Side

from conftest import make_candle, quiet_candles


def test_scripted_long_trade(scripted_long_candles, small_config):
    result = run_backtest(scripted_long_candles, small_config, symbol="ETHUSDT", timeframe="1h")

    assert result.legends_found == 1
    assert result.entries_found == 1
    assert result.abandoned_trades == 0
    assert len(result.trades) == 1

    trade = result.trades[0]
    assert trade.side is Side.LONG
    assert trade.legend.index == 15
    assert trade.entry.index == 16
    assert isclose(trade.entry_price, 103.02, rel_tol=1e-6)
    assert isclose(trade.initial_stop, 101.9898, rel_tol=1e-6)
    assert [event.ordinal for event in trade.trails] == [1, 2]
    assert all(event.kind is EventKind.TRAIL_UP for event in trade.trails)
    assert isclose(trade.exit_price, 104.0502, rel_tol=1e-6)
    assert trade.exit_time == scripted_long_candles[18].open_time
    assert trade.candles_until_exit == 2
    assert isclose(trade.pnl, 1.0302, rel_tol=1e-6)
    assert isclose(result.final_balance, 10_000.0 + trade.pnl)
    assert [update.balance for update in result.balance_history] == [result.final_balance]


def test_trade_without_exit_is_abandoned(small_config):
    candles = quiet_candles(15)
    candles.append(make_candle(15, 100.0, 102.1, 99.9, 102.0))
    candles.append(make_candle(16, 102.0, 102.1, 100.5, 100.6))
    for idx in range(17, 22):
        candles.append(make_candle(idx, 100.5, 100.6, 100.4, 100.5))

    result = run_backtest(candles, small_config)

    assert result.legends_found == 1
    assert result.entries_found == 1
    assert result.abandoned_trades == 1
    assert result.trades == []
    assert result.balance_history == []
    assert result.final_balance == small_config.initial_balance


def test_legend_without_entry_is_skipped(small_config):
    candles = quiet_candles(15)
    candles.append(make_candle(15, 100.0, 102.1, 99.9, 102.0))
    for idx in range(16, 25):
        candles.append(make_candle(idx, 102.0, 102.2, 101.8, 102.0))

    result = run_backtest(candles, small_config)

    assert result.legends_found == 1
    assert result.entries_found == 0
    assert result.trades == []


def test_empty_store_raises():
    with pytest.raises(ValueError):
        run_backtest([], BacktestConfig())


def test_lookback_longer_than_store_raises():
    candles = quiet_candles(10)
    with pytest.raises(ValueError):
        run_backtest(candles, BacktestConfig(lookback_candles=11))


def test_short_store_yields_no_trades():
    candles = quiet_candles(12)
    result = run_backtest(candles, BacktestConfig(lookback_candles=5))
    assert result.legends_found == 0
    assert result.trades == []
    assert result.candle_count == 12


def test_synthetic_run_is_deterministic():
    config = BacktestConfig(lookback_candles=24, threshold_multiplier=3.0)
    candles = generate_synthetic_candles(count=1_500)

    first = run_backtest(candles, config)
    second = run_backtest(candles, config)

    assert [trade.pnl for trade in first.trades] == [trade.pnl for trade in second.trades]
    assert first.final_balance == second.final_balance
    assert first.legends_found == second.legends_found


def test_trades_are_ordered_and_never_overlap():
    config = BacktestConfig(lookback_candles=24, threshold_multiplier=3.0)
    result = run_backtest(generate_synthetic_candles(count=1_500), config)

    previous_exit = None
    for number, trade in enumerate(result.trades, start=1):
        assert trade.trade_number == number
        assert trade.entry_time > trade.legend.candle.open_time
        assert trade.exit_time > trade.entry_time
        assert trade.entry.candles_until_entry <= config.max_look_forward_candles
        assert trade.candles_until_exit <= config.max_look_forward_candles
        if previous_exit is not None:
            assert trade.legend.candle.open_time > previous_exit
        previous_exit = trade.exit_time

    balance = config.initial_balance
    for trade, update in zip(result.trades, result.balance_history):
        balance += trade.pnl
        assert isclose(update.balance, balance)
        assert update.timestamp == trade.exit_time
    assert isclose(result.final_balance, balance)
