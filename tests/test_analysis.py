from math import isclose

from legendtrail.analysis import _max_drawdown, summarize, summarize_result
from legendtrail.backtest import run_backtest

from conftest import quiet_candles


def test_max_drawdown_tracks_peak_to_trough():
    dd, dd_pct = _max_drawdown(100.0, [110.0, 99.0, 105.0, 120.0, 114.0])
    assert isclose(dd, 11.0)
    assert isclose(dd_pct, 10.0)


def test_max_drawdown_without_losses():
    assert _max_drawdown(100.0, [101.0, 102.0]) == (0.0, 0.0)


def test_summary_for_scripted_run(scripted_long_candles, small_config):
    result = run_backtest(scripted_long_candles, small_config)
    summary = summarize_result(result)

    assert summary.total_trades == 1
    assert summary.profitable_trades == 1
    assert summary.unprofitable_trades == 0
    assert summary.win_rate == 100.0
    assert isclose(summary.total_pnl, result.trades[0].pnl)
    assert isclose(summary.total_return_pct, result.trades[0].pnl / 10_000.0 * 100)
    assert summary.max_drawdown == 0.0
    assert summary.by_direction["long"].trades == 1
    assert summary.by_direction["short"].trades == 0
    assert summary.by_direction["short"].key == "Side:SHORT"


def test_summary_of_empty_run(small_config):
    result = run_backtest(quiet_candles(30), small_config)
    summary = summarize_result(result)

    assert summary.total_trades == 0
    assert summary.win_rate == 0.0
    assert summary.final_balance == small_config.initial_balance
    assert summary.total_return_pct == 0.0


def test_summarize_groups_by_key(scripted_long_candles, small_config):
    result = run_backtest(scripted_long_candles, small_config)
    rows = summarize(result.trades, lambda t: t.side.value, "Side")

    assert [row.key for row in rows] == ["Side:LONG"]
    assert rows[0].winrate == 1.0
    assert isclose(rows[0].expectancy, result.trades[0].pnl)
