import csv
import json

from legendtrail.backtest import run_backtest
from legendtrail.logging_utils import format_time
from legendtrail.report import (
    build_report,
    plot_balance,
    result_path,
    write_results,
    write_trades_csv,
)

from conftest import START_MS


def test_report_sections(scripted_long_candles, small_config):
    result = run_backtest(scripted_long_candles, small_config, symbol="ETHUSDT", timeframe="1h")
    report = build_report(result)

    assert set(report) == {
        "config",
        "run",
        "trade_performance",
        "balance_history",
        "detailed_trades",
    }
    assert report["config"]["symbol"] == "ETHUSDT"
    assert report["config"]["lookback_candles"] == 5
    assert report["run"]["legends_found"] == 1
    assert report["trade_performance"]["total_trades"] == 1
    assert report["trade_performance"]["by_direction"]["long"]["total_trades"] == 1
    assert report["balance_history"][0]["trade_type"] == "TRAILING_STOP"

    trade = report["detailed_trades"][0]
    assert trade["entry"]["reason"] == "UpwardThresholdMet"
    assert trade["entry"]["side"] == "LONG"
    trails = trade["trailing_details"]["trails"]
    assert [t["triggered_by"] for t in trails] == ["trigger01", "trigger02"]
    assert trails[1]["old_stop_loss"] == trails[0]["new_stop_loss"]
    exit_details = trade["trailing_details"]["exit_details"]
    assert exit_details["total_trails_before_exit"] == 2
    assert exit_details["final_stop_loss_price"] == trails[-1]["new_stop_loss"]


def test_format_time_is_utc():
    assert format_time(START_MS) == "2024-01-01 00:00:00"


def test_write_results_layout(tmp_path, scripted_long_candles, small_config):
    result = run_backtest(scripted_long_candles, small_config, symbol="ETHUSDT", timeframe="1h")
    path = write_results(result, tmp_path)

    assert path == tmp_path / "ETHUSDT" / "1h_results.json"
    assert path == result_path(tmp_path, "ETHUSDT", "1h")
    payload = json.loads(path.read_text(encoding="utf-8"))
    assert payload["detailed_trades"][0]["trade_number"] == 1


def test_trades_csv_and_plot(tmp_path, scripted_long_candles, small_config):
    result = run_backtest(scripted_long_candles, small_config, symbol="ETHUSDT", timeframe="1h")

    csv_path = tmp_path / "trades.csv"
    write_trades_csv(result, csv_path)
    with csv_path.open(newline="", encoding="utf-8") as handle:
        rows = list(csv.DictReader(handle))
    assert len(rows) == 1
    assert rows[0]["side"] == "LONG"
    assert rows[0]["total_trails"] == "2"

    png = plot_balance(result, tmp_path / "plots" / "balance.png")
    assert png.exists()
    assert png.stat().st_size > 0
