"""Entry script to run a single legend-candle trailing-stop backtest."""
from __future__ import annotations

import argparse
from pathlib import Path

from legendtrail.analysis import summarize_result
from legendtrail.backtest import run_backtest
from legendtrail.config import RESULTS_DIR, BacktestConfig, DataFetchConfig, YearMonth
from legendtrail.data import (
    find_csv_files,
    generate_synthetic_candles,
    load_candle_files,
    write_candles_csv,
)
from legendtrail.fetcher import DataFetcher
from legendtrail.logging_utils import log_line
from legendtrail.report import plot_balance, write_results, write_trades_csv


def _ensure_sample_data(path: Path) -> None:
    if path.exists():
        return
    write_candles_csv(generate_synthetic_candles(), path)


def _parse_month(value: str) -> YearMonth:
    year, month = value.split("-", maxsplit=1)
    return YearMonth(year=int(year), month=int(month))


def _build_config(args: argparse.Namespace) -> BacktestConfig:
    base = BacktestConfig.from_env()
    overrides = {
        "lookback_candles": args.lookback,
        "threshold_multiplier": args.threshold,
        "max_look_forward_candles": args.max_look_forward,
        "max_trigger_levels": args.max_trigger_levels,
        "initial_balance": args.initial_balance,
        "position_size_percent": args.position_size_percent,
    }
    values = base.model_dump()
    values.update({k: v for k, v in overrides.items() if v is not None})
    return BacktestConfig(**values)


def main() -> None:
    parser = argparse.ArgumentParser(description="Run the legend-candle trailing-stop backtest.")
    parser.add_argument("--symbol", default="ETHUSDT")
    parser.add_argument("--timeframe", default="1h")
    parser.add_argument(
        "--csv",
        type=Path,
        nargs="+",
        help="Kline CSV files to backtest instead of the downloaded archives.",
    )
    parser.add_argument("--download", action="store_true", help="Fetch monthly archives first.")
    parser.add_argument("--synthetic", action="store_true", help="Use generated sample candles.")
    parser.add_argument("--start", type=_parse_month, help="First month to download (YYYY-MM).")
    parser.add_argument("--end", type=_parse_month, help="Last month to download (YYYY-MM).")
    parser.add_argument("--lookback", type=int)
    parser.add_argument("--threshold", type=float, help="Threshold multiplier.")
    parser.add_argument("--max-look-forward", type=int)
    parser.add_argument("--max-trigger-levels", type=int)
    parser.add_argument("--initial-balance", type=float)
    parser.add_argument("--position-size-percent", type=float)
    parser.add_argument("--results-dir", type=Path, default=RESULTS_DIR)
    parser.add_argument("--plot", action="store_true", help="Save a balance curve PNG.")
    args = parser.parse_args()

    config = _build_config(args)
    start_ms = end_ms = None

    if args.synthetic:
        data_path = Path("data/synthetic_candles.csv")
        _ensure_sample_data(data_path)
        csv_files = [data_path]
    elif args.csv:
        csv_files = list(args.csv)
    else:
        fetch_config = DataFetchConfig.from_env()
        if args.start or args.end:
            fetch_config = DataFetchConfig(
                **{
                    **fetch_config.model_dump(),
                    "start": args.start or fetch_config.start,
                    "end": args.end,
                }
            )
        start_ms, end_ms = fetch_config.time_range_ms()
        fetcher = DataFetcher(args.symbol, args.timeframe, fetch_config)
        if args.download:
            fetcher.fetch_historical_data()
        csv_files = find_csv_files(fetcher.csv_dir)

    if not csv_files:
        raise SystemExit(f"No CSV files found for {args.symbol} {args.timeframe}")

    candles = load_candle_files(csv_files, start_ms=start_ms, end_ms=end_ms)
    log_line(f"Loaded {len(candles)} candles from {len(csv_files)} file(s)")
    result = run_backtest(candles, config, symbol=args.symbol, timeframe=args.timeframe)

    result_file = write_results(result, args.results_dir)
    write_trades_csv(result, result_file.with_suffix(".csv"))
    if args.plot:
        plot_balance(result, result_file.with_suffix(".png"))

    summary = summarize_result(result)
    print("\nBacktest Summary")
    print(f"legends_found={result.legends_found}")
    print(f"entries_found={result.entries_found}")
    print(f"abandoned_trades={result.abandoned_trades}")
    print(f"total_trades={summary.total_trades}")
    print(f"win_rate={summary.win_rate:.2f}%")
    for name, row in summary.by_direction.items():
        print(f"{name}: trades={row.trades} profitable={row.profitable} pnl={row.total_pnl:.2f}")
    print(f"initial_balance={summary.initial_balance:.2f}")
    print(f"final_balance={summary.final_balance:.2f}")
    print(f"return_pct={summary.total_return_pct:.2f}%")
    print(f"max_drawdown_pct={summary.max_drawdown_pct:.2f}%")
    log_line(f"Results saved to {result_file}")


if __name__ == "__main__":
    main()
