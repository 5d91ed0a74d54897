"""Run the backtest across symbol/timeframe combinations."""
from __future__ import annotations

import argparse
from pathlib import Path

from legendtrail.batch import BatchProcessor
from legendtrail.config import (
    AVAILABLE_SYMBOLS,
    AVAILABLE_TIMEFRAMES,
    RESULTS_DIR,
    BacktestConfig,
    DataFetchConfig,
)


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Download kline archives and backtest every symbol/timeframe combination."
    )
    parser.add_argument("--symbols", nargs="+", default=list(AVAILABLE_SYMBOLS))
    parser.add_argument("--timeframes", nargs="+", default=list(AVAILABLE_TIMEFRAMES))
    parser.add_argument("--parallel", action="store_true")
    parser.add_argument("--concurrency", type=int, default=5)
    parser.add_argument("--no-download", action="store_true")
    parser.add_argument("--results-dir", type=Path, default=RESULTS_DIR)
    return parser.parse_args()


def main() -> None:
    args = _parse_args()
    processor = BatchProcessor(
        symbols=args.symbols,
        timeframes=args.timeframes,
        config=BacktestConfig.from_env(),
        fetch_config=DataFetchConfig.from_env(),
        results_dir=args.results_dir,
        parallel=args.parallel,
        concurrency_limit=args.concurrency,
        download=not args.no_download,
    )
    summary_path = processor.process_all()
    print(f"Batch summary: {summary_path}")


if __name__ == "__main__":
    main()
