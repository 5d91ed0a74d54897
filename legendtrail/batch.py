"""Batch runs across symbol/timeframe combinations."""
from __future__ import annotations

import os
from concurrent.futures import ProcessPoolExecutor, as_completed
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterable

from legendtrail.analysis import summarize_result
from legendtrail.backtest import run_backtest
from legendtrail.config import (
    AVAILABLE_SYMBOLS,
    AVAILABLE_TIMEFRAMES,
    RESULTS_DIR,
    BacktestConfig,
    DataFetchConfig,
)
from legendtrail.data import find_csv_files, load_candle_files
from legendtrail.fetcher import DataFetcher
from legendtrail.logging_utils import log_line, write_state
from legendtrail.report import write_results


@dataclass(frozen=True)
class RunOutcome:
    symbol: str
    timeframe: str
    ok: bool
    trade_count: int = 0
    win_rate: float = 0.0
    total_return_pct: float = 0.0
    final_balance: float = 0.0
    result_path: str | None = None
    error: str | None = None


def default_workers(workers: int | None = None) -> int:
    if workers is None or workers <= 0:
        return max(1, (os.cpu_count() or 2) - 1)
    return workers


def run_single(
    symbol: str,
    timeframe: str,
    config: BacktestConfig,
    fetch_config: DataFetchConfig,
    results_dir: Path,
    download: bool = True,
) -> RunOutcome:
    """Download (optionally), backtest and persist one symbol/timeframe."""
    fetcher = DataFetcher(symbol, timeframe, fetch_config)
    try:
        if download:
            fetcher.fetch_historical_data()
        csv_files = find_csv_files(fetcher.csv_dir)
        if not csv_files:
            return RunOutcome(symbol, timeframe, ok=False, error="no CSV files found")
        start_ms, end_ms = fetch_config.time_range_ms()
        candles = load_candle_files(csv_files, start_ms=start_ms, end_ms=end_ms)
        log_line(f"Loaded {len(candles)} candles for {symbol} {timeframe}")
        result = run_backtest(candles, config, symbol=symbol, timeframe=timeframe)
    except ValueError as exc:
        log_line(f"Backtest failed for {symbol} {timeframe}: {exc}")
        return RunOutcome(symbol, timeframe, ok=False, error=str(exc))

    path = write_results(result, results_dir)
    summary = summarize_result(result)
    log_line(
        f"Completed {symbol} {timeframe}: trades={summary.total_trades} "
        f"win_rate={summary.win_rate:.2f}% final_balance={summary.final_balance:.2f}"
    )
    return RunOutcome(
        symbol=symbol,
        timeframe=timeframe,
        ok=True,
        trade_count=summary.total_trades,
        win_rate=summary.win_rate,
        total_return_pct=summary.total_return_pct,
        final_balance=summary.final_balance,
        result_path=str(path),
    )


class BatchProcessor:
    """Runs every symbol/timeframe combination, sequentially or in a process pool."""

    def __init__(
        self,
        symbols: Iterable[str] = AVAILABLE_SYMBOLS,
        timeframes: Iterable[str] = AVAILABLE_TIMEFRAMES,
        config: BacktestConfig | None = None,
        fetch_config: DataFetchConfig | None = None,
        results_dir: Path = RESULTS_DIR,
        parallel: bool = False,
        concurrency_limit: int | None = 5,
        download: bool = True,
    ) -> None:
        self.symbols = list(symbols)
        self.timeframes = list(timeframes)
        self.config = config or BacktestConfig()
        self.fetch_config = fetch_config or DataFetchConfig()
        self.results_dir = Path(results_dir)
        self.parallel = parallel
        self.concurrency_limit = default_workers(concurrency_limit)
        self.download = download
        self.outcomes: list[RunOutcome] = []

    def combinations(self) -> list[tuple[str, str]]:
        return [(symbol, tf) for symbol in self.symbols for tf in self.timeframes]

    def _args(self, symbol: str, timeframe: str) -> tuple:
        return (
            symbol,
            timeframe,
            self.config,
            self.fetch_config,
            self.results_dir,
            self.download,
        )

    def run_all(self) -> list[RunOutcome]:
        combos = self.combinations()
        mode = "parallel" if self.parallel else "sequential"
        log_line(f"Starting {len(combos)} backtests in {mode} mode")

        outcomes: list[RunOutcome] = []
        if not self.parallel or self.concurrency_limit == 1 or len(combos) <= 1:
            for done, (symbol, tf) in enumerate(combos, start=1):
                outcomes.append(run_single(*self._args(symbol, tf)))
                log_line(f"Backtest progress: {done}/{len(combos)}")
        else:
            with ProcessPoolExecutor(max_workers=self.concurrency_limit) as ex:
                futures = {
                    ex.submit(run_single, *self._args(symbol, tf)): (symbol, tf)
                    for symbol, tf in combos
                }
                for fut in as_completed(futures):
                    outcomes.append(fut.result())
                    log_line(f"Remaining backtests: {len(combos) - len(outcomes)}")

        order = {combo: pos for pos, combo in enumerate(combos)}
        self.outcomes = sorted(outcomes, key=lambda o: order[(o.symbol, o.timeframe)])
        return self.outcomes

    def summary(self) -> dict:
        completed = [o for o in self.outcomes if o.ok]
        for outcome in self.outcomes:
            if not outcome.ok:
                log_line(f"Skipping {outcome.symbol}-{outcome.timeframe}: {outcome.error}")
        return {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "total_combinations": len(self.combinations()),
            "completed_backtests": len(completed),
            "results": [
                {
                    "symbol": o.symbol,
                    "timeframe": o.timeframe,
                    "trade_count": o.trade_count,
                    "win_rate": o.win_rate,
                    "total_return": o.total_return_pct,
                    "final_balance": o.final_balance,
                }
                for o in completed
            ],
        }

    def write_summary(self) -> Path:
        payload = self.summary()
        stamp = datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%S")
        path = self.results_dir / "summary" / f"batch_summary_{stamp}.json"
        write_state(payload, path)
        log_line(
            f"Completed {payload['completed_backtests']} out of "
            f"{payload['total_combinations']} backtests; summary at {path}"
        )
        return path

    def process_all(self) -> Path:
        self.run_all()
        return self.write_summary()
