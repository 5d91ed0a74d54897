import re

from fastapi import FastAPI

from app.config import MAX_CANDLES_PER_REQUEST, NAME_PATTERN, PERSIST_RESULTS, RESULTS_ROOT
from app.models import BacktestRequest, BacktestSummary
from app.storage import list_results, load_result, log_request
from legendtrail.analysis import summarize_result
from legendtrail.backtest import run_backtest
from legendtrail.config import BacktestConfig, LOGS_DIR
from legendtrail.data import CandleValidationError, validate_candles
from legendtrail.logging_utils import format_time
from legendtrail.report import build_report, write_results

app = FastAPI()


@app.on_event("startup")
def _startup() -> None:
    LOGS_DIR.mkdir(parents=True, exist_ok=True)


def _response(accepted: bool, reason: str, **extra: object) -> dict[str, object]:
    payload: dict[str, object] = {"ok": True, "accepted": accepted, "reason": reason}
    payload.update(extra)
    return payload


@app.post("/backtests")
def create_backtest(payload: BacktestRequest) -> dict[str, object]:
    event: dict[str, object] = {
        "symbol": payload.symbol,
        "timeframe": payload.timeframe,
        "candles": len(payload.candles),
    }

    if len(payload.candles) > MAX_CANDLES_PER_REQUEST:
        event["blocked_reason"] = "blocked_too_many_candles"
        log_request(event)
        return _response(False, "blocked_too_many_candles")

    candles = [candle.to_candle() for candle in payload.candles]
    try:
        validate_candles(candles)
    except CandleValidationError as exc:
        event["blocked_reason"] = "blocked_bad_candles"
        log_request(event)
        return _response(False, "blocked_bad_candles", detail=str(exc))

    config = payload.config or BacktestConfig.from_env()
    try:
        result = run_backtest(
            candles, config, symbol=payload.symbol, timeframe=payload.timeframe
        )
    except ValueError as exc:
        event["blocked_reason"] = "blocked_bad_config"
        log_request(event)
        return _response(False, "blocked_bad_config", detail=str(exc))

    persist = PERSIST_RESULTS if payload.persist is None else payload.persist
    path = write_results(result, RESULTS_ROOT) if persist else None
    summary = summarize_result(result)
    event["trades"] = summary.total_trades
    if result.trades:
        event["last_exit"] = format_time(result.trades[-1].exit_time)
    log_request(event)

    return _response(
        True,
        "completed",
        summary=BacktestSummary(
            symbol=result.symbol,
            timeframe=result.timeframe,
            total_trades=summary.total_trades,
            win_rate=summary.win_rate,
            final_balance=summary.final_balance,
            total_return_pct=summary.total_return_pct,
            result_path=str(path) if path else None,
        ).model_dump(),
        report=build_report(result),
    )


@app.get("/results")
def results() -> dict[str, object]:
    return {"results": list_results()}


@app.get("/results/{symbol}/{timeframe}")
def result_detail(symbol: str, timeframe: str) -> dict[str, object]:
    if not (re.fullmatch(NAME_PATTERN, symbol) and re.fullmatch(NAME_PATTERN, timeframe)):
        return _response(False, "blocked_bad_symbol")
    report = load_result(symbol, timeframe)
    if report is None:
        return _response(False, "not_found")
    return _response(True, "found", report=report)
