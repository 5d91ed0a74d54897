import json
from pathlib import Path
from typing import Any

from app.config import API_LOG, RESULTS_ROOT
from legendtrail.logging_utils import append_jsonl
from legendtrail.report import result_path


def log_request(event: dict[str, Any]) -> None:
    append_jsonl(API_LOG, event)


def load_result(symbol: str, timeframe: str, root: Path | None = None) -> dict[str, Any] | None:
    path = result_path(root or RESULTS_ROOT, symbol, timeframe)
    if not path.exists():
        return None
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except (json.JSONDecodeError, OSError):
        return None


def list_results(root: Path | None = None) -> list[dict[str, str]]:
    base = root or RESULTS_ROOT
    if not base.exists():
        return []
    entries: list[dict[str, str]] = []
    for path in sorted(base.glob("*/*_results.json")):
        entries.append(
            {
                "symbol": path.parent.name,
                "timeframe": path.name.removesuffix("_results.json"),
            }
        )
    return entries
