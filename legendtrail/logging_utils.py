"""Logging helpers for backtest runs."""
from __future__ import annotations

import json
import tempfile
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from legendtrail.config import LOGS_DIR

RUN_LOG = LOGS_DIR / "backtest.log"


def format_time(epoch_ms: int) -> str:
    return datetime.fromtimestamp(epoch_ms / 1000, tz=timezone.utc).strftime("%Y-%m-%d %H:%M:%S")


def log_line(msg: str, path: str | Path | None = None) -> None:
    target = Path(path) if path is not None else RUN_LOG
    target.parent.mkdir(parents=True, exist_ok=True)
    stamp = datetime.now(timezone.utc).isoformat(timespec="seconds")
    print(msg)
    with target.open("a", encoding="utf-8") as handle:
        handle.write(f"{stamp} {msg}\n")


def write_state(state: dict[str, Any], path: str | Path) -> None:
    """Write ``state`` as indented JSON, replacing ``path`` atomically."""
    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    with tempfile.NamedTemporaryFile("w", encoding="utf-8", delete=False, dir=target.parent) as handle:
        json.dump(state, handle, indent=2)
        handle.flush()
        temp_path = Path(handle.name)
    temp_path.replace(target)


def append_jsonl(path: str | Path, payload: dict[str, Any]) -> None:
    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    with target.open("a", encoding="utf-8") as handle:
        handle.write(json.dumps(payload, ensure_ascii=False))
        handle.write("\n")
