import os
from pathlib import Path

from legendtrail.config import LOGS_DIR, RESULTS_DIR, _get_int

API_LOG = LOGS_DIR / "api_requests.jsonl"
RESULTS_ROOT = Path(os.getenv("API_RESULTS_DIR", str(RESULTS_DIR)))
PERSIST_RESULTS = os.getenv("API_PERSIST_RESULTS", "1") not in {"0", "false", "False"}
MAX_CANDLES_PER_REQUEST = _get_int("MAX_CANDLES_PER_REQUEST", 200_000)

# Symbols and timeframes become directory and file names under RESULTS_ROOT.
NAME_PATTERN = r"^[A-Za-z0-9_]+$"
