"""Monthly kline archive downloads from data.binance.vision."""
from __future__ import annotations

import hashlib
import json
import re
import zipfile
from datetime import datetime, timezone
from pathlib import Path

import requests

from legendtrail.config import DataFetchConfig, YearMonth
from legendtrail.logging_utils import log_line

UA = "Mozilla/5.0"


def _mk_session() -> requests.Session:
    sess = requests.Session()
    sess.headers.update({"User-Agent": UA})
    return sess


def month_range(start: YearMonth, end: YearMonth | None) -> list[YearMonth]:
    if end is None:
        now = datetime.now(timezone.utc)
        end = YearMonth(year=now.year, month=now.month)
    months: list[YearMonth] = []
    year, month = start.year, start.month
    while (year, month) <= (end.year, end.month):
        months.append(YearMonth(year=year, month=month))
        month += 1
        if month > 12:
            month = 1
            year += 1
    return months


def sha256_file(path: Path) -> str:
    digest = hashlib.sha256()
    with path.open("rb") as handle:
        for chunk in iter(lambda: handle.read(1 << 16), b""):
            digest.update(chunk)
    return digest.hexdigest()


class DataFetcher:
    """Downloads, verifies and extracts monthly kline archives for one symbol."""

    def __init__(
        self,
        symbol: str,
        timeframe: str,
        config: DataFetchConfig | None = None,
        session: requests.Session | None = None,
    ) -> None:
        self.symbol = symbol
        self.timeframe = timeframe
        self.config = config or DataFetchConfig()
        self.session = session or _mk_session()

    @property
    def symbol_dir(self) -> Path:
        return Path(self.config.kline_dir) / self.symbol

    @property
    def zip_dir(self) -> Path:
        return self.symbol_dir / self.timeframe / "zip"

    @property
    def csv_dir(self) -> Path:
        return self.symbol_dir / self.timeframe / "csv"

    @property
    def availability_path(self) -> Path:
        return self.symbol_dir / f"{self.symbol}_data.json"

    def monthly_file_names(self) -> list[str]:
        return [
            f"{self.symbol}-{self.timeframe}-{ym.label()}"
            for ym in month_range(self.config.start, self.config.end)
        ]

    def file_url(self, file_name: str) -> str:
        return (
            f"{self.config.base_url}/data/{self.config.market_type}/monthly/klines/"
            f"{self.symbol}/{self.timeframe}/{file_name}.zip"
        )

    def has_existing_data(self) -> bool:
        """True when every requested month already has a non-empty CSV."""
        if not self.csv_dir.exists():
            return False
        for file_name in self.monthly_file_names():
            path = self.csv_dir / f"{file_name}.csv"
            if not path.exists() or path.stat().st_size == 0:
                log_line(f"Missing data for {file_name}")
                return False
        return True

    def download_checksum(self, url: str) -> str:
        try:
            response = self.session.get(f"{url}.CHECKSUM", timeout=self.config.timeout)
            response.raise_for_status()
        except requests.RequestException as exc:
            log_line(f"Failed to download checksum for {url}: {exc}")
            return ""
        return response.text.split(" ", maxsplit=1)[0].strip()

    def download_file(self, url: str, output_path: Path) -> None:
        response = self.session.get(url, timeout=self.config.timeout)
        response.raise_for_status()
        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_path.write_bytes(response.content)

    def verify_checksum(self, path: Path, expected: str) -> bool:
        if not expected:
            return True
        actual = sha256_file(path)
        if actual != expected:
            log_line(f"Checksum mismatch for {path.name}: expected {expected}, got {actual}")
            return False
        return True

    def unzip_file(self, zip_path: Path) -> list[Path]:
        self.csv_dir.mkdir(parents=True, exist_ok=True)
        with zipfile.ZipFile(zip_path) as archive:
            names = [name for name in archive.namelist() if name.endswith(".csv")]
            archive.extractall(self.csv_dir, members=names)
        extracted = [self.csv_dir / name for name in names]
        if not extracted or any(path.stat().st_size == 0 for path in extracted):
            raise ValueError(f"no usable CSV extracted from {zip_path.name}")
        return extracted

    def update_availability(self, first: YearMonth, last: YearMonth) -> None:
        info: dict = {}
        if self.availability_path.exists():
            try:
                info = json.loads(self.availability_path.read_text(encoding="utf-8") or "{}")
            except json.JSONDecodeError:
                log_line(f"Invalid availability file for {self.symbol}, recreating")
                info = {}
        info.setdefault("symbol", self.symbol)
        info["first_available"] = first.model_dump()
        info["last_available"] = last.model_dump()
        info.setdefault("timeframes", {})[self.timeframe] = {
            "downloaded": True,
            "first_downloaded": first.model_dump(),
            "last_downloaded": last.model_dump(),
        }
        info["last_updated"] = datetime.now(timezone.utc).isoformat()
        self.symbol_dir.mkdir(parents=True, exist_ok=True)
        self.availability_path.write_text(json.dumps(info, indent=2), encoding="utf-8")

    def fetch_historical_data(self) -> list[Path]:
        """Download every missing month; returns the CSV files on disk."""
        if self.has_existing_data():
            log_line(f"Using existing data for {self.symbol} {self.timeframe}")
            return sorted(self.csv_dir.glob("*.csv"))

        downloaded: list[YearMonth] = []
        for file_name in self.monthly_file_names():
            url = self.file_url(file_name)
            zip_path = self.zip_dir / f"{file_name}.zip"
            try:
                checksum = self.download_checksum(url)
                self.download_file(url, zip_path)
                if not self.verify_checksum(zip_path, checksum):
                    log_line(f"Skipping {zip_path.name} due to checksum mismatch")
                    continue
                self.unzip_file(zip_path)
            except requests.HTTPError as exc:
                if exc.response is not None and exc.response.status_code == 404:
                    log_line(f"File {zip_path.name} not found (future or unlisted month)")
                    continue
                log_line(f"Error processing {zip_path.name}: {exc}")
                continue
            except (requests.RequestException, zipfile.BadZipFile, ValueError) as exc:
                log_line(f"Error processing {zip_path.name}: {exc}")
                continue
            match = re.search(r"(\d{4})-(\d{2})$", file_name)
            if match:
                downloaded.append(YearMonth(year=int(match[1]), month=int(match[2])))

        if downloaded:
            self.update_availability(downloaded[0], downloaded[-1])
        log_line(
            f"Downloaded {len(downloaded)} monthly files for {self.symbol} {self.timeframe}"
        )
        return sorted(self.csv_dir.glob("*.csv"))
