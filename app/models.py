from typing import Optional

from pydantic import BaseModel, Field

from app.config import NAME_PATTERN
from legendtrail.config import BacktestConfig
from legendtrail.models import Candle


class CandleIn(BaseModel):
    open_time: int
    open: float
    high: float
    low: float
    close: float
    volume: float = 0.0
    close_time: int = 0

    def to_candle(self) -> Candle:
        return Candle(
            open_time=self.open_time,
            open=self.open,
            high=self.high,
            low=self.low,
            close=self.close,
            volume=self.volume,
            close_time=self.close_time,
        )


class BacktestRequest(BaseModel):
    symbol: str = Field(default="CUSTOM", pattern=NAME_PATTERN)
    timeframe: str = Field(default="custom", pattern=NAME_PATTERN)
    candles: list[CandleIn] = Field(min_length=1)
    config: Optional[BacktestConfig] = None
    persist: Optional[bool] = None


class BacktestSummary(BaseModel):
    symbol: str
    timeframe: str
    total_trades: int
    win_rate: float
    final_balance: float
    total_return_pct: float
    result_path: Optional[str] = None
