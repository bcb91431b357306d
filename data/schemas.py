"""Pydantic models for price history and scan output.

Prices are validated on the way in (positive OHLC, consistent bar ranges,
strictly ordered timestamps) so the indicator math can assume clean input.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import List

import pandas as pd
from pydantic import BaseModel, ConfigDict, Field, model_validator


class Direction(str, Enum):
    """Expected direction of the next move."""

    BUY = "buy"
    SELL = "sell"
    NEUTRAL = "neutral"


class PriceBar(BaseModel):
    """One OHLCV bar."""

    model_config = ConfigDict(frozen=True)

    timestamp: datetime = Field(..., description="Bar open time")
    open: float = Field(..., gt=0)
    high: float = Field(..., gt=0)
    low: float = Field(..., gt=0)
    close: float = Field(..., gt=0)
    volume: float = Field(..., ge=0)

    @model_validator(mode="after")
    def validate_ohlc_relationships(self) -> "PriceBar":
        """Validate relationships between price points.

        Rules:
        - High must be the highest point of the bar
        - Low must be the lowest point of the bar
        """
        if self.high < self.low:
            raise ValueError(f"High ({self.high}) cannot be lower than Low ({self.low})")
        if self.high < max(self.open, self.close):
            raise ValueError(
                f"High ({self.high}) cannot be lower than Open/Close "
                f"({self.open}/{self.close})"
            )
        if self.low > min(self.open, self.close):
            raise ValueError(
                f"Low ({self.low}) cannot be higher than Open/Close "
                f"({self.open}/{self.close})"
            )
        return self


class PriceSeries(BaseModel):
    """Ordered OHLCV history for one symbol, oldest bar first."""

    model_config = ConfigDict(frozen=True)

    symbol: str = Field(..., min_length=1)
    bars: List[PriceBar] = Field(..., min_length=1)

    @model_validator(mode="after")
    def validate_chronological(self) -> "PriceSeries":
        """Ensure timestamps are strictly increasing (and therefore unique)."""
        for prev, current in zip(self.bars, self.bars[1:]):
            if current.timestamp <= prev.timestamp:
                raise ValueError(
                    f"Bars for {self.symbol} out of order or duplicated at {current.timestamp}"
                )
        return self

    def __len__(self) -> int:
        return len(self.bars)

    @property
    def closes(self) -> List[float]:
        return [bar.close for bar in self.bars]

    @property
    def highs(self) -> List[float]:
        return [bar.high for bar in self.bars]

    @property
    def lows(self) -> List[float]:
        return [bar.low for bar in self.bars]

    @property
    def volumes(self) -> List[float]:
        return [bar.volume for bar in self.bars]

    def to_frame(self) -> pd.DataFrame:
        """Convert to an OHLCV DataFrame indexed by timestamp."""
        return pd.DataFrame(
            {
                "Open": [bar.open for bar in self.bars],
                "High": self.highs,
                "Low": self.lows,
                "Close": self.closes,
                "Volume": self.volumes,
            },
            index=pd.DatetimeIndex([bar.timestamp for bar in self.bars], name="Date"),
        )

    @classmethod
    def from_frame(cls, symbol: str, df: pd.DataFrame) -> "PriceSeries":
        """Build a series from an OHLCV DataFrame with a datetime index.

        Rows are sorted oldest first; rows with missing values are dropped.
        """
        frame = df[["Open", "High", "Low", "Close", "Volume"]].dropna().sort_index()
        bars = [
            PriceBar(
                timestamp=ts.to_pydatetime(),
                open=float(row["Open"]),
                high=float(row["High"]),
                low=float(row["Low"]),
                close=float(row["Close"]),
                volume=float(row["Volume"]),
            )
            for ts, row in frame.iterrows()
        ]
        return cls(symbol=symbol, bars=bars)


class IndicatorValues(BaseModel):
    """Rounded indicator values reported alongside a score."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    roc: float
    macd: float = Field(..., description="MACD histogram")
    atr: float
    rsi: float
    volume_ratio: float = Field(..., alias="volumeRatio")


class ScoreResult(BaseModel):
    """Scored snapshot of one symbol."""

    model_config = ConfigDict(frozen=True)

    symbol: str
    price: float
    change: float = Field(..., description="Percent change vs previous close")
    volatility: float = Field(..., description="ATR as a percent of price")
    probability: int = Field(..., ge=0, le=100)
    direction: Direction
    indicators: IndicatorValues

    def to_dict(self) -> dict:
        """JSON-ready dict using the public field names."""
        return self.model_dump(by_alias=True, mode="json")


class ScanReport(BaseModel):
    """Outcome of one scan over the symbol basket."""

    started_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    duration: float = Field(default=0.0, ge=0, description="Duration in seconds")
    total_symbols: int = Field(..., ge=0)
    success_count: int = Field(default=0, ge=0)
    fail_count: int = Field(default=0, ge=0)
    errors: List[str] = Field(default_factory=list)
    results: List[ScoreResult] = Field(default_factory=list)
    cancelled: bool = False

    @model_validator(mode="after")
    def validate_counts(self) -> "ScanReport":
        """Ensure success + fail == total (or less, for a cancelled scan)."""
        processed = self.success_count + self.fail_count
        if processed > self.total_symbols or (
            not self.cancelled and processed != self.total_symbols
        ):
            raise ValueError(
                f"Success ({self.success_count}) + Fail ({self.fail_count}) "
                f"does not match Total ({self.total_symbols})"
            )
        if len(self.results) != self.success_count:
            raise ValueError("results must contain one entry per successful symbol")
        return self
