"""Technical indicator calculation module.

ROC, MACD, ATR and RSI are computed as pure pandas functions over explicit
input series: no incremental accumulator objects, no state carried between
calls. Each ``calculate_*`` returns the full computed series (values only where
the indicator is defined); ``build_snapshot`` reduces a PriceSeries to the
latest value of each, substituting defaults when history is too short.
"""

from dataclasses import dataclass
from typing import Tuple

import numpy as np
import pandas as pd
from loguru import logger

from data.schemas import PriceSeries
from utils.exceptions import InsufficientDataError, InvalidDataTypeError

ROC_PERIOD = 5
MACD_FAST = 12
MACD_SLOW = 26
MACD_SIGNAL = 9
ATR_PERIOD = 14
RSI_PERIOD = 14
VOLUME_WINDOW = 10


@dataclass(frozen=True)
class MACDValue:
    """One MACD reading."""

    macd: float = 0.0
    signal: float = 0.0
    histogram: float = 0.0


@dataclass(frozen=True)
class IndicatorSnapshot:
    """Latest indicator values for one symbol, plus the prices scoring needs."""

    symbol: str
    roc: float
    macd: MACDValue
    atr: float
    rsi: float
    last_price: float
    prev_close: float
    volumes: Tuple[float, ...]


def _seeded_ewm(series: pd.Series, period: int, alpha: float) -> pd.Series:
    """Exponential smoothing seeded with the simple mean of the first ``period`` values.

    Leading NaNs are skipped; the result is NaN until the seed position.
    """
    values = series.astype(float)
    result = pd.Series(np.nan, index=series.index, dtype=float)

    valid = np.flatnonzero(values.notna().to_numpy())
    if len(valid) < period:
        return result

    start = valid[0]
    window = values.iloc[start:].copy()
    seed = window.iloc[:period].mean()
    window.iloc[: period - 1] = np.nan
    window.iloc[period - 1] = seed

    result.iloc[start:] = window.ewm(alpha=alpha, adjust=False).mean().to_numpy()
    return result


class IndicatorEngine:
    """Engine for calculating technical indicators on price series."""

    @staticmethod
    def calculate_roc(close: pd.Series, period: int = ROC_PERIOD) -> pd.Series:
        """Calculate Rate of Change as a fraction.

        Args:
            close: Close prices, oldest first
            period: Look-back period

        Returns:
            Series of ``len(close) - period`` values (empty if too short)
        """
        if len(close) <= period:
            return pd.Series(dtype=float)

        past = close.shift(period)
        return ((close - past) / past).iloc[period:]

    @staticmethod
    def calculate_ema(series: pd.Series, period: int) -> pd.Series:
        """Calculate Exponential Moving Average.

        Seeded with the SMA of the first ``period`` values, then smoothed with
        ``2 / (period + 1)``.

        Args:
            series: Data series (usually Close prices)
            period: Smoothing period

        Returns:
            Series containing EMA values (NaN before the seed)
        """
        return _seeded_ewm(series, period, alpha=2.0 / (period + 1))

    @staticmethod
    def calculate_wilder(series: pd.Series, period: int) -> pd.Series:
        """Wilder smoothing (alpha = 1 / period), SMA-seeded."""
        return _seeded_ewm(series, period, alpha=1.0 / period)

    @classmethod
    def calculate_macd(
        cls,
        close: pd.Series,
        fast_period: int = MACD_FAST,
        slow_period: int = MACD_SLOW,
        signal_period: int = MACD_SIGNAL,
    ) -> pd.DataFrame:
        """Calculate MACD line, signal line and histogram.

        Both the oscillator and the signal line use exponential averages.
        Rows exist only where the signal line is defined, which takes
        ``slow_period + signal_period - 1`` closes.

        Returns:
            DataFrame with ``macd``, ``signal`` and ``histogram`` columns
        """
        macd_line = cls.calculate_ema(close, fast_period) - cls.calculate_ema(close, slow_period)
        signal_line = cls.calculate_ema(macd_line, signal_period)

        result = pd.DataFrame(
            {
                "macd": macd_line,
                "signal": signal_line,
                "histogram": macd_line - signal_line,
            }
        )
        return result.dropna()

    @staticmethod
    def calculate_true_range(df: pd.DataFrame) -> pd.Series:
        """True range per bar; NaN for the first bar, which has no previous close."""
        high = df["High"]
        low = df["Low"]
        close_prev = df["Close"].shift(1)

        tr1 = high - low
        tr2 = (high - close_prev).abs()
        tr3 = (low - close_prev).abs()

        return pd.concat([tr1, tr2, tr3], axis=1).max(axis=1, skipna=False)

    @classmethod
    def calculate_atr(cls, df: pd.DataFrame, period: int = ATR_PERIOD) -> pd.Series:
        """Calculate Average True Range with Wilder smoothing.

        Args:
            df: DataFrame with High/Low/Close columns
            period: Smoothing period

        Returns:
            Series of ATR values (empty if fewer than ``period + 1`` bars)
        """
        true_range = cls.calculate_true_range(df)
        return cls.calculate_wilder(true_range, period).dropna()

    @classmethod
    def calculate_rsi(cls, close: pd.Series, period: int = RSI_PERIOD) -> pd.Series:
        """Calculate Relative Strength Index (0-100) with Wilder smoothing.

        RSI is 100 when the average loss is zero and 0 when the average gain is
        zero.

        Returns:
            Series of RSI values (empty if fewer than ``period + 1`` closes)
        """
        change = close.astype(float).diff()
        avg_gain = cls.calculate_wilder(change.clip(lower=0), period)
        avg_loss = cls.calculate_wilder((-change).clip(lower=0), period)

        with np.errstate(divide="ignore", invalid="ignore"):
            rs = avg_gain / avg_loss
            rsi = np.where(
                avg_loss == 0,
                100.0,
                np.where(avg_gain == 0, 0.0, 100.0 - 100.0 / (1.0 + rs)),
            )

        result = pd.Series(rsi, index=close.index, dtype=float)
        return result[avg_gain.notna() & avg_loss.notna()]

    @staticmethod
    def latest(series: pd.Series, default: float = 0.0) -> float:
        """Last computed value, or ``default`` when nothing was computed."""
        if series.empty:
            return default
        return float(series.iloc[-1])

    @classmethod
    def build_snapshot(cls, series: PriceSeries) -> IndicatorSnapshot:
        """Reduce a price series to its latest indicator readings.

        Args:
            series: Validated price series, oldest bar first

        Returns:
            IndicatorSnapshot with defaults (0, or a zero MACD) for any
            indicator the history is too short for

        Raises:
            InvalidDataTypeError: If input is not a PriceSeries
        """
        if not isinstance(series, PriceSeries):
            raise InvalidDataTypeError("Input must be a PriceSeries")

        df = series.to_frame()
        close = df["Close"]

        roc = cls.latest(cls.calculate_roc(close))

        macd_df = cls.calculate_macd(close)
        if macd_df.empty:
            macd = MACDValue()
        else:
            last = macd_df.iloc[-1]
            macd = MACDValue(
                macd=float(last["macd"]),
                signal=float(last["signal"]),
                histogram=float(last["histogram"]),
            )

        atr = cls.latest(cls.calculate_atr(df))
        rsi = cls.latest(cls.calculate_rsi(close))

        closes = series.closes
        snapshot = IndicatorSnapshot(
            symbol=series.symbol,
            roc=roc,
            macd=macd,
            atr=atr,
            rsi=rsi,
            last_price=closes[-1],
            prev_close=closes[-2] if len(closes) > 1 else closes[0],
            volumes=tuple(series.volumes[-VOLUME_WINDOW:]),
        )
        logger.debug(
            f"{series.symbol}: roc={roc:.4f} hist={macd.histogram:.4f} "
            f"atr={atr:.4f} rsi={rsi:.2f} ({len(series)} bars)"
        )
        return snapshot


def validate_sufficient_data(series: PriceSeries, required_bars: int = 1) -> None:
    """Validate a series has enough bars to be scored.

    Args:
        series: Series to check
        required_bars: Minimum bars needed

    Raises:
        InsufficientDataError: If the series is shorter than required_bars
    """
    if len(series) < required_bars:
        message = (
            f"Insufficient data for {series.symbol}: have {len(series)} bars, "
            f"need at least {required_bars}"
        )
        logger.warning(message)
        raise InsufficientDataError(message)
