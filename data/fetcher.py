"""Intraday price data providers.

Every provider turns a symbol into a validated ``PriceSeries`` or raises a
``DataFetchError`` subclass; callers treat any of those uniformly as "no
series for this symbol". Providers never retry: a failed symbol is simply
skipped for the current scan. A rejected API key is a configuration problem
rather than a symbol problem and raises ``InvalidApiKeyError`` instead.
"""

import re
from abc import ABC, abstractmethod
from datetime import datetime, timedelta
from typing import Any, Dict, Optional

import pandas as pd
import pytz
import requests
import yfinance as yf
from loguru import logger
from pydantic import ValidationError

from data.schemas import PriceSeries
from utils.exceptions import (
    CircuitBreakerError,
    DataQualityError,
    InvalidApiKeyError,
    InvalidSymbolError,
    InvalidTickerError,
    NetworkError,
    RateLimitError,
)

REQUIRED_COLUMNS = ["Open", "High", "Low", "Close", "Volume"]

# Ticker with optional exchange suffix, e.g. "M&M.BSE", "BAJAJ-AUTO.BSE", "AAPL"
SYMBOL_PATTERN = re.compile(r"^[A-Z0-9&\-]+(\.[A-Z]+)?$")


class NetworkHealthMonitor:
    """Circuit breaker for network failures."""

    def __init__(self, failure_threshold: int = 3, recovery_timeout_seconds: int = 300):
        self.consecutive_failures = 0
        self.failure_threshold = failure_threshold
        self.recovery_timeout = timedelta(seconds=recovery_timeout_seconds)
        self.circuit_open_until: Optional[datetime] = None

    def record_failure(self):
        """Record a network failure and open circuit if threshold reached."""
        self.consecutive_failures += 1
        if self.consecutive_failures >= self.failure_threshold:
            self.circuit_open_until = datetime.now() + self.recovery_timeout
            logger.critical(
                f"Circuit breaker OPEN: {self.consecutive_failures} consecutive failures. "
                f"Retry after {self.circuit_open_until}"
            )

    def record_success(self):
        """Reset failures and close circuit."""
        if self.consecutive_failures > 0:
            logger.info(f"Network recovered after {self.consecutive_failures} failures")
        self.consecutive_failures = 0
        self.circuit_open_until = None

    def is_circuit_open(self) -> bool:
        """Check if circuit is currently open."""
        now = datetime.now()
        if self.circuit_open_until and now < self.circuit_open_until:
            return True
        if self.circuit_open_until and now >= self.circuit_open_until:
            logger.info("Circuit breaker attempting recovery")
            self.circuit_open_until = None
        return False


class DataQualityValidator:
    """Validator for OHLCV DataFrames."""

    @staticmethod
    def validate(df: pd.DataFrame, symbol: str) -> None:
        """
        Validate DataFrame integrity and quality.

        Args:
            df: DataFrame to validate
            symbol: Ticker symbol for logging

        Raises:
            DataQualityError: If data fails checks
        """
        if df is None or df.empty:
            raise DataQualityError(f"Empty or None DataFrame for {symbol}")

        missing_cols = [col for col in REQUIRED_COLUMNS if col not in df.columns]
        if missing_cols:
            raise DataQualityError(f"Missing columns for {symbol}: {missing_cols}")

        total_elements = len(df) * len(REQUIRED_COLUMNS)
        nan_count = df[REQUIRED_COLUMNS].isna().sum().sum()
        nan_ratio = nan_count / total_elements if total_elements > 0 else 0
        if nan_ratio > 0.1:
            raise DataQualityError(f"High NaN ratio ({nan_ratio:.1%}) for {symbol}")

        price_cols = ["Open", "High", "Low", "Close"]
        if (df[price_cols] <= 0).any().any():
            raise DataQualityError(f"Non-positive prices detected for {symbol}")

        high = df["High"].values
        low = df["Low"].values
        open_p = df["Open"].values
        close = df["Close"].values

        invalid_ohlc = (
            (high < low)
            | (high < open_p)
            | (high < close)
            | (low > open_p)
            | (low > close)
        )

        if invalid_ohlc.any():
            invalid_indices = df.index[invalid_ohlc]
            raise DataQualityError(
                f"Invalid OHLC relationships for {symbol} at: {invalid_indices[:5].tolist()}"
            )

        if df.index.has_duplicates:
            raise DataQualityError(f"Duplicate timestamps for {symbol}")


def _is_api_key_message(message: Any) -> bool:
    """Alpha Vantage reports a bad key as text, e.g. "the parameter apikey is invalid or missing"."""
    text = str(message).lower()
    return ("apikey" in text or "api key" in text) and ("invalid" in text or "missing" in text)


def _to_series(symbol: str, df: pd.DataFrame) -> PriceSeries:
    try:
        return PriceSeries.from_frame(symbol, df)
    except ValidationError as e:
        raise DataQualityError(f"Invalid bars for {symbol}: {e.error_count()} errors") from e


class DataProvider(ABC):
    """Source of intraday OHLCV history."""

    def __init__(self) -> None:
        self.network_monitor = NetworkHealthMonitor()
        self.validator = DataQualityValidator()

    @abstractmethod
    def fetch_series(self, symbol: str) -> PriceSeries:
        """
        Fetch the intraday series for one symbol.

        Returns:
            PriceSeries, oldest bar first

        Raises:
            DataFetchError: Any subclass, meaning the symbol is unavailable
        """

    @staticmethod
    def _check_symbol(symbol: str) -> None:
        if not isinstance(symbol, str) or not SYMBOL_PATTERN.match(symbol):
            raise InvalidSymbolError(f"Invalid symbol format: {symbol!r}")

    def _check_circuit(self, symbol: str) -> None:
        if self.network_monitor.is_circuit_open():
            raise CircuitBreakerError(f"Circuit open, skipping {symbol}")


class AlphaVantageFetcher(DataProvider):
    """Fetcher for the Alpha Vantage TIME_SERIES_INTRADAY endpoint."""

    def __init__(
        self,
        api_key: str,
        interval: str = "5min",
        output_size: str = "compact",
        base_url: str = "https://www.alphavantage.co/query",
        timeout: float = 10.0,
        session: Optional[requests.Session] = None,
    ) -> None:
        super().__init__()
        self.api_key = api_key
        self.interval = interval
        self.output_size = output_size
        self.base_url = base_url
        self.timeout = timeout
        self.session = session or requests.Session()

    @property
    def series_key(self) -> str:
        return f"Time Series ({self.interval})"

    def fetch_series(self, symbol: str) -> PriceSeries:
        self._check_symbol(symbol)
        self._check_circuit(symbol)

        params = {
            "function": "TIME_SERIES_INTRADAY",
            "symbol": symbol,
            "interval": self.interval,
            "outputsize": self.output_size,
            "apikey": self.api_key,
        }

        logger.debug(f"Fetching {symbol} from Alpha Vantage ({self.interval})")
        try:
            response = self.session.get(self.base_url, params=params, timeout=self.timeout)
        except requests.RequestException as e:
            self.network_monitor.record_failure()
            raise NetworkError(f"Request failed for {symbol}: {e}") from e

        if response.status_code == 429:
            raise RateLimitError(f"HTTP 429 from Alpha Vantage for {symbol}")
        if response.status_code != 200:
            self.network_monitor.record_failure()
            raise NetworkError(f"HTTP {response.status_code} for {symbol}")

        self.network_monitor.record_success()

        try:
            payload = response.json()
        except ValueError as e:
            raise DataQualityError(f"Invalid JSON payload for {symbol}") from e

        df = self.parse_payload(symbol, payload)
        self.validator.validate(df, symbol)
        return _to_series(symbol, df)

    def parse_payload(self, symbol: str, payload: Dict[str, Any]) -> pd.DataFrame:
        """
        Convert an intraday payload to an OHLCV DataFrame.

        Raises:
            InvalidApiKeyError: Provider rejected the API key
            InvalidTickerError: Provider rejected the symbol
            RateLimitError: Provider reported an exhausted quota
            DataQualityError: Payload is empty or malformed
        """
        if not isinstance(payload, dict) or not payload:
            raise DataQualityError(f"Empty payload for {symbol}")

        for key in ("Error Message", "Information", "Note"):
            if key in payload and _is_api_key_message(payload[key]):
                raise InvalidApiKeyError(f"Alpha Vantage rejected the API key: {payload[key]}")

        if "Error Message" in payload:
            raise InvalidTickerError(f"Alpha Vantage rejected '{symbol}': {payload['Error Message']}")

        for key in ("Note", "Information"):
            if key in payload:
                raise RateLimitError(f"Alpha Vantage quota message for {symbol}: {payload[key]}")

        time_series = payload.get(self.series_key)
        if not time_series:
            raise DataQualityError(f"Missing '{self.series_key}' for {symbol}")

        rows = []
        for timestamp, entry in time_series.items():
            try:
                rows.append(
                    {
                        "Date": pd.Timestamp(timestamp),
                        "Open": float(entry["1. open"]),
                        "High": float(entry["2. high"]),
                        "Low": float(entry["3. low"]),
                        "Close": float(entry["4. close"]),
                        "Volume": float(entry["5. volume"]),
                    }
                )
            except (KeyError, TypeError, ValueError) as e:
                raise DataQualityError(f"Malformed bar {timestamp} for {symbol}: {e}") from e

        df = pd.DataFrame(rows).set_index("Date").sort_index()

        tz_name = payload.get("Meta Data", {}).get("6. Time Zone", "US/Eastern")
        try:
            tz = pytz.timezone(tz_name)
        except pytz.UnknownTimeZoneError:
            logger.warning(f"Unknown time zone '{tz_name}' for {symbol}, assuming UTC")
            tz = pytz.UTC

        df.index = df.index.tz_localize(tz, ambiguous="NaT", nonexistent="shift_forward")
        return df[df.index.notna()]


# Alpha Vantage exchange suffixes and their Yahoo Finance equivalents
YAHOO_SUFFIXES = {".BSE": ".BO", ".NSE": ".NS"}


class YFinanceFetcher(DataProvider):
    """Fetcher for Yahoo Finance intraday data."""

    def __init__(self, interval: str = "5min", period: str = "5d") -> None:
        super().__init__()
        # yfinance spells intervals "5m" rather than "5min"
        self.interval = interval.replace("min", "m")
        self.period = period

    @staticmethod
    def to_yahoo_symbol(symbol: str) -> str:
        for suffix, yahoo_suffix in YAHOO_SUFFIXES.items():
            if symbol.endswith(suffix):
                return symbol[: -len(suffix)] + yahoo_suffix
        return symbol

    def fetch_series(self, symbol: str) -> PriceSeries:
        self._check_symbol(symbol)
        self._check_circuit(symbol)

        yahoo_symbol = self.to_yahoo_symbol(symbol)
        logger.debug(f"Fetching {yahoo_symbol} from Yahoo Finance ({self.interval})")
        try:
            df = yf.download(
                yahoo_symbol,
                period=self.period,
                interval=self.interval,
                progress=False,
                threads=False,
                auto_adjust=False,
            )
        except Exception as e:
            error_msg = str(e).lower()
            if "429" in error_msg or "rate limit" in error_msg or "too many requests" in error_msg:
                logger.warning(f"Rate limit hit for {yahoo_symbol}")
                raise RateLimitError(f"Yahoo Finance rate limit for {yahoo_symbol}") from e
            self.network_monitor.record_failure()
            raise NetworkError(f"Failed to fetch {yahoo_symbol}: {e}") from e

        if df is None or df.empty:
            raise InvalidTickerError(f"Ticker '{yahoo_symbol}' not found or no data available")

        self.network_monitor.record_success()

        # Flatten MultiIndex columns (Price, Ticker) returned by recent yfinance
        if isinstance(df.columns, pd.MultiIndex):
            if yahoo_symbol in df.columns.get_level_values(1):
                df = df.xs(yahoo_symbol, axis=1, level=1)
            else:
                df.columns = df.columns.droplevel(1)

        self.validator.validate(df, symbol)
        return _to_series(symbol, df)


def create_fetcher(config) -> DataProvider:
    """Build the provider selected by ``config.DATA_PROVIDER``."""
    if config.DATA_PROVIDER == "yfinance":
        return YFinanceFetcher(interval=config.INTRADAY_INTERVAL)
    return AlphaVantageFetcher(
        api_key=config.ALPHA_VANTAGE_API_KEY,
        interval=config.INTRADAY_INTERVAL,
        output_size=config.OUTPUT_SIZE,
        base_url=config.ALPHA_VANTAGE_URL,
        timeout=config.REQUEST_TIMEOUT,
    )
