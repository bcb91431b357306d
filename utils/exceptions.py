"""Custom exception hierarchy for MoveScan.

Every error raised by the scanner derives from ``MoveScanError`` so the HTTP
boundary can tell expected, per-symbol failures apart from orchestration
failures.
"""


# Base Exception
class MoveScanError(Exception):
    """Base exception for all MoveScan errors."""

    pass


# Configuration Errors
class ConfigurationError(MoveScanError):
    """Base class for configuration-related errors."""

    pass


class InvalidSettingsError(ConfigurationError, ValueError):
    """Raised when settings validation fails."""

    pass


class InvalidApiKeyError(ConfigurationError):
    """Raised when the data provider rejects the configured API key.

    Not a per-symbol failure: every further call would fail the same way,
    so the scanner aborts instead of skipping.
    """

    pass


# Data Fetching Errors
class DataFetchError(MoveScanError):
    """Base class for data fetching errors.

    Any subclass means "no series for this symbol"; the scanner skips it.
    """

    pass


class InvalidSymbolError(DataFetchError):
    """Raised when a symbol identifier is malformed."""

    pass


class InvalidTickerError(DataFetchError):
    """Raised when the provider does not know the ticker."""

    pass


class NetworkError(DataFetchError):
    """Raised when the network request fails."""

    pass


class RateLimitError(DataFetchError):
    """Raised when the provider reports its call quota is exhausted."""

    pass


class DataQualityError(DataFetchError):
    """Raised when fetched data fails quality checks."""

    pass


class CircuitBreakerError(DataFetchError):
    """Raised when the provider circuit breaker is open."""

    pass


# Indicator Calculation Errors
class IndicatorError(MoveScanError):
    """Base class for indicator calculation errors."""

    pass


class InsufficientDataError(IndicatorError):
    """Raised when a series is too short to be scored at all."""

    pass


class InvalidDataTypeError(IndicatorError):
    """Raised when data type is invalid for calculation."""

    pass


# Scoring Errors
class ScoringError(MoveScanError):
    """Raised when an indicator snapshot cannot be scored."""

    pass


# Scan Errors
class ScanError(MoveScanError):
    """Base class for scan orchestration errors."""

    pass


class ScanCancelledError(ScanError):
    """Raised when a scan is cancelled before completion."""

    pass
