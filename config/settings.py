"""Application settings with validation.

Settings are loaded from environment variables (or a ``.env`` file) using
Pydantic v2 settings management, so a bad deployment fails at startup with a
readable message instead of mid-scan.
"""

import sys
from typing import Literal, Optional

import pytz
from loguru import logger
from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from config.symbols import NIFTY_50, parse_symbols
from utils.exceptions import InvalidSettingsError


class Settings(BaseSettings):
    """Application settings with validation.

    All settings are loaded from environment variables with validation to
    prevent cryptic runtime errors.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    # Data Provider Configuration
    DATA_PROVIDER: Literal["alphavantage", "yfinance"] = Field(
        default="alphavantage",
        description="Upstream intraday data provider",
    )
    ALPHA_VANTAGE_API_KEY: str = Field(
        default="",
        description="Alpha Vantage API key (required for the alphavantage provider)",
    )
    ALPHA_VANTAGE_URL: str = Field(
        default="https://www.alphavantage.co/query",
        description="Alpha Vantage query endpoint",
    )
    INTRADAY_INTERVAL: Literal["1min", "5min", "15min", "30min", "60min"] = Field(
        default="5min",
        description="Bar interval requested from the provider",
    )
    OUTPUT_SIZE: Literal["compact", "full"] = Field(
        default="compact",
        description="Alpha Vantage outputsize (compact = latest 100 bars)",
    )
    REQUEST_TIMEOUT: float = Field(
        default=10.0,
        gt=0,
        le=120.0,
        description="HTTP timeout for provider calls in seconds",
    )

    # Scan Configuration
    SYMBOLS: str = Field(
        default=",".join(NIFTY_50),
        description="Comma-separated symbols to scan, in tie-break order",
    )
    RATE_LIMIT_REQUESTS: int = Field(
        default=5,
        ge=1,
        le=1000,
        description="Provider calls allowed per rate limit window",
    )
    RATE_LIMIT_WINDOW: float = Field(
        default=60.0,
        gt=0,
        description="Rate limit window in seconds",
    )
    REQUEST_DELAY: float = Field(
        default=15.0,
        ge=0,
        le=600.0,
        description="Minimum spacing between provider calls in seconds",
    )
    MIN_BARS: int = Field(
        default=1,
        ge=1,
        description="Minimum bars a series needs to be scored",
    )
    SCAN_TIMEOUT: Optional[float] = Field(
        default=None,
        gt=0,
        description="Abort a scan after this many seconds (unset = no limit)",
    )

    # HTTP Configuration
    HOST: str = Field(default="0.0.0.0", description="HTTP bind address")
    PORT: int = Field(default=3000, ge=1, le=65535, description="HTTP port")
    CORS_ORIGIN: str = Field(
        default="*",
        description="Value of the Access-Control-Allow-Origin header",
    )

    # Application Configuration
    LOG_LEVEL: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Logging level",
    )
    TIMEZONE: str = Field(
        default="Asia/Kolkata",
        description="Timezone for scan timestamps (must be valid pytz timezone)",
    )
    ENVIRONMENT: Literal["development", "production", "test"] = Field(
        default="development",
        description="Application environment",
    )

    @field_validator("SYMBOLS")
    @classmethod
    def validate_symbols(cls, v: str) -> str:
        """Validate the symbol list is not empty.

        Args:
            v: Comma-separated symbols

        Returns:
            Normalized comma-separated symbols

        Raises:
            InvalidSettingsError: If no symbol is given
        """
        symbols = parse_symbols(v)
        if not symbols:
            raise InvalidSettingsError("SYMBOLS must contain at least one symbol")
        return ",".join(symbols)

    @field_validator("TIMEZONE")
    @classmethod
    def validate_timezone(cls, v: str) -> str:
        """Validate timezone string.

        Raises:
            InvalidSettingsError: If timezone is invalid
        """
        if not v:
            raise InvalidSettingsError("TIMEZONE cannot be empty")

        if v not in pytz.all_timezones:
            suggestions = [tz for tz in pytz.all_timezones if "Kolkata" in tz or "Asia" in tz][:5]
            raise InvalidSettingsError(
                f"Invalid timezone: '{v}'. Must be a valid pytz timezone. "
                f"Suggestions: {', '.join(suggestions)}"
            )

        return v

    @model_validator(mode="after")
    def validate_provider_credentials(self) -> "Settings":
        """Alpha Vantage cannot be used without an API key."""
        if self.DATA_PROVIDER == "alphavantage" and not self.ALPHA_VANTAGE_API_KEY:
            raise InvalidSettingsError(
                "ALPHA_VANTAGE_API_KEY is required when DATA_PROVIDER is 'alphavantage'"
            )
        return self

    def get_symbols(self) -> list[str]:
        """Get the configured symbols as a list."""
        return parse_symbols(self.SYMBOLS)

    def get_timezone(self) -> pytz.BaseTzInfo:
        """Get pytz timezone object."""
        return pytz.timezone(self.TIMEZONE)


# Global settings instance
_settings: Settings | None = None


def get_settings() -> Settings:
    """Get global settings instance (singleton pattern).

    Returns:
        Settings instance

    Raises:
        SystemExit: If critical configuration error occurs
    """
    global _settings

    if _settings is None:
        try:
            _settings = Settings()
            logger.info(
                f"Settings loaded successfully (environment: {_settings.ENVIRONMENT}, "
                f"provider: {_settings.DATA_PROVIDER})"
            )
        except Exception as e:
            logger.critical(f"Failed to load settings: {e}")
            logger.critical("Application cannot start without valid configuration")
            sys.exit(1)

    return _settings


class SettingsProxy:
    """Lazy proxy for settings to prevent initialization on import."""

    def __getattr__(self, name):
        # Introspection (copy, mock, pickle) must not trigger settings loading
        if name.startswith("__") and name.endswith("__"):
            raise AttributeError(name)
        return getattr(get_settings(), name)


# Global settings instance (lazy)
settings: Settings = SettingsProxy()  # type: ignore
