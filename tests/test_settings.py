"""Tests for settings validation."""

from unittest.mock import patch

import pytest
from pydantic import ValidationError

from config.settings import Settings, SettingsProxy
from config.symbols import NIFTY_50, display_symbol, parse_symbols
from utils.exceptions import InvalidSettingsError


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep the developer's environment out of settings tests."""
    for name in Settings.model_fields:
        monkeypatch.delenv(name, raising=False)


def make_settings(**overrides):
    values = {"ALPHA_VANTAGE_API_KEY": "demo"}
    values.update(overrides)
    return Settings(_env_file=None, **values)


class TestSettingsValidation:
    """Test settings validation logic."""

    def test_valid_settings(self):
        """Test settings with all valid values."""
        settings = make_settings(
            DATA_PROVIDER="alphavantage",
            INTRADAY_INTERVAL="15min",
            SYMBOLS="RELIANCE.BSE,TCS.BSE",
            RATE_LIMIT_REQUESTS=75,
            REQUEST_DELAY=1.0,
            PORT=8080,
            TIMEZONE="Asia/Kolkata",
            ENVIRONMENT="production",
        )

        assert settings.INTRADAY_INTERVAL == "15min"
        assert settings.RATE_LIMIT_REQUESTS == 75
        assert settings.PORT == 8080
        assert settings.get_symbols() == ["RELIANCE.BSE", "TCS.BSE"]

    def test_default_values(self):
        """Test default values are applied correctly."""
        settings = make_settings()

        assert settings.DATA_PROVIDER == "alphavantage"
        assert settings.INTRADAY_INTERVAL == "5min"
        assert settings.OUTPUT_SIZE == "compact"
        assert settings.RATE_LIMIT_REQUESTS == 5
        assert settings.RATE_LIMIT_WINDOW == 60.0
        assert settings.REQUEST_DELAY == 15.0
        assert settings.MIN_BARS == 1
        assert settings.SCAN_TIMEOUT is None
        assert settings.PORT == 3000
        assert settings.CORS_ORIGIN == "*"
        assert settings.LOG_LEVEL == "INFO"
        assert settings.TIMEZONE == "Asia/Kolkata"
        assert settings.ENVIRONMENT == "development"
        assert settings.get_symbols() == NIFTY_50

    def test_api_key_required_for_alphavantage(self):
        with pytest.raises((ValidationError, InvalidSettingsError), match="ALPHA_VANTAGE_API_KEY"):
            make_settings(ALPHA_VANTAGE_API_KEY="")

    def test_api_key_optional_for_yfinance(self):
        settings = make_settings(DATA_PROVIDER="yfinance", ALPHA_VANTAGE_API_KEY="")
        assert settings.DATA_PROVIDER == "yfinance"

    def test_unknown_provider(self):
        with pytest.raises(ValidationError):
            make_settings(DATA_PROVIDER="bloomberg")

    def test_reads_environment(self, monkeypatch):
        monkeypatch.setenv("ALPHA_VANTAGE_API_KEY", "from-env")
        monkeypatch.setenv("SYMBOLS", "infy.bse, tcs.bse")
        monkeypatch.setenv("PORT", "4000")

        settings = Settings(_env_file=None)
        assert settings.ALPHA_VANTAGE_API_KEY == "from-env"
        assert settings.get_symbols() == ["INFY.BSE", "TCS.BSE"]
        assert settings.PORT == 4000

    def test_symbols_normalized(self):
        settings = make_settings(SYMBOLS=" reliance.bse ,TCS.BSE,,RELIANCE.BSE ")
        assert settings.SYMBOLS == "RELIANCE.BSE,TCS.BSE"

    def test_symbols_empty(self):
        with pytest.raises((ValidationError, InvalidSettingsError), match="at least one symbol"):
            make_settings(SYMBOLS=" , ")

    def test_rate_limit_ranges(self):
        with pytest.raises(ValidationError):
            make_settings(RATE_LIMIT_REQUESTS=0)

        with pytest.raises(ValidationError):
            make_settings(RATE_LIMIT_WINDOW=0)

        with pytest.raises(ValidationError):
            make_settings(REQUEST_DELAY=-1.0)

        assert make_settings(REQUEST_DELAY=0.0).REQUEST_DELAY == 0.0

    def test_scan_timeout_positive(self):
        with pytest.raises(ValidationError):
            make_settings(SCAN_TIMEOUT=0)

        assert make_settings(SCAN_TIMEOUT=120).SCAN_TIMEOUT == 120.0

    def test_interval_validation_enum(self):
        with pytest.raises(ValidationError):
            make_settings(INTRADAY_INTERVAL="2min")

    def test_port_range(self):
        with pytest.raises(ValidationError):
            make_settings(PORT=0)

        with pytest.raises(ValidationError):
            make_settings(PORT=70000)

    def test_log_level_validation_enum(self):
        """Test LOG_LEVEL must be valid enum value."""
        with pytest.raises(ValidationError):
            make_settings(LOG_LEVEL="INVALID")

        for level in ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]:
            assert make_settings(LOG_LEVEL=level).LOG_LEVEL == level

    def test_timezone_validation_invalid(self):
        """Test TIMEZONE must be valid pytz timezone."""
        with pytest.raises((ValidationError, InvalidSettingsError), match="Invalid timezone"):
            make_settings(TIMEZONE="Invalid/Timezone")

    def test_timezone_validation_valid(self):
        for tz in ["Asia/Kolkata", "UTC", "America/New_York", "Europe/London"]:
            assert make_settings(TIMEZONE=tz).TIMEZONE == tz

    def test_environment_validation_enum(self):
        with pytest.raises(ValidationError):
            make_settings(ENVIRONMENT="invalid")

    def test_get_timezone_method(self):
        """Test get_timezone() returns pytz timezone object."""
        tz = make_settings(TIMEZONE="Asia/Kolkata").get_timezone()
        assert str(tz) == "Asia/Kolkata"


class TestSymbols:
    """Symbol list helpers."""

    def test_default_basket(self):
        assert len(NIFTY_50) == len(set(NIFTY_50))
        assert all(symbol.endswith(".BSE") for symbol in NIFTY_50)

    def test_parse_symbols_keeps_order(self):
        assert parse_symbols("TCS.BSE,INFY.BSE,tcs.bse") == ["TCS.BSE", "INFY.BSE"]

    def test_parse_symbols_empty(self):
        assert parse_symbols("") == []

    def test_display_symbol(self):
        assert display_symbol("RELIANCE.BSE") == "RELIANCE"
        assert display_symbol("AAPL") == "AAPL"


class TestSettingsProxy:
    """Lazy settings proxy."""

    def test_dunder_lookup_does_not_load_settings(self):
        with patch("config.settings.get_settings") as mock_get_settings:
            proxy = SettingsProxy()
            assert not hasattr(proxy, "__code__")
            assert not hasattr(proxy, "__func__")
            mock_get_settings.assert_not_called()

    def test_attribute_lookup_is_forwarded(self, test_settings):
        with patch("config.settings.get_settings", return_value=test_settings):
            assert SettingsProxy().PORT == test_settings.PORT
