"""Shared pytest fixtures for all tests."""

import os
from datetime import datetime, timedelta, timezone

# Settings loaded lazily by any module must validate without a real .env
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("ALPHA_VANTAGE_API_KEY", "demo")

import pytest  # noqa: E402

from config.settings import Settings  # noqa: E402
from data.schemas import PriceBar, PriceSeries  # noqa: E402


class FakeClock:
    """Monotonic clock whose sleep just advances time."""

    def __init__(self, start: float = 1000.0):
        self.now = start
        self.sleeps = []

    def __call__(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds

    def advance(self, seconds: float) -> None:
        self.now += seconds


def build_series(closes, symbol="TEST.BSE", volumes=None, spread=0.5):
    """Series with high/low ``spread`` around each close and 5-minute bars."""
    if volumes is None:
        volumes = [1000.0] * len(closes)
    start = datetime(2024, 1, 2, 9, 15, tzinfo=timezone.utc)
    bars = [
        PriceBar(
            timestamp=start + timedelta(minutes=5 * i),
            open=close,
            high=close + spread,
            low=close - spread,
            close=close,
            volume=volume,
        )
        for i, (close, volume) in enumerate(zip(closes, volumes))
    ]
    return PriceSeries(symbol=symbol, bars=bars)


@pytest.fixture
def make_series():
    """Factory for PriceSeries built from a list of closes."""
    return build_series


@pytest.fixture
def fake_clock():
    """Controllable clock for rate limiter and scanner tests."""
    return FakeClock()


@pytest.fixture(scope="session")
def test_settings():
    """Test settings with safe defaults."""
    return Settings(
        _env_file=None,
        DATA_PROVIDER="alphavantage",
        ALPHA_VANTAGE_API_KEY="demo",
        SYMBOLS="RELIANCE.BSE,TCS.BSE,INFY.BSE",
        RATE_LIMIT_REQUESTS=5,
        RATE_LIMIT_WINDOW=60.0,
        REQUEST_DELAY=0.0,
        LOG_LEVEL="DEBUG",
        TIMEZONE="Asia/Kolkata",
        ENVIRONMENT="test",
    )


@pytest.fixture
def trending_closes():
    """60 closes drifting upward with small pullbacks."""
    return [100.0 + i * 0.5 - (1.0 if i % 4 == 0 else 0.0) for i in range(60)]


# Markers for test categorization
def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line("markers", "integration: Integration tests")
    config.addinivalue_line("markers", "unit: Unit tests")
