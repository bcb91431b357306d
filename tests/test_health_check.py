from datetime import datetime, timezone
from unittest.mock import patch

import requests

from data.schemas import ScanReport
from monitoring.health_check import check_all, check_last_scan, check_provider


def make_report(success=3, fail=0, total=3, cancelled=False):
    # Counts only; results are irrelevant to the health summary
    return ScanReport.model_construct(
        started_at=datetime(2024, 1, 2, 10, 0, tzinfo=timezone.utc),
        duration=12.34,
        total_symbols=total,
        success_count=success,
        fail_count=fail,
        errors=[],
        results=[],
        cancelled=cancelled,
    )


@patch("monitoring.health_check.requests.get")
def test_check_provider_success(mock_get):
    result = check_provider("https://www.alphavantage.co")
    assert result["status"] == "ok"
    assert "latency_ms" in result
    mock_get.assert_called_once_with("https://www.alphavantage.co", timeout=5.0)


@patch("monitoring.health_check.requests.get")
def test_check_provider_failure(mock_get):
    mock_get.side_effect = requests.Timeout("Timeout")
    result = check_provider("https://www.alphavantage.co")
    assert result["status"] == "error"
    assert "Timeout" in result["message"]


def test_check_last_scan_none():
    assert check_last_scan(None)["status"] == "warning"


def test_check_last_scan_ok():
    result = check_last_scan(make_report(success=3, total=3))
    assert result["status"] == "ok"
    assert result["success_rate"] == "3/3"
    assert result["duration_s"] == 12.3
    assert result["started_at"] == "2024-01-02T10:00:00+00:00"


def test_check_last_scan_nothing_scored():
    result = check_last_scan(make_report(success=0, total=3))
    assert result["status"] == "warning"
    assert result["success_rate"] == "0/3"


def test_check_last_scan_cancelled():
    result = check_last_scan(make_report(success=1, fail=0, total=3, cancelled=True))
    assert result["status"] == "warning"
    assert result["cancelled"] is True


def test_check_all():
    with patch("monitoring.health_check.check_provider", return_value={"status": "ok"}):
        result = check_all("https://www.alphavantage.co")

    assert "timestamp" in result
    assert result["external_api"]["status"] == "ok"
    assert result["scan"]["status"] == "warning"
