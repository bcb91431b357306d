"""System health check module."""
import time
from datetime import datetime, timezone
from typing import Any, Dict, Optional

import requests

from data.schemas import ScanReport


def check_provider(url: str, timeout: float = 5.0) -> Dict[str, Any]:
    """Check network connectivity to the data provider host."""
    start = time.time()
    try:
        requests.get(url, timeout=timeout)
        latency = (time.time() - start) * 1000
        return {"status": "ok", "latency_ms": round(latency, 2)}
    except requests.RequestException as e:
        return {"status": "error", "message": str(e)}


def check_last_scan(report: Optional[ScanReport]) -> Dict[str, Any]:
    """Summarize the most recent scan."""
    if report is None:
        return {"status": "warning", "message": "No scan has run yet"}

    status = "ok"
    if report.cancelled or (report.total_symbols and report.success_count == 0):
        status = "warning"

    return {
        "status": status,
        "started_at": report.started_at.isoformat(),
        "duration_s": round(report.duration, 1),
        "success_rate": f"{report.success_count}/{report.total_symbols}",
        "cancelled": report.cancelled,
    }


def check_all(provider_url: str, last_report: Optional[ScanReport] = None) -> Dict[str, Any]:
    """Run all health checks."""
    return {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "external_api": check_provider(provider_url),
        "scan": check_last_scan(last_report),
    }
