"""Symbol scan orchestration.

Fetches each configured symbol in turn, scores it and ranks the basket.
Provider calls go through the shared RateLimiter one at a time. Symbol failures
are skipped; only configuration errors (e.g. a rejected API key) abort the scan.
"""

import threading
import time
from datetime import datetime
from typing import Callable, List, Optional, Sequence

from loguru import logger

from data.fetcher import DataProvider, create_fetcher
from data.rate_limiter import RateLimiter
from data.schemas import ScanReport, ScoreResult
from engine.scorer import MoveScorer
from logic.indicators import IndicatorEngine, validate_sufficient_data
from utils.exceptions import (
    ConfigurationError,
    DataFetchError,
    InsufficientDataError,
    RateLimitError,
    ScanCancelledError,
)


class SymbolScanner:
    """Sequential, rate-limited scan over a symbol basket."""

    def __init__(
        self,
        provider: DataProvider,
        symbols: Sequence[str],
        rate_limiter: Optional[RateLimiter] = None,
        scorer: Optional[MoveScorer] = None,
        min_bars: int = 1,
        timeout: Optional[float] = None,
        ban_seconds: float = 60.0,
        clock: Callable[[], float] = time.monotonic,
        tz=None,
    ) -> None:
        self.provider = provider
        self.symbols = list(symbols)
        self.rate_limiter = rate_limiter or RateLimiter()
        self.scorer = scorer or MoveScorer()
        self.min_bars = min_bars
        self.timeout = timeout
        self.ban_seconds = ban_seconds
        self.clock = clock
        self.tz = tz
        self.last_report: Optional[ScanReport] = None

    @classmethod
    def from_settings(cls, config, provider: Optional[DataProvider] = None) -> "SymbolScanner":
        """Build a scanner wired to the configured provider and rate limits."""
        return cls(
            provider=provider or create_fetcher(config),
            symbols=config.get_symbols(),
            rate_limiter=RateLimiter(
                max_requests=config.RATE_LIMIT_REQUESTS,
                window_seconds=config.RATE_LIMIT_WINDOW,
                min_interval=config.REQUEST_DELAY,
            ),
            min_bars=config.MIN_BARS,
            timeout=config.SCAN_TIMEOUT,
            ban_seconds=config.RATE_LIMIT_WINDOW,
            tz=config.get_timezone(),
        )

    def process_symbol(self, symbol: str) -> ScoreResult:
        """Process a single symbol: fetch -> indicators -> score.

        Raises:
            DataFetchError: If the provider has no usable series
            InsufficientDataError: If the series is too short to score
        """
        try:
            with self.rate_limiter:
                series = self.provider.fetch_series(symbol)
        except RateLimitError:
            self.rate_limiter.register_ban(self.ban_seconds)
            raise

        validate_sufficient_data(series, required_bars=self.min_bars)
        snapshot = IndicatorEngine.build_snapshot(series)
        return self.scorer.calculate(snapshot)

    def _check_cancelled(self, cancel_event: Optional[threading.Event], deadline: Optional[float]) -> None:
        if cancel_event is not None and cancel_event.is_set():
            raise ScanCancelledError("Scan cancelled by caller")
        if deadline is not None and self.clock() >= deadline:
            raise ScanCancelledError(f"Scan timed out after {self.timeout}s")

    def _wait_for_slot(self, cancel_event: Optional[threading.Event]) -> None:
        """Sit out the rate limit delay on the cancel event so it can interrupt."""
        if cancel_event is None:
            return
        delay = self.rate_limiter.delay_needed()
        if delay > 0 and cancel_event.wait(delay):
            raise ScanCancelledError("Scan cancelled by caller")

    def scan(
        self,
        symbols: Optional[Sequence[str]] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> ScanReport:
        """Scan the basket and rank it by probability.

        Args:
            symbols: Symbols to scan (defaults to the configured basket)
            cancel_event: Set it to stop the scan between symbols

        Returns:
            ScanReport whose results are sorted by probability, highest first

        Raises:
            ConfigurationError: If the provider rejects the configuration
        """
        symbols = list(symbols) if symbols is not None else self.symbols
        started_at = datetime.now(self.tz)
        start_time = self.clock()
        deadline = start_time + self.timeout if self.timeout else None

        logger.info(f"Starting scan of {len(symbols)} symbols")

        results: List[ScoreResult] = []
        errors: List[str] = []
        fail_count = 0
        cancelled = False

        for symbol in symbols:
            try:
                self._check_cancelled(cancel_event, deadline)
                self._wait_for_slot(cancel_event)
            except ScanCancelledError as e:
                logger.warning(f"{e}; returning partial results")
                cancelled = True
                break

            try:
                results.append(self.process_symbol(symbol))
            except (DataFetchError, InsufficientDataError) as e:
                fail_count += 1
                errors.append(f"{symbol}: {type(e).__name__}: {e}")
                logger.warning(f"Skipping {symbol}: {e}")
            except ConfigurationError as e:
                # Every remaining symbol would fail the same way
                logger.error(f"Aborting scan at {symbol}: {e}")
                raise
            except Exception as e:
                fail_count += 1
                errors.append(f"{symbol}: {type(e).__name__}: {e}")
                logger.exception(f"Unexpected failure for {symbol}: {e}")

        # sorted() is stable: ties keep basket order
        ranked = sorted(results, key=lambda r: r.probability, reverse=True)

        report = ScanReport(
            started_at=started_at,
            duration=max(self.clock() - start_time, 0.0),
            total_symbols=len(symbols),
            success_count=len(ranked),
            fail_count=fail_count,
            errors=errors,
            results=ranked,
            cancelled=cancelled,
        )
        self.last_report = report

        logger.info(
            f"Scan completed in {report.duration:.2f}s. "
            f"Scored: {report.success_count}, Skipped: {report.fail_count}"
            + (" (cancelled)" if cancelled else "")
        )
        return report
