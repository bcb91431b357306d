"""Provider call throttling.

The upstream quota is the only concurrency constraint in a scan, so it lives in
its own unit: a sliding-window call budget plus a minimum spacing between
calls. Clock and sleep are injected so the limiter can be driven without real
delays.
"""

import threading
import time
from collections import deque
from typing import Callable, Deque, Optional

from loguru import logger


class RateLimiter:
    """Sliding-window rate limiter with minimum call spacing and ban handling.

    Used as a context manager, it also guarantees that only one provider call
    is in flight at a time across threads sharing the limiter::

        with limiter:
            series = provider.fetch_series(symbol)
    """

    def __init__(
        self,
        max_requests: int = 5,
        window_seconds: float = 60.0,
        min_interval: float = 0.0,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        if max_requests < 1:
            raise ValueError("max_requests must be at least 1")
        self.max_requests = max_requests
        self.window = window_seconds
        self.min_interval = min_interval
        self.clock = clock
        self.sleep = sleep
        self.requests: Deque[float] = deque()
        self.ban_until: Optional[float] = None
        # _lock serializes provider calls; _state_lock guards requests/ban_until
        self._lock = threading.Lock()
        self._state_lock = threading.Lock()

    def delay_needed(self) -> float:
        """Seconds to wait before the next call is allowed (0 if none).

        Safe to call from any thread, including while another thread holds
        the limiter for a provider call.
        """
        with self._state_lock:
            now = self.clock()

            while self.requests and now - self.requests[0] >= self.window:
                self.requests.popleft()

            delays = [0.0]
            if self.ban_until is not None:
                delays.append(self.ban_until - now)
            if self.requests and self.min_interval > 0:
                delays.append(self.requests[-1] + self.min_interval - now)
            if len(self.requests) >= self.max_requests:
                oldest = self.requests[len(self.requests) - self.max_requests]
                delays.append(oldest + self.window - now)
            return max(delays)

    def wait_if_needed(self) -> float:
        """Block until a call is permitted, then record it.

        Returns:
            Total seconds slept
        """
        slept = 0.0
        wait = self.delay_needed()
        while wait > 0:
            ban_until = self.ban_until
            if ban_until is not None and self.clock() < ban_until:
                logger.warning(f"Provider ban active, waiting {wait:.0f}s")
            else:
                logger.debug(f"Rate limit reached, sleeping {wait:.1f}s")
            self.sleep(wait)
            slept += wait
            wait = self.delay_needed()

        with self._state_lock:
            now = self.clock()
            if self.ban_until is not None and now >= self.ban_until:
                self.ban_until = None
            self.requests.append(now)
        return slept

    def register_ban(self, duration_seconds: float = 60.0) -> None:
        """Hold all calls for ``duration_seconds`` (provider quota exhausted)."""
        with self._state_lock:
            self.ban_until = self.clock() + duration_seconds
        logger.warning(f"Provider quota exhausted, holding calls for {duration_seconds:.0f}s")

    def __enter__(self) -> "RateLimiter":
        self._lock.acquire()
        try:
            self.wait_if_needed()
        except BaseException:
            self._lock.release()
            raise
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self._lock.release()
