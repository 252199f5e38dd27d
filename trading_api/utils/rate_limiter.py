"""Request pacing for exchange adapters."""

import logging
import time
from threading import Lock
from typing import Callable

logger = logging.getLogger(__name__)


class RateLimiter:
    """Keeps a minimum gap between requests to one exchange.

    After the exchange answers HTTP 429 the gap is widened for later
    requests. The limiter only paces; it never repeats a request, so the
    adapter still reports the rejection to its caller.
    """

    def __init__(
        self,
        min_delay: float = 0.1,
        max_delay: float = 60.0,
        backoff_factor: float = 2.0,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep
    ):
        """Initialize the rate limiter.

        Args:
            min_delay: Minimum gap between requests in seconds (default: 0.1).
            max_delay: Upper bound for the widened gap in seconds (default: 60.0).
            backoff_factor: Gap multiplier applied on each 429 (default: 2.0).
            clock: Monotonic time source, replaceable in tests.
            sleep: Sleep function, replaceable in tests.
        """
        if min_delay < 0 or max_delay < min_delay:
            raise ValueError("Require 0 <= min_delay <= max_delay")
        if backoff_factor < 1:
            raise ValueError("backoff_factor must be >= 1")
        self.min_delay = min_delay
        self.max_delay = max_delay
        self.backoff_factor = backoff_factor
        self.current_delay = min_delay
        self._clock = clock
        self._sleep = sleep
        self._last_request = None
        self._lock = Lock()

    def wait(self) -> float:
        """Block until the next request may be sent, then claim the slot.

        Returns:
            The number of seconds slept.
        """
        with self._lock:
            slept = 0.0
            now = self._clock()
            if self._last_request is not None:
                remaining = self.current_delay - (now - self._last_request)
                if remaining > 0:
                    self._sleep(remaining)
                    slept = remaining
                    now = self._clock()
            self._last_request = now
            return slept

    def penalize(self) -> None:
        """Widen the gap after the exchange rejected a request for rate limiting."""
        with self._lock:
            self.current_delay = min(
                max(self.current_delay, self.min_delay, 0.001) * self.backoff_factor,
                self.max_delay
            )
            logger.warning(f"Rate limited by exchange, request gap now {self.current_delay:.3f}s")

    def relax(self) -> None:
        """Shrink the gap back toward the minimum after a successful request."""
        with self._lock:
            if self.current_delay > self.min_delay:
                self.current_delay = max(self.current_delay / self.backoff_factor, self.min_delay)
