"""Rate-limit policies for pacing calls to third-party providers.

Ingestion runs one track at a time; the policy decides how long to wait
before each provider call.
"""

import logging
import time

logger = logging.getLogger(__name__)


class NoDelay:
    """Never waits."""

    def wait(self) -> float:
        return 0.0


class FixedDelay:
    """Keeps at least ``delay`` seconds between the starts of two calls."""

    def __init__(self, delay: float = 0.5, clock=time.monotonic, sleep=time.sleep):
        if delay < 0:
            raise ValueError("delay must be >= 0")
        self.delay = delay
        self._clock = clock
        self._sleep = sleep
        self._last: float | None = None

    def wait(self) -> float:
        now = self._clock()
        waited = 0.0
        if self._last is not None:
            remaining = self._last + self.delay - now
            if remaining > 0:
                self._sleep(remaining)
                waited = remaining
                now += remaining
        self._last = now
        return waited


class TokenBucket:
    """Allows bursts of ``capacity`` calls, refilled at ``rate`` tokens/second."""

    def __init__(self, rate: float = 2.0, capacity: int = 1, clock=time.monotonic, sleep=time.sleep):
        if rate <= 0 or capacity < 1:
            raise ValueError("rate must be > 0 and capacity >= 1")
        self.rate = rate
        self.capacity = capacity
        self._clock = clock
        self._sleep = sleep
        self._tokens = float(capacity)
        self._updated = clock()

    def _refill(self, now: float):
        elapsed = max(0.0, now - self._updated)
        self._tokens = min(self.capacity, self._tokens + elapsed * self.rate)
        self._updated = now

    def wait(self) -> float:
        self._refill(self._clock())
        waited = 0.0
        if self._tokens < 1:
            waited = (1 - self._tokens) / self.rate
            self._sleep(waited)
            self._refill(self._updated + waited)
        self._tokens -= 1
        return waited


def build_rate_limiter(settings):
    """Create the policy named by ``settings.rate_limit``."""
    rl = settings.rate_limit
    if rl.policy == "token_bucket":
        return TokenBucket(rate=rl.rate, capacity=rl.capacity)
    if rl.policy == "none":
        return NoDelay()
    return FixedDelay(delay=rl.delay)
