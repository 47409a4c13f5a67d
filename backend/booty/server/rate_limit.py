"""Per-connection message throttling."""

import time


class MessageRateLimiter:
    """Token bucket: `burst` messages at once, refilled at `rate` messages per second."""

    def __init__(self, rate: float, burst: int) -> None:
        if rate <= 0 or burst < 1:
            raise ValueError("rate must be positive and burst at least 1")
        self._rate = rate
        self._burst = burst
        self._allowance = float(burst)
        self._checked_at = time.monotonic()

    def allow(self) -> bool:
        """Spend one token if available."""
        now = time.monotonic()
        self._allowance = min(float(self._burst), self._allowance + (now - self._checked_at) * self._rate)
        self._checked_at = now
        if self._allowance < 1.0:
            return False
        self._allowance -= 1.0
        return True
