import random
import time
from typing import Optional


class RetryPolicy:
    """
    Retry budget with optional exponential backoff and jitter between attempts.

    ``initial_delay=0`` retries immediately.
    """

    def __init__(
        self,
        max_retries: int = 3,
        enabled: bool = True,
        initial_delay: float = 0.0,
        max_delay: float = 2.0,
        backoff_factor: float = 2.0,
        jitter: bool = True,
        rng: Optional[random.Random] = None,
    ):
        self.max_retries = max_retries
        self.enabled = enabled
        self.initial_delay = initial_delay
        self.max_delay = max_delay
        self.backoff_factor = backoff_factor
        self.jitter = jitter
        self._rng = rng or random.Random()

    def should_retry(self, retries_done: int) -> bool:
        return self.enabled and retries_done < self.max_retries

    def delay_for(self, retry_number: int) -> float:
        """Seconds to wait before retry ``retry_number`` (1-based)."""
        if self.initial_delay <= 0:
            return 0.0
        wait = self.initial_delay * (self.backoff_factor ** (retry_number - 1))
        if self.jitter:
            wait *= (0.5 + self._rng.random())
        return min(wait, self.max_delay)

    def sleep(self, retry_number: int) -> float:
        wait = self.delay_for(retry_number)
        if wait > 0:
            time.sleep(wait)
        return wait
