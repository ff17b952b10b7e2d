import statistics
import threading
import time
from collections import deque
from typing import Dict


class MetricsTracker:
    """Rolling statistics for transport attempts."""

    def __init__(self, window: int = 200):
        self._lock = threading.Lock()
        self._durations = deque(maxlen=window)
        self._attempts = 0
        self._failures = 0
        self._retries = 0
        self._start = time.time()

    def record_attempt(self, duration_ms: float, failed: bool) -> None:
        with self._lock:
            self._attempts += 1
            if failed:
                self._failures += 1
            self._durations.append(duration_ms)

    def record_retry(self) -> None:
        with self._lock:
            self._retries += 1

    def snapshot(self) -> Dict[str, float]:
        with self._lock:
            avg = statistics.fmean(self._durations) if self._durations else 0.0
            uptime = time.time() - self._start
            return {
                "avg_ms": avg,
                "attempts": self._attempts,
                "failures": self._failures,
                "retries": self._retries,
                "uptime": uptime,
                "throughput": (self._attempts / uptime) if uptime else 0.0,
            }
