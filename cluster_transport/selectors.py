"""Connection selection policies."""

import random
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .pool import ConnectionPool


class ConnectionSelector(ABC):
    """Base class for selectors. Picks an index into the pool's alive connections."""

    @abstractmethod
    def select(self, pool: "ConnectionPool") -> int:
        """Return an index in [0, alive count)."""
        pass


class RoundRobinSelector(ConnectionSelector):
    """Cycles through alive connections in pool order."""

    def __init__(self):
        self._current = 0

    def select(self, pool: "ConnectionPool") -> int:
        # Alive count is read fresh each call; the pool may have shrunk or grown.
        if self._current >= pool.alive_count:
            self._current = 0
        result = self._current
        self._current += 1
        return result

    def reset(self) -> None:
        self._current = 0


class RandomSelector(ConnectionSelector):
    """Picks a uniformly random alive connection."""

    def __init__(self, rng: random.Random = None):
        self._rng = rng or random.Random()

    def select(self, pool: "ConnectionPool") -> int:
        count = pool.alive_count
        if count <= 0:
            return 0
        return self._rng.randrange(count)


def create_selector(name: str) -> ConnectionSelector:
    name = (name or "round_robin").lower()
    if name in ("round_robin", "roundrobin"):
        return RoundRobinSelector()
    if name == "random":
        return RandomSelector()
    raise ValueError(f"Unknown selector '{name}'.")
