"""Connection pool: alive/dead partitioning, resurrection and selection."""

import threading
from typing import Callable, Iterator, List, Optional, Tuple

from .connection import Connection
from .errors import TransportError
from .selectors import ConnectionSelector, RoundRobinSelector


class ConnectionPool:
    """
    Owns the connections of one transport generation.

    A single re-entrant lock guards the connection list, every health
    transition and the selector cursor, so concurrent requests observe the
    same state machine a single caller would.
    """

    def __init__(
        self,
        selector: Optional[ConnectionSelector] = None,
        exhaustive_resurrection: bool = False,
        on_resurrect: Optional[Callable[[Connection, bool], None]] = None,
    ):
        self._connections: List[Connection] = []
        self._selector = selector or RoundRobinSelector()
        self._exhaustive = exhaustive_resurrection
        self._on_resurrect = on_resurrect
        self._lock = threading.RLock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._connections)

    def __iter__(self) -> Iterator[Connection]:
        with self._lock:
            return iter(list(self._connections))

    @property
    def selector(self) -> ConnectionSelector:
        return self._selector

    @property
    def connections(self) -> List[Connection]:
        with self._lock:
            return list(self._connections)

    @property
    def alive_connections(self) -> List[Connection]:
        with self._lock:
            return [c for c in self._connections if c.is_alive]

    @property
    def dead_connections(self) -> List[Connection]:
        """Dead connections, longest dead first."""
        with self._lock:
            dead = [c for c in self._connections if c.is_dead]
            return sorted(dead, key=lambda c: c.dead_since)

    @property
    def alive_count(self) -> int:
        with self._lock:
            return sum(1 for c in self._connections if c.is_alive)

    def add(self, connection: Connection) -> None:
        if not connection.is_valid:
            raise TransportError.invalid_connection(connection)
        with self._lock:
            self._connections.append(connection)

    def next_connection(self) -> Optional[Connection]:
        """
        Return a connection to use, or None only when the pool is empty.

        Resurrects eligible dead connections first. When nothing is alive, the
        dead connection with the fewest failures is forced back so callers
        always make progress.
        """
        with self._lock:
            if not self._connections:
                return None
            self.resurrect_connections()

            alive = [c for c in self._connections if c.is_alive]
            if not alive:
                candidate = min(
                    self._connections, key=lambda c: (c.failures, c.dead_since)
                )
                candidate.resurrect(force=True)
                self._notify_resurrected(candidate, True)
                alive = [candidate]

            index = self._selector.select(self)
            if not 0 <= index < len(alive):
                index = 0
            return alive[index]

    def resurrect_connections(self, exhaustive: Optional[bool] = None) -> List[Connection]:
        """
        Resurrect dead connections whose backoff window has elapsed.

        Connections are visited longest-dead first and the scan stops at the
        first one still inside its window, unless ``exhaustive`` is set. The
        early stop can miss a later connection with a shorter window (fewer
        failures), which the exhaustive scan does not.
        """
        exhaustive = self._exhaustive if exhaustive is None else exhaustive
        resurrected = []
        with self._lock:
            for connection in self.dead_connections:
                if connection.resurrect():
                    resurrected.append(connection)
                    self._notify_resurrected(connection, False)
                elif not exhaustive:
                    break
        return resurrected

    def _notify_resurrected(self, connection: Connection, forced: bool) -> None:
        if self._on_resurrect is not None:
            self._on_resurrect(connection, forced)

    def mark_dead(self, connection: Connection) -> Tuple[int, float]:
        """Mark dead; returns the failure count and backoff window it ended with."""
        with self._lock:
            connection.mark_dead()
            return connection.failures, connection.current_timeout

    def mark_alive(self, connection: Connection) -> None:
        with self._lock:
            connection.mark_alive()

    def mark_healthy(self, connection: Connection) -> bool:
        """Mark healthy; returns True if the connection had been failing."""
        with self._lock:
            was_failing = connection.is_dead or connection.failures > 0
            connection.mark_healthy()
            return was_failing

    def snapshot(self) -> dict:
        with self._lock:
            return {
                "total": len(self._connections),
                "alive": [str(c.host) for c in self._connections if c.is_alive],
                "dead": [str(c.host) for c in self._connections if c.is_dead],
                "failures": {str(c.host): c.failures for c in self._connections},
            }
