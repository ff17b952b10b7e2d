"""Single-node connections and their health state machine."""

import time
from dataclasses import dataclass
from typing import Optional
from urllib.parse import urlsplit

DEFAULT_PORT = 9200
DEFAULT_BASE_TIMEOUT = 60.0


@dataclass(frozen=True)
class HostAddress:
    """Immutable endpoint of a cluster node."""

    scheme: str
    host: str
    port: int

    @classmethod
    def parse(cls, value: str, default_scheme: str = "http") -> "HostAddress":
        """
        Parse ``scheme://host:port``, ``host:port`` or ``host``.

        Published addresses of the form ``hostname/ip:port`` resolve to the
        part after the slash. Raises ValueError when nothing usable is found.
        """
        raw = (value or "").strip()
        if not raw:
            raise ValueError("Host address is empty.")
        if "://" not in raw:
            if "/" in raw:
                raw = raw.rsplit("/", 1)[1]
            raw = f"{default_scheme}://{raw}"

        parts = urlsplit(raw)
        port = parts.port  # ValueError on a non-numeric or out-of-range port
        if not parts.hostname:
            raise ValueError(f"Host address '{value}' has no host name.")
        return cls(
            scheme=parts.scheme or default_scheme,
            host=parts.hostname,
            port=port if port is not None else DEFAULT_PORT,
        )

    @property
    def is_valid(self) -> bool:
        return bool(self.host) and 0 < self.port < 65536 and self.scheme in ("http", "https")

    @property
    def url(self) -> str:
        host = f"[{self.host}]" if ":" in self.host else self.host
        return f"{self.scheme}://{host}:{self.port}"

    def __str__(self) -> str:
        host = f"[{self.host}]" if ":" in self.host else self.host
        return f"{host}:{self.port}"


class Connection:
    """
    Wraps one host endpoint and its health.

    States: alive-healthy (no failures), alive-degraded (failures but not
    dead) and dead (``dead_since`` set). Health is mutated through
    ``ConnectionPool`` so transitions happen under the pool lock.
    """

    def __init__(self, host: HostAddress, base_timeout: float = DEFAULT_BASE_TIMEOUT):
        self._host = host
        self._base_timeout = float(base_timeout)
        self.failures = 0
        self.dead_since: Optional[float] = None

    @property
    def host(self) -> HostAddress:
        return self._host

    @property
    def base_timeout(self) -> float:
        return self._base_timeout

    @property
    def is_valid(self) -> bool:
        return isinstance(self._host, HostAddress) and self._host.is_valid

    @property
    def is_dead(self) -> bool:
        return self.dead_since is not None

    @property
    def is_alive(self) -> bool:
        return not self.is_dead

    @property
    def current_timeout(self) -> float:
        """Backoff window: base timeout doubled for every failure after the first."""
        if self.failures < 1:
            return self._base_timeout
        return self._base_timeout * (2 ** (self.failures - 1))

    @property
    def is_resurrectable(self) -> bool:
        if self.dead_since is None:
            return False
        return time.time() > self.dead_since + self.current_timeout

    def mark_dead(self) -> None:
        self.dead_since = time.time()
        self.failures += 1

    def mark_alive(self) -> None:
        self.dead_since = None

    def mark_healthy(self) -> None:
        self.mark_alive()
        self.failures = 0

    def resurrect(self, force: bool = False) -> bool:
        """Bring a dead connection back if its window elapsed. Returns True if it did."""
        if self.is_dead and (force or self.is_resurrectable):
            self.mark_alive()
            return True
        return False

    def __eq__(self, other) -> bool:
        if not isinstance(other, Connection):
            return NotImplemented
        return self._host == other._host

    def __hash__(self) -> int:
        return hash(self._host)

    def __repr__(self) -> str:
        if self.dead_since is not None:
            state = f"dead since {self.dead_since:.3f} failures={self.failures}"
        else:
            state = f"alive failures={self.failures}"
        return f"<Connection host={self._host} {state}>"
