"""Resilient HTTP transport for clusters of interchangeable nodes (pooling, health, sniffing, retries)."""

from .config import TransportSettings, ClusterConfig
from .connection import Connection, HostAddress
from .errors import ErrorKind, TransportError, require_param
from .response import RequestMethod, Response, Result
from .selectors import ConnectionSelector, RoundRobinSelector, RandomSelector
from .pool import ConnectionPool
from .sniffer import Sniffer
from .transport import Transport
from .resilience import RetryPolicy
from .metrics import MetricsTracker
from .hooks import HookManager, HookEvents

__all__ = [
    "TransportSettings",
    "ClusterConfig",
    "Connection",
    "HostAddress",
    "ErrorKind",
    "TransportError",
    "require_param",
    "RequestMethod",
    "Response",
    "Result",
    "ConnectionSelector",
    "RoundRobinSelector",
    "RandomSelector",
    "ConnectionPool",
    "Sniffer",
    "Transport",
    "RetryPolicy",
    "MetricsTracker",
    "HookManager",
    "HookEvents",
]
