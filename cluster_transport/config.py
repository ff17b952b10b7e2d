import json
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Dict, List, Optional

# camelCase names accepted alongside the snake_case field names.
_ALIASES = {
    "retryOnFailure": "retry_on_failure",
    "reloadOnFailure": "retry_on_failure",
    "reloadAfter": "reload_after",
    "resurrectAfter": "resurrect_after",
    "maxRetries": "max_retries",
    "baseConnectionTimeout": "base_connection_timeout",
    "requestTimeout": "request_timeout",
    "retryInitialDelay": "retry_initial_delay",
    "retryMaxDelay": "retry_max_delay",
    "exhaustiveResurrection": "exhaustive_resurrection",
    "maxWorkers": "max_workers",
}


@dataclass(frozen=True)
class TransportSettings:
    """Immutable transport tuning options."""

    retry_on_failure: bool = True
    reload_after: int = 10000  # requests; 0 disables sniff-on-reload
    resurrect_after: int = 60  # seconds, informational
    max_retries: int = 3
    base_connection_timeout: float = 60.0  # base time a connection stays dead
    request_timeout: float = 15.0
    retry_initial_delay: float = 0.0
    retry_max_delay: float = 2.0
    exhaustive_resurrection: bool = False
    selector: str = "round_robin"
    max_workers: int = 8

    def __post_init__(self):
        if self.reload_after < 0:
            raise ValueError("reload_after must be zero or positive.")
        if self.max_retries < 0:
            raise ValueError("max_retries must be zero or positive.")
        if self.base_connection_timeout <= 0:
            raise ValueError("base_connection_timeout must be positive.")
        if self.request_timeout <= 0:
            raise ValueError("request_timeout must be positive.")
        if self.max_workers < 1:
            raise ValueError("max_workers must be at least 1.")

    @classmethod
    def from_dict(cls, data: Optional[Dict]) -> "TransportSettings":
        """Create settings from a dictionary, using defaults for missing keys."""
        if not data:
            return cls()
        known = {f.name for f in fields(cls)}
        values = {}
        for key, value in data.items():
            name = _ALIASES.get(key, key)
            if name not in known:
                raise ValueError(f"Unknown transport setting '{key}'.")
            values[name] = value
        return cls(**values)


class ClusterConfig:
    """Config facade that hides JSON parsing of the cluster definition."""

    def __init__(self, config_path: str):
        path = Path(config_path)
        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {config_path}")

        with path.open("r", encoding="utf-8") as stream:
            payload = json.load(stream)

        hosts = payload.get("hosts", [])
        if not hosts:
            raise ValueError("Configuration must include at least one host.")
        if isinstance(hosts, str):
            hosts = [hosts]

        self._scheme = payload.get("scheme", "http")
        if self._scheme not in ("http", "https"):
            raise ValueError(f"Unsupported scheme '{self._scheme}'.")
        self._hosts: List[str] = [str(h) for h in hosts]
        self._settings = TransportSettings.from_dict(payload.get("settings"))

    @property
    def scheme(self) -> str:
        return self._scheme

    @property
    def hosts(self) -> List[str]:
        return list(self._hosts)

    def get_settings(self) -> TransportSettings:
        return self._settings
