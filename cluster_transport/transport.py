"""Request orchestration over a pool of interchangeable cluster nodes."""

import threading
import time
from collections import deque
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Any, Dict, Iterable, List, Optional, Union

import httpx

from .config import TransportSettings
from .connection import Connection, HostAddress
from .errors import ErrorKind, TransportError
from .hooks import HookEvents, HookManager
from .metrics import MetricsTracker
from .pool import ConnectionPool
from .resilience import RetryPolicy
from .response import RequestMethod, Response, Result
from .selectors import create_selector
from .sniffer import Sniffer

HostLike = Union[str, HostAddress]


class Transport:
    """
    Issues requests against a healthy node of the cluster.

    Owns the host list and the connection pool built from it. Every
    ``reload_after`` requests the host list is refreshed by sniffing the
    cluster and the pool is rebuilt. ``request_async`` dispatches one attempt
    on a worker thread and returns a future; ``request`` blocks on those
    futures and retries recoverable failures.
    """

    def __init__(
        self,
        hosts: Iterable[HostLike] = (),
        scheme: str = "http",
        settings: Optional[TransportSettings] = None,
        http_client: Optional[httpx.Client] = None,
        hook_manager: Optional[HookManager] = None,
        verbose: bool = True,
    ):
        if scheme not in ("http", "https"):
            raise ValueError(f"Unsupported scheme '{scheme}'.")
        self._scheme = scheme
        self._settings = settings or TransportSettings()
        self._verbose = verbose

        self._lock = threading.RLock()
        self._log_buffer = deque(maxlen=50)
        self._log_lock = threading.Lock()
        if isinstance(hosts, (str, HostAddress)):
            hosts = [hosts]
        self._hosts: List[HostAddress] = [self._to_host(h) for h in hosts]
        self._pool = self._new_pool()
        self._connection_counter = 0
        self._sniffing = False

        self._owns_client = http_client is None
        self._client = http_client or httpx.Client(timeout=self._settings.request_timeout)
        self._owns_hooks = hook_manager is None
        self._hooks = hook_manager or HookManager()
        self._executor = ThreadPoolExecutor(
            max_workers=self._settings.max_workers, thread_name_prefix="Transport"
        )
        self._retry = RetryPolicy(
            max_retries=self._settings.max_retries,
            enabled=self._settings.retry_on_failure,
            initial_delay=self._settings.retry_initial_delay,
            max_delay=self._settings.retry_max_delay,
        )
        self._metrics = MetricsTracker()
        self._closed = False

        self.build_connections()

    @property
    def scheme(self) -> str:
        return self._scheme

    @property
    def settings(self) -> TransportSettings:
        return self._settings

    @property
    def hosts(self) -> List[HostAddress]:
        with self._lock:
            return list(self._hosts)

    @property
    def pool(self) -> ConnectionPool:
        with self._lock:
            return self._pool

    @property
    def connection_counter(self) -> int:
        with self._lock:
            return self._connection_counter

    @property
    def hooks(self) -> HookManager:
        return self._hooks

    @property
    def metrics(self) -> MetricsTracker:
        return self._metrics

    # -- host registration -------------------------------------------------

    def _to_host(self, value: HostLike) -> HostAddress:
        if isinstance(value, HostAddress):
            host = value
        else:
            try:
                host = HostAddress.parse(value, default_scheme=self._scheme)
            except ValueError as exc:
                raise TransportError.invalid_connection(value) from exc
        if not host.is_valid:
            raise TransportError.invalid_connection(host)
        return host

    def add_host(self, value: HostLike) -> Connection:
        """Register a host; it survives later pool rebuilds."""
        host = self._to_host(value)
        connection = Connection(host, base_timeout=self._settings.base_connection_timeout)
        self.add_connection(connection)
        return connection

    def add_connection(self, connection: Connection) -> None:
        with self._lock:
            self._pool.add(connection)
            if connection.host not in self._hosts:
                self._hosts.append(connection.host)

    def _new_pool(self) -> ConnectionPool:
        return ConnectionPool(
            selector=create_selector(self._settings.selector),
            exhaustive_resurrection=self._settings.exhaustive_resurrection,
            on_resurrect=self._on_resurrected,
        )

    def build_connections(self) -> None:
        """Replace the pool with fresh connections for the current host list."""
        with self._lock:
            pool = self._new_pool()
            for host in self._hosts:
                try:
                    pool.add(Connection(host, base_timeout=self._settings.base_connection_timeout))
                except TransportError as exc:
                    self.log(f"[Transport] Skipping host {host}: {exc.message}")
            self._pool = pool
            self._connection_counter = 0

    # -- connection selection ----------------------------------------------

    def get_connection(self) -> Optional[Connection]:
        """
        Return the connection for the next request, or None if there are no hosts.

        Rebuilds an empty pool, and sniffs first once ``reload_after`` requests
        have gone through. A sniff's own request never starts another sniff.
        """
        with self._lock:
            if len(self._pool) == 0:
                self.build_connections()
            reload_after = self._settings.reload_after
            should_reload = (
                reload_after != 0
                and self._connection_counter >= reload_after
                and not self._sniffing
            )
            if should_reload:
                self._sniffing = True

        if should_reload:
            self.log(f"[Transport] Reloading connections after {reload_after} requests")
            self._reload()

        with self._lock:
            connection = self._pool.next_connection()
            if connection is not None:
                self._connection_counter += 1
            return connection

    def sniff_connections(self) -> List[HostAddress]:
        """Refresh the host list from the cluster and rebuild the pool."""
        with self._lock:
            if self._sniffing:
                self.log("[Transport] Sniff already in progress")
                return list(self._hosts)
            self._sniffing = True
        return self._reload()

    def _reload(self) -> List[HostAddress]:
        # Caller has set self._sniffing.
        discovered: List[HostAddress] = []
        try:
            discovered = Sniffer(self).hosts()
        except Exception as exc:
            self.log(f"[Transport] Sniffing failed: {exc}")
        finally:
            with self._lock:
                if discovered:
                    self._hosts = discovered
                self.build_connections()
                self._sniffing = False
                hosts = list(self._hosts)

        self.log(
            f"[Transport] Sniffed {len(discovered)} hosts; using "
            f"{', '.join(str(h) for h in hosts) or 'no hosts'}"
        )
        self._hooks.trigger_hook(
            HookEvents.HOSTS_SNIFFED,
            hosts=[str(h) for h in hosts],
            replaced=bool(discovered),
        )
        return hosts

    # -- requests ----------------------------------------------------------

    def request_async(
        self,
        method: Union[str, RequestMethod],
        path: str = "",
        parameters: Optional[Dict[str, Any]] = None,
        body: Optional[Union[str, bytes]] = None,
        connection: Optional[Connection] = None,
    ) -> "Future[Result]":
        """
        Dispatch one attempt and return a future resolving to a ``Result``.

        The future resolves to a ``Response`` for any well-formed HTTP
        response, whatever its status; status classification happens in
        ``request``. The connection used has its health updated before the
        future resolves. Cancel the future to abandon an attempt not yet started.
        """
        method = RequestMethod.coerce(method)
        if self._closed:
            return self._resolved(self._closed_error())
        if connection is not None and not connection.is_valid:
            return self._resolved(TransportError.invalid_connection(connection))
        target = connection or self.get_connection()
        if target is None:
            return self._resolved(TransportError.no_connections_available())
        try:
            return self._executor.submit(self._perform, target, method, path, parameters, body)
        except RuntimeError:
            # closed between the check above and the submit
            return self._resolved(self._closed_error())

    @staticmethod
    def _closed_error() -> TransportError:
        return TransportError(ErrorKind.NO_CONNECTIONS_AVAILABLE, "Transport is closed")

    @staticmethod
    def _resolved(result: Result) -> "Future[Result]":
        future: Future = Future()
        future.set_result(result)
        return future

    def _perform(
        self,
        connection: Connection,
        method: RequestMethod,
        path: str,
        parameters: Optional[Dict[str, Any]],
        body: Optional[Union[str, bytes]],
    ) -> Result:
        wire_method = method
        content = None
        headers = {}
        if body:
            content = body.encode("utf-8") if isinstance(body, str) else body
            headers["Content-Type"] = "application/json"
            # GET with a body is not universally supported; the cluster accepts POST.
            if method is RequestMethod.GET:
                wire_method = RequestMethod.POST

        url = f"{connection.host.url}/{path.lstrip('/')}"
        start = time.time()
        outcome: Result
        try:
            raw = self._client.request(
                wire_method.value,
                url,
                params=parameters or None,
                content=content,
                headers=headers,
                timeout=self._settings.request_timeout,
            )
            if not 100 <= raw.status_code <= 599:
                outcome = TransportError.invalid_http_response(
                    f"status {raw.status_code}", connection=connection
                )
            else:
                outcome = Response(
                    status=raw.status_code,
                    body=raw.content or None,
                    headers=dict(raw.headers),
                )
        except (httpx.ProtocolError, httpx.DecodingError) as exc:
            outcome = TransportError.invalid_http_response(str(exc), cause=exc, connection=connection)
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            outcome = TransportError.request_error(exc, connection=connection)

        duration_ms = (time.time() - start) * 1000
        self._metrics.record_attempt(duration_ms, failed=not isinstance(outcome, Response))
        self._update_health(connection, outcome)
        return outcome

    def _update_health(self, connection: Connection, outcome: Result) -> None:
        pool = self.pool
        if isinstance(outcome, Response):
            if pool.mark_healthy(connection):
                self.log(f"[Transport] Connection {connection.host} is healthy again")
                self._hooks.trigger_hook(HookEvents.CONNECTION_HEALTHY, host=str(connection.host))
            return
        if outcome.kind in (ErrorKind.REQUEST_ERROR, ErrorKind.INVALID_HTTP_RESPONSE):
            failures, window = pool.mark_dead(connection)
            self.log(
                f"[Transport] Marked {connection.host} dead "
                f"(failures={failures}, retry in {window:.0f}s): {outcome.message}"
            )
            self._hooks.trigger_hook(
                HookEvents.CONNECTION_DEAD,
                host=str(connection.host),
                failures=failures,
                error=outcome,
            )

    def _on_resurrected(self, connection: Connection, forced: bool) -> None:
        how = "forced" if forced else "backoff elapsed"
        self.log(f"[ConnectionPool] Resurrected {connection.host} ({how})")
        self._hooks.trigger_hook(
            HookEvents.CONNECTION_RESURRECTED, host=str(connection.host), forced=forced
        )

    def request(
        self,
        method: Union[str, RequestMethod],
        path: str = "",
        parameters: Optional[Dict[str, Any]] = None,
        body: Optional[Union[str, bytes]] = None,
        connection: Optional[Connection] = None,
    ) -> Result:
        """
        Perform a request, blocking until a final outcome.

        Returns a ``Response`` for 2xx answers and for answers without a body,
        and a ``TransportError`` otherwise. API errors (non-2xx with a JSON
        body) are final; network, protocol and JSON failures are retried up to
        ``max_retries`` times, each retry picking a connection afresh unless
        ``connection`` pins one.
        """
        method = RequestMethod.coerce(method)
        retries = 0
        while True:
            future = self.request_async(method, path, parameters, body, connection=connection)
            try:
                outcome = future.result()
            except Exception as exc:
                outcome = TransportError.unknown(exc)
            result = self._classify(method, outcome)

            if isinstance(result, Response):
                return result
            if not result.retryable or not self._retry.should_retry(retries):
                if result.retryable and self._retry.enabled:
                    self.log(f"[Transport] Max retries reached for {method.value} /{path.lstrip('/')}")
                self._hooks.trigger_hook(
                    HookEvents.REQUEST_FAILED, method=method.value, path=path, error=result
                )
                return result

            retries += 1
            self._metrics.record_retry()
            self.log(f"[Transport] Retry {retries} for {method.value} /{path.lstrip('/')}: {result.message}")
            self._hooks.trigger_hook(
                HookEvents.REQUEST_RETRIED, method=method.value, path=path, attempt=retries, error=result
            )
            self._retry.sleep(retries)

    @staticmethod
    def _classify(method: RequestMethod, outcome: Result) -> Result:
        if isinstance(outcome, TransportError):
            return outcome
        # Without a body there is nothing to classify; the caller reads the status.
        if method is RequestMethod.HEAD or not outcome.has_body:
            return outcome
        try:
            body = outcome.json()
        except TransportError as exc:
            return exc
        if not outcome.ok:
            return TransportError.api_error(outcome.status, body)
        return outcome

    # -- housekeeping ------------------------------------------------------

    def log(self, message: str) -> None:
        with self._log_lock:
            self._log_buffer.append(message)
        if self._verbose:
            print(message, flush=True)

    def recent_logs(self, max_lines: int = 10) -> List[str]:
        with self._log_lock:
            return list(self._log_buffer)[-max_lines:]

    def snapshot(self) -> Dict[str, Any]:
        with self._lock:
            hosts = [str(h) for h in self._hosts]
            counter = self._connection_counter
            pool = self._pool.snapshot()
        return {
            "scheme": self._scheme,
            "hosts": hosts,
            "connection_counter": counter,
            "pool": pool,
            "metrics": self._metrics.snapshot(),
            "recent_logs": self.recent_logs(),
        }

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._executor.shutdown(wait=True)
        if self._owns_client:
            self._client.close()
        if self._owns_hooks:
            self._hooks.shutdown(wait=False)

    def __enter__(self) -> "Transport":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
