"""Hook system for reacting to connection health and discovery events."""

import threading
from collections import defaultdict
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Any, Callable, Dict, List, Optional, Tuple


class HookManager:
    """
    Dispatches event callbacks on a small thread pool.

    Callbacks never run on the request path, so a slow or failing hook does
    not delay or break a request.
    """

    def __init__(self, max_workers: int = 2, name: str = "TransportHooks"):
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix=name
        )
        self._hooks: Dict[str, List[Tuple[int, Callable]]] = defaultdict(list)
        self._lock = threading.Lock()
        self._hook_stats: Dict[str, Dict[str, int]] = defaultdict(
            lambda: {"triggered": 0, "errors": 0}
        )
        self._closed = False

    def register_hook(self, event: str, callback: Callable, priority: int = 0):
        """
        Register a callback for an event.

        Args:
            event: Event name, one of ``HookEvents``
            callback: Called with the event's keyword arguments
            priority: Higher priority callbacks are submitted first
        """
        with self._lock:
            self._hooks[event].append((priority, callback))
            self._hooks[event].sort(key=lambda x: x[0], reverse=True)

    def unregister_hook(self, event: str, callback: Callable):
        with self._lock:
            if event in self._hooks:
                self._hooks[event] = [
                    (p, cb) for p, cb in self._hooks[event] if cb != callback
                ]
                if not self._hooks[event]:
                    del self._hooks[event]

    def trigger_hook(self, event: str, **kwargs) -> List[Future]:
        """Submit every callback registered for ``event``; returns their futures."""
        with self._lock:
            if self._closed:
                return []
            callbacks = [cb for _, cb in self._hooks.get(event, [])]
            self._hook_stats[event]["triggered"] += len(callbacks)

        futures = []
        for callback in callbacks:
            try:
                futures.append(self._executor.submit(self._safe_call, callback, event, kwargs))
            except RuntimeError as e:
                # executor shut down between the check and the submit
                print(f"[HookManager] Could not submit hook '{event}': {e}", flush=True)
                with self._lock:
                    self._hook_stats[event]["errors"] += 1
        return futures

    def _safe_call(self, callback: Callable, event: str, kwargs: Dict[str, Any]):
        try:
            return callback(**kwargs)
        except Exception as e:
            print(f"[HookManager] Hook '{event}' callback error: {e}", flush=True)
            with self._lock:
                self._hook_stats[event]["errors"] += 1
            return None

    def wait_for_hooks(self, futures: List[Future], timeout: Optional[float] = None) -> List[Any]:
        return [future.result(timeout=timeout) for future in futures]

    def get_hook_count(self, event: str) -> int:
        with self._lock:
            return len(self._hooks.get(event, []))

    def get_stats(self) -> Dict[str, Dict[str, int]]:
        with self._lock:
            return {event: dict(stats) for event, stats in self._hook_stats.items()}

    def shutdown(self, wait: bool = True):
        with self._lock:
            self._closed = True
        self._executor.shutdown(wait=wait)


class HookEvents:
    """Standard hook event names."""
    CONNECTION_DEAD = "connection_dead"
    CONNECTION_HEALTHY = "connection_healthy"
    CONNECTION_RESURRECTED = "connection_resurrected"
    HOSTS_SNIFFED = "hosts_sniffed"
    REQUEST_RETRIED = "request_retried"
    REQUEST_FAILED = "request_failed"
