import random
import threading
import unittest
from unittest.mock import patch

from cluster_transport.errors import ErrorKind, TransportError, require_param
from cluster_transport.hooks import HookEvents, HookManager
from cluster_transport.metrics import MetricsTracker
from cluster_transport.resilience import RetryPolicy
from cluster_transport.response import RequestMethod, Response


class TestRetryPolicy(unittest.TestCase):
    def test_retry_budget(self):
        policy = RetryPolicy(max_retries=2)
        self.assertTrue(policy.should_retry(0))
        self.assertTrue(policy.should_retry(1))
        self.assertFalse(policy.should_retry(2))

    def test_disabled_never_retries(self):
        self.assertFalse(RetryPolicy(max_retries=3, enabled=False).should_retry(0))

    def test_zero_delay_does_not_sleep(self):
        policy = RetryPolicy()
        with patch("cluster_transport.resilience.time") as mock_time:
            self.assertEqual(policy.sleep(1), 0.0)
            mock_time.sleep.assert_not_called()

    def test_backoff_grows_and_caps(self):
        print("\nTesting Retry: exponential backoff")
        policy = RetryPolicy(initial_delay=0.1, max_delay=0.5, jitter=False)
        delays = [policy.delay_for(n) for n in range(1, 5)]
        self.assertEqual(delays, [0.1, 0.2, 0.4, 0.5])
        print(f"  -> Delays {delays}")

    def test_jitter_stays_in_band(self):
        policy = RetryPolicy(initial_delay=1.0, max_delay=10.0, rng=random.Random(3))
        for _ in range(20):
            self.assertTrue(0.5 <= policy.delay_for(1) <= 1.5)


class TestHookManager(unittest.TestCase):
    def setUp(self):
        self.hooks = HookManager(max_workers=2)
        self.addCleanup(self.hooks.shutdown)

    def test_callbacks_receive_keyword_arguments(self):
        received = []
        self.hooks.register_hook(HookEvents.HOSTS_SNIFFED, lambda hosts, replaced: received.append((hosts, replaced)))
        futures = self.hooks.trigger_hook(HookEvents.HOSTS_SNIFFED, hosts=["a:9200"], replaced=True)
        self.hooks.wait_for_hooks(futures, timeout=5)
        self.assertEqual(received, [(["a:9200"], True)])
        self.assertEqual(self.hooks.get_stats()[HookEvents.HOSTS_SNIFFED]["triggered"], 1)

    def test_failing_callback_is_counted_not_raised(self):
        def broken(**kwargs):
            raise RuntimeError("boom")

        self.hooks.register_hook(HookEvents.REQUEST_FAILED, broken)
        futures = self.hooks.trigger_hook(HookEvents.REQUEST_FAILED, method="GET")
        self.assertEqual(self.hooks.wait_for_hooks(futures, timeout=5), [None])
        self.assertEqual(self.hooks.get_stats()[HookEvents.REQUEST_FAILED]["errors"], 1)

    def test_unregister(self):
        callback = lambda **kwargs: None
        self.hooks.register_hook(HookEvents.CONNECTION_DEAD, callback)
        self.assertEqual(self.hooks.get_hook_count(HookEvents.CONNECTION_DEAD), 1)
        self.hooks.unregister_hook(HookEvents.CONNECTION_DEAD, callback)
        self.assertEqual(self.hooks.get_hook_count(HookEvents.CONNECTION_DEAD), 0)

    def test_priority_order(self):
        order = []
        gate = threading.Lock()

        def record(name):
            def callback(**kwargs):
                with gate:
                    order.append(name)
            return callback

        hooks = HookManager(max_workers=1)
        self.addCleanup(hooks.shutdown)
        hooks.register_hook("event", record("low"), priority=0)
        hooks.register_hook("event", record("high"), priority=10)
        hooks.wait_for_hooks(hooks.trigger_hook("event"), timeout=5)
        self.assertEqual(order, ["high", "low"])

    def test_trigger_after_shutdown_is_noop(self):
        hooks = HookManager()
        hooks.register_hook("event", lambda **kwargs: None)
        hooks.shutdown()
        self.assertEqual(hooks.trigger_hook("event"), [])


class TestErrorsAndResponses(unittest.TestCase):
    def test_terminal_kinds(self):
        self.assertFalse(TransportError.api_error(404, {}).retryable)
        self.assertFalse(TransportError.no_connections_available().retryable)
        self.assertTrue(TransportError.request_error(OSError("reset")).retryable)
        self.assertTrue(TransportError.invalid_json_response(b"x").retryable)
        self.assertTrue(TransportError.unknown().retryable)

    def test_response_json(self):
        self.assertEqual(Response(200, b'{"a": 1}').json(), {"a": 1})
        self.assertEqual(Response(200).json(), {})
        with self.assertRaises(TransportError) as cm:
            Response(200, b"nope").json()
        self.assertEqual(cm.exception.kind, ErrorKind.INVALID_JSON_RESPONSE)

    def test_request_method_coerce(self):
        self.assertIs(RequestMethod.coerce("get"), RequestMethod.GET)
        self.assertIs(RequestMethod.coerce(RequestMethod.PUT), RequestMethod.PUT)

    def test_require_param(self):
        self.assertEqual(require_param({"index": "logs"}, "index"), "logs")
        with self.assertRaises(TransportError) as cm:
            require_param({}, "index")
        self.assertEqual(cm.exception.kind, ErrorKind.MISSING_REQUIRED_PARAMETER)
        with self.assertRaises(TransportError) as cm:
            require_param({"index": ""}, "index")
        self.assertEqual(cm.exception.kind, ErrorKind.EMPTY_REQUIRED_PARAMETER)


class TestMetricsTracker(unittest.TestCase):
    def test_snapshot(self):
        metrics = MetricsTracker()
        metrics.record_attempt(10.0, failed=False)
        metrics.record_attempt(30.0, failed=True)
        metrics.record_retry()
        snap = metrics.snapshot()
        self.assertEqual(snap["attempts"], 2)
        self.assertEqual(snap["failures"], 1)
        self.assertEqual(snap["retries"], 1)
        self.assertEqual(snap["avg_ms"], 20.0)


if __name__ == '__main__':
    unittest.main()
