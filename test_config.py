import json
import os
import tempfile
import unittest

from cluster_transport.config import ClusterConfig, TransportSettings


class TestTransportSettings(unittest.TestCase):
    def test_defaults(self):
        settings = TransportSettings()
        self.assertTrue(settings.retry_on_failure)
        self.assertEqual(settings.reload_after, 10000)
        self.assertEqual(settings.resurrect_after, 60)
        self.assertEqual(settings.max_retries, 3)
        self.assertEqual(settings.base_connection_timeout, 60.0)
        self.assertEqual(settings.request_timeout, 15.0)

    def test_from_dict_accepts_camel_case(self):
        settings = TransportSettings.from_dict({
            "retryOnFailure": False,
            "reloadAfter": 0,
            "maxRetries": 5,
            "requestTimeout": 2.5,
            "base_connection_timeout": 30,
        })
        self.assertFalse(settings.retry_on_failure)
        self.assertEqual(settings.reload_after, 0)
        self.assertEqual(settings.max_retries, 5)
        self.assertEqual(settings.request_timeout, 2.5)
        self.assertEqual(settings.base_connection_timeout, 30)

    def test_from_dict_none(self):
        self.assertEqual(TransportSettings.from_dict(None), TransportSettings())

    def test_rejects_unknown_and_invalid_values(self):
        with self.assertRaises(ValueError):
            TransportSettings.from_dict({"sniffOnStart": True})
        with self.assertRaises(ValueError):
            TransportSettings(max_retries=-1)
        with self.assertRaises(ValueError):
            TransportSettings(request_timeout=0)


class TestClusterConfig(unittest.TestCase):
    def write_config(self, payload) -> str:
        handle, path = tempfile.mkstemp(suffix=".json")
        with os.fdopen(handle, "w", encoding="utf-8") as stream:
            json.dump(payload, stream)
        self.addCleanup(os.remove, path)
        return path

    def test_loads_hosts_and_settings(self):
        path = self.write_config({
            "scheme": "https",
            "hosts": ["a:9200", "b:9200"],
            "settings": {"maxRetries": 1},
        })
        config = ClusterConfig(path)
        self.assertEqual(config.scheme, "https")
        self.assertEqual(config.hosts, ["a:9200", "b:9200"])
        self.assertEqual(config.get_settings().max_retries, 1)

    def test_missing_file(self):
        with self.assertRaises(FileNotFoundError):
            ClusterConfig("/nonexistent/cluster.json")

    def test_requires_hosts(self):
        with self.assertRaises(ValueError):
            ClusterConfig(self.write_config({"hosts": []}))

    def test_rejects_scheme(self):
        with self.assertRaises(ValueError):
            ClusterConfig(self.write_config({"hosts": ["a"], "scheme": "ftp"}))


if __name__ == '__main__':
    unittest.main()
