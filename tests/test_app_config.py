import os
import unittest
from unittest.mock import patch

from component_gallery_mcp.app_config import (
    RuntimeEnv,
    effective_base_url,
    parse_app_config,
    resolve_runtime_env,
    validate_config,
)
from component_gallery_mcp.errors import ConfigurationError


def _env(**overrides) -> RuntimeEnv:
    values = {"api_key": "k", "base_url": None, "supabase_url": None, "supabase_anon_key": None}
    values.update(overrides)
    return RuntimeEnv(**values)


class ParseAppConfigTests(unittest.TestCase):
    def test_defaults(self) -> None:
        app = parse_app_config({})
        self.assertEqual("http://localhost:3000", app.base_url)
        self.assertEqual("poll", app.selection_strategy)
        self.assertEqual(5.0, app.poll_interval_seconds)
        self.assertEqual(60, app.poll_max_attempts)
        self.assertEqual(5, app.max_transient_failures)
        self.assertEqual(3600.0, app.broadcast_timeout_seconds)
        self.assertEqual(["react", "vue", "angular"], app.allowed_frameworks)
        self.assertTrue(app.open_browser)
        self.assertFalse(app.validate_api_key_on_startup)
        self.assertIsNone(app.log_consumers)

    def test_overrides(self) -> None:
        app = parse_app_config({
            "BaseUrl": "https://gallery.example.com/",
            "SelectionStrategy": " Broadcast ",
            "PollIntervalSeconds": "2.5",
            "AllowedFrameworks": ["React"],
            "OpenBrowser": "off",
            "ValidateApiKeyOnStartup": "yes",
            "LogConsumers": [{"type": "console"}],
        })
        self.assertEqual("https://gallery.example.com", app.base_url)
        self.assertEqual("broadcast", app.selection_strategy)
        self.assertEqual(2.5, app.poll_interval_seconds)
        self.assertEqual(["react"], app.allowed_frameworks)
        self.assertFalse(app.open_browser)
        self.assertTrue(app.validate_api_key_on_startup)
        self.assertEqual([{"type": "console"}], app.log_consumers)

    def test_env_base_url_wins(self) -> None:
        app = parse_app_config({"BaseUrl": "http://config"})
        self.assertEqual("http://env", effective_base_url(app, _env(base_url="http://env/")))
        self.assertEqual("http://config", effective_base_url(app, _env()))

    @patch.dict(os.environ, {"ADORABLE_API_KEY": " key ", "SUPABASE_URL": "https://p.supabase.co"}, clear=True)
    def test_resolve_runtime_env(self) -> None:
        env = resolve_runtime_env()
        self.assertEqual("key", env.api_key)
        self.assertIsNone(env.base_url)
        self.assertEqual("https://p.supabase.co", env.supabase_url)
        self.assertIsNone(env.supabase_anon_key)


class ValidateConfigTests(unittest.TestCase):
    def test_valid_defaults(self) -> None:
        validate_config(parse_app_config({}), _env())

    def test_missing_api_key(self) -> None:
        with self.assertRaises(ConfigurationError) as ctx:
            validate_config(parse_app_config({}), _env(api_key=""))
        self.assertIn("ADORABLE_API_KEY", str(ctx.exception))

    def test_invalid_values(self) -> None:
        for config in (
            {"SelectionStrategy": "websocket"},
            {"PollIntervalSeconds": 0},
            {"PollMaxAttempts": -1},
            {"MaxTransientFailures": -1},
            {"BroadcastTimeoutSeconds": 0},
            {"AllowedFrameworks": ["react", "svelte"]},
        ):
            with self.subTest(config=config):
                with self.assertRaises(ConfigurationError):
                    validate_config(parse_app_config(config), _env())

    def test_broadcast_requires_supabase_settings(self) -> None:
        app = parse_app_config({"SelectionStrategy": "broadcast"})
        with self.assertRaises(ConfigurationError):
            validate_config(app, _env())
        validate_config(app, _env(supabase_url="https://p.supabase.co", supabase_anon_key="anon"))


if __name__ == "__main__":
    unittest.main()
