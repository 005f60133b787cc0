import tempfile
import unittest
from unittest.mock import patch

import os
import sys
sys.path.insert(0, os.path.join(os.path.dirname(os.path.abspath(__file__)), '..', 'src'))
from class_schema import ChatSettings, load_env


class TestChatSettings(unittest.TestCase):

    def test_defaults(self):
        with patch.dict(os.environ, {}, clear=True):
            settings = ChatSettings.from_env()
        self.assertEqual(settings.provider, "openai")
        self.assertEqual(settings.model, "gpt-4o-mini-2024-07-18")
        self.assertEqual(settings.temperature, 0.2)
        self.assertEqual(settings.max_completion_tokens, 4096)
        self.assertIsNone(settings.api_key)
        self.assertIsNone(settings.base_url)

    def test_environment_overrides(self):
        env = {
            "CHAT_PROVIDER": "gemini",
            "GEMINI_MODEL": "gemini-test",
            "GEMINI_API_KEY": "g-key",
            "OPENAI_TEMPERATURE": "0.7",
            "OPENAI_MAX_COMPLETION_TOKENS": "512",
        }
        with patch.dict(os.environ, env, clear=True):
            settings = ChatSettings.from_env()
        self.assertEqual(settings.provider, "gemini")
        self.assertEqual(settings.model, "gemini-test")
        self.assertEqual(settings.api_key, "g-key")
        self.assertEqual(settings.temperature, 0.7)
        self.assertEqual(settings.max_completion_tokens, 512)
        self.assertEqual(settings.base_url, "https://generativelanguage.googleapis.com/v1beta/openai/")

    def test_explicit_provider_wins(self):
        with patch.dict(os.environ, {"CHAT_PROVIDER": "gemini", "OPENROUTER_BASE_URL": "http://proxy"}, clear=True):
            settings = ChatSettings.from_env("openrouter")
        self.assertEqual(settings.provider, "openrouter")
        self.assertEqual(settings.base_url, "http://proxy")

    def test_unknown_provider(self):
        with patch.dict(os.environ, {"CHAT_PROVIDER": "mystery"}, clear=True):
            with self.assertRaises(ValueError):
                ChatSettings.from_env()


class TestLoadEnv(unittest.TestCase):

    def test_loads_file(self):
        with tempfile.TemporaryDirectory() as tmp:
            env_file = os.path.join(tmp, ".env")
            with open(env_file, "w") as f:
                f.write("CLASS_SCHEMA_TEST_VALUE=loaded\n")
            with patch.dict(os.environ, {}, clear=True):
                self.assertTrue(load_env(env_file, force=True))
                self.assertEqual(os.environ["CLASS_SCHEMA_TEST_VALUE"], "loaded")

    def test_missing_file_is_tolerated(self):
        self.assertFalse(load_env("/nonexistent/path/.env", force=True))

    def test_env_file_variable(self):
        with tempfile.TemporaryDirectory() as tmp:
            env_file = os.path.join(tmp, "custom.env")
            with open(env_file, "w") as f:
                f.write("CLASS_SCHEMA_OTHER=yes\n")
            with patch.dict(os.environ, {"ENV_FILE": env_file}, clear=True):
                self.assertTrue(load_env(force=True))
                self.assertEqual(os.environ["CLASS_SCHEMA_OTHER"], "yes")


if __name__ == '__main__':
    unittest.main()
