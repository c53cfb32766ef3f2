import json
import os
import tempfile
import unittest
from unittest.mock import patch

from storyteller.lib import config


class TestConfig(unittest.TestCase):
    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.env = patch.dict(os.environ, {"STORYTELLER_CONFIG_DIR": self.tmp.name})
        self.env.start()

    def tearDown(self):
        self.env.stop()
        config._config = None
        self.tmp.cleanup()

    def write_config(self, data):
        with open(os.path.join(self.tmp.name, "config.json"), "w") as f:
            json.dump(data, f)

    def test_config_dir_override(self):
        self.assertEqual(config.config_dir(), self.tmp.name)

    def test_cfg_reads_sections_and_keys(self):
        self.write_config({"poll": {"interval": 2}, "insights": {"model": "gpt-4o-mini"}})
        config.reload_config()
        self.assertEqual(config.cfg("poll", "interval"), 2)
        self.assertEqual(config.cfg("poll", "refresh_delay", default=0.5), 0.5)
        self.assertEqual(config.cfg("insights"), {"model": "gpt-4o-mini"})
        self.assertEqual(config.cfg("spotify", "redirect_port", default=8888), 8888)

    def test_invalid_json_falls_back_to_defaults(self):
        with open(os.path.join(self.tmp.name, "config.json"), "w") as f:
            f.write("{not json")
        with patch.object(config, "_search_paths",
                          return_value=[os.path.join(self.tmp.name, "config.json")]):
            self.assertEqual(config.reload_config(), {})
        self.assertEqual(config.cfg("poll", "interval", default=5), 5)

    def test_load_env_does_not_override(self):
        env_file = os.path.join(self.tmp.name, ".env")
        with open(env_file, "w") as f:
            f.write("STORYTELLER_TEST_A=from-file\nSTORYTELLER_TEST_B=from-file\n")
        with patch.dict(os.environ, {"STORYTELLER_TEST_B": "from-env"}):
            config.load_env(env_file)
            self.assertEqual(os.environ["STORYTELLER_TEST_A"], "from-file")
            self.assertEqual(os.environ["STORYTELLER_TEST_B"], "from-env")

    def test_secret(self):
        with patch.dict(os.environ, {"OPENAI_API_KEY": "  sk-test \n"}):
            self.assertEqual(config.secret("OPENAI_API_KEY"), "sk-test")
        with patch.dict(os.environ, {"OPENAI_API_KEY": ""}):
            self.assertEqual(config.secret("OPENAI_API_KEY"), "")


if __name__ == "__main__":
    unittest.main()
