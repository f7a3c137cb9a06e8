import json
import os
import tempfile
import unittest
from unittest.mock import patch

import config
from config import load_config, ConfigError, DEFAULT_CONFIG

@patch("config.load_dotenv")
class TestConfig(unittest.TestCase):
    def setUp(self):
        self.test_dir_obj = tempfile.TemporaryDirectory()
        self.path = os.path.join(self.test_dir_obj.name, "config.json")
        self.env = patch.dict(os.environ, {k: "" for k in config.ENV_OVERRIDES})
        self.env.start()

    def tearDown(self):
        self.env.stop()
        self.test_dir_obj.cleanup()

    def write(self, data):
        with open(self.path, "w") as f:
            json.dump(data, f)

    def test_defaults_without_file(self, _dotenv):
        cfg = load_config(self.path)
        self.assertEqual(cfg["time_budget_seconds"], 270)
        self.assertEqual(cfg["resume_delay_seconds"], 60)
        self.assertEqual(cfg["key_prefix"], "sharing_reset.")
        self.assertIsNot(cfg["notifications"], DEFAULT_CONFIG["notifications"])

    def test_file_then_environment(self, _dotenv):
        self.write({"provider": "dropbox", "root_id": "", "time_budget_seconds": 100})
        os.environ["SHARING_RESET_TIME_BUDGET"] = "45.5"
        os.environ["SHARING_RESET_DRY_RUN"] = "yes"
        cfg = load_config(self.path)
        self.assertEqual(cfg["provider"], "dropbox")
        self.assertEqual(cfg["root_id"], "")
        self.assertEqual(cfg["time_budget_seconds"], 45.5)
        self.assertTrue(cfg["dry_run"])

    def test_invalid_values_rejected(self, _dotenv):
        self.write({"provider": "ftp"})
        with self.assertRaises(ConfigError):
            load_config(self.path)

        self.write({"time_budget_seconds": 0})
        with self.assertRaises(ConfigError):
            load_config(self.path)

        self.write({})
        os.environ["SHARING_RESET_RESUME_DELAY"] = "soon"
        with self.assertRaises(ConfigError):
            load_config(self.path)

    def test_unreadable_file(self, _dotenv):
        with open(self.path, "w") as f:
            f.write("{not json")
        with self.assertRaises(ConfigError):
            load_config(self.path)

    def test_root_defaults_follow_provider(self, _dotenv):
        self.assertEqual(load_config(self.path)["root_id"], "root")
        self.write({"provider": "dropbox"})
        self.assertEqual(load_config(self.path)["root_id"], "")

    def test_drive_root_alias_rejected_for_dropbox(self, _dotenv):
        self.write({"provider": "dropbox", "root_id": "root"})
        with self.assertRaises(ConfigError):
            load_config(self.path)

    def test_overrides_apply_before_root_default(self, _dotenv):
        """Switching provider on the command line picks that provider's root."""
        cfg = load_config(self.path, {"provider": "dropbox", "dry_run": True})
        self.assertEqual(cfg["root_id"], "")
        self.assertTrue(cfg["dry_run"])

        cfg = load_config(self.path, {"root_id": "1AbC"})
        self.assertEqual(cfg["root_id"], "1AbC")

        with self.assertRaises(ConfigError):
            load_config(self.path, {"time_budget_seconds": -1})

if __name__ == '__main__':
    unittest.main()
