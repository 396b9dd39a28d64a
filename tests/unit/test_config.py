#!/usr/bin/env python3
"""
Unit tests for core/config.py: settings loading, type checks and deep merge.
"""

import json
import tempfile
import unittest
from pathlib import Path

from bitlockerpin.core.config import (
    _deep_merge,
    default_settings,
    load_settings,
    resolve_log_file,
)
from bitlockerpin.core.constants import ConfigKeys, Defaults
from bitlockerpin.core.errors import ConfigError


class TestDeepMerge(unittest.TestCase):
    """_deep_merge() keeps unknown keys and merges nested dicts."""

    def test_preserves_unknown_keys(self):
        base = {"a": 1, "b": {"c": 2}}
        _deep_merge(base, {"b": {"d": 3}, "e": 4})
        self.assertEqual(base, {"a": 1, "b": {"c": 2, "d": 3}, "e": 4})

    def test_overlay_values_copied(self):
        overlay = {"list": [1, 2]}
        base = _deep_merge({}, overlay)
        overlay["list"].append(3)
        self.assertEqual(base["list"], [1, 2])


class TestLoadSettings(unittest.TestCase):
    """load_settings() against real files in a temp directory."""

    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.dir = Path(self._tmp.name)
        self.path = self.dir / "settings.json"

    def tearDown(self):
        self._tmp.cleanup()

    def test_missing_file_gives_defaults(self):
        self.assertEqual(load_settings(self.path), default_settings())

    def test_overrides_and_unknown_keys(self):
        self.path.write_text(
            json.dumps({ConfigKeys.MOUNT_POINT: "D:", "future_option": {"x": 1}}), encoding="utf-8"
        )
        settings = load_settings(self.path)
        self.assertEqual(settings[ConfigKeys.MOUNT_POINT], "D:")
        self.assertEqual(settings[ConfigKeys.LAUNCHER], Defaults.LAUNCHER)
        self.assertEqual(settings["future_option"], {"x": 1})

    def test_invalid_json(self):
        self.path.write_text("{not json", encoding="utf-8")
        with self.assertRaises(ConfigError):
            load_settings(self.path)

    def test_non_object(self):
        self.path.write_text("[1, 2]", encoding="utf-8")
        with self.assertRaises(ConfigError):
            load_settings(self.path)

    def test_defaults_not_shared(self):
        first = default_settings()
        first[ConfigKeys.LAUNCHER_ARGS].append("-x")
        self.assertEqual(default_settings()[ConfigKeys.LAUNCHER_ARGS], Defaults.LAUNCHER_ARGS)


class TestSettingTypes(unittest.TestCase):
    """Known settings with the wrong JSON type are rejected."""

    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.path = Path(self._tmp.name) / "settings.json"

    def tearDown(self):
        self._tmp.cleanup()

    def _load(self, data):
        self.path.write_text(json.dumps(data), encoding="utf-8")
        return load_settings(self.path)

    def test_log_dir_must_be_string(self):
        with self.assertRaises(ConfigError):
            self._load({ConfigKeys.LOG_DIR: 123})

    def test_mount_point_must_be_string(self):
        with self.assertRaises(ConfigError):
            self._load({ConfigKeys.MOUNT_POINT: ["C:"]})

    def test_launcher_must_be_string(self):
        with self.assertRaises(ConfigError):
            self._load({ConfigKeys.LAUNCHER: {"path": "ServiceUI.exe"}})

    def test_launcher_args_must_be_string_list(self):
        with self.assertRaises(ConfigError):
            self._load({ConfigKeys.LAUNCHER_ARGS: "-process:explorer.exe"})
        with self.assertRaises(ConfigError):
            self._load({ConfigKeys.LAUNCHER_ARGS: ["-process:explorer.exe", 1]})

    def test_setup_command_must_be_string_list(self):
        with self.assertRaises(ConfigError):
            self._load({ConfigKeys.SETUP_COMMAND: "bitlockerpin-setup.exe"})

    def test_null_launcher_and_log_dir_allowed(self):
        settings = self._load({ConfigKeys.LAUNCHER: None, ConfigKeys.LOG_DIR: None})
        self.assertIsNone(settings[ConfigKeys.LAUNCHER])
        self.assertIsNone(settings[ConfigKeys.LOG_DIR])


class TestResolveLogFile(unittest.TestCase):
    """Log location from settings or data root."""

    def test_log_dir_setting(self):
        settings = default_settings()
        settings[ConfigKeys.LOG_DIR] = "/var/log/blp"
        self.assertEqual(resolve_log_file(settings, "check.log"), Path("/var/log/blp") / "check.log")

    def test_data_root(self):
        root = Path("/data")
        self.assertEqual(resolve_log_file(default_settings(), "check.log", root), root / "logs" / "check.log")


if __name__ == "__main__":
    unittest.main()
