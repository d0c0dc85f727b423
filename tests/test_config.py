"""Tests for the configuration module."""

import os
import shutil
import tempfile
import unittest

from logroller.config import (
    MEGABYTE,
    RotationConfig,
    _parse_bool,
    default_filename,
    load_config,
    load_yaml_config,
)
from logroller.errors import ConfigError

ENV_KEYS = (
    "LOG_FILENAME", "MAX_FILE_SIZE_BYTES", "MAX_FILE_SIZE_MB", "MAX_BACKUPS",
    "MAX_AGE_DAYS", "MAX_TOTAL_SIZE_BYTES", "COMPRESSION_ENABLED", "LOCAL_TIME",
)


class TestParseBool(unittest.TestCase):
    def test_true_values(self):
        for val in ("true", "True", "TRUE", "1", "yes", "YES", " true ", True):
            self.assertTrue(_parse_bool(val), f"Expected True for {val!r}")

    def test_false_values(self):
        for val in ("false", "False", "0", "no", "", "anything", False):
            self.assertFalse(_parse_bool(val), f"Expected False for {val!r}")


class TestRotationConfig(unittest.TestCase):
    def test_default_values(self):
        cfg = RotationConfig(filename="app.log")
        self.assertEqual(cfg.max_size_bytes, 100 * MEGABYTE)
        self.assertEqual(cfg.max_backups, 0)
        self.assertEqual(cfg.max_age_days, 0)
        self.assertEqual(cfg.max_total_size_bytes, 0)
        self.assertFalse(cfg.compress)
        self.assertFalse(cfg.local_time)

    def test_empty_filename_uses_temp_dir(self):
        cfg = RotationConfig()
        self.assertEqual(cfg.filename, default_filename())
        self.assertTrue(cfg.filename.startswith(tempfile.gettempdir()))
        self.assertTrue(cfg.filename.endswith("-logroller.log"))

    def test_frozen(self):
        cfg = RotationConfig(filename="app.log")
        with self.assertRaises(AttributeError):
            cfg.max_backups = 3

    def test_directory_is_absolute(self):
        cfg = RotationConfig(filename="app.log")
        self.assertEqual(cfg.directory, os.getcwd())

    def test_rejects_non_positive_max_size(self):
        with self.assertRaises(ConfigError):
            RotationConfig(filename="app.log", max_size_bytes=0)

    def test_rejects_negative_limits(self):
        for field in ("max_backups", "max_age_days", "max_total_size_bytes"):
            with self.assertRaises(ConfigError, msg=field):
                RotationConfig(filename="app.log", **{field: -1})


class TestLoadYamlConfig(unittest.TestCase):
    def setUp(self):
        self.tmpdir = tempfile.mkdtemp()

    def tearDown(self):
        shutil.rmtree(self.tmpdir)

    def test_no_path(self):
        self.assertEqual(load_yaml_config(None), {})

    def test_missing_file(self):
        self.assertEqual(load_yaml_config(os.path.join(self.tmpdir, "nope.yml")), {})

    def test_reads_mapping(self):
        path = os.path.join(self.tmpdir, "rotation.yml")
        with open(path, "w") as f:
            f.write("filename: /var/log/app.log\nmax_backups: 4\ncompress: true\n")
        self.assertEqual(
            load_yaml_config(path),
            {"filename": "/var/log/app.log", "max_backups": 4, "compress": True},
        )

    def test_rejects_non_mapping(self):
        path = os.path.join(self.tmpdir, "rotation.yml")
        with open(path, "w") as f:
            f.write("- just\n- a list\n")
        with self.assertRaises(ConfigError):
            load_yaml_config(path)


class TestLoadConfig(unittest.TestCase):
    def setUp(self):
        self._orig_env = os.environ.copy()
        for key in ENV_KEYS:
            os.environ.pop(key, None)

    def tearDown(self):
        os.environ.clear()
        os.environ.update(self._orig_env)

    def test_defaults_without_env(self):
        cfg = load_config()
        self.assertEqual(cfg.filename, default_filename())
        self.assertEqual(cfg.max_size_bytes, 100 * MEGABYTE)
        self.assertFalse(cfg.compress)

    def test_env_var_overrides(self):
        os.environ["LOG_FILENAME"] = "/var/log/custom.log"
        os.environ["MAX_FILE_SIZE_MB"] = "20"
        os.environ["MAX_BACKUPS"] = "5"
        os.environ["MAX_AGE_DAYS"] = "3"
        os.environ["MAX_TOTAL_SIZE_BYTES"] = "4096"
        os.environ["COMPRESSION_ENABLED"] = "true"
        os.environ["LOCAL_TIME"] = "yes"
        cfg = load_config()
        self.assertEqual(cfg.filename, "/var/log/custom.log")
        self.assertEqual(cfg.max_size_bytes, 20 * MEGABYTE)
        self.assertEqual(cfg.max_backups, 5)
        self.assertEqual(cfg.max_age_days, 3)
        self.assertEqual(cfg.max_total_size_bytes, 4096)
        self.assertTrue(cfg.compress)
        self.assertTrue(cfg.local_time)

    def test_max_file_size_bytes_precedence(self):
        os.environ["MAX_FILE_SIZE_BYTES"] = "2048"
        os.environ["MAX_FILE_SIZE_MB"] = "50"
        cfg = load_config()
        self.assertEqual(cfg.max_size_bytes, 2048)

    def test_yaml_values_used_when_env_unset(self):
        cfg = load_config({"filename": "/tmp/y.log", "max_size_mb": 2, "max_backups": 7, "compress": True})
        self.assertEqual(cfg.filename, "/tmp/y.log")
        self.assertEqual(cfg.max_size_bytes, 2 * MEGABYTE)
        self.assertEqual(cfg.max_backups, 7)
        self.assertTrue(cfg.compress)

    def test_env_beats_yaml(self):
        os.environ["MAX_BACKUPS"] = "2"
        os.environ["MAX_FILE_SIZE_BYTES"] = "512"
        cfg = load_config({"max_backups": 9, "max_size_bytes": 4096})
        self.assertEqual(cfg.max_backups, 2)
        self.assertEqual(cfg.max_size_bytes, 512)

    def test_invalid_number_raises_config_error(self):
        os.environ["MAX_BACKUPS"] = "many"
        with self.assertRaises(ConfigError):
            load_config()

    def test_invalid_limit_raises_config_error(self):
        os.environ["MAX_FILE_SIZE_BYTES"] = "0"
        with self.assertRaises(ConfigError):
            load_config()


if __name__ == "__main__":
    unittest.main()
