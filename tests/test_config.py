"""
Unit tests for birb settings
"""

import unittest
import tempfile
import os
import sys
import shutil
from unittest.mock import patch

# Add birb to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from birb.config import CONFIG_ENV_VAR, BirbSettings, load_settings
from birb.exceptions import ConfigError


class TestSettings(unittest.TestCase):
    """Test loading settings from YAML"""

    def setUp(self):
        self.test_dir = tempfile.mkdtemp(prefix='birb_config_')
        self.config = os.path.join(self.test_dir, "birb.yaml")
        self.env = patch.dict(os.environ, {}, clear=False)
        self.env.start()
        os.environ.pop(CONFIG_ENV_VAR, None)

    def tearDown(self):
        self.env.stop()
        if os.path.exists(self.test_dir):
            shutil.rmtree(self.test_dir)

    def write(self, text):
        with open(self.config, 'w') as f:
            f.write(text)

    def test_defaults_without_config_file(self):
        missing = os.path.join(self.test_dir, "absent.yaml")
        with patch('birb.config.DEFAULT_CONFIG_PATH', missing):
            settings = load_settings()

        self.assertEqual(settings.nest_file, "/var/lib/birb/nest")
        self.assertEqual(settings.fakeroot_dir, "/var/db/fakeroot")
        self.assertEqual(settings.live_root, "/")
        self.assertEqual(settings.shared_index_files, ["usr/share/info/dir"])
        self.assertIn("usr/share/man/man8", settings.fakeroot_skeleton)
        self.assertGreaterEqual(settings.build_jobs, 1)

    def test_load_yaml(self):
        self.write(
            "nest_file: /srv/birb/nest\n"
            "live_root: /mnt/target\n"
            "build_jobs: 4\n"
            "metapackages:\n"
            "  xorg: [libx11, xterm]\n"
        )

        settings = load_settings(self.config)

        self.assertEqual(settings.nest_file, "/srv/birb/nest")
        self.assertEqual(settings.live_root, "/mnt/target")
        self.assertEqual(settings.build_jobs, 4)
        self.assertEqual(settings.metapackages, {"xorg": ["libx11", "xterm"]})

    def test_environment_variable(self):
        self.write("lock_file: /run/birb.lock\n")
        os.environ[CONFIG_ENV_VAR] = self.config

        self.assertEqual(load_settings().lock_file, "/run/birb.lock")

    def test_empty_file_gives_defaults(self):
        self.write("")
        self.assertEqual(load_settings(self.config), BirbSettings())

    def test_explicit_missing_file(self):
        with self.assertRaises(ConfigError):
            load_settings(os.path.join(self.test_dir, "nope.yaml"))

    def test_unknown_key(self):
        self.write("nest_fil: /typo\n")
        with self.assertRaises(ConfigError):
            load_settings(self.config)

    def test_invalid_values(self):
        self.write("build_jobs: 0\n")
        with self.assertRaises(ConfigError):
            load_settings(self.config)

        self.write("fakeroot_skeleton: ['../etc']\n")
        with self.assertRaises(ConfigError):
            load_settings(self.config)

    def test_not_a_mapping(self):
        self.write("- just\n- a list\n")
        with self.assertRaises(ConfigError):
            load_settings(self.config)

    def test_broken_yaml(self):
        self.write("nest_file: [unclosed\n")
        with self.assertRaises(ConfigError):
            load_settings(self.config)

    def test_skeleton_paths_are_relative(self):
        settings = BirbSettings(fakeroot_skeleton=["/usr/bin", "usr//lib/"])
        self.assertEqual(settings.fakeroot_skeleton, ["usr/bin", "usr/lib"])


if __name__ == '__main__':
    unittest.main()
