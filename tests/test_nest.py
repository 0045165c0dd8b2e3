"""
Unit tests for the installed package registry
"""

import unittest
import tempfile
import os
import sys
import shutil
from unittest.mock import Mock

# Add birb to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from birb.exceptions import DependencyCycleError, MissingPackageError, NotInstalledError
from birb.package.nest import Nest


class TestNest(unittest.TestCase):
    """Test nest persistence and membership"""

    def setUp(self):
        self.test_dir = tempfile.mkdtemp(prefix='birb_nest_')
        self.nest_file = os.path.join(self.test_dir, "lib", "nest")

    def tearDown(self):
        if os.path.exists(self.test_dir):
            shutil.rmtree(self.test_dir)

    def read_lines(self):
        with open(self.nest_file, 'r', encoding='utf-8') as f:
            return f.read().splitlines()

    def test_missing_file_is_empty(self):
        nest = Nest(self.nest_file)
        self.assertEqual(nest.list(), [])
        self.assertFalse(nest.is_installed("zlib"))

    def test_register_is_idempotent(self):
        """Test registering twice leaves a single line"""
        nest = Nest(self.nest_file)
        nest.register("zlib")
        nest.register("xz")
        nest.register("zlib")

        self.assertEqual(self.read_lines(), ["zlib", "xz"])
        self.assertIn("zlib", nest)
        self.assertEqual(len(nest), 2)

    def test_persistence_keeps_install_order(self):
        nest = Nest(self.nest_file)
        for name in ["glibc", "zlib", "bash"]:
            nest.register(name)

        reloaded = Nest(self.nest_file)
        self.assertEqual(reloaded.list(), ["glibc", "zlib", "bash"])

    def test_duplicate_lines_are_collapsed_on_load(self):
        os.makedirs(os.path.dirname(self.nest_file))
        with open(self.nest_file, 'w', encoding='utf-8') as f:
            f.write("zlib\n\nxz\nzlib\n")

        self.assertEqual(Nest(self.nest_file).list(), ["zlib", "xz"])

    def test_unregister(self):
        """Test only the exact entry is removed"""
        nest = Nest(self.nest_file)
        nest.register("python")
        nest.register("python-pip")
        nest.unregister("python")

        self.assertEqual(self.read_lines(), ["python-pip"])

    def test_unregister_missing(self):
        nest = Nest(self.nest_file)
        with self.assertRaises(NotInstalledError):
            nest.unregister("ghost")
        nest.unregister("ghost", missing_ok=True)

    def test_reverse_dependents(self):
        """Test installed packages depending on a package are found"""
        closures = {
            "zlib": [],
            "libpng": ["zlib"],
            "gimp": ["zlib", "libpng"],
            "vim": [],
        }
        resolver = Mock()
        resolver.resolve.side_effect = lambda name: closures[name]

        nest = Nest(self.nest_file)
        for name in closures:
            nest.register(name)

        self.assertEqual(nest.reverse_dependents("zlib", resolver), {"libpng", "gimp"})
        self.assertEqual(nest.reverse_dependents("vim", resolver), set())

    def test_closures_are_cached_until_nest_changes(self):
        resolver = Mock()
        resolver.resolve.return_value = []
        nest = Nest(self.nest_file)
        nest.register("a")
        nest.register("b")

        nest.reverse_dependents("a", resolver)
        nest.reverse_dependents("a", resolver)
        self.assertEqual(resolver.resolve.call_count, 1)

        nest.register("c")
        nest.reverse_dependents("a", resolver)
        self.assertEqual(resolver.resolve.call_count, 3)

    def test_unresolvable_installed_packages_are_skipped(self):
        """Test a vanished or cyclic installed package does not block the scan"""
        def resolve(name):
            if name == "gone":
                raise MissingPackageError(name)
            if name == "loop":
                raise DependencyCycleError(["loop", "loop"])
            return ["zlib"]

        resolver = Mock()
        resolver.resolve.side_effect = resolve
        nest = Nest(self.nest_file)
        for name in ["zlib", "gone", "loop", "libpng"]:
            nest.register(name)

        self.assertEqual(nest.reverse_dependents("zlib", resolver), {"libpng"})


if __name__ == '__main__':
    unittest.main()
