"""
Fakeroot staging store

Every package is built into <fakeroot_dir>/<name>, a tree holding exactly
the files the package will own on the live filesystem. A reinstall builds
into <fakeroot_dir>/.rebuild/<name> and is promoted over the installed tree
only once the build succeeded.
"""

import os
import shutil
import logging
from typing import List

logger = logging.getLogger('BIRB.package.fakeroot')

REBUILD_DIR = ".rebuild"


class FakerootStore:
    """Creates, prunes and deletes per-package staging trees"""

    def __init__(self, fakeroot_dir: str, skeleton: List[str] = None):
        self.fakeroot_dir = fakeroot_dir
        self.skeleton = list(skeleton or [])

    def path(self, name: str, rebuild: bool = False) -> str:
        if rebuild:
            return os.path.join(self.fakeroot_dir, REBUILD_DIR, name)
        return os.path.join(self.fakeroot_dir, name)

    def exists(self, name: str) -> bool:
        return os.path.isdir(self.path(name))

    def prepare(self, name: str, rebuild: bool = False) -> str:
        """
        Create an empty staging tree with the conventional skeleton

        A leftover tree from an earlier attempt is discarded first.

        Returns:
            Path of the staging tree
        """
        tree = self.path(name, rebuild)
        self.discard(name, rebuild)
        os.makedirs(tree)
        for directory in self.skeleton:
            os.makedirs(os.path.join(tree, directory), exist_ok=True)
        logger.debug(f"Prepared staging tree {tree}")
        return tree

    def finalize(self, name: str, rebuild: bool = False) -> bool:
        """
        Prune every empty directory from the staging tree

        Returns:
            True when the package still owns files, False when nothing is left
            (an absorbed package). The tree is gone in the latter case.
        """
        tree = self.path(name, rebuild)
        if not os.path.isdir(tree):
            logger.info(f"{name} left no staging tree")
            return False

        if _prune_empty_dirs(tree):
            logger.info(f"{name} staged no files, its staging tree was removed")
            return False
        return True

    def discard(self, name: str, rebuild: bool = False):
        """Delete the staging tree, tolerating a missing one"""
        tree = self.path(name, rebuild)
        if os.path.islink(tree) or os.path.isfile(tree):
            os.unlink(tree)
        elif os.path.isdir(tree):
            shutil.rmtree(tree)
            logger.debug(f"Discarded staging tree {tree}")

    def promote(self, name: str) -> bool:
        """
        Replace the installed staging tree with the finished rebuild

        Returns:
            True when the rebuild left a tree. When it was absorbed the
            installed tree is simply removed.
        """
        self.discard(name)
        rebuilt = self.path(name, rebuild=True)
        if not os.path.isdir(rebuilt):
            return False
        os.replace(rebuilt, self.path(name))
        logger.debug(f"Promoted rebuild of {name}")
        return True

    def files(self, name: str) -> List[str]:
        """Relative paths of every regular file and link in the staging tree"""
        tree = self.path(name)
        if not os.path.isdir(tree):
            return []

        found = []
        for dirpath, dirnames, filenames in os.walk(tree):
            rel_dir = os.path.relpath(dirpath, tree)
            for entry in filenames + [d for d in dirnames if os.path.islink(os.path.join(dirpath, d))]:
                found.append(os.path.normpath(os.path.join(rel_dir, entry)))
        return sorted(found)


def _prune_empty_dirs(directory: str) -> bool:
    """Remove empty directories below and including directory, True if it was removed"""
    empty = True
    with os.scandir(directory) as entries:
        children = list(entries)

    for entry in children:
        if entry.is_dir(follow_symlinks=False):
            if not _prune_empty_dirs(entry.path):
                empty = False
        else:
            empty = False

    if empty:
        os.rmdir(directory)
    return empty
