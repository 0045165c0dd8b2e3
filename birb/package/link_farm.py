"""
birb Link Farm
==============

Projects a package's staging tree onto the live filesystem with one symlink
per staged file. A live path belongs to a package when it is a symlink whose
target lies inside that package's staging tree; nothing else is recorded for
files. Live directories created while linking are listed in a small record
under the fakeroot directory so that removal deletes only those.

Linking is two phase: detect_conflicts() is a dry run, and commit() refuses
to touch the live filesystem unless the conflict set is empty or overwriting
was requested.
"""

import os
import stat
import shutil
import logging
from typing import Iterable, List, Optional, Set

from .fakeroot import FakerootStore
from ..exceptions import ConflictError

logger = logging.getLogger('BIRB.package.link_farm')

CLEAR = "clear"
OWNED_BY_OTHER = "owned-by-other"
SPECIAL = "special"

CREATED_DIRS_RECORD = ".linked-dirs"


def _is_within(path: str, root: str) -> bool:
    return path == root or path.startswith(root + os.sep)


class LinkFarm:
    """Links staged files into the live root and removes them again"""

    def __init__(self, fakeroot: FakerootStore, live_root: str = "/",
                 shared_index_files: Iterable[str] = ()):
        self.fakeroot = fakeroot
        self.live_root = live_root
        self.shared_index_files = set(os.path.normpath(p) for p in shared_index_files)
        self.records_dir = os.path.join(fakeroot.fakeroot_dir, CREATED_DIRS_RECORD)

    def live_path(self, rel_path: str) -> str:
        return os.path.join(self.live_root, rel_path)

    def is_owned_by(self, live_path: str, name: str) -> bool:
        """True when live_path is a link into name's staging tree"""
        if not os.path.islink(live_path):
            return False
        target = os.readlink(live_path)
        if not os.path.isabs(target):
            target = os.path.join(os.path.dirname(live_path), target)
        return _is_within(os.path.normpath(target), os.path.normpath(self.fakeroot.path(name)))

    def _linkable(self, name: str) -> List[str]:
        return [rel for rel in self.fakeroot.files(name) if rel not in self.shared_index_files]

    def strip_shared_index_files(self, name: str):
        """Delete shared index files (e.g. the info dir) from the staging tree"""
        tree = self.fakeroot.path(name)
        for rel in self.shared_index_files:
            staged = os.path.join(tree, rel)
            if os.path.lexists(staged) and not os.path.isdir(staged):
                os.unlink(staged)
                logger.debug(f"Removed shared index file {staged}")

    def classify(self, live_path: str, name: str) -> str:
        """Classify a live path as clear, owned-by-other or special"""
        try:
            st = os.lstat(live_path)
        except FileNotFoundError:
            return CLEAR

        if stat.S_ISLNK(st.st_mode):
            return CLEAR if self.is_owned_by(live_path, name) else OWNED_BY_OTHER
        if stat.S_ISREG(st.st_mode) or stat.S_ISDIR(st.st_mode):
            return OWNED_BY_OTHER
        return SPECIAL

    def _blocking_parent(self, rel_path: str, name: str) -> Optional[str]:
        """
        First live ancestor that a link cannot be created beneath

        That is an ancestor which exists but is not a directory, or a
        directory link leading into another package's staging tree.
        """
        fakeroot_dir = os.path.realpath(self.fakeroot.fakeroot_dir)
        own_tree = os.path.realpath(self.fakeroot.path(name))

        current = self.live_root
        for part in rel_path.split(os.sep)[:-1]:
            current = os.path.join(current, part)
            if not os.path.lexists(current):
                return None
            if os.path.islink(current):
                target = os.path.realpath(current)
                if _is_within(target, fakeroot_dir) and not _is_within(target, own_tree):
                    return current
            if not os.path.isdir(current):
                return current
        return None

    def detect_conflicts(self, name: str) -> Set[str]:
        """
        Dry run: live paths that linking name would clobber

        Returns:
            Set of conflicting live paths, empty when the package can be linked
        """
        conflicts = set()
        for rel in self._linkable(name):
            parent = self._blocking_parent(rel, name)
            if parent:
                conflicts.add(parent)
                continue

            live = self.live_path(rel)
            kind = self.classify(live, name)
            if kind != CLEAR:
                logger.debug(f"{live} is {kind}")
                conflicts.add(live)
        return conflicts

    def commit(self, name: str, overwrite: bool = False) -> List[str]:
        """
        Link every staged file of name into the live root

        Args:
            name: Package whose staging tree is linked
            overwrite: Delete conflicting live paths instead of aborting

        Returns:
            The live paths that were linked

        Raises:
            ConflictError: Conflicts exist and overwrite is False. Nothing
                on the live filesystem has been changed.
        """
        self.strip_shared_index_files(name)

        conflicts = self.detect_conflicts(name)
        if conflicts and not overwrite:
            logger.error(f"{name} conflicts with {len(conflicts)} live path(s)")
            raise ConflictError(name, conflicts)

        for path in sorted(conflicts):
            logger.warning(f"Overwriting {path}")
            _delete_path(path)

        return self._link_all(name)

    def recommit(self, name: str, stale: Iterable[str] = ()) -> List[str]:
        """
        Re-create the links of an already installed package

        No conflict detection is done. Only links already owned by name are
        replaced; paths held by anything else are left alone with a warning.
        Links listed in stale that still point into the package but now
        dangle are removed.
        """
        self.strip_shared_index_files(name)
        linked = self._link_all(name, skip_existing=True)
        self.remove_stale(name, stale)
        return linked

    def remove_stale(self, name: str, paths: Iterable[str]) -> List[str]:
        """Unlink links of name among paths whose staged file no longer exists"""
        removed = []
        for path in paths:
            if self.is_owned_by(path, name) and not os.path.exists(path):
                os.unlink(path)
                removed.append(path)
                logger.debug(f"Removed stale link {path}")
        return removed

    def _make_parents(self, live: str) -> List[str]:
        """Create the missing parent directories of live, returning them top down"""
        missing = []
        parent = os.path.dirname(live)
        while not os.path.lexists(parent):
            missing.append(parent)
            parent = os.path.dirname(parent)
        if missing:
            os.makedirs(os.path.dirname(live))
        return list(reversed(missing))

    def _link_all(self, name: str, skip_existing: bool = False) -> List[str]:
        tree = self.fakeroot.path(name)
        linked = []
        created_dirs = []
        try:
            for rel in self._linkable(name):
                live = self.live_path(rel)
                if skip_existing:
                    parent = self._blocking_parent(rel, name)
                    if parent:
                        logger.warning(f"Not linking {live}, {parent} is in the way")
                        continue
                if os.path.lexists(live):
                    if self.is_owned_by(live, name):
                        os.unlink(live)
                    elif skip_existing:
                        logger.warning(f"Not replacing {live}, it does not belong to {name}")
                        continue
                created_dirs.extend(self._make_parents(live))
                os.symlink(os.path.join(tree, rel), live)
                linked.append(live)
        except OSError:
            logger.error(f"Linking {name} failed, removing {len(linked)} new link(s)")
            for live in linked:
                if os.path.islink(live):
                    os.unlink(live)
            _prune_created_dirs(created_dirs)
            raise

        self._record_created_dirs(name, created_dirs)
        logger.info(f"Linked {len(linked)} file(s) of {name}")
        return linked

    def _record_path(self, name: str) -> str:
        return os.path.join(self.records_dir, name)

    def created_dirs(self, name: str) -> List[str]:
        """Live directories created while linking name"""
        try:
            with open(self._record_path(name), 'r', encoding='utf-8') as f:
                return [line for line in f.read().splitlines() if line]
        except FileNotFoundError:
            return []

    def _record_created_dirs(self, name: str, created: List[str]):
        if not created:
            return
        known = self.created_dirs(name)
        os.makedirs(self.records_dir, exist_ok=True)
        with open(self._record_path(name), 'w', encoding='utf-8') as f:
            f.write(''.join(f"{path}\n" for path in known + [p for p in created if p not in known]))

    def owned_paths(self, name: str) -> List[str]:
        """Live paths currently linked into name's staging tree"""
        return [self.live_path(rel) for rel in self.fakeroot.files(name)
                if self.is_owned_by(self.live_path(rel), name)]

    def remove(self, name: str) -> List[str]:
        """
        Unlink every live path owned by name

        The file list comes from the staging tree, so a missing tree makes
        this a no-op. Directories created while linking name are pruned once
        empty; directories that existed before are never touched.
        """
        if not self.fakeroot.exists(name):
            logger.info(f"{name} has no staging tree, nothing to unlink")
            return []

        removed = []
        for live in self.owned_paths(name):
            os.unlink(live)
            removed.append(live)

        _prune_created_dirs(self.created_dirs(name))
        record = self._record_path(name)
        if os.path.exists(record):
            os.unlink(record)

        logger.info(f"Unlinked {len(removed)} file(s) of {name}")
        return removed


def _prune_created_dirs(directories: Iterable[str]):
    """Remove the given live directories that are empty, deepest first"""
    for path in sorted(directories, key=lambda p: p.count(os.sep), reverse=True):
        if os.path.isdir(path) and not os.path.islink(path) and not os.listdir(path):
            os.rmdir(path)


def _delete_path(path: str):
    if os.path.isdir(path) and not os.path.islink(path):
        shutil.rmtree(path)
    else:
        os.unlink(path)
