"""
birb Nest
=========

The installed package registry. A flat UTF-8 file with one package name per
line in install order. Membership in the nest is the only definition of
"installed".
"""

import os
import logging
from typing import List, Set

from cachetools import LRUCache

from ..exceptions import BirbError, NotInstalledError

logger = logging.getLogger('BIRB.package.nest')


class Nest:
    """Registry of installed package names"""

    def __init__(self, nest_file: str):
        self.nest_file = nest_file
        self._packages: List[str] = []
        self._closures: LRUCache = LRUCache(maxsize=4096)
        self._load()

    def _load(self):
        """Load the nest from disk"""
        if not os.path.exists(self.nest_file):
            logger.debug(f"Nest {self.nest_file} does not exist yet")
            return

        with open(self.nest_file, 'r', encoding='utf-8') as f:
            for line in f.read().splitlines():
                name = line.strip()
                if not name:
                    continue
                if name in self._packages:
                    logger.warning(f"Duplicate nest entry ignored: {name}")
                    continue
                self._packages.append(name)

        logger.debug(f"Loaded {len(self._packages)} installed packages")

    def _save(self):
        """Write the nest through a temporary file so readers never see a partial nest"""
        directory = os.path.dirname(self.nest_file)
        if directory:
            os.makedirs(directory, exist_ok=True)

        tmp_file = f"{self.nest_file}.tmp"
        with open(tmp_file, 'w', encoding='utf-8') as f:
            f.write(''.join(f"{name}\n" for name in self._packages))
        os.replace(tmp_file, self.nest_file)

    def is_installed(self, name: str) -> bool:
        return name in self._packages

    def list(self) -> List[str]:
        """Installed packages in install order"""
        return list(self._packages)

    def register(self, name: str):
        """Add a package to the nest, no-op when it is already there"""
        if name in self._packages:
            logger.debug(f"{name} is already in the nest")
            return
        self._packages.append(name)
        self._save()
        self._closures.clear()
        logger.info(f"Registered {name}")

    def unregister(self, name: str, missing_ok: bool = False):
        """
        Remove a package from the nest

        Raises:
            NotInstalledError: The package is not in the nest and missing_ok is False
        """
        if name not in self._packages:
            if missing_ok:
                return
            raise NotInstalledError(name)
        self._packages.remove(name)
        self._save()
        self._closures.clear()
        logger.info(f"Unregistered {name}")

    def _closure(self, pkg_name: str, resolver) -> Set[str]:
        closure = self._closures.get(pkg_name)
        if closure is None:
            closure = set(resolver.resolve(pkg_name))
            self._closures[pkg_name] = closure
        return closure

    def reverse_dependents(self, name: str, resolver) -> Set[str]:
        """
        Installed packages whose dependency closure contains name

        Installed packages that can no longer be resolved are skipped with a
        warning.
        """
        dependents = set()
        for pkg_name in self._packages:
            if pkg_name == name:
                continue
            try:
                closure = self._closure(pkg_name, resolver)
            except BirbError as e:
                logger.warning(f"Skipping {pkg_name} in dependent scan: {e}")
                continue
            if name in closure:
                dependents.add(pkg_name)
        return dependents

    def __contains__(self, name: str) -> bool:
        return self.is_installed(name)

    def __len__(self) -> int:
        return len(self._packages)
