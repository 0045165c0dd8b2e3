"""
Seed reader for birb package declarations

A seed is the shell script <repo>/<name>/seed.sh. Only the top level
VAR="value" assignments are read here; the shell functions it defines are
run by the builder.
"""

import os
import logging
from typing import Dict, Optional

from cachetools import LRUCache

from .models import PackageSpec, RepositorySource
from ..exceptions import DependencySolverError

logger = logging.getLogger('BIRB.package.seed')

SEED_FILENAME = "seed.sh"

SEED_VARIABLES = {
    'name': 'NAME',
    'version': 'VERSION',
    'description': 'DESC',
    'source': 'SOURCE',
    'checksum': 'CHECKSUM',
    'dependencies': 'DEPS',
    'flags': 'FLAGS',
    'notes': 'NOTES',
}


def seed_path(repo_path: str, pkg_name: str) -> str:
    return os.path.join(repo_path, pkg_name, SEED_FILENAME)


class SeedReader:
    """Reads and caches variables from seed.sh files"""

    def __init__(self, cache_size: int = 4096):
        self._cache: LRUCache = LRUCache(maxsize=cache_size)

    def read_variables(self, path: str) -> Dict[str, str]:
        """
        Read every VAR="value" assignment of a seed

        Args:
            path: Path to the seed.sh file

        Returns:
            Dict of variable name -> value; the first assignment wins
        """
        cached = self._cache.get(path)
        if cached is not None:
            return cached

        try:
            with open(path, 'r', encoding='utf-8') as f:
                lines = f.read().splitlines()
        except (OSError, UnicodeDecodeError) as e:
            raise DependencySolverError(f"Unable to read package declaration {path}: {e}")

        variables: Dict[str, str] = {}
        for line in lines:
            if '="' not in line or line.startswith((' ', '\t', '#')):
                continue
            var_name, _, value = line.partition('="')
            if not var_name.isidentifier() or var_name in variables:
                continue
            value = value.rstrip()
            if value.endswith('"'):
                value = value[:-1]
            variables[var_name] = value

        self._cache[path] = variables
        return variables

    def read_variable(self, path: str, var_name: str) -> str:
        """Read a single variable, empty string when it is not declared"""
        return self.read_variables(path).get(var_name, "")

    def read_spec(self, pkg_name: str, source: RepositorySource) -> PackageSpec:
        """Parse the seed of pkg_name inside the given repository"""
        path = seed_path(source.path, pkg_name)
        variables = self.read_variables(path)

        fields = {field: variables.get(var, "") for field, var in SEED_VARIABLES.items()}
        declared_name = fields.pop('name')
        if declared_name and declared_name != pkg_name:
            logger.warning(f"Seed {path} declares NAME={declared_name}, using directory name {pkg_name}")

        return PackageSpec(name=pkg_name, repository=source.identifier, **fields)

    def invalidate(self, path: Optional[str] = None):
        """Forget cached reads for one seed or for all of them"""
        if path is None:
            self._cache.clear()
        else:
            self._cache.pop(path, None)
