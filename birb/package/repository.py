"""
Package repository set for birb

Repositories are local directories mirroring a package tree. They are listed
in the sources file, one per line as identifier;url;path, and searched in
that order.
"""

import os
import logging
from typing import Dict, Iterable, List, Optional

from .models import PackageSpec, RepositorySource
from .seed import SeedReader, seed_path
from ..exceptions import ConfigError, MissingPackageError

logger = logging.getLogger('BIRB.package.repository')


def read_config_lines(file_path: str) -> List[str]:
    """Read a config file, skipping empty lines and # comments"""
    try:
        with open(file_path, 'r', encoding='utf-8') as f:
            lines = f.read().splitlines()
    except OSError as e:
        raise ConfigError(f"File [{file_path}] can't be opened: {e}")
    return [line for line in lines if line.strip() and not line.startswith('#')]


def parse_sources(lines: Iterable[str]) -> List[RepositorySource]:
    """Parse identifier;url;path records"""
    sources = []
    for line in lines:
        fields = line.split(';')
        if len(fields) < 3:
            raise ConfigError(f"Malformed repository source line: {line}")
        source = RepositorySource(
            identifier=fields[0].strip(),
            url=fields[1].strip(),
            path=fields[2].strip(),
        )
        if not source.is_valid():
            raise ConfigError(f"Empty repository source line: {line}")
        sources.append(source)
    return sources


class RepositorySet:
    """Ordered list of package sources"""

    def __init__(self, sources: List[RepositorySource], reader: SeedReader = None,
                 metapackages: Dict[str, List[str]] = None):
        self.sources = list(sources)
        self.reader = reader or SeedReader()
        self.metapackages = dict(metapackages or {})

    @classmethod
    def from_file(cls, file_path: str, reader: SeedReader = None,
                  metapackages: Dict[str, List[str]] = None) -> 'RepositorySet':
        sources = parse_sources(read_config_lines(file_path))
        logger.debug(f"Loaded {len(sources)} repository sources from {file_path}")
        return cls(sources, reader, metapackages)

    def locate(self, pkg_name: str) -> Optional[RepositorySource]:
        """Return the first source that contains a seed for pkg_name"""
        if not pkg_name or '/' in pkg_name or pkg_name in ('.', '..'):
            return None
        for source in self.sources:
            if os.path.isfile(seed_path(source.path, pkg_name)):
                return source
        return None

    def contains(self, pkg_name: str) -> bool:
        return self.locate(pkg_name) is not None

    def get(self, pkg_name: str) -> PackageSpec:
        """
        Read the declaration of a package

        Raises:
            MissingPackageError: No source contains the package
            DependencySolverError: The seed exists but cannot be read
        """
        source = self.locate(pkg_name)
        if source is None:
            raise MissingPackageError(pkg_name)
        return self.reader.read_spec(pkg_name, source)

    def available(self) -> List[str]:
        """List every package name across sources, first source wins"""
        names = []
        seen = set()
        for source in self.sources:
            try:
                entries = sorted(os.listdir(source.path))
            except OSError as e:
                logger.warning(f"Cannot list repository {source}: {e}")
                continue
            for entry in entries:
                if entry not in seen and os.path.isfile(seed_path(source.path, entry)):
                    seen.add(entry)
                    names.append(entry)
        return names

    def is_metapackage(self, name: str) -> bool:
        return name in self.metapackages

    def expand(self, names: Iterable[str]) -> List[str]:
        """Expand metapackage names into their members, keeping order"""
        expanded = []
        for name in names:
            members = self.metapackages.get(name, [name])
            for member in members:
                if member not in expanded:
                    expanded.append(member)
        return expanded
