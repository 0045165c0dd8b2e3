"""
birb Package Data Models

Pydantic models for package declarations plus the repository source record.
A PackageSpec is immutable once read; resolution and installation work on
these values only.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import ClassVar, FrozenSet, Iterable, Tuple

from pydantic import BaseModel, ConfigDict, field_validator

from ..exceptions import InvalidPackageSpecError

logger = logging.getLogger('BIRB.package.models')


class PackageFlag(Enum):
    """Capability flags a seed may declare in its FLAGS variable"""
    TESTS = "test"
    TESTS32 = "test32"
    BUILD32 = "32bit"
    FONT = "font"
    PYTHON = "python"
    PROTECTED = "important"

    @classmethod
    def parse(cls, tokens: Iterable[str]) -> FrozenSet['PackageFlag']:
        """Map FLAGS tokens to flags, skipping unknown ones"""
        flags = set()
        for token in tokens:
            try:
                flags.add(cls(token))
            except ValueError:
                logger.warning(f"Ignoring unknown package flag: {token}")
        return frozenset(flags)


class PackageSpec(BaseModel):
    """Represents a package declaration (seed)"""
    model_config = ConfigDict(frozen=True)

    REQUIRED_FIELDS: ClassVar[Tuple[str, ...]] = ('name', 'source', 'checksum')

    name: str
    version: str = ""
    description: str = ""
    source: str = ""
    checksum: str = ""
    dependencies: Tuple[str, ...] = ()
    flags: FrozenSet[PackageFlag] = frozenset()
    notes: str = ""
    repository: str = ""

    @field_validator('dependencies', mode='before')
    @classmethod
    def split_dependencies(cls, v):
        """Accept the whitespace separated DEPS string as well as a sequence"""
        if v is None:
            return ()
        if isinstance(v, str):
            v = v.split()
        seen = []
        for dep in v:
            if dep and dep not in seen:
                seen.append(dep)
        return tuple(seen)

    @field_validator('flags', mode='before')
    @classmethod
    def parse_flags(cls, v):
        if v is None:
            return frozenset()
        if isinstance(v, str):
            return PackageFlag.parse(v.split())
        return frozenset(PackageFlag(f) if isinstance(f, str) else f for f in v)

    def has_flag(self, flag: PackageFlag) -> bool:
        return flag in self.flags

    def missing_fields(self) -> Tuple[str, ...]:
        return tuple(f for f in self.REQUIRED_FIELDS if not getattr(self, f))

    def validate_required(self) -> 'PackageSpec':
        """Raise InvalidPackageSpecError when a required field is empty"""
        missing = self.missing_fields()
        if missing:
            raise InvalidPackageSpecError(self.name or "<unnamed>", missing)
        return self


@dataclass(frozen=True)
class RepositorySource:
    """A local package repository, searched in configuration order"""
    identifier: str
    url: str
    path: str

    def is_valid(self) -> bool:
        return bool(self.identifier or self.url or self.path)

    def __str__(self):
        return f"{self.identifier} ({self.path})"
