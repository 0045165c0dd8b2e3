"""
birb Configuration
==================

Settings for the package manager, loaded from a YAML file. Every path the
install and uninstall transactions touch comes from here so that nothing
depends on ambient environment state.
"""

import os
import logging
from typing import Dict, List, Optional

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .exceptions import ConfigError

logger = logging.getLogger('BIRB.config')

DEFAULT_CONFIG_PATH = "/etc/birb.yaml"
CONFIG_ENV_VAR = "BIRB_CONFIG"

DEFAULT_FAKEROOT_SKELETON = [
    "etc",
    "usr/bin",
    "usr/sbin",
    "usr/lib",
    "usr/lib/pkgconfig",
    "usr/lib32",
    "usr/libexec",
    "usr/include",
    "usr/share/doc",
    "usr/share/info",
    "usr/share/pkgconfig",
] + [f"usr/share/man/man{section}" for section in range(1, 9)]


class BirbSettings(BaseModel):
    """Paths and tunables shared by every transaction"""
    model_config = ConfigDict(frozen=True, extra="forbid")

    sources_file: str = "/etc/birb-sources.conf"
    nest_file: str = "/var/lib/birb/nest"
    fakeroot_dir: str = "/var/db/fakeroot"
    distfiles_dir: str = "/var/cache/distfiles"
    build_dir: str = "/tmp/birb_package_build"
    live_root: str = "/"
    lock_file: str = "/var/lib/birb/birb.lock"

    # Rewritten by many unrelated packages, never linked
    shared_index_files: List[str] = Field(default_factory=lambda: ["usr/share/info/dir"])
    fakeroot_skeleton: List[str] = Field(default_factory=lambda: list(DEFAULT_FAKEROOT_SKELETON))
    metapackages: Dict[str, List[str]] = Field(default_factory=dict)

    font_cache_command: List[str] = Field(default_factory=lambda: ["fc-cache"])
    python_uninstall_command: List[str] = Field(default_factory=lambda: ["pip3", "uninstall", "-y"])
    build_jobs: int = Field(default_factory=lambda: os.cpu_count() or 1)

    @field_validator('shared_index_files', 'fakeroot_skeleton')
    @classmethod
    def relative_paths(cls, v):
        """Staging relative paths must not escape the staging tree"""
        cleaned = []
        for path in v:
            norm = os.path.normpath(path.lstrip('/'))
            if norm.startswith('..'):
                raise ValueError(f"Path escapes the staging tree: {path}")
            cleaned.append(norm)
        return cleaned

    @field_validator('build_jobs')
    @classmethod
    def positive_jobs(cls, v):
        if v < 1:
            raise ValueError("build_jobs must be at least 1")
        return v


def load_settings(path: Optional[str] = None) -> BirbSettings:
    """
    Load settings from YAML

    Args:
        path: Explicit config file. Falls back to $BIRB_CONFIG, then /etc/birb.yaml

    Returns:
        BirbSettings (defaults when the default file does not exist)
    """
    explicit = path or os.environ.get(CONFIG_ENV_VAR)
    config_path = explicit or DEFAULT_CONFIG_PATH

    if not os.path.exists(config_path):
        if explicit:
            raise ConfigError(f"Config file not found: {config_path}")
        logger.debug(f"No config at {config_path}, using defaults")
        return BirbSettings()

    try:
        with open(config_path, 'r', encoding='utf-8') as f:
            data = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        raise ConfigError(f"Could not read config {config_path}: {e}")

    if not isinstance(data, dict):
        raise ConfigError(f"Config {config_path} must be a mapping")

    try:
        settings = BirbSettings(**data)
    except ValidationError as e:
        raise ConfigError(f"Invalid config {config_path}: {e}")

    logger.debug(f"Loaded settings from {config_path}")
    return settings
