"""
Package manager facade wiring the repository set, resolver, nest, staging
store and link farm together for the command line
"""

import logging
from typing import Any, Dict, List

from .builder import SeedBuilder
from .dependency_resolver import DependencyResolver
from .fakeroot import FakerootStore
from .hooks import SystemHooks
from .installer import PackageInstaller
from .link_farm import LinkFarm
from .nest import Nest
from .repository import RepositorySet
from .source import DistfileSource
from .transaction import TransactionContext, TransactionResult
from .uninstaller import PackageUninstaller
from ..config import BirbSettings

logger = logging.getLogger('BIRB.package.manager')


class PackageManager:
    """birb package manager"""

    def __init__(self, settings: BirbSettings, fetch_sources: bool = False):
        self.settings = settings

        self.repositories = RepositorySet.from_file(
            settings.sources_file, metapackages=settings.metapackages)
        self.resolver = DependencyResolver(self.repositories)
        self.nest = Nest(settings.nest_file)
        self.fakeroot = FakerootStore(settings.fakeroot_dir, settings.fakeroot_skeleton)
        self.link_farm = LinkFarm(self.fakeroot, settings.live_root, settings.shared_index_files)
        self.source = DistfileSource(settings.distfiles_dir, fetch=fetch_sources)
        self.builder = SeedBuilder(settings, self.repositories, self.source)
        self.hooks = SystemHooks(settings.font_cache_command, settings.python_uninstall_command)

        self.installer = PackageInstaller(
            self.repositories, self.resolver, self.nest, self.fakeroot,
            self.link_farm, self.source, self.builder, self.hooks)
        self.uninstaller = PackageUninstaller(
            self.repositories, self.resolver, self.nest, self.fakeroot,
            self.link_farm, self.hooks)

    def install(self, names: List[str], ctx: TransactionContext) -> List[TransactionResult]:
        return self.installer.install_many(names, ctx)

    def uninstall(self, names: List[str], ctx: TransactionContext) -> List[TransactionResult]:
        return self.uninstaller.uninstall_many(names, ctx)

    def dependencies(self, name: str) -> List[str]:
        """Full dependency list of a package in install order"""
        return self.resolver.resolve(name)

    def missing(self, name: str) -> List[str]:
        """Dependencies of a package that still need installing"""
        return self.resolver.missing(name, self.nest)

    def dependency_tree(self, name: str) -> Dict[str, Any]:
        return self.resolver.dependency_tree(name)

    def list_installed(self) -> List[str]:
        return self.nest.list()

    def is_installed(self, name: str) -> bool:
        return self.nest.is_installed(name)
