"""
Package management module initialization
"""
from .models import PackageFlag, PackageSpec, RepositorySource
from .repository import RepositorySet
from .dependency_resolver import DependencyResolver
from .nest import Nest
from .fakeroot import FakerootStore
from .link_farm import LinkFarm
from .transaction import TransactionContext, TransactionResult, TransactionState
from .installer import PackageInstaller
from .uninstaller import PackageUninstaller
from .manager import PackageManager

__all__ = ['PackageFlag', 'PackageSpec', 'RepositorySource', 'RepositorySet', 'DependencyResolver',
           'Nest', 'FakerootStore', 'LinkFarm', 'TransactionContext', 'TransactionResult',
           'TransactionState', 'PackageInstaller', 'PackageUninstaller', 'PackageManager']
