"""
birb - source based package manager

Resolves package dependencies, builds packages into per-package fakeroot
staging trees and links them into the live filesystem, keeping the list of
installed packages in the nest.
"""

__version__ = "1.0.0"

from .config import BirbSettings, load_settings
from .exceptions import BirbError
from .package import PackageManager, TransactionContext, TransactionState

__all__ = ['BirbSettings', 'load_settings', 'BirbError', 'PackageManager',
           'TransactionContext', 'TransactionState', '__version__']
