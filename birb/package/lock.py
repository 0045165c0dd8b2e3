"""
Advisory lock around install and uninstall transactions
"""

import os
import fcntl
import logging
import contextlib

from ..exceptions import LockError

logger = logging.getLogger('BIRB.package.lock')


@contextlib.contextmanager
def transaction_lock(lock_file: str):
    """
    Exclusive, non-blocking lock on the package database

    A second birb process fails fast with LockError instead of waiting.
    """
    directory = os.path.dirname(lock_file)
    if directory:
        os.makedirs(directory, exist_ok=True)

    with open(lock_file, 'a+', encoding='utf-8') as lf:
        try:
            fcntl.flock(lf.fileno(), fcntl.LOCK_EX | fcntl.LOCK_NB)
        except BlockingIOError:
            raise LockError(f"Another birb transaction holds {lock_file}")
        logger.debug(f"Acquired {lock_file}")
        try:
            yield
        finally:
            fcntl.flock(lf.fileno(), fcntl.LOCK_UN)
