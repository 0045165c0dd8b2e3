"""
System side-effect hooks run around install and uninstall
"""

import logging
import subprocess
from typing import List

from ..exceptions import HookError

logger = logging.getLogger('BIRB.package.hooks')


class SystemHooks:
    """Font cache refresh and python package removal"""

    def __init__(self, font_cache_command: List[str], python_uninstall_command: List[str]):
        self.font_cache_command = list(font_cache_command)
        self.python_uninstall_command = list(python_uninstall_command)

    def _run(self, command: List[str]):
        try:
            result = subprocess.run(command, capture_output=True, text=True)
        except OSError as e:
            raise HookError(f"Could not run {command[0]}: {e}")
        if result.returncode != 0:
            raise HookError(f"{' '.join(command)} failed: {result.stderr.strip()}")

    def refresh_font_cache(self):
        logger.info("Refreshing the font cache")
        self._run(self.font_cache_command)

    def remove_python_package(self, name: str):
        """Remove the python distribution a package installed through pip"""
        logger.info(f"Removing python package {name}")
        self._run(self.python_uninstall_command + [name])
