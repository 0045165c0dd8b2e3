"""
Seed builder

Runs the shell functions a seed defines (_setup, _build, _test, _install and
their 32-bit variants) against an unpacked source tree. Everything the
functions need is passed in their environment.
"""

import os
import shutil
import tarfile
import logging
import subprocess
from typing import Dict, List

from .models import PackageSpec
from .repository import RepositorySet
from .seed import seed_path
from .source import DistfileSource
from ..config import BirbSettings
from ..exceptions import BuildFailedError, MissingPackageError, TestFailedError

logger = logging.getLogger('BIRB.package.builder')

BUILD_STEPS = ['_setup', '_build', '_install']
BUILD32_STEPS = ['_setup32', '_build32', '_install32']


class SeedBuilder:
    """Builds a package into its staging tree by running its seed"""

    def __init__(self, settings: BirbSettings, repositories: RepositorySet,
                 source: DistfileSource, shell: str = "bash"):
        self.settings = settings
        self.repositories = repositories
        self.source = source
        self.shell = shell

    def work_dir(self, spec: PackageSpec, multilib: bool = False) -> str:
        suffix = "32" if multilib else ""
        return os.path.join(self.settings.build_dir, f"{spec.name}{suffix}")

    def _unpack(self, spec: PackageSpec, work_dir: str) -> str:
        """Extract the distfile into work_dir and return the source directory"""
        if os.path.isdir(work_dir):
            shutil.rmtree(work_dir)
        os.makedirs(work_dir)

        archive = self.source.path(spec)
        try:
            with tarfile.open(archive, 'r:*') as tar:
                if hasattr(tarfile, 'data_filter'):
                    tar.extractall(work_dir, filter='data')
                else:
                    tar.extractall(work_dir)
        except (tarfile.TarError, OSError) as e:
            raise BuildFailedError(f"Could not unpack {archive}: {e}")
        return self._src_dir(work_dir)

    def _src_dir(self, work_dir: str) -> str:
        """Tarballs with a single top level directory build inside it"""
        entries = os.listdir(work_dir) if os.path.isdir(work_dir) else []
        if len(entries) == 1 and os.path.isdir(os.path.join(work_dir, entries[0])):
            return os.path.join(work_dir, entries[0])
        return work_dir

    def _environment(self, spec: PackageSpec, staging_path: str, src_dir: str,
                     multilib: bool) -> Dict[str, str]:
        source = self.repositories.locate(spec.name)
        if source is None:
            raise MissingPackageError(spec.name)

        env = dict(os.environ)
        env.update({
            'FAKEROOT': self.settings.fakeroot_dir,
            'PKG_NAME': spec.name,
            'PKG_PATH': staging_path,
            'SEED_FILE': seed_path(source.path, spec.name),
            'SRC_DIR': src_dir,
            'DISTFILES': self.settings.distfiles_dir,
            'MAKEFLAGS': f"-j{self.settings.build_jobs}",
        })
        if multilib:
            env['BUILD32'] = '1'
        return env

    def _run_functions(self, functions: List[str], env: Dict[str, str], cwd: str):
        script = ['set -e', 'source "$SEED_FILE"']
        for function in functions:
            script.append(f'if declare -F {function} >/dev/null; then cd "$SRC_DIR"; {function}; fi')

        result = subprocess.run([self.shell, '-c', '\n'.join(script)], env=env, cwd=cwd)
        return result.returncode

    def build(self, spec: PackageSpec, staging_path: str, multilib: bool = False):
        """
        Unpack the source and run the build functions

        Raises:
            BuildFailedError: Unpacking failed or a seed function exited non-zero
        """
        work_dir = self.work_dir(spec, multilib)
        src_dir = self._unpack(spec, work_dir)
        env = self._environment(spec, staging_path, src_dir, multilib)

        steps = BUILD32_STEPS if multilib else BUILD_STEPS
        logger.info(f"Building {spec.name}{' (32-bit)' if multilib else ''}")
        returncode = self._run_functions(steps, env, src_dir)
        if returncode != 0:
            raise BuildFailedError(f"Build of {spec.name} failed with exit status {returncode}")

    def run_tests(self, spec: PackageSpec, staging_path: str, multilib: bool = False):
        """
        Run the seed's test function in the already built source tree

        Raises:
            TestFailedError: The test function exited non-zero
        """
        src_dir = self._src_dir(self.work_dir(spec, multilib))
        if not os.path.isdir(src_dir):
            raise TestFailedError(f"{spec.name} has not been built, nothing to test")
        env = self._environment(spec, staging_path, src_dir, multilib)

        logger.info(f"Testing {spec.name}{' (32-bit)' if multilib else ''}")
        returncode = self._run_functions(['_test32' if multilib else '_test'], env, src_dir)
        if returncode != 0:
            raise TestFailedError(f"Tests of {spec.name} failed with exit status {returncode}")

    def cleanup(self, spec: PackageSpec):
        """Remove the scratch build directories"""
        for multilib in (False, True):
            work_dir = self.work_dir(spec, multilib)
            if os.path.isdir(work_dir):
                shutil.rmtree(work_dir, ignore_errors=True)
