"""
Shared fixtures for the birb test suite
"""

import os
from unittest.mock import Mock

from birb.config import BirbSettings
from birb.exceptions import BuildFailedError, TestFailedError
from birb.package.dependency_resolver import DependencyResolver
from birb.package.fakeroot import FakerootStore
from birb.package.installer import PackageInstaller
from birb.package.link_farm import LinkFarm
from birb.package.models import RepositorySource
from birb.package.nest import Nest
from birb.package.repository import RepositorySet
from birb.package.transaction import TransactionContext
from birb.package.uninstaller import PackageUninstaller


def write_seed(repo_dir, name, deps="", flags="", version="1.0",
               source=None, checksum="0123456789abcdef", notes=""):
    """Write <repo_dir>/<name>/seed.sh"""
    if source is None:
        source = f"https://example.org/{name}-{version}.tar.xz"
    pkg_dir = os.path.join(repo_dir, name)
    os.makedirs(pkg_dir, exist_ok=True)
    with open(os.path.join(pkg_dir, "seed.sh"), 'w', encoding='utf-8') as f:
        f.write(
            f'NAME="{name}"\n'
            f'DESC="The {name} package"\n'
            f'VERSION="{version}"\n'
            f'SOURCE="{source}"\n'
            f'CHECKSUM="{checksum}"\n'
            f'DEPS="{deps}"\n'
            f'FLAGS="{flags}"\n'
            f'NOTES="{notes}"\n'
            '\n'
            '_build()\n'
            '{\n'
            '\tmake\n'
            '}\n'
        )


def make_settings(base, **overrides) -> BirbSettings:
    """Settings with every path inside the sandbox directory base"""
    values = dict(
        sources_file=os.path.join(base, "birb-sources.conf"),
        nest_file=os.path.join(base, "var/lib/birb/nest"),
        fakeroot_dir=os.path.join(base, "fakeroot"),
        distfiles_dir=os.path.join(base, "distfiles"),
        build_dir=os.path.join(base, "build"),
        live_root=os.path.join(base, "live"),
        lock_file=os.path.join(base, "birb.lock"),
        fakeroot_skeleton=["usr/bin", "usr/lib", "usr/share/man/man1"],
    )
    values.update(overrides)
    os.makedirs(values['live_root'], exist_ok=True)
    return BirbSettings(**values)


def snapshot(root):
    """Describe every entry below root, used to compare filesystem states"""
    state = {}
    for dirpath, dirnames, filenames in os.walk(root):
        for entry in dirnames + filenames:
            full = os.path.join(dirpath, entry)
            rel = os.path.relpath(full, root)
            if os.path.islink(full):
                state[rel] = ('link', os.readlink(full))
            elif os.path.isdir(full):
                state[rel] = ('dir', None)
            elif os.path.isfile(full):
                with open(full, 'rb') as f:
                    state[rel] = ('file', f.read())
            else:
                state[rel] = ('other', None)
    return state


class FakeBuilder:
    """Build callback that writes preset files into the staging tree"""

    def __init__(self, files=None, fail=(), fail_tests=()):
        self.files = files or {}
        self.fail = set(fail)
        self.fail_tests = set(fail_tests)
        self.built = []
        self.tested = []
        self.cleaned = []

    def build(self, spec, staging_path, multilib=False):
        self.built.append((spec.name, multilib))
        if spec.name in self.fail:
            raise BuildFailedError(f"Build of {spec.name} failed")
        for rel, content in self.files.get(spec.name, {}).items():
            path = os.path.join(staging_path, rel)
            os.makedirs(os.path.dirname(path), exist_ok=True)
            with open(path, 'w', encoding='utf-8') as f:
                f.write(content)

    def run_tests(self, spec, staging_path, multilib=False):
        self.tested.append((spec.name, multilib))
        if spec.name in self.fail_tests:
            raise TestFailedError(f"Tests of {spec.name} failed")

    def cleanup(self, spec):
        self.cleaned.append(spec.name)


class Sandbox:
    """A repository, nest, fakeroot and live root inside a temporary directory"""

    def __init__(self, base, builder=None, **settings_overrides):
        self.base = base
        self.repo_dir = os.path.join(base, "repo")
        os.makedirs(self.repo_dir, exist_ok=True)
        self.settings = make_settings(base, **settings_overrides)

        self.repositories = RepositorySet(
            [RepositorySource("core", "https://example.org/core", self.repo_dir)],
            metapackages=self.settings.metapackages)
        self.resolver = DependencyResolver(self.repositories)
        self.nest = Nest(self.settings.nest_file)
        self.fakeroot = FakerootStore(self.settings.fakeroot_dir, self.settings.fakeroot_skeleton)
        self.link_farm = LinkFarm(self.fakeroot, self.settings.live_root,
                                  self.settings.shared_index_files)
        self.source = Mock()
        self.source.verify.return_value = True
        self.hooks = Mock()
        self.builder = builder or FakeBuilder()

        self.installer = PackageInstaller(
            self.repositories, self.resolver, self.nest, self.fakeroot,
            self.link_farm, self.source, self.builder, self.hooks)
        self.uninstaller = PackageUninstaller(
            self.repositories, self.resolver, self.nest, self.fakeroot,
            self.link_farm, self.hooks)

    @property
    def live(self):
        return self.settings.live_root

    def seed(self, name, **kwargs):
        write_seed(self.repo_dir, name, **kwargs)

    def context(self, **kwargs) -> TransactionContext:
        kwargs.setdefault('assume_yes', True)
        return TransactionContext(settings=self.settings, **kwargs)
