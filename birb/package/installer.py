"""
Install transaction orchestrator

Takes a package from its declaration to a linked, registered install:
resolve, install missing dependencies, verify the source, build into the
staging tree, link into the live root and record it in the nest. Any abort
before the last step leaves the nest untouched.
"""

import logging
from typing import Iterable, List

from .models import PackageFlag
from .lock import transaction_lock
from .transaction import TransactionContext, TransactionResult, TransactionState
from ..exceptions import (
    AlreadyInstalledCancelled, BirbError, ConflictError, HookError, SourceUnavailableError
)

logger = logging.getLogger('BIRB.package.installer')

STEP_ENTRY = "entry"
STEP_RESOLVE = "resolve"
STEP_DEPENDENCIES = "dependencies"
STEP_SOURCE = "source"
STEP_METADATA = "metadata"
STEP_BUILD = "build"
STEP_TEST = "test"
STEP_FINALIZE = "finalize"
STEP_LINK = "link"
STEP_HOOKS = "hooks"
STEP_REGISTER = "register"


class PackageInstaller:
    """Runs install transactions"""

    def __init__(self, repositories, resolver, nest, fakeroot, link_farm, source, builder, hooks):
        self.repositories = repositories
        self.resolver = resolver
        self.nest = nest
        self.fakeroot = fakeroot
        self.link_farm = link_farm
        self.source = source
        self.builder = builder
        self.hooks = hooks

    def install(self, name: str, ctx: TransactionContext) -> TransactionResult:
        """Install one package while holding the transaction lock"""
        with transaction_lock(ctx.settings.lock_file):
            return self._install(name, ctx)

    def install_many(self, names: Iterable[str], ctx: TransactionContext) -> List[TransactionResult]:
        """Install packages (metapackages expanded) in order, stopping at the first failure"""
        results = []
        with transaction_lock(ctx.settings.lock_file):
            for name in self.repositories.expand(names):
                result = self._install(name, ctx)
                results.append(result)
                if not result.ok:
                    break
        return results

    def _install(self, name: str, ctx: TransactionContext) -> TransactionResult:
        step = STEP_ENTRY
        dependencies: List[TransactionResult] = []

        try:
            reinstall = False
            if self.nest.is_installed(name):
                if ctx.skip_installed:
                    logger.info(f"{name} is already installed, skipping")
                    return TransactionResult(name, TransactionState.SKIPPED, step)
                if not (ctx.force or ctx.ask(f"{name} is already installed. Reinstall it?")):
                    raise AlreadyInstalledCancelled(f"Reinstall of {name} was declined")
                reinstall = True
            elif self.fakeroot.exists(name):
                logger.info(f"Discarding stale staging tree of {name}")
                self.fakeroot.discard(name)

            step = STEP_RESOLVE
            spec = self.repositories.get(name)
            if reinstall:
                missing = []
            else:
                missing = self.resolver.missing(name, self.nest)

            if missing:
                step = STEP_DEPENDENCIES
                prompt = f"{name} needs {len(missing)} missing package(s): {' '.join(missing)}. Install them?"
                if not ctx.ask(prompt):
                    return TransactionResult(name, TransactionState.CANCELLED, step,
                                             reason="dependency installation declined")

                for dep in missing:
                    result = self._install(dep, ctx.child())
                    dependencies.append(result)
                    if not result.ok:
                        state = (TransactionState.CANCELLED
                                 if result.state == TransactionState.CANCELLED
                                 else TransactionState.ABORTED)
                        logger.error(f"Dependency {dep} of {name} failed, aborting")
                        return TransactionResult(name, state, step,
                                                 reason=f"dependency {result}",
                                                 conflicts=result.conflicts,
                                                 dependencies=dependencies)

            step = STEP_SOURCE
            if not self.source.verify(spec):
                raise SourceUnavailableError(f"Source of {name} is missing or failed verification")

            step = STEP_METADATA
            spec.validate_required()

            step = STEP_BUILD
            stale = self.link_farm.owned_paths(name) if reinstall else []
            # A reinstall keeps the installed tree until the rebuild is complete
            staging = self.fakeroot.prepare(name, rebuild=reinstall)
            self.builder.build(spec, staging)
            if spec.has_flag(PackageFlag.BUILD32):
                self.builder.build(spec, staging, multilib=True)

            step = STEP_TEST
            if ctx.run_tests:
                if spec.has_flag(PackageFlag.TESTS):
                    self.builder.run_tests(spec, staging)
                if spec.has_flag(PackageFlag.BUILD32) and spec.has_flag(PackageFlag.TESTS32):
                    self.builder.run_tests(spec, staging, multilib=True)

            step = STEP_FINALIZE
            has_files = self.fakeroot.finalize(name, rebuild=reinstall)
            if reinstall:
                has_files = self.fakeroot.promote(name)
            if not has_files:
                self.link_farm.remove_stale(name, stale)
                step = STEP_REGISTER
                self.nest.register(name)
                self.builder.cleanup(spec)
                logger.info(f"{name} was absorbed, it owns no files")
                return TransactionResult(name, TransactionState.ABSORBED, step,
                                         dependencies=dependencies)

            step = STEP_LINK
            if reinstall:
                self.link_farm.recommit(name, stale)
            else:
                self.link_farm.commit(name, overwrite=ctx.overwrite)

            step = STEP_HOOKS
            if spec.has_flag(PackageFlag.FONT):
                self._refresh_font_cache()

            step = STEP_REGISTER
            self.nest.register(name)
            self.builder.cleanup(spec)
            logger.info(f"Installed {name}")
            return TransactionResult(name, TransactionState.INSTALLED, step,
                                     dependencies=dependencies)

        except AlreadyInstalledCancelled as e:
            logger.info(str(e))
            return TransactionResult(name, TransactionState.CANCELLED, step,
                                     reason=str(e), error=e)
        except ConflictError as e:
            return TransactionResult(name, TransactionState.ABORTED, step,
                                     reason=str(e), conflicts=e.paths,
                                     dependencies=dependencies, error=e)
        except (BirbError, OSError) as e:
            logger.error(f"Installing {name} failed at {step}: {e}")
            return TransactionResult(name, TransactionState.ABORTED, step,
                                     reason=str(e), dependencies=dependencies, error=e)

    def _refresh_font_cache(self):
        try:
            self.hooks.refresh_font_cache()
        except HookError as e:
            logger.warning(f"Font cache refresh failed: {e}")
