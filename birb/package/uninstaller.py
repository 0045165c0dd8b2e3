"""
Uninstall transaction orchestrator
"""

import logging
from typing import Iterable, List

from .models import PackageFlag, PackageSpec
from .lock import transaction_lock
from .transaction import TransactionContext, TransactionResult, TransactionState
from ..exceptions import (
    BirbError, DependentsWarningDeclined, HookError, MissingPackageError,
    NotInstalledError, ProtectedPackageDeclined
)

logger = logging.getLogger('BIRB.package.uninstaller')

STEP_ENTRY = "entry"
STEP_METADATA = "metadata"
STEP_DEPENDENTS = "dependents"
STEP_PYTHON = "python"
STEP_UNLINK = "unlink"
STEP_HOOKS = "hooks"
STEP_UNREGISTER = "unregister"


class PackageUninstaller:
    """Runs uninstall transactions"""

    def __init__(self, repositories, resolver, nest, fakeroot, link_farm, hooks):
        self.repositories = repositories
        self.resolver = resolver
        self.nest = nest
        self.fakeroot = fakeroot
        self.link_farm = link_farm
        self.hooks = hooks

    def uninstall(self, name: str, ctx: TransactionContext) -> TransactionResult:
        with transaction_lock(ctx.settings.lock_file):
            return self._uninstall(name, ctx)

    def uninstall_many(self, names: Iterable[str], ctx: TransactionContext) -> List[TransactionResult]:
        """Uninstall packages, metapackage members in reverse order, stopping at the first failure"""
        results = []
        with transaction_lock(ctx.settings.lock_file):
            for name in reversed(self.repositories.expand(names)):
                result = self._uninstall(name, ctx)
                results.append(result)
                if not result.ok:
                    break
        return results

    def _read_spec(self, name: str) -> PackageSpec:
        try:
            return self.repositories.get(name)
        except MissingPackageError:
            logger.warning(f"No declaration found for {name}, removing it without flags")
            return PackageSpec(name=name)

    def _uninstall(self, name: str, ctx: TransactionContext) -> TransactionResult:
        step = STEP_ENTRY
        try:
            if not self.nest.is_installed(name):
                e = NotInstalledError(name)
                logger.error(str(e))
                return TransactionResult(name, TransactionState.NOT_INSTALLED, step,
                                         reason=str(e), error=e)

            step = STEP_METADATA
            spec = self._read_spec(name)
            if spec.has_flag(PackageFlag.PROTECTED) and not ctx.ask_protected(name):
                raise ProtectedPackageDeclined(f"Removal of protected package {name} was not confirmed")

            step = STEP_DEPENDENTS
            dependents = self.nest.reverse_dependents(name, self.resolver)
            if dependents:
                listing = ' '.join(sorted(dependents))
                logger.warning(f"{name} is needed by: {listing}")
                if not ctx.ask(f"{name} is needed by {listing}. Remove it anyway?"):
                    raise DependentsWarningDeclined(f"{name} is needed by {listing}")

            step = STEP_PYTHON
            if spec.has_flag(PackageFlag.PYTHON):
                try:
                    self.hooks.remove_python_package(name)
                except HookError as e:
                    logger.warning(f"Python package removal for {name} failed: {e}")

            step = STEP_UNLINK
            self.link_farm.remove(name)
            self.fakeroot.discard(name)
            self.fakeroot.discard(name, rebuild=True)

            step = STEP_HOOKS
            if spec.has_flag(PackageFlag.FONT):
                try:
                    self.hooks.refresh_font_cache()
                except HookError as e:
                    logger.warning(f"Font cache refresh failed: {e}")

            step = STEP_UNREGISTER
            self.nest.unregister(name)
            logger.info(f"Uninstalled {name}")
            return TransactionResult(name, TransactionState.UNINSTALLED, step)

        except (ProtectedPackageDeclined, DependentsWarningDeclined) as e:
            logger.info(str(e))
            return TransactionResult(name, TransactionState.CANCELLED, step, reason=str(e), error=e)
        except (BirbError, OSError) as e:
            logger.error(f"Uninstalling {name} failed at {step}: {e}")
            return TransactionResult(name, TransactionState.ABORTED, step, reason=str(e), error=e)
