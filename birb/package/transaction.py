"""
Transaction context and results shared by the install and uninstall orchestrators
"""

import dataclasses
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, List, Optional

from ..config import BirbSettings


def _decline(prompt: str) -> bool:
    return False


class TransactionState(Enum):
    """Terminal states of a transaction"""
    INSTALLED = "installed"
    ABSORBED = "absorbed"
    SKIPPED = "skipped"
    CANCELLED = "cancelled"
    ABORTED = "aborted"
    UNINSTALLED = "uninstalled"
    NOT_INSTALLED = "not_installed"


SUCCESS_STATES = (
    TransactionState.INSTALLED,
    TransactionState.ABSORBED,
    TransactionState.SKIPPED,
    TransactionState.UNINSTALLED,
)


@dataclass(frozen=True)
class TransactionContext:
    """Everything a transaction needs, passed explicitly to every step"""
    settings: BirbSettings
    force: bool = False
    overwrite: bool = False
    skip_installed: bool = False
    run_tests: bool = False
    assume_yes: bool = False
    confirm: Callable[[str], bool] = _decline
    confirm_protected: Callable[[str], bool] = _decline

    def ask(self, prompt: str) -> bool:
        """Ordinary confirmation, answered yes when assume_yes is set"""
        return self.assume_yes or bool(self.confirm(prompt))

    def ask_protected(self, name: str) -> bool:
        """High friction confirmation, never answered automatically"""
        return bool(self.confirm_protected(name))

    def child(self) -> 'TransactionContext':
        """Context for installing a dependency of the current package"""
        return dataclasses.replace(self, force=False, skip_installed=True)


@dataclass
class TransactionResult:
    """Outcome of one install or uninstall transaction"""
    name: str
    state: TransactionState
    step: str = ""
    reason: str = ""
    conflicts: List[str] = field(default_factory=list)
    dependencies: List['TransactionResult'] = field(default_factory=list)
    error: Optional[Exception] = None

    @property
    def ok(self) -> bool:
        return self.state in SUCCESS_STATES

    def __str__(self):
        text = f"{self.name}: {self.state.value}"
        if self.step and not self.ok:
            text += f" at {self.step}"
        if self.reason:
            text += f" ({self.reason})"
        return text
