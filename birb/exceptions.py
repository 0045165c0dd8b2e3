class BirbError(Exception):
    """Base exception for birb"""
    pass

class ConfigError(BirbError):
    """Raised when settings or the repository sources file cannot be used"""
    pass

class LockError(BirbError):
    """Raised when another transaction already holds the package database lock"""
    pass

class HookError(BirbError):
    """Raised when an external side-effect hook fails"""
    pass

# Resolution related exceptions
class PackageError(BirbError):
    """Base exception for package related errors"""
    pass

class MissingPackageError(PackageError):
    """Raised when a package name is not found in any repository"""

    def __init__(self, name: str):
        super().__init__(f"Package '{name}' could not be found in any repository")
        self.name = name

class InvalidPackageSpecError(PackageError):
    """Raised when a package declaration lacks a required field"""

    def __init__(self, name: str, missing):
        super().__init__(f"Package '{name}' is missing required fields: {', '.join(missing)}")
        self.name = name
        self.missing = list(missing)

class DependencySolverError(PackageError):
    """Raised when the resolver cannot read a declaration"""
    pass

class DependencyCycleError(DependencySolverError):
    """Raised when the dependency graph contains a cycle"""

    def __init__(self, cycle):
        self.cycle = list(cycle)
        super().__init__(f"Circular dependency detected: {' -> '.join(self.cycle)}")

# Install related exceptions
class SourceUnavailableError(PackageError):
    """Raised when the package source is missing or fails verification"""
    pass

class BuildFailedError(PackageError):
    """Raised when the build callback fails"""
    pass

class TestFailedError(PackageError):
    """Raised when the test phase fails"""
    __test__ = False

class ConflictError(PackageError):
    """Raised when staged files collide with live paths not owned by the package"""

    def __init__(self, name: str, paths):
        self.name = name
        self.paths = sorted(paths)
        super().__init__(f"Package '{name}' conflicts with {len(self.paths)} existing path(s)")

class AlreadyInstalledCancelled(PackageError):
    """Raised when reinstalling an installed package was declined"""
    pass

# Uninstall related exceptions
class NotInstalledError(PackageError):
    """Raised when the package is not in the nest"""

    def __init__(self, name: str):
        super().__init__(f"Package '{name}' is not installed")
        self.name = name

class ProtectedPackageDeclined(PackageError):
    """Raised when removing a protected package was not confirmed"""
    pass

class DependentsWarningDeclined(PackageError):
    """Raised when removing a package with installed dependents was declined"""
    pass
