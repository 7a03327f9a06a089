"""Exception and warning types raised by specnest."""

from __future__ import annotations


class SpecnestError(Exception):
    """Base class for all specnest errors."""


class SpecConfigurationError(SpecnestError):
    """A spec class or target cannot be loaded, or the configuration is invalid.

    Raised before any test runs; no partial plan is produced.
    """


class SpecDeclarationError(SpecnestError):
    """A spec declaration is structurally malformed."""

    def __init__(self, message: str, path: tuple[str, ...] = ()) -> None:
        self.path = path
        if path:
            message = f"{message} (in {' > '.join(path)})"
        super().__init__(message)


class SpecHookWarning(UserWarning):
    """A hook failed without changing any test outcome."""


class DuplicateTestWarning(UserWarning):
    """Two tests in one group share a description."""


class LateHookWarning(UserWarning):
    """A ``before_each`` or ``after_each`` hook follows tests it will not wrap."""
