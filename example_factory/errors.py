"""Exception hierarchy for the Example Factory.

Every failure carries the path or artifact id it concerns (``reference``) and
the process exit code the CLI maps it to, so callers never have to interpret
a bare boolean.
"""

from __future__ import annotations


class ExampleFactoryError(Exception):
    """Base class for all Example Factory failures."""

    exit_code: int = 1

    def __init__(self, message: str, reference: str = "") -> None:
        self.reference = reference
        super().__init__(message)


class DiscoveryError(ExampleFactoryError):
    """A source file could not be admitted into the registry."""

    exit_code = 2

    def __init__(self, path: str, reason: str) -> None:
        self.path = path
        self.reason = reason
        super().__init__(f"{path}: {reason}", reference=path)


class ResolutionError(ExampleFactoryError):
    """An unknown artifact id or category was requested."""

    exit_code = 3


class MaterializationError(ExampleFactoryError):
    """The skeleton is missing/corrupt or the output could not be written."""

    exit_code = 4


class ConflictError(ExampleFactoryError):
    """The target is not a host project, or a conflict had no decision."""

    exit_code = 5


class ValidationError(ExampleFactoryError):
    """One or more validator rules failed."""

    exit_code = 6

    def __init__(self, message: str, failed_rules: list[str] | None = None) -> None:
        self.failed_rules = failed_rules or []
        super().__init__(message, reference=", ".join(self.failed_rules))
