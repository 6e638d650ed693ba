"""Errors raised by the migration subsystem."""


class MigrationError(Exception):
    """Base class for migration errors."""


class InvalidVersionError(MigrationError, ValueError):
    """A version string could not be parsed."""


class DuplicateMigrationError(MigrationError):
    """Two registered migrations share the same version."""


class MigrationFailedError(MigrationError):
    """A migration raised while being applied."""

    def __init__(self, version: str | None, description: str, cause: Exception):
        self.version = version
        self.description = description
        label = version if version is not None else f"<< repeatable: {description} >>"
        super().__init__(f"Migration {label} failed: {cause}")
