"""Exception hierarchy for database maintenance operations."""

from config.settings import ConfigurationError


class MaintenanceError(Exception):
    """Base exception for maintenance errors."""


class DatabaseConnectionError(MaintenanceError):
    """The store could not be opened. No mutation may follow."""


class AlreadyClosedError(MaintenanceError):
    """A maintenance connection was closed more than once."""


class BackupError(MaintenanceError):
    """The store file could not be copied to its backup location."""


class StatementError(MaintenanceError):
    """A single statement failed; captured into the outcome report."""

    def __init__(
        self, message: str, statement: str | None = None, pgcode: str | None = None
    ):
        super().__init__(message)
        self.statement = statement
        self.pgcode = pgcode


class VerificationError(MaintenanceError):
    """A read-only verification query failed."""


__all__ = [
    "MaintenanceError",
    "ConfigurationError",
    "DatabaseConnectionError",
    "AlreadyClosedError",
    "BackupError",
    "StatementError",
    "VerificationError",
]
