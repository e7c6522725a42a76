"""Exception hierarchy raised by hysteria_orm."""

from __future__ import annotations


class HysteriaError(Exception):
    """Base class for every error raised by the ORM itself."""


class ConfigurationError(HysteriaError):
    """Model, relation or data source declaration is invalid or incomplete."""


class UnsupportedDatabaseTypeError(HysteriaError):
    """A code path received a database type it does not know how to handle."""

    def __init__(self, db_type: object = None, message: str = "Unsupported database type"):
        if db_type is not None:
            message = f"{message}: {db_type}"
        super().__init__(message)
        self.db_type = db_type


class DriverNotFoundError(HysteriaError):
    """The driver package for the configured database is not installed."""

    def __init__(self, driver_name: str):
        super().__init__(
            f"Driver {driver_name!r} not found, it's likely not installed, "
            f"try running `pip install {driver_name}`"
        )
        self.driver_name = driver_name


class RowNotFoundError(HysteriaError):
    """Raised by `*_or_fail` lookups when no row matches."""

    def __init__(self, message: str = "ROW_NOT_FOUND"):
        super().__init__(message)


class ConnectionNotEstablishedError(HysteriaError):
    """No live connection is available for the requested operation."""

    def __init__(self, message: str = "sql database connection not established"):
        super().__init__(message)


class TransactionNotActiveError(HysteriaError):
    """Commit or rollback was requested on a transaction that is not active."""
