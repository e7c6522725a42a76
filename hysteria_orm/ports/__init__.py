"""Public port exports for concrete adapter implementations."""

from .db_api import (
    AsyncDatabase,
    Dialect,
    DriverFactory,
    MariaDBDialect,
    MySQLDialect,
    PostgresDialect,
    SQLiteDialect,
    get_dialect,
)

__all__ = [
    "AsyncDatabase",
    "Dialect",
    "DriverFactory",
    "MariaDBDialect",
    "MySQLDialect",
    "PostgresDialect",
    "SQLiteDialect",
    "get_dialect",
]
