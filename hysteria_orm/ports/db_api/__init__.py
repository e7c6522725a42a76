"""DB-API adapter, dialect and driver exports."""

from .dialects import (
    PLACEHOLDER,
    Dialect,
    MariaDBDialect,
    MySQLDialect,
    PostgresDialect,
    SQLiteDialect,
    get_dialect,
)
from .async_database import AsyncDatabase, ExecutionResult
from .drivers import DriverFactory, open_connection

__all__ = [
    "PLACEHOLDER",
    "AsyncDatabase",
    "Dialect",
    "DriverFactory",
    "ExecutionResult",
    "MariaDBDialect",
    "MySQLDialect",
    "PostgresDialect",
    "SQLiteDialect",
    "get_dialect",
    "open_connection",
]
