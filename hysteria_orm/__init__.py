"""Hysteria: async multi-dialect SQL ORM for MySQL/MariaDB, PostgreSQL and SQLite."""

from .config import DataSourceSettings
from .core import (
    ADDITIONAL_COLUMNS,
    Migration,
    MigrationController,
    Model,
    PaginatedResult,
    PaginationMetadata,
    QueryBuilder,
    RelationType,
    SqlDataSource,
    Transaction,
    belongs_to,
    column,
    dynamic_column,
    get_dynamic_columns,
    get_model_columns,
    get_primary_key,
    get_relations,
    has_many,
    has_one,
    many_to_many,
)
from .errors import (
    ConfigurationError,
    ConnectionNotEstablishedError,
    DriverNotFoundError,
    HysteriaError,
    RowNotFoundError,
    TransactionNotActiveError,
    UnsupportedDatabaseTypeError,
)
from .ports import (
    AsyncDatabase,
    Dialect,
    MariaDBDialect,
    MySQLDialect,
    PostgresDialect,
    SQLiteDialect,
    get_dialect,
)

__all__ = [
    "ADDITIONAL_COLUMNS",
    "AsyncDatabase",
    "ConfigurationError",
    "ConnectionNotEstablishedError",
    "DataSourceSettings",
    "Dialect",
    "DriverNotFoundError",
    "HysteriaError",
    "MariaDBDialect",
    "Migration",
    "MigrationController",
    "Model",
    "MySQLDialect",
    "PaginatedResult",
    "PaginationMetadata",
    "PostgresDialect",
    "QueryBuilder",
    "RelationType",
    "RowNotFoundError",
    "SQLiteDialect",
    "SqlDataSource",
    "Transaction",
    "TransactionNotActiveError",
    "UnsupportedDatabaseTypeError",
    "belongs_to",
    "column",
    "dynamic_column",
    "get_dialect",
    "get_dynamic_columns",
    "get_model_columns",
    "get_primary_key",
    "get_relations",
    "has_many",
    "has_one",
    "many_to_many",
]
