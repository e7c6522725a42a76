"""Public core API: models, query building, relations and data sources."""

from .case_utils import convert_case, to_camel_case, to_snake_case
from .metadata import (
    Relation,
    get_dynamic_columns,
    get_model_columns,
    get_primary_key,
    get_relations,
)
from .migrations import Migration, MigrationController, pending_migrations
from .model import Model
from .model_manager import (
    ModelManager,
    MysqlModelManager,
    PostgresModelManager,
    SqliteModelManager,
)
from .models import (
    Column,
    DynamicColumn,
    RelationType,
    belongs_to,
    column,
    dynamic_column,
    has_many,
    has_one,
    many_to_many,
)
from .pagination import PaginatedResult, PaginationMetadata
from .query_builder import (
    MysqlQueryBuilder,
    PostgresQueryBuilder,
    QueryBuilder,
    SqliteQueryBuilder,
)
from .sql_data_source import SqlDataSource
from .transaction import Transaction
from .types import ADDITIONAL_COLUMNS
from .where_query_builder import WhereQueryBuilder

__all__ = [
    "ADDITIONAL_COLUMNS",
    "Column",
    "DynamicColumn",
    "Migration",
    "MigrationController",
    "Model",
    "ModelManager",
    "MysqlModelManager",
    "MysqlQueryBuilder",
    "PaginatedResult",
    "PaginationMetadata",
    "PostgresModelManager",
    "PostgresQueryBuilder",
    "QueryBuilder",
    "Relation",
    "RelationType",
    "SqlDataSource",
    "SqliteModelManager",
    "SqliteQueryBuilder",
    "Transaction",
    "WhereQueryBuilder",
    "belongs_to",
    "column",
    "convert_case",
    "dynamic_column",
    "get_dynamic_columns",
    "get_model_columns",
    "get_primary_key",
    "get_relations",
    "has_many",
    "has_one",
    "many_to_many",
    "pending_migrations",
    "to_camel_case",
    "to_snake_case",
]
