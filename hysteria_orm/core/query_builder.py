"""Fluent SELECT builder with relation loading and mass mutations.

The builder keeps each clause as structured state and renders SQL only in
`to_sql()`. `PLACEHOLDER` tokens are converted to driver markers once, on
the final statement, so nested groups can be spliced in any order.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from decimal import Decimal
from typing import TYPE_CHECKING, Any, Callable, List, Optional, Sequence, Type

from ..errors import HysteriaError, RowNotFoundError
from ..ports.db_api.async_database import AsyncDatabase
from .case_utils import convert_case
from .metadata import get_relation, get_relation_names
from .pagination import PaginatedResult, get_pagination_metadata
from .relations import RelationResolver
from .serializer import merge_raw_row, serialize_models
from .templates.delete import DeleteTemplate
from .templates.fragment import CompiledFragment
from .templates.join import JoinTemplate
from .templates.relation import RelationQuery
from .templates.select import SelectTemplate, split_alias, split_table
from .templates.update import UpdateTemplate
from .types import ADDITIONAL_COLUMNS, ModelRecord, QueryParams
from .where_query_builder import WhereQueryBuilder, strip_leading_joiner

if TYPE_CHECKING:
    from .sql_data_source import SqlDataSource

logger = logging.getLogger(__name__)

HookNames = Sequence[str]

_ORDER_DIRECTIONS = ("ASC", "DESC")


def soft_delete_timestamp(moment: Optional[datetime] = None) -> str:
    """UTC time formatted as `YYYY-MM-DD HH:MM:SS`."""

    moment = moment or datetime.now(timezone.utc)
    return moment.astimezone(timezone.utc).strftime("%Y-%m-%d %H:%M:%S")


def _number(value: Any) -> Any:
    if value is None:
        return 0
    if isinstance(value, Decimal):
        return int(value) if value == value.to_integral_value() else float(value)
    if isinstance(value, str):
        return float(value) if "." in value else int(value)
    return value


class QueryBuilder(WhereQueryBuilder):
    """Base query builder shared by the dialect builders."""

    def __init__(self, model: Type[Any], sql_data_source: SqlDataSource):
        super().__init__(model, sql_data_source.dialect)
        self.sql_data_source = sql_data_source
        self.table = model.table
        self.select_template = SelectTemplate(self.dialect, model)
        self.update_template = UpdateTemplate(self.dialect, model)
        self.delete_template = DeleteTemplate(self.dialect, model)

        self._select_columns: List[str] = []
        self._raw_selected_columns: List[str] = []
        self._distinct = ""
        self.join_query = ""
        self._group_by: List[str] = []
        self._having: List[str] = []
        self._order_by: List[str] = []
        self._limit: Optional[int] = None
        self._offset: Optional[int] = None
        self.model_selected_columns: List[str] = []
        self.relations: List[RelationQuery] = []
        self.dynamic_columns: List[str] = []

    @property
    def db(self) -> AsyncDatabase:
        return self.sql_data_source.connection

    # Rendering

    @property
    def select_query(self) -> str:
        if self._select_columns:
            columns = ", ".join(self._select_columns)
        else:
            columns = f"{self.table}.*" if self.join_query else "*"
        distinct = f"{self._distinct} " if self._distinct else ""
        return f"SELECT {distinct}{columns} FROM {self.table} "

    @property
    def group_by_query(self) -> str:
        return f" GROUP BY {', '.join(self._group_by)}" if self._group_by else ""

    @property
    def having_query(self) -> str:
        return f" HAVING {' AND '.join(self._having)}" if self._having else ""

    @property
    def order_by_query(self) -> str:
        return f" ORDER BY {', '.join(self._order_by)}" if self._order_by else ""

    @property
    def limit_query(self) -> str:
        return self.select_template.limit(self._limit) if self._limit is not None else ""

    @property
    def offset_query(self) -> str:
        return self.select_template.offset(self._offset) if self._offset else ""

    def group_footer_query(self) -> str:
        return (
            self.group_by_query
            + self.having_query
            + self.order_by_query
            + self.limit_query
            + self.offset_query
        )

    def to_sql(self) -> CompiledFragment:
        """Return the SELECT statement with driver markers and its params."""

        query = self.select_query + self.join_query + self.where_query + self.group_footer_query()
        return CompiledFragment(self.dialect.convert_placeholders(query.strip()), list(self.params))

    # Selection

    def select(self, *columns: str) -> QueryBuilder:
        """Select columns; `expr as alias`, `table.col` and SQL functions are accepted."""

        self._raw_selected_columns = list(columns)
        self._select_columns = self.select_template.format_columns(columns)
        convention = self.model.model_case_convention
        selected = []
        for column in columns:
            expression, alias = split_alias(column)
            if alias:
                selected.append(convert_case(alias, convention))
                continue
            _, name = split_table(expression)
            selected.append(name if "(" in name or name == "*" else convert_case(name, convention))
        self.model_selected_columns = selected
        return self

    def distinct(self) -> QueryBuilder:
        self._distinct = self.select_template.distinct
        return self

    def distinct_on(self, *columns: str) -> QueryBuilder:
        self._distinct = self.select_template.distinct_on(*columns)
        return self

    def join(self, relation_table: str, primary_column: str, foreign_column: str) -> QueryBuilder:
        """`INNER JOIN relation_table ON relation_table.foreign = table.primary`."""

        template = JoinTemplate(self.model, relation_table, primary_column, foreign_column)
        self.join_query += template.inner_join()
        return self

    def left_join(self, relation_table: str, primary_column: str, foreign_column: str) -> QueryBuilder:
        template = JoinTemplate(self.model, relation_table, primary_column, foreign_column)
        self.join_query += template.left_join()
        return self

    def join_raw(self, query: str) -> QueryBuilder:
        self.join_query += f" {query} "
        return self

    def group_by(self, *columns: str) -> QueryBuilder:
        self._group_by.extend(self.select_template.column_reference(column) for column in columns)
        return self

    def group_by_raw(self, query: str) -> QueryBuilder:
        self._group_by.append(query.replace("GROUP BY", "").strip())
        return self

    def order_by(self, column: str, order: str = "ASC") -> QueryBuilder:
        order = order.upper()
        if order not in _ORDER_DIRECTIONS:
            raise ValueError(f"Unsupported order direction {order!r}")
        self._order_by.append(f"{self.select_template.column_reference(column)} {order}")
        return self

    def order_by_raw(self, query: str) -> QueryBuilder:
        self._order_by.append(query.replace("ORDER BY", "").strip())
        return self

    def having_raw(self, query: str) -> QueryBuilder:
        self._having.append(query.replace("HAVING", "").strip())
        return self

    def limit(self, limit: int) -> QueryBuilder:
        self._limit = int(limit)
        return self

    def offset(self, offset: int) -> QueryBuilder:
        self._offset = int(offset)
        return self

    def add_dynamic_columns(self, names: Sequence[str]) -> QueryBuilder:
        self.dynamic_columns = list(names)
        return self

    def with_(
        self,
        relation: str,
        related_model: Optional[Type[Any]] = None,
        callback: Optional[Callable[[QueryBuilder], Any]] = None,
        ignore_hooks: HookNames = (),
    ) -> QueryBuilder:
        """Request relation `relation` to be loaded with the result.

        Args:
            relation: Relation attribute name on the model.
            related_model: Related model class, looked up from the relation
                when omitted.
            callback: Configures a builder scoped to the related model; its
                select, where, join, order, group, having, limit, offset and
                dynamic columns filter the relation.
            ignore_hooks: `"before_fetch"` and/or `"after_fetch"` to skip
                the related model hooks.
        """

        related_model = related_model or get_relation(self.model, relation).model
        scoped = type(self)(related_model, self.sql_data_source)
        if callback is not None:
            callback(scoped)
        if "before_fetch" not in ignore_hooks:
            related_model.before_fetch(scoped)

        condition = strip_leading_joiner(scoped.where_query)
        self.relations.append(
            RelationQuery(
                relation=relation,
                select=list(scoped._select_columns),
                selected_columns=list(scoped._raw_selected_columns),
                where=f"AND ({condition})" if condition else "",
                params=list(scoped.params),
                join=scoped.join_query.strip(),
                order_by=", ".join(scoped._order_by),
                group_by=", ".join(scoped._group_by),
                having=" AND ".join(scoped._having),
                limit=scoped._limit,
                offset=scoped._offset,
                dynamic_columns=list(scoped.dynamic_columns),
                ignore_after_fetch="after_fetch" in ignore_hooks,
            )
        )
        return self

    def copy(self) -> QueryBuilder:
        """Independent builder with the same state."""

        clone = type(self)(self.model, self.sql_data_source)
        clone.is_nested_condition = self.is_nested_condition
        clone._select_columns = list(self._select_columns)
        clone._raw_selected_columns = list(self._raw_selected_columns)
        clone._distinct = self._distinct
        clone.join_query = self.join_query
        clone.where_query = self.where_query
        clone.params = list(self.params)
        clone._group_by = list(self._group_by)
        clone._having = list(self._having)
        clone._order_by = list(self._order_by)
        clone._limit = self._limit
        clone._offset = self._offset
        clone.model_selected_columns = list(self.model_selected_columns)
        clone.relations = list(self.relations)
        clone.dynamic_columns = list(self.dynamic_columns)
        return clone

    # Execution

    async def _fetch_records(self) -> List[ModelRecord]:
        statement = self.to_sql()
        rows = await self.db.fetchall(statement.sql, statement.params)
        return [await merge_raw_row(self.model, row, self.dynamic_columns) for row in rows]

    async def _finalize(self, records: List[ModelRecord], ignore_hooks: HookNames) -> List[ModelRecord]:
        relation_results = await RelationResolver(self.db).resolve(self.model, records, self.relations)
        serialized = serialize_models(
            records, self.model, relation_results, self.model_selected_columns
        )
        if "after_fetch" not in ignore_hooks:
            serialized = await self.model.after_fetch(serialized)
        return serialized

    async def one(self, *, ignore_hooks: HookNames = ()) -> Optional[ModelRecord]:
        """First matching row, or `None`."""

        if "before_fetch" not in ignore_hooks:
            self.model.before_fetch(self)
        self.limit(1)
        records = await self._fetch_records()
        if not records:
            return None
        return (await self._finalize(records, ignore_hooks))[0]

    first = one

    async def one_or_fail(
        self, custom_error: Optional[BaseException] = None, *, ignore_hooks: HookNames = ()
    ) -> ModelRecord:
        """Like `one()` but raises `custom_error` or `RowNotFoundError` on no row."""

        record = await self.one(ignore_hooks=ignore_hooks)
        if record is None:
            if custom_error is not None:
                raise custom_error
            raise RowNotFoundError()
        return record

    first_or_fail = one_or_fail

    async def many(self, *, ignore_hooks: HookNames = ()) -> List[ModelRecord]:
        if "before_fetch" not in ignore_hooks:
            self.model.before_fetch(self)
        records = await self._fetch_records()
        if not records:
            return []
        return await self._finalize(records, ignore_hooks)

    async def get_count(self, *, ignore_hooks: bool = False) -> int:
        """Number of matching rows; `ignore_hooks=True` counts the whole table."""

        if ignore_hooks:
            rows = await self.db.fetchall(f"SELECT COUNT(*) as total FROM {self.table}", [])
            return int(_number(rows[0]["total"]))

        self.select("COUNT(*) as total")
        self._order_by = []
        self.relations = []
        self.dynamic_columns = []
        record = await self.one(ignore_hooks=("after_fetch",))
        return int(_number(record[ADDITIONAL_COLUMNS]["total"])) if record else 0

    async def get_sum(self, column: str, *, ignore_hooks: bool = False) -> Any:
        """Sum of `column` over matching rows, 0 when there are none."""

        column = convert_case(column, self.model.database_case_convention)
        if ignore_hooks:
            rows = await self.db.fetchall(f"SELECT SUM({column}) as total FROM {self.table}", [])
            return _number(rows[0]["total"])

        self.select(f"SUM({column}) as total")
        self._order_by = []
        self.relations = []
        self.dynamic_columns = []
        record = await self.one(ignore_hooks=("after_fetch",))
        return _number(record[ADDITIONAL_COLUMNS]["total"]) if record else 0

    async def paginate(self, page: int, limit: int, *, ignore_hooks: HookNames = ()) -> PaginatedResult:
        """Fetch page `page` (1-based) of `limit` rows with pagination metadata."""

        if page < 1 or limit < 1:
            raise HysteriaError("Page and limit must be positive integers")

        counter = self.copy()
        counter._limit = None
        counter._offset = None
        total = await counter.get_count(ignore_hooks=False)

        self.limit(limit).offset((page - 1) * limit)
        data = await self.many(ignore_hooks=ignore_hooks)
        return PaginatedResult(get_pagination_metadata(page, limit, total), data)

    def _mutation_data(self, data: Any) -> dict:
        relation_names = set(get_relation_names(self.model))
        return {
            key: value
            for key, value in dict(data).items()
            if key not in relation_names and key != ADDITIONAL_COLUMNS
        }

    async def update(self, data: Any, *, ignore_hooks: HookNames = ()) -> int:
        """Update every matching row; returns the affected row count."""

        if "before_update" not in ignore_hooks:
            self.model.before_update(self)
        data = self._mutation_data(data)
        if not data:
            return 0
        statement = self.update_template.massive_update(
            list(data), list(data.values()), self.where_query, self.join_query, self.params
        )
        result = await self.db.run(statement.sql, statement.params)
        return result.rowcount

    async def delete(self, *, ignore_hooks: HookNames = ()) -> int:
        """Delete every matching row; returns the affected row count."""

        if "before_delete" not in ignore_hooks:
            self.model.before_delete(self)
        statement = self.delete_template.massive_delete(self.where_query, self.join_query, self.params)
        result = await self.db.run(statement.sql, statement.params)
        return result.rowcount

    async def soft_delete(
        self,
        column: str = "deleted_at",
        value: Any = None,
        *,
        ignore_hooks: HookNames = (),
    ) -> int:
        """Set `column` (default: current UTC time) on every matching row."""

        if "before_delete" not in ignore_hooks:
            self.model.before_delete(self)
        value = soft_delete_timestamp() if value is None else value
        statement = self.update_template.massive_update(
            [column], [value], self.where_query, self.join_query, self.params
        )
        result = await self.db.run(statement.sql, statement.params)
        return result.rowcount


class MysqlQueryBuilder(QueryBuilder):
    """MySQL and MariaDB query builder."""

    def distinct_on(self, *columns: str) -> QueryBuilder:
        raise HysteriaError("DISTINCT ON is only supported in postgres")


class PostgresQueryBuilder(QueryBuilder):
    """PostgreSQL query builder."""


class SqliteQueryBuilder(QueryBuilder):
    """SQLite query builder."""

    def distinct_on(self, *columns: str) -> QueryBuilder:
        raise HysteriaError("DISTINCT ON is only supported in postgres")
