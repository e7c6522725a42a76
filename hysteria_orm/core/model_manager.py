"""Per-dialect find/insert/update/delete facade for one model."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any, Dict, List, Mapping, Optional, Sequence, Type

from ..errors import ConfigurationError, RowNotFoundError
from ..ports.db_api.async_database import AsyncDatabase
from .case_utils import convert_case
from .metadata import get_dynamic_columns, get_relation_names
from .query_builder import (
    HookNames,
    MysqlQueryBuilder,
    PostgresQueryBuilder,
    QueryBuilder,
    SqliteQueryBuilder,
)
from .serializer import merge_raw_row, serialize_models
from .templates.delete import DeleteTemplate
from .templates.insert import InsertTemplate
from .templates.relation import to_sql_literal
from .templates.update import UpdateTemplate
from .types import ADDITIONAL_COLUMNS, ModelRecord

if TYPE_CHECKING:
    from .sql_data_source import SqlDataSource


class ModelManager(ABC):
    """Model-level operations routed through one data source.

    Subclasses decide how inserted rows are read back.
    """

    query_builder_class: Type[QueryBuilder] = QueryBuilder

    def __init__(self, model: Type[Any], sql_data_source: SqlDataSource):
        self.model = model
        self.sql_data_source = sql_data_source
        self.dialect = sql_data_source.dialect
        self.insert_template = InsertTemplate(self.dialect, model)
        self.update_template = UpdateTemplate(self.dialect, model)
        self.delete_template = DeleteTemplate(self.dialect, model)

    @property
    def db(self) -> AsyncDatabase:
        return self.sql_data_source.connection

    def query(self) -> QueryBuilder:
        return self.query_builder_class(self.model, self.sql_data_source)

    async def find(
        self,
        *,
        select: Optional[Sequence[str]] = None,
        relations: Optional[Sequence[str]] = None,
        where: Optional[Mapping[str, Any]] = None,
        order_by: Optional[Mapping[str, str]] = None,
        limit: Optional[int] = None,
        offset: Optional[int] = None,
        group_by: Optional[Sequence[str]] = None,
        ignore_hooks: HookNames = (),
    ) -> List[ModelRecord]:
        """Find records matching simple equality filters.

        Args:
            select: Columns to select.
            relations: Relation names to load.
            where: Column to value mapping, each entry an equality filter.
            order_by: Column to `"ASC"`/`"DESC"` mapping.
            limit: Maximum number of records.
            offset: Number of records to skip.
            group_by: Columns to group by.
            ignore_hooks: Hook names to skip (`"before_fetch"`, `"after_fetch"`).
        """

        query = self.query()
        if select:
            query.select(*select)
        for relation in relations or ():
            query.with_(relation)
        for column, value in (where or {}).items():
            query.where(column, value)
        for column, direction in (order_by or {}).items():
            query.order_by(column, direction)
        if limit:
            query.limit(limit)
        if offset:
            query.offset(offset)
        if group_by:
            query.group_by(*group_by)
        return await query.many(ignore_hooks=ignore_hooks)

    async def find_one(self, **find_input: Any) -> Optional[ModelRecord]:
        find_input["limit"] = 1
        results = await self.find(**find_input)
        return results[0] if results else None

    async def find_one_or_fail(
        self, custom_error: Optional[BaseException] = None, **find_input: Any
    ) -> ModelRecord:
        result = await self.find_one(**find_input)
        if result is None:
            if custom_error is not None:
                raise custom_error
            raise RowNotFoundError()
        return result

    def _require_primary_key(self, action: str) -> str:
        primary_key = self.model.primary_key
        if not primary_key:
            raise ConfigurationError(f"Model {self.model.table} has no primary key to be {action}")
        return primary_key

    async def find_one_by_primary_key(
        self, value: Any, *, ignore_hooks: HookNames = ()
    ) -> Optional[ModelRecord]:
        primary_key = self._require_primary_key("retrieved by")
        return await self.query().where(primary_key, value).one(ignore_hooks=ignore_hooks)

    def _writable_data(self, data: Mapping[str, Any]) -> Dict[str, Any]:
        """Drop relation, dynamic column and `$additionalColumns` keys."""

        skipped = set(get_relation_names(self.model))
        skipped.update(
            convert_case(dc.column_name, self.model.model_case_convention)
            for dc in get_dynamic_columns(self.model)
        )
        skipped.add(ADDITIONAL_COLUMNS)
        return {key: value for key, value in data.items() if key not in skipped}

    def _before_insert(self, data: Mapping[str, Any]) -> Dict[str, Any]:
        prepared = dict(data)
        result = self.model.before_insert(prepared)
        if result is not None:
            prepared = dict(result)
        return self._writable_data(prepared)

    @abstractmethod
    async def insert(self, data: Mapping[str, Any]) -> Optional[ModelRecord]:
        ...

    @abstractmethod
    async def insert_many(self, data: Sequence[Mapping[str, Any]]) -> List[ModelRecord]:
        ...

    async def _refetch(self, data: Mapping[str, Any], lastrowid: Optional[int]) -> Optional[ModelRecord]:
        primary_key = self.model.primary_key
        if not primary_key:
            return None
        if data.get(primary_key) is not None:
            return await self.find_one_by_primary_key(data[primary_key])
        if lastrowid is None:
            return None
        return await self.find_one_by_primary_key(lastrowid)

    async def update_record(self, record: Mapping[str, Any]) -> Optional[ModelRecord]:
        """Write every column of `record` to its row; the primary key is not SET."""

        primary_key = self._require_primary_key("updated, try save")
        data = self._writable_data(record)
        primary_key_value = data.pop(primary_key, None)
        if primary_key_value is None:
            raise ConfigurationError(
                f"Record of model {self.model.table} has no {primary_key} value to be updated by"
            )
        if data:
            statement = self.update_template.update(
                list(data), list(data.values()), primary_key, primary_key_value
            )
            await self.db.run(statement.sql, statement.params)
        return await self.find_one_by_primary_key(primary_key_value)

    async def delete_record(self, record: Mapping[str, Any]) -> Mapping[str, Any]:
        primary_key = self._require_primary_key("deleted from")
        column = convert_case(primary_key, self.model.database_case_convention)
        statement = self.delete_template.delete(column, record.get(primary_key))
        await self.db.run(statement.sql, statement.params)
        return record


class MysqlModelManager(ModelManager):
    """MySQL/MariaDB manager; inserted rows are re-fetched by key."""

    query_builder_class = MysqlQueryBuilder

    async def insert(self, data: Mapping[str, Any]) -> Optional[ModelRecord]:
        data = self._before_insert(data)
        statement = self.insert_template.insert(list(data), list(data.values()))
        result = await self.db.run(statement.sql, statement.params)
        return await self._refetch(data, result.lastrowid)

    async def insert_many(self, data: Sequence[Mapping[str, Any]]) -> List[ModelRecord]:
        rows = [self._before_insert(row) for row in data]
        if not rows:
            return []
        columns = list(rows[0])
        statement = self.insert_template.insert_many(
            columns, [[row.get(column) for column in columns] for row in rows]
        )
        result = await self.db.run(statement.sql, statement.params)
        primary_key = self.model.primary_key
        if not result.rowcount or not primary_key:
            return []

        if rows[0].get(primary_key) is not None:
            ids = [row[primary_key] for row in rows]
            column = convert_case(primary_key, self.model.database_case_convention)
            literals = ", ".join(to_sql_literal(value, self.dialect) for value in ids)
            return await (
                self.query()
                .where_in(primary_key, ids)
                .order_by_raw(f"FIELD({column}, {literals})")
                .many()
            )

        first_id = result.lastrowid or 0
        ids = list(range(first_id, first_id + result.rowcount))
        return await self.query().where_in(primary_key, ids).many()


class PostgresModelManager(ModelManager):
    """PostgreSQL manager; inserted rows come back through `RETURNING *`."""

    query_builder_class = PostgresQueryBuilder

    async def _returning(self, rows: Sequence[Mapping[str, Any]]) -> List[ModelRecord]:
        records = [await merge_raw_row(self.model, row) for row in rows]
        return await self.model.after_fetch(serialize_models(records, self.model))

    async def insert(self, data: Mapping[str, Any]) -> Optional[ModelRecord]:
        data = self._before_insert(data)
        statement = self.insert_template.insert(list(data), list(data.values()))
        result = await self.db.run(statement.sql, statement.params)
        records = await self._returning(result.rows)
        return records[0] if records else None

    async def insert_many(self, data: Sequence[Mapping[str, Any]]) -> List[ModelRecord]:
        rows = [self._before_insert(row) for row in data]
        if not rows:
            return []
        columns = list(rows[0])
        statement = self.insert_template.insert_many(
            columns, [[row.get(column) for column in columns] for row in rows]
        )
        result = await self.db.run(statement.sql, statement.params)
        return await self._returning(result.rows)


class SqliteModelManager(ModelManager):
    """SQLite manager; rows are inserted one at a time and re-fetched."""

    query_builder_class = SqliteQueryBuilder

    async def insert(self, data: Mapping[str, Any]) -> Optional[ModelRecord]:
        data = self._before_insert(data)
        statement = self.insert_template.insert(list(data), list(data.values()))
        result = await self.db.run(statement.sql, statement.params)
        return await self._refetch(data, result.lastrowid)

    async def insert_many(self, data: Sequence[Mapping[str, Any]]) -> List[ModelRecord]:
        inserted = []
        for row in data:
            record = await self.insert(row)
            if record is not None:
                inserted.append(record)
        return inserted
