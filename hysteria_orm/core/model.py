"""`Model` base class: table mapping, hooks and class-level CRUD helpers."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Dict, List, Mapping, Optional, Sequence, Union

from ..errors import ConfigurationError
from .metadata import register_model
from .model_manager import ModelManager
from .query_builder import HookNames, QueryBuilder
from .serializer import add_dynamic_columns_to_record
from .types import ADDITIONAL_COLUMNS, CaseConvention, ModelRecord

if TYPE_CHECKING:
    from .sql_data_source import SqlDataSource
    from .transaction import Transaction


class Model:
    """Base class for table-mapped models.

    Subclasses declare columns and relations as class attributes and are
    registered when the class body is executed::

        class User(Model):
            id = column(primary_key=True)
            name = column()
            posts = has_many(lambda: Post, "user_id")

    Query results are plain dicts; the class itself is never instantiated
    by the ORM. Every data method accepts `trx=` to run inside a transaction
    or `use_connection=` to run on a specific data source, and otherwise
    uses the connection set by `SqlDataSource.connect()`.
    """

    table_name: Optional[str] = None
    model_case_convention: CaseConvention = "snake"
    database_case_convention: CaseConvention = "snake"

    table: str
    primary_key: Optional[str]

    def __init_subclass__(cls, **kwargs: Any) -> None:
        super().__init_subclass__(**kwargs)
        metadata = register_model(cls)
        cls.table = metadata.table
        cls.primary_key = metadata.primary_key

    # Hooks

    @classmethod
    def before_fetch(cls, query: QueryBuilder) -> None:
        """Adjust every SELECT issued for this model, e.g. hide soft deleted rows."""

    @classmethod
    def before_insert(cls, data: Dict[str, Any]) -> Optional[Mapping[str, Any]]:
        return data

    @classmethod
    def before_update(cls, query: QueryBuilder) -> None:
        pass

    @classmethod
    def before_delete(cls, query: QueryBuilder) -> None:
        pass

    @classmethod
    async def after_fetch(cls, data: List[ModelRecord]) -> List[ModelRecord]:
        """Post-process serialized results; must return the records."""

        return data

    # Dispatch

    @classmethod
    def _dispatch_model_manager(
        cls,
        trx: Optional[Transaction] = None,
        use_connection: Optional[SqlDataSource] = None,
    ) -> ModelManager:
        if trx is not None:
            return trx.sql_data_source.get_model_manager(cls)
        if use_connection is not None:
            return use_connection.get_model_manager(cls)

        from .sql_data_source import SqlDataSource

        return SqlDataSource.get_instance().get_model_manager(cls)

    @classmethod
    def _require_primary_key(cls, action: str) -> str:
        if not cls.primary_key:
            raise ConfigurationError(f"Model {cls.table} has no primary key to be {action}")
        return cls.primary_key

    # Reads

    @classmethod
    def query(
        cls,
        *,
        trx: Optional[Transaction] = None,
        use_connection: Optional[SqlDataSource] = None,
    ) -> QueryBuilder:
        return cls._dispatch_model_manager(trx, use_connection).query()

    @classmethod
    async def all(
        cls,
        *,
        trx: Optional[Transaction] = None,
        use_connection: Optional[SqlDataSource] = None,
        **find_input: Any,
    ) -> List[ModelRecord]:
        return await cls._dispatch_model_manager(trx, use_connection).find(**find_input)

    @classmethod
    async def first(
        cls,
        *,
        trx: Optional[Transaction] = None,
        use_connection: Optional[SqlDataSource] = None,
        ignore_hooks: HookNames = (),
    ) -> Optional[ModelRecord]:
        """First row of the table, ordered by primary key when there is one."""

        query = cls.query(trx=trx, use_connection=use_connection)
        if cls.primary_key:
            query.order_by(cls.primary_key, "ASC")
        return await query.one(ignore_hooks=ignore_hooks)

    @classmethod
    async def find(
        cls,
        *,
        trx: Optional[Transaction] = None,
        use_connection: Optional[SqlDataSource] = None,
        **find_input: Any,
    ) -> List[ModelRecord]:
        """See `ModelManager.find` for the accepted options."""

        return await cls._dispatch_model_manager(trx, use_connection).find(**find_input)

    @classmethod
    async def find_one(
        cls,
        *,
        trx: Optional[Transaction] = None,
        use_connection: Optional[SqlDataSource] = None,
        **find_input: Any,
    ) -> Optional[ModelRecord]:
        return await cls._dispatch_model_manager(trx, use_connection).find_one(**find_input)

    @classmethod
    async def find_one_or_fail(
        cls,
        custom_error: Optional[BaseException] = None,
        *,
        trx: Optional[Transaction] = None,
        use_connection: Optional[SqlDataSource] = None,
        **find_input: Any,
    ) -> ModelRecord:
        manager = cls._dispatch_model_manager(trx, use_connection)
        return await manager.find_one_or_fail(custom_error, **find_input)

    @classmethod
    async def find_one_by_primary_key(
        cls,
        value: Any,
        *,
        trx: Optional[Transaction] = None,
        use_connection: Optional[SqlDataSource] = None,
        ignore_hooks: HookNames = (),
    ) -> Optional[ModelRecord]:
        manager = cls._dispatch_model_manager(trx, use_connection)
        return await manager.find_one_by_primary_key(value, ignore_hooks=ignore_hooks)

    @classmethod
    async def refresh(
        cls,
        record: Mapping[str, Any],
        *,
        trx: Optional[Transaction] = None,
        use_connection: Optional[SqlDataSource] = None,
    ) -> Optional[ModelRecord]:
        """Re-fetch `record` by primary key, keeping its `$additionalColumns`."""

        primary_key = cls._require_primary_key("refreshed by")
        manager = cls._dispatch_model_manager(trx, use_connection)
        refreshed = await manager.find_one_by_primary_key(record.get(primary_key))
        return _keep_additional_columns(refreshed, record)

    # Writes

    @classmethod
    async def insert(
        cls,
        data: Mapping[str, Any],
        *,
        trx: Optional[Transaction] = None,
        use_connection: Optional[SqlDataSource] = None,
    ) -> Optional[ModelRecord]:
        """Insert one row and return it as fetched back from the database.

        Returns `None` for models without a primary key on dialects that
        cannot return inserted rows.
        """

        return await cls._dispatch_model_manager(trx, use_connection).insert(data)

    @classmethod
    async def insert_many(
        cls,
        data: Sequence[Mapping[str, Any]],
        *,
        trx: Optional[Transaction] = None,
        use_connection: Optional[SqlDataSource] = None,
    ) -> List[ModelRecord]:
        return await cls._dispatch_model_manager(trx, use_connection).insert_many(data)

    @classmethod
    async def update_record(
        cls,
        record: Mapping[str, Any],
        *,
        trx: Optional[Transaction] = None,
        use_connection: Optional[SqlDataSource] = None,
    ) -> Optional[ModelRecord]:
        manager = cls._dispatch_model_manager(trx, use_connection)
        updated = await manager.update_record(record)
        return _keep_additional_columns(updated, record)

    @classmethod
    async def first_or_create(
        cls,
        search: Mapping[str, Any],
        data: Optional[Mapping[str, Any]] = None,
        *,
        trx: Optional[Transaction] = None,
        use_connection: Optional[SqlDataSource] = None,
    ) -> Optional[ModelRecord]:
        """Return the first row matching `search`, inserting `search` + `data` if none."""

        manager = cls._dispatch_model_manager(trx, use_connection)
        found = await manager.find_one(where=search)
        if found is not None:
            return found
        return await manager.insert({**search, **(data or {})})

    @classmethod
    async def upsert(
        cls,
        search: Mapping[str, Any],
        data: Mapping[str, Any],
        update_on_conflict: bool = True,
        *,
        trx: Optional[Transaction] = None,
        use_connection: Optional[SqlDataSource] = None,
    ) -> Optional[ModelRecord]:
        """Insert `search` + `data`, or update the row matching `search`.

        Args:
            search: Equality filters identifying the existing row.
            data: Column values to write.
            update_on_conflict: When false an existing row is returned as is.
        """

        manager = cls._dispatch_model_manager(trx, use_connection)
        return await _upsert_one(manager, search, data, update_on_conflict)

    @classmethod
    async def upsert_many(
        cls,
        conflict_columns: Sequence[str],
        data: Sequence[Mapping[str, Any]],
        update_on_conflict: bool = True,
        *,
        trx: Optional[Transaction] = None,
        use_connection: Optional[SqlDataSource] = None,
    ) -> List[ModelRecord]:
        """Upsert each row of `data`, matching existing rows on `conflict_columns`.

        Raises:
            ConfigurationError: If a row lacks one of the conflict columns.
        """

        for row in data:
            missing = [name for name in conflict_columns if name not in row]
            if missing:
                raise ConfigurationError(
                    "Conflict columns are not present in the data, "
                    f"missing {', '.join(missing)} in {dict(row)!r}"
                )

        manager = cls._dispatch_model_manager(trx, use_connection)
        results: List[ModelRecord] = []
        pending: List[Mapping[str, Any]] = []
        for row in data:
            search = {name: row[name] for name in conflict_columns}
            existing = await manager.find_one(where=search)
            if existing is None:
                pending.append(row)
                continue
            if update_on_conflict:
                existing = await manager.update_record({**existing, **row})
            if existing is not None:
                results.append(existing)

        if pending:
            results.extend(await manager.insert_many(pending))
        return results

    @classmethod
    async def delete_record(
        cls,
        record: Mapping[str, Any],
        *,
        trx: Optional[Transaction] = None,
        use_connection: Optional[SqlDataSource] = None,
    ) -> Mapping[str, Any]:
        return await cls._dispatch_model_manager(trx, use_connection).delete_record(record)

    @classmethod
    async def soft_delete(
        cls,
        record: Mapping[str, Any],
        column: str = "deleted_at",
        value: Any = None,
        *,
        trx: Optional[Transaction] = None,
        use_connection: Optional[SqlDataSource] = None,
    ) -> Optional[ModelRecord]:
        """Mark `record` deleted by setting `column`, then return the updated row.

        `value` defaults to the current UTC time as `YYYY-MM-DD HH:MM:SS`.
        The re-fetch skips `before_fetch` so the row is returned even when
        the hook filters soft deleted rows.
        """

        primary_key = cls._require_primary_key("soft deleted by")
        manager = cls._dispatch_model_manager(trx, use_connection)
        await manager.query().where(primary_key, record.get(primary_key)).soft_delete(column, value)
        refreshed = await manager.find_one_by_primary_key(
            record.get(primary_key), ignore_hooks=("before_fetch",)
        )
        return _keep_additional_columns(refreshed, record)

    @classmethod
    async def add_dynamic_columns(
        cls,
        data: Union[Dict[str, Any], List[Dict[str, Any]]],
        names: Sequence[str],
    ) -> Union[Dict[str, Any], List[Dict[str, Any]]]:
        """Compute dynamic columns `names` on already fetched records in place."""

        records = data if isinstance(data, list) else [data]
        for record in records:
            await add_dynamic_columns_to_record(cls, record, names)
        return data


def _keep_additional_columns(
    result: Optional[ModelRecord], source: Mapping[str, Any]
) -> Optional[ModelRecord]:
    if result is not None and source.get(ADDITIONAL_COLUMNS):
        result[ADDITIONAL_COLUMNS] = dict(source[ADDITIONAL_COLUMNS])
    return result


async def _upsert_one(
    manager: ModelManager,
    search: Mapping[str, Any],
    data: Mapping[str, Any],
    update_on_conflict: bool,
) -> Optional[ModelRecord]:
    existing = await manager.find_one(where=search)
    if existing is None:
        return await manager.insert({**search, **data})
    if not update_on_conflict:
        return existing
    return await manager.update_record({**existing, **data})
