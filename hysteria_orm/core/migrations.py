"""Migration bookkeeping on top of `SqlDataSource`.

Applied migrations are tracked in a `migrations` table created on demand
with the DDL of the connected dialect. Migration files themselves are out of
scope: callers pass `Migration` instances to `MigrationController`.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Sequence

from ..errors import HysteriaError, UnsupportedDatabaseTypeError
from ..ports.db_api.dialects import PLACEHOLDER
from ._async_utils import _call_maybe_async
from .types import QueryParams, Rows

if TYPE_CHECKING:
    from .sql_data_source import SqlDataSource

logger = logging.getLogger(__name__)

MIGRATION_TABLE = "migrations"

_MYSQL_MIGRATION_TABLE = f"""CREATE TABLE IF NOT EXISTS {MIGRATION_TABLE} (
    id INT AUTO_INCREMENT PRIMARY KEY,
    name VARCHAR(255) NOT NULL,
    timestamp TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP
) ENGINE=InnoDB DEFAULT CHARSET=utf8mb4;"""

MIGRATION_TABLE_DDL: Dict[str, str] = {
    "mysql": _MYSQL_MIGRATION_TABLE,
    "mariadb": _MYSQL_MIGRATION_TABLE,
    "postgres": f"""CREATE TABLE IF NOT EXISTS {MIGRATION_TABLE} (
    id SERIAL PRIMARY KEY,
    name VARCHAR(255) NOT NULL,
    timestamp TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP
);""",
    "sqlite": f"""CREATE TABLE IF NOT EXISTS {MIGRATION_TABLE} (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    name VARCHAR(255) NOT NULL,
    timestamp TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP
);""",
}


def migration_table_ddl(db_type: str) -> str:
    try:
        return MIGRATION_TABLE_DDL[db_type]
    except KeyError:
        raise UnsupportedDatabaseTypeError(db_type) from None


async def get_migration_table(sql_data_source: SqlDataSource) -> Rows:
    """Create the bookkeeping table if needed and return the applied rows.

    Rows carry `id`, `name` and `timestamp`, ordered by `id`.
    """

    await sql_data_source.raw_query(migration_table_ddl(sql_data_source.type))
    return await sql_data_source.raw_query(
        f"SELECT id, name, timestamp FROM {MIGRATION_TABLE} ORDER BY id ASC"
    )


async def record_migration(sql_data_source: SqlDataSource, name: str) -> None:
    query = sql_data_source.dialect.convert_placeholders(
        f"INSERT INTO {MIGRATION_TABLE} (name) VALUES ({PLACEHOLDER})"
    )
    await sql_data_source.raw_query(query, [name])


async def remove_migration(sql_data_source: SqlDataSource, name: str) -> None:
    query = sql_data_source.dialect.convert_placeholders(
        f"DELETE FROM {MIGRATION_TABLE} WHERE name = {PLACEHOLDER}"
    )
    await sql_data_source.raw_query(query, [name])


def pending_migrations(
    applied: Sequence[str], names: Sequence[str], run_until: Optional[str] = None
) -> List[str]:
    """Names not yet applied, in order, optionally cut after `run_until`.

    Raises:
        HysteriaError: If `run_until` is not one of the pending names.
    """

    applied_names = set(applied)
    pending = [name for name in names if name not in applied_names]
    if run_until is None:
        return pending
    if run_until not in pending:
        raise HysteriaError(f"Migration {run_until} not found.")
    return pending[: pending.index(run_until) + 1]


class Schema:
    """Statements collected by a migration's `up()` or `down()`."""

    def __init__(self) -> None:
        self.statements: List[tuple] = []

    def raw_query(self, query: str, params: Optional[QueryParams] = None) -> Schema:
        self.statements.append((query, list(params) if params else None))
        return self

    def clear(self) -> None:
        self.statements = []


class Migration(ABC):
    """One migration; `up()` and `down()` queue statements on `self.schema`."""

    def __init__(self, name: Optional[str] = None) -> None:
        self.name = name or type(self).__name__
        self.schema = Schema()

    @abstractmethod
    def up(self) -> Any:
        ...

    @abstractmethod
    def down(self) -> Any:
        ...

    async def after_migration(self, sql_data_source: SqlDataSource) -> None:
        """Runs after the migration's statements were executed."""


class MigrationController:
    """Apply or roll back migrations against one data source."""

    def __init__(self, sql_data_source: SqlDataSource):
        self.sql_data_source = sql_data_source

    async def _run(self, migration: Migration, direction: str) -> None:
        migration.schema.clear()
        await _call_maybe_async(getattr(migration, direction))
        for query, params in migration.schema.statements:
            await self.sql_data_source.raw_query(query, params)
        await migration.after_migration(self.sql_data_source)

    async def up_migrations(
        self, migrations: Sequence[Migration], run_until: Optional[str] = None
    ) -> List[str]:
        """Run `up()` of every pending migration; returns the applied names."""

        applied = [row["name"] for row in await get_migration_table(self.sql_data_source)]
        by_name = {migration.name: migration for migration in migrations}
        names = pending_migrations(applied, list(by_name), run_until)
        if not names:
            logger.info("No pending migrations")
            return []

        for name in names:
            await self._run(by_name[name], "up")
            await record_migration(self.sql_data_source, name)
            logger.info("Migrated %s", name)
        return names

    async def down_migrations(
        self, migrations: Sequence[Migration], run_until: Optional[str] = None
    ) -> List[str]:
        """Run `down()` of applied migrations, newest first.

        `run_until` names the last migration to roll back; all applied ones
        are rolled back when it is omitted.
        """

        applied = [row["name"] for row in await get_migration_table(self.sql_data_source)]
        by_name = {migration.name: migration for migration in migrations}
        names = [name for name in reversed(applied) if name in by_name]
        if run_until is not None:
            if run_until not in names:
                raise HysteriaError(f"Migration {run_until} not found.")
            names = names[: names.index(run_until) + 1]

        for name in names:
            await self._run(by_name[name], "down")
            await remove_migration(self.sql_data_source, name)
            logger.info("Rolled back %s", name)
        return names
