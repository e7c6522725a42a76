"""Connection lifecycle for MySQL/MariaDB, PostgreSQL and SQLite."""

from __future__ import annotations

import logging
from typing import Any, Awaitable, Callable, ClassVar, Dict, Mapping, Optional, Type

from ..config import SQL_DATABASE_TYPES, load_data_source_settings
from ..errors import ConnectionNotEstablishedError, UnsupportedDatabaseTypeError
from ..ports.db_api.async_database import AsyncDatabase
from ..ports.db_api.dialects import get_dialect
from ..ports.db_api.drivers import open_connection
from ._async_utils import _call_maybe_async
from .model_manager import (
    ModelManager,
    MysqlModelManager,
    PostgresModelManager,
    SqliteModelManager,
)
from .transaction import Transaction
from .types import QueryParams, Rows

logger = logging.getLogger(__name__)

_MODEL_MANAGERS: Dict[str, Type[ModelManager]] = {
    "mysql": MysqlModelManager,
    "mariadb": MysqlModelManager,
    "postgres": PostgresModelManager,
    "sqlite": SqliteModelManager,
}


class SqlDataSource:
    """SQL data source holding one driver connection.

    Explicit arguments take priority over the `DB_*` environment variables.
    `SqlDataSource.connect()` sets the process-wide instance used by the
    `Model` class methods.
    """

    _instance: ClassVar[Optional[SqlDataSource]] = None

    def __init__(
        self,
        type: Optional[str] = None,
        host: Optional[str] = None,
        port: Optional[int] = None,
        username: Optional[str] = None,
        password: Optional[str] = None,
        database: Optional[str] = None,
        logs: Optional[bool] = None,
        mysql_options: Optional[Mapping[str, Any]] = None,
        pg_options: Optional[Mapping[str, Any]] = None,
        sqlite_options: Optional[Mapping[str, Any]] = None,
    ):
        self._input = {
            "type": type,
            "host": host,
            "port": port,
            "username": username,
            "password": password,
            "database": database,
            "logs": logs,
            "mysql_options": mysql_options,
            "pg_options": pg_options,
            "sqlite_options": sqlite_options,
        }
        self.settings = load_data_source_settings(
            type=type,
            host=host,
            port=port,
            user=username,
            password=password,
            database=database,
            logs=logs,
        )
        if self.settings.type not in SQL_DATABASE_TYPES:
            raise UnsupportedDatabaseTypeError(self.settings.type)

        self.type = self.settings.type
        self.logs = self.settings.logs
        self.dialect = get_dialect(self.type)
        if self.type in ("mysql", "mariadb"):
            self.driver_options = dict(mysql_options or {})
        elif self.type == "postgres":
            self.driver_options = dict(pg_options or {})
        else:
            self.driver_options = dict(sqlite_options or {})
        self._db: Optional[AsyncDatabase] = None

    def __repr__(self) -> str:
        return f"SqlDataSource(type={self.type!r}, database={self.settings.database!r})"

    @property
    def connection(self) -> AsyncDatabase:
        """Live adapter; raises when the source is not connected."""

        if self._db is None or self._db.closed:
            raise ConnectionNotEstablishedError()
        return self._db

    @property
    def is_connected(self) -> bool:
        return self._db is not None and not self._db.closed

    def get_db_type(self) -> str:
        return self.type

    async def connect_driver(self) -> SqlDataSource:
        """Open the driver connection for this source."""

        conn = await open_connection(self.settings, self.driver_options)
        self._db = AsyncDatabase(conn, self.dialect, logs=self.logs)
        return self

    @classmethod
    async def connect(
        cls,
        callback: Optional[Callable[[SqlDataSource], Any]] = None,
        **connection_input: Any,
    ) -> SqlDataSource:
        """Connect and store the process-wide instance.

        Args:
            callback: Optional sync or async callable run with the new source.
            **connection_input: `SqlDataSource` constructor arguments.
        """

        sql_data_source = await cls(**connection_input).connect_driver()
        cls._instance = sql_data_source
        if callback is not None:
            await _call_maybe_async(callback, sql_data_source)
        return sql_data_source

    @classmethod
    def get_instance(cls) -> SqlDataSource:
        if cls._instance is None:
            raise ConnectionNotEstablishedError()
        return cls._instance

    def get_model_manager(self, model: Type[Any]) -> ModelManager:
        return _MODEL_MANAGERS[self.type](model, self)

    def get_current_connection(self) -> AsyncDatabase:
        return self.connection

    def get_raw_connection(self) -> Any:
        """Underlying driver connection object."""

        return self.connection.conn

    async def start_transaction(self) -> Transaction:
        """Open a dedicated connection and begin a transaction on it."""

        dedicated = await type(self)(**self._input).connect_driver()
        transaction = Transaction(dedicated)
        await transaction.start_transaction()
        return transaction

    async def begin_transaction(self) -> Transaction:
        return await self.start_transaction()

    async def transaction(self) -> Transaction:
        return await self.start_transaction()

    async def use_transaction(self, callback: Callable[[Transaction], Awaitable[Any]]) -> Any:
        """Run `callback(trx)`, committing on success and rolling back on error.

        The error is always re-raised.
        """

        transaction = await self.start_transaction()
        try:
            result = await _call_maybe_async(callback, transaction)
        except BaseException:
            if transaction.is_active:
                await transaction.rollback()
            raise
        if transaction.is_active:
            await transaction.commit()
        return result

    @classmethod
    async def use_connection(
        cls, callback: Callable[[SqlDataSource], Awaitable[Any]], **connection_input: Any
    ) -> Any:
        """Run `callback` with a temporary source that is always closed afterwards."""

        sql_data_source = await cls(**connection_input).connect_driver()
        try:
            return await _call_maybe_async(callback, sql_data_source)
        finally:
            await sql_data_source.close_connection()

    async def close_connection(self) -> None:
        if not self.is_connected:
            logger.warning("Connection already closed: %r", self)
            return
        await self._db.aclose()
        logger.info("Closed %s connection", self.type)
        if SqlDataSource._instance is self:
            SqlDataSource._instance = None

    async def disconnect(self) -> None:
        await self.close_connection()

    @classmethod
    async def close_main_connection(cls) -> None:
        if cls._instance is None:
            logger.warning("Main connection is not established, nothing to close")
            return
        await cls._instance.close_connection()

    async def raw_query(self, query: str, params: Optional[QueryParams] = None) -> Rows:
        """Run SQL written with the driver's own markers and return the rows."""

        result = await self.connection.run(query, list(params) if params else None)
        return result.rows

    async def __aenter__(self) -> SqlDataSource:
        if not self.is_connected:
            await self.connect_driver()
        return self

    async def __aexit__(self, exc_type: Any, exc: Any, tb: Any) -> None:
        if self.is_connected:
            await self.close_connection()
