"""Async DB adapter that puts the three SQL drivers behind one awaitable API."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping, Optional

from ...core._async_utils import _maybe_await
from ...core.templates.transaction import (
    BEGIN_TRANSACTION,
    COMMIT_TRANSACTION,
    ROLLBACK_TRANSACTION,
)
from ...core.types import QueryParams, RowMapping, Rows
from ...logger import log
from .dialects import Dialect


@dataclass(frozen=True)
class ExecutionResult:
    """Outcome of one executed statement."""

    rows: Rows = field(default_factory=list)
    rowcount: int = 0
    lastrowid: Optional[int] = None


class AsyncDatabase:
    """Async database wrapper that normalizes execute and row mapping behavior.

    Works with natively async connections (psycopg `AsyncConnection`) and with
    synchronous DB-API connections (`sqlite3`, `pymysql`): every driver call
    goes through `_maybe_await`.
    """

    def __init__(self, conn: Any, dialect: Dialect, *, logs: bool = False):
        """Create async database adapter.

        Args:
            conn: Async (or sync) DB connection object.
            dialect: Concrete SQL dialect instance.
            logs: Log every executed statement with its params.
        """

        self._closed = False
        self.conn = conn
        self.dialect = dialect
        self.logs = logs

    @property
    def closed(self) -> bool:
        return self._closed

    async def begin(self) -> None:
        """Open a transaction on the underlying connection."""

        log(BEGIN_TRANSACTION, self.logs)
        if self.dialect.native_transactions:
            await _maybe_await(self.conn.begin())
            return
        await self._execute_and_close(BEGIN_TRANSACTION)

    async def commit(self) -> None:
        """Commit the transaction opened by `begin()`."""

        log(COMMIT_TRANSACTION, self.logs)
        if self.dialect.native_transactions:
            await _maybe_await(self.conn.commit())
            return
        await self._execute_and_close(COMMIT_TRANSACTION)

    async def rollback(self) -> None:
        """Roll back the transaction opened by `begin()`."""

        log(ROLLBACK_TRANSACTION, self.logs)
        if self.dialect.native_transactions:
            await _maybe_await(self.conn.rollback())
            return
        await self._execute_and_close(ROLLBACK_TRANSACTION)

    async def _execute_and_close(self, sql: str) -> None:
        cur = await self._cursor_execute(sql, None)
        await self._close_cursor(cur)

    async def _cursor_execute(self, sql: str, params: QueryParams | None) -> Any:
        cur = await _maybe_await(self.conn.cursor())
        try:
            if params is None:
                await _maybe_await(cur.execute(sql))
            else:
                await _maybe_await(cur.execute(sql, params))
        except BaseException:
            await self._close_cursor(cur)
            raise
        return cur

    async def _close_cursor(self, cur: Any) -> None:
        close = getattr(cur, "close", None)
        if callable(close):
            await _maybe_await(close())

    async def execute(self, sql: str, params: QueryParams | None = None) -> Any:
        """Execute SQL with optional parameters and return the open cursor."""

        log(sql, self.logs, params)
        return await self._cursor_execute(sql, params)

    async def run(self, sql: str, params: QueryParams | None = None) -> ExecutionResult:
        """Execute SQL and collect rows, affected row count and last row id."""

        cur = await self.execute(sql, params)
        try:
            rows: Rows = []
            if getattr(cur, "description", None):
                fetched = await _maybe_await(cur.fetchall())
                rows = [self._row_to_mapping(cur, row) for row in fetched]
            rowcount = getattr(cur, "rowcount", 0)
            return ExecutionResult(
                rows=rows,
                rowcount=rowcount if rowcount and rowcount > 0 else 0,
                lastrowid=self.dialect.get_lastrowid(cur),
            )
        finally:
            await self._close_cursor(cur)

    @staticmethod
    def _row_to_mapping(cursor: Any, row: Any) -> RowMapping:
        """Turn a driver row into a dict keyed by column name.

        `sqlite3`, `pymysql` and psycopg's raw cursor return tuples, so the
        names come from `cursor.description`.
        """

        if isinstance(row, Mapping):
            return dict(row)
        description = getattr(cursor, "description", None)
        if not description:
            raise TypeError("Cursor has no description; cannot name the row columns.")
        return {column[0]: value for column, value in zip(description, row)}

    async def fetchall(self, sql: str, params: QueryParams | None = None) -> Rows:
        """Execute a query and return every row as a dict."""

        return (await self.run(sql, params)).rows

    async def aclose(self) -> None:
        """Close the underlying connection once."""

        if self._closed:
            return
        self._closed = True
        close = getattr(self.conn, "close", None)
        if callable(close):
            await _maybe_await(close())
