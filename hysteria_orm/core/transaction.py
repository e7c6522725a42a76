"""Transaction bound to one dedicated data source connection."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from ..errors import TransactionNotActiveError

if TYPE_CHECKING:
    from .sql_data_source import SqlDataSource

logger = logging.getLogger(__name__)


class Transaction:
    """Begin, commit or roll back on a connection nobody else uses.

    The connection is released after `commit()` or `rollback()`, so a
    transaction object is single use. It also works as an async context
    manager: commit on success, roll back on error.
    """

    def __init__(self, sql_data_source: SqlDataSource):
        self.sql_data_source = sql_data_source
        self.is_active = False

    async def start_transaction(self) -> None:
        try:
            await self.sql_data_source.connection.begin()
        except BaseException:
            await self._release()
            raise
        self.is_active = True

    async def commit(self) -> None:
        """Commit and release the connection.

        Raises:
            TransactionNotActiveError: If the transaction was already ended.
        """

        if not self.is_active:
            raise TransactionNotActiveError("Transaction is not active, cannot commit")
        try:
            await self.sql_data_source.connection.commit()
        finally:
            self.is_active = False
            await self._release()

    async def rollback(self) -> None:
        """Roll back and release the connection.

        Raises:
            TransactionNotActiveError: If the transaction was already ended.
        """

        if not self.is_active:
            raise TransactionNotActiveError("Transaction is not active, cannot rollback")
        try:
            await self.sql_data_source.connection.rollback()
        finally:
            self.is_active = False
            await self._release()

    async def _release(self) -> None:
        await self.sql_data_source.close_connection()

    async def __aenter__(self) -> Transaction:
        if not self.is_active:
            await self.start_transaction()
        return self

    async def __aexit__(self, exc_type: Any, exc: Any, tb: Any) -> None:
        if not self.is_active:
            return
        if exc_type is None:
            await self.commit()
        else:
            await self.rollback()
