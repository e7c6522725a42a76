"""Lazy driver loading and connection opening for the supported databases."""

from __future__ import annotations

import importlib
import logging
from types import ModuleType
from typing import Any, Mapping, Optional

from ...config import DataSourceSettings
from ...errors import DriverNotFoundError, UnsupportedDatabaseTypeError
from ...core._async_utils import _maybe_await

logger = logging.getLogger(__name__)

DRIVER_MODULES = {
    "mysql": "pymysql",
    "mariadb": "pymysql",
    "postgres": "psycopg",
    "sqlite": "sqlite3",
}


class DriverFactory:
    """Import a database driver only when a data source of that type connects."""

    @staticmethod
    def get_driver(db_type: str) -> ModuleType:
        """Return the driver module for `db_type`.

        Raises:
            UnsupportedDatabaseTypeError: If the type has no SQL driver.
            DriverNotFoundError: If the driver package is not installed.
        """

        try:
            module_name = DRIVER_MODULES[db_type]
        except KeyError:
            raise UnsupportedDatabaseTypeError(db_type) from None
        try:
            return importlib.import_module(module_name)
        except ImportError as exc:
            raise DriverNotFoundError(module_name) from exc


async def open_connection(
    settings: DataSourceSettings, options: Optional[Mapping[str, Any]] = None
) -> Any:
    """Open a raw driver connection in autocommit mode.

    Transactions are opened explicitly with `BEGIN` (or the driver's native
    `begin()`), so every other statement commits on its own.

    Args:
        settings: Resolved connection settings.
        options: Extra keyword arguments forwarded to the driver's `connect`.
    """

    driver = DriverFactory.get_driver(settings.type)
    extra = dict(options or {})

    if settings.type in ("mysql", "mariadb"):
        connection = driver.connect(
            host=settings.host,
            port=settings.port,
            user=settings.user,
            password=settings.password or "",
            database=settings.database,
            autocommit=True,
            **extra,
        )
    elif settings.type == "postgres":
        connection = await _maybe_await(
            driver.AsyncConnection.connect(
                host=settings.host,
                port=settings.port,
                user=settings.user,
                password=settings.password,
                dbname=settings.database,
                autocommit=True,
                cursor_factory=driver.AsyncRawCursor,
                **extra,
            )
        )
    else:
        connection = driver.connect(
            settings.database or ":memory:", isolation_level=None, **extra
        )

    logger.info(
        "Opened %s connection to %s", settings.type, settings.database or settings.host
    )
    return connection
