"""Connection settings resolved from explicit input and `DB_*` environment variables."""

from __future__ import annotations

from typing import Any, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict

from .errors import ConfigurationError, UnsupportedDatabaseTypeError

SQL_DATABASE_TYPES = ("mysql", "mariadb", "postgres", "sqlite")

DEFAULT_PORTS: dict[str, Optional[int]] = {
    "mysql": 3306,
    "mariadb": 3306,
    "postgres": 5432,
    "mongo": 27017,
    "sqlite": None,
}


class DataSourceSettings(BaseSettings):
    """Database connection settings.

    Every field can come from the environment (`DB_TYPE`, `DB_HOST`,
    `DB_PORT`, `DB_USER`, `DB_PASSWORD`, `DB_DATABASE`, `DB_LOGS`) or from a
    local `.env` file. Values passed to the constructor take precedence.
    """

    model_config = SettingsConfigDict(
        env_prefix="DB_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    type: Optional[str] = None
    host: Optional[str] = None
    port: Optional[int] = None
    user: Optional[str] = None
    password: Optional[str] = None
    database: Optional[str] = None
    logs: bool = False


def load_data_source_settings(**explicit: Any) -> DataSourceSettings:
    """Merge explicit connection input over the environment.

    Args:
        **explicit: Any of the `DataSourceSettings` fields. `None` values are
            ignored so they fall back to the environment.

    Returns:
        Settings with the dialect default port filled in when none was given.

    Raises:
        ConfigurationError: If no database type can be resolved.
        UnsupportedDatabaseTypeError: If the type is not a known database.
    """

    overrides = {key: value for key, value in explicit.items() if value is not None}
    settings = DataSourceSettings(**overrides)

    if not settings.type:
        raise ConfigurationError(
            "Database type not provided in the input or in the environment variables"
        )
    settings.type = settings.type.lower()
    if settings.type not in DEFAULT_PORTS:
        raise UnsupportedDatabaseTypeError(settings.type)

    if settings.port is None:
        settings.port = DEFAULT_PORTS[settings.type]
    return settings
