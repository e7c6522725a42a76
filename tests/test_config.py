from __future__ import annotations

import os
import unittest
from unittest import mock

from hysteria_orm import Model, SqlDataSource, column
from hysteria_orm.config import load_data_source_settings
from hysteria_orm.core.model_manager import ModelManager, SqliteModelManager
from hysteria_orm.errors import (
    ConfigurationError,
    ConnectionNotEstablishedError,
    UnsupportedDatabaseTypeError,
)
from hysteria_orm.ports.db_api.dialects import PostgresDialect
from hysteria_orm.ports.db_api.drivers import DriverFactory


class ConfigGadget(Model):
    id = column(primary_key=True)


class SettingsTests(unittest.TestCase):
    def test_default_ports(self) -> None:
        with mock.patch.dict(os.environ, {}, clear=True):
            self.assertEqual(load_data_source_settings(type="postgres").port, 5432)
            self.assertEqual(load_data_source_settings(type="mysql").port, 3306)
            self.assertEqual(load_data_source_settings(type="mariadb").port, 3306)
            self.assertIsNone(load_data_source_settings(type="sqlite").port)

    def test_environment_is_used_and_explicit_input_wins(self) -> None:
        env = {
            "DB_TYPE": "mysql",
            "DB_HOST": "db.internal",
            "DB_PORT": "3307",
            "DB_USER": "app",
            "DB_LOGS": "true",
        }
        with mock.patch.dict(os.environ, env, clear=True):
            settings = load_data_source_settings()
            self.assertEqual(settings.type, "mysql")
            self.assertEqual(settings.host, "db.internal")
            self.assertEqual(settings.port, 3307)
            self.assertEqual(settings.user, "app")
            self.assertTrue(settings.logs)

            overridden = load_data_source_settings(type="postgres", host="localhost", port=None)
            self.assertEqual(overridden.type, "postgres")
            self.assertEqual(overridden.host, "localhost")
            self.assertEqual(overridden.port, 3307)

    def test_missing_type(self) -> None:
        with mock.patch.dict(os.environ, {}, clear=True):
            with self.assertRaisesRegex(ConfigurationError, "Database type not provided"):
                load_data_source_settings()

    def test_unknown_type(self) -> None:
        with mock.patch.dict(os.environ, {}, clear=True):
            with self.assertRaisesRegex(UnsupportedDatabaseTypeError, "Unsupported database type: oracle"):
                load_data_source_settings(type="oracle")
            with self.assertRaises(UnsupportedDatabaseTypeError):
                SqlDataSource(type="oracle")


class SqlDataSourceConfigTests(unittest.TestCase):
    def test_dialect_and_username(self) -> None:
        with mock.patch.dict(os.environ, {}, clear=True):
            source = SqlDataSource(type="postgres", host="localhost", username="app", database="db")
        self.assertIsInstance(source.dialect, PostgresDialect)
        self.assertEqual(source.settings.user, "app")
        self.assertEqual(source.get_db_type(), "postgres")
        self.assertFalse(source.is_connected)

    def test_non_sql_type_is_rejected(self) -> None:
        with mock.patch.dict(os.environ, {}, clear=True):
            with self.assertRaises(UnsupportedDatabaseTypeError):
                SqlDataSource(type="mongo")

    def test_connection_before_connect(self) -> None:
        with mock.patch.dict(os.environ, {}, clear=True):
            source = SqlDataSource(type="sqlite", database=":memory:")
        with self.assertRaisesRegex(ConnectionNotEstablishedError, "sql database connection not established"):
            source.connection

    def test_model_manager_needs_a_dialect_subclass(self) -> None:
        with mock.patch.dict(os.environ, {}, clear=True):
            source = SqlDataSource(type="sqlite", database=":memory:")
        with self.assertRaises(TypeError):
            ModelManager(ConfigGadget, source)
        self.assertIs(SqliteModelManager(ConfigGadget, source).model, ConfigGadget)

    def test_driver_factory(self) -> None:
        self.assertEqual(DriverFactory.get_driver("sqlite").__name__, "sqlite3")
        with self.assertRaises(UnsupportedDatabaseTypeError):
            DriverFactory.get_driver("mongo")


if __name__ == "__main__":
    unittest.main()
