"""Concrete SQL dialect strategies for DB-API adapters.

Every behavior that differs between MySQL/MariaDB, PostgreSQL and SQLite is
answered by one of these classes, so template generators never switch on the
database type themselves.
"""

from __future__ import annotations

import itertools
import json
import re
from typing import Any, Optional

from ...errors import HysteriaError, UnsupportedDatabaseTypeError

PLACEHOLDER = "PLACEHOLDER"

_PLACEHOLDER_RE = re.compile(PLACEHOLDER)


class Dialect:
    """Base dialect that defines quoting, bind markers and JSON handling."""

    name: str = "generic"
    paramstyle: str = "qmark"
    quote_char: str = '"'
    supports_returning: bool = False
    supports_distinct_on: bool = False
    regex_operator: Optional[str] = None
    native_transactions: bool = False
    json_aggregate_function: str = "JSON_ARRAYAGG"
    json_object_function: str = "JSON_OBJECT"
    json_aggregate_target: str = "t.json_data"
    join_left_table_in_pivot: bool = False

    def q(self, ident: str) -> str:
        """Quote SQL identifier, doubling embedded quote characters."""

        escaped = ident.replace(self.quote_char, self.quote_char * 2)
        return f"{self.quote_char}{escaped}{self.quote_char}"

    def marker(self, index: int) -> str:
        """Return the driver bind marker for the `index`-th (1-based) parameter."""

        return "?"

    def convert_placeholders(self, query: str, start_index: int = 1) -> str:
        """Rewrite every `PLACEHOLDER` token into this dialect's bind marker."""

        counter = itertools.count(start_index)
        return _PLACEHOLDER_RE.sub(lambda _m: self.marker(next(counter)), query)

    def json_column(self, column: str) -> str:
        """Left-hand side used when a column is compared against a JSON value."""

        return f"JSON_UNQUOTE(JSON_EXTRACT({column}, '$'))"

    def json_placeholder(self) -> str:
        """Placeholder used for a JSON-encoded bound value."""

        return PLACEHOLDER

    def json_dumps(self, value: Any) -> str:
        """Encode a mapping the way the database renders JSON text."""

        return json.dumps(value, default=str)

    def string_literal(self, value: str) -> str:
        """Quote `value` as an inline string literal."""

        escaped = value.replace("'", "''")
        return f"'{escaped}'"

    def regex(self, column: str) -> str:
        """Return a regex predicate against `column` with one placeholder."""

        if self.regex_operator is None:
            raise HysteriaError(f"{self.name} does not support REGEXP")
        return f"{column} {self.regex_operator} {PLACEHOLDER}"

    def has_many_default_order(self, table: str, foreign_key: str) -> str:
        """Fallback window ordering for has-many relation pagination."""

        return "1"

    def get_lastrowid(self, cursor: Any) -> Optional[int]:
        """Extract `lastrowid` from DB-API cursor when available."""

        return getattr(cursor, "lastrowid", None)


class SQLiteDialect(Dialect):
    """SQLite dialect (`?` parameters, no REGEXP)."""

    name = "sqlite"
    paramstyle = "qmark"
    quote_char = "`"
    supports_returning = False
    json_aggregate_function = "JSON_GROUP_ARRAY"
    json_object_function = "JSON_OBJECT"
    json_aggregate_target = "JSON(t.json_data)"

    def json_dumps(self, value: Any) -> str:
        return json.dumps(value, default=str, separators=(",", ":"))

    def json_column(self, column: str) -> str:
        return f"JSON_EXTRACT({column}, '$')"

    def regex(self, column: str) -> str:
        raise HysteriaError("SQLite does not support REGEXP out of the box")


class PostgresDialect(Dialect):
    """PostgreSQL dialect (`$n` positional parameters, `RETURNING`, `::jsonb`)."""

    name = "postgres"
    paramstyle = "numeric_dollar"
    quote_char = '"'
    supports_returning = True
    supports_distinct_on = True
    regex_operator = "~"
    json_aggregate_function = "json_agg"
    json_object_function = "json_build_object"
    json_aggregate_target = "t.json_data"

    def marker(self, index: int) -> str:
        return f"${index}"

    def json_column(self, column: str) -> str:
        return f"{column}::jsonb"

    def json_placeholder(self) -> str:
        return f"{PLACEHOLDER}::jsonb"


class MySQLDialect(Dialect):
    """MySQL dialect (`%s` positional parameters, native transactions)."""

    name = "mysql"
    paramstyle = "format"
    quote_char = "`"
    supports_returning = False
    regex_operator = "REGEXP"
    native_transactions = True
    json_aggregate_function = "JSON_ARRAYAGG"
    json_object_function = "JSON_OBJECT"
    json_aggregate_target = "t.json_data"

    def marker(self, index: int) -> str:
        return "%s"

    def string_literal(self, value: str) -> str:
        # Backslash is an escape character unless NO_BACKSLASH_ESCAPES is set.
        return super().string_literal(value.replace("\\", "\\\\"))

    def convert_placeholders(self, query: str, start_index: int = 1) -> str:
        # The driver applies `%` formatting whenever params are passed.
        return super().convert_placeholders(query.replace("%", "%%"), start_index)

    def has_many_default_order(self, table: str, foreign_key: str) -> str:
        return f"{table}.{foreign_key}"


class MariaDBDialect(MySQLDialect):
    """MariaDB dialect, needs the left table joined inside pivot subqueries."""

    name = "mariadb"
    join_left_table_in_pivot = True


_DIALECTS: dict[str, type[Dialect]] = {
    "mysql": MySQLDialect,
    "mariadb": MariaDBDialect,
    "postgres": PostgresDialect,
    "sqlite": SQLiteDialect,
}


def get_dialect(db_type: str) -> Dialect:
    """Return the dialect strategy for a database type tag.

    Raises:
        UnsupportedDatabaseTypeError: If `db_type` is not a SQL dialect.
    """

    try:
        return _DIALECTS[db_type]()
    except KeyError:
        raise UnsupportedDatabaseTypeError(db_type) from None
