"""SELECT statement templates."""

from __future__ import annotations

import re
from typing import Any, List, Sequence, Type

from ...errors import HysteriaError
from ...ports.db_api.dialects import Dialect
from ..case_utils import convert_case
from .where import convert_column_reference

SQL_FUNCTIONS = frozenset(
    {
        "*",
        "COUNT",
        "DISTINCT",
        "CONCAT",
        "GROUP_CONCAT",
        "AVG",
        "MAX",
        "MIN",
        "SUM",
        "AS",
        "CONVERT",
        "CAST",
        "CONVERT_TZ",
        "DATE_FORMAT",
        "CURDATE",
        "CURRENT_DATE",
        "CURRENT_TIME",
        "CURRENT_TIMESTAMP",
        "CURTIME",
        "DAYNAME",
        "DAYOFMONTH",
        "DAYOFWEEK",
        "DAYOFYEAR",
        "EXTRACT",
        "HOUR",
        "LOCALTIME",
        "LOCALTIMESTAMP",
        "MICROSECOND",
        "MINUTE",
        "MONTH",
        "QUARTER",
        "SECOND",
        "STR_TO_DATE",
        "TIME",
        "TIMESTAMP",
        "WEEK",
        "YEAR",
        "NOW",
        "UTC_DATE",
        "UTC_TIME",
        "UTC_TIMESTAMP",
        "DATE_ADD",
        "DATE_SUB",
        "DATE",
        "DATEDIFF",
        "DISTINCTROW",
    }
)

_AS = re.compile(r"\s+as\s+", re.IGNORECASE)


def split_alias(column: str) -> tuple[str, str]:
    """Split `expr AS alias` into `(expr, alias)`; alias is empty when absent."""

    parts = _AS.split(column.strip(), maxsplit=1)
    if len(parts) == 2:
        return parts[0], parts[1]
    return parts[0], ""


def split_table(column: str) -> tuple[str, str]:
    """Split `table.col` into `(table, col)`; expressions are never split."""

    if "(" in column or "." not in column:
        return "", column
    table, _, name = column.rpartition(".")
    return table, name


class SelectTemplate:
    """SELECT statement generator for one dialect and model."""

    def __init__(self, dialect: Dialect, model: Type[Any]):
        self.dialect = dialect
        self.model = model

    distinct = "DISTINCT"

    def format_column(self, column: str) -> str:
        """Render one selected column.

        Plain names are case-converted and quoted; SQL functions, `*` and
        expressions are kept verbatim; an alias is converted on its own.
        """

        convention = self.model.database_case_convention
        name, alias = split_alias(column)
        if alias:
            alias = convert_case(alias, convention)
        table, name = split_table(name)
        prefix = f"{table}." if table else ""

        if name.upper() in SQL_FUNCTIONS or "(" in name:
            rendered = f"{prefix}{name}"
        else:
            rendered = f"{prefix}{self.dialect.q(convert_case(name, convention))}"
        return f"{rendered} AS {alias}" if alias else rendered

    def format_columns(self, columns: Sequence[str]) -> List[str]:
        return [self.format_column(column) for column in columns]

    def distinct_on(self, *columns: str) -> str:
        if not self.dialect.supports_distinct_on:
            raise HysteriaError("DISTINCT ON is only supported in postgres")
        rendered = [
            self.dialect.q(convert_case(column, self.model.database_case_convention))
            for column in columns
        ]
        return f"DISTINCT ON ({', '.join(rendered)})"

    def column_reference(self, column: str) -> str:
        return convert_column_reference(column, self.model.database_case_convention)

    @staticmethod
    def limit(limit: int) -> str:
        return f" LIMIT {int(limit)}"

    @staticmethod
    def offset(offset: int) -> str:
        return f" OFFSET {int(offset)}"
