"""WHERE fragment templates.

Every method returns a `CompiledFragment` whose SQL carries `PLACEHOLDER`
tokens; they are rewritten to driver markers once the whole statement is
assembled.
"""

from __future__ import annotations

from typing import Any, Optional, Sequence, Type

from ...ports.db_api.dialects import PLACEHOLDER, Dialect
from ..case_utils import convert_case
from ..types import CaseConvention, QueryParams
from .fragment import CompiledFragment, is_json_value

_PREFIXES = {
    "WHERE": "\nWHERE ",
    "AND": " AND ",
    "OR": " OR ",
}


def convert_column_reference(column: str, convention: CaseConvention) -> str:
    """Convert `col` or the column part of `table.col`; expressions are kept."""

    if "(" in column:
        return column
    table, dot, name = column.rpartition(".")
    return f"{table}{dot}{convert_case(name, convention)}"


class WhereTemplate:
    """WHERE clause generator for one dialect and model."""

    def __init__(self, dialect: Dialect, model: Optional[Type[Any]] = None):
        self.dialect = dialect
        self.model = model

    def _prefix(self, joiner: str) -> str:
        try:
            return _PREFIXES[joiner]
        except KeyError:
            raise ValueError(f"Unsupported where joiner {joiner!r}") from None

    def _column(self, column: str) -> str:
        if self.model is None:
            return column
        return convert_column_reference(column, self.model.database_case_convention)

    def where(
        self, joiner: str, column: str, value: Any, operator: str = "="
    ) -> CompiledFragment:
        """`column operator value`; mapping values are compared as JSON."""

        column = self._column(column)
        if is_json_value(value):
            return CompiledFragment(
                f"{self._prefix(joiner)}{self.dialect.json_column(column)} "
                f"{operator} {self.dialect.json_placeholder()}",
                [self.dialect.json_dumps(value)],
            )
        return CompiledFragment(
            f"{self._prefix(joiner)}{column} {operator} {PLACEHOLDER}", [value]
        )

    def where_not(self, joiner: str, column: str, value: Any) -> CompiledFragment:
        return self.where(joiner, column, value, "!=")

    def where_between(
        self, joiner: str, column: str, min_value: Any, max_value: Any, *, negate: bool = False
    ) -> CompiledFragment:
        keyword = "NOT BETWEEN" if negate else "BETWEEN"
        return CompiledFragment(
            f"{self._prefix(joiner)}{self._column(column)} {keyword} "
            f"{PLACEHOLDER} AND {PLACEHOLDER}",
            [min_value, max_value],
        )

    def where_not_between(
        self, joiner: str, column: str, min_value: Any, max_value: Any
    ) -> CompiledFragment:
        return self.where_between(joiner, column, min_value, max_value, negate=True)

    def where_in(
        self, joiner: str, column: str, values: Sequence[Any], *, negate: bool = False
    ) -> CompiledFragment:
        """`column IN (...)`; an empty list never matches (`NOT IN` always does)."""

        values = list(values)
        if not values:
            return CompiledFragment(f"{self._prefix(joiner)}{'1 = 1' if negate else '1 = 0'}")
        markers = ", ".join(PLACEHOLDER for _ in values)
        keyword = "NOT IN" if negate else "IN"
        return CompiledFragment(
            f"{self._prefix(joiner)}{self._column(column)} {keyword} ({markers})", values
        )

    def where_not_in(self, joiner: str, column: str, values: Sequence[Any]) -> CompiledFragment:
        return self.where_in(joiner, column, values, negate=True)

    def where_null(self, joiner: str, column: str, *, negate: bool = False) -> CompiledFragment:
        keyword = "IS NOT NULL" if negate else "IS NULL"
        return CompiledFragment(f"{self._prefix(joiner)}{self._column(column)} {keyword}")

    def where_not_null(self, joiner: str, column: str) -> CompiledFragment:
        return self.where_null(joiner, column, negate=True)

    def where_regex(self, joiner: str, column: str, pattern: str) -> CompiledFragment:
        return CompiledFragment(
            f"{self._prefix(joiner)}{self.dialect.regex(self._column(column))}", [pattern]
        )

    def raw_where(
        self, joiner: str, query: str, params: Optional[QueryParams] = None
    ) -> CompiledFragment:
        """Append a raw condition; bind values with the `PLACEHOLDER` token."""

        return CompiledFragment(f"{self._prefix(joiner)}{query}", list(params or []))
