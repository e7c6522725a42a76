"""UPDATE statement templates."""

from __future__ import annotations

from typing import Any, Optional, Sequence, Type

from ...ports.db_api.dialects import PLACEHOLDER, Dialect
from ..case_utils import convert_case
from ..types import QueryParams
from ._values import bind, prepare_values
from .fragment import CompiledFragment


class UpdateTemplate:
    def __init__(self, dialect: Dialect, model: Type[Any]):
        self.dialect = dialect
        self.model = model
        self.table = model.table

    def _set_clause(self, columns: Sequence[str], values: Sequence[Any]) -> tuple[str, QueryParams]:
        columns, values = prepare_values(self.model, columns, values)
        assignments = []
        params: QueryParams = []
        for column, value in zip(columns, values):
            marker, param = bind(self.dialect, value)
            assignments.append(f"{self.dialect.q(column)} = {marker}")
            params.append(param)
        return ", ".join(assignments), params

    def update(
        self,
        columns: Sequence[str],
        values: Sequence[Any],
        primary_key: str,
        primary_key_value: Any,
    ) -> CompiledFragment:
        """`UPDATE t SET c = ?, ... WHERE pk = ?` for a single record."""

        set_clause, params = self._set_clause(columns, values)
        pk = self.dialect.q(convert_case(primary_key, self.model.database_case_convention))
        query = f"UPDATE {self.table}\nSET {set_clause}\nWHERE {pk} = {PLACEHOLDER};"
        return CompiledFragment(
            self.dialect.convert_placeholders(query), [*params, primary_key_value]
        )

    def massive_update(
        self,
        columns: Sequence[str],
        values: Sequence[Any],
        where_fragment: str = "",
        join_fragment: str = "",
        where_params: Optional[QueryParams] = None,
    ) -> CompiledFragment:
        """Update every row matched by a query builder's WHERE and JOIN state.

        SET params come first, followed by `where_params`.
        """

        set_clause, params = self._set_clause(columns, values)
        join = f" {join_fragment.strip()}" if join_fragment.strip() else ""
        query = f"UPDATE {self.table}{join}\nSET {set_clause} {where_fragment.strip()}"
        return CompiledFragment(
            self.dialect.convert_placeholders(query.strip()), [*params, *(where_params or [])]
        )
