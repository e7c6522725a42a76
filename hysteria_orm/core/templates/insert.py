"""INSERT statement templates."""

from __future__ import annotations

from typing import Any, List, Sequence, Type

from ...ports.db_api.dialects import Dialect
from ..types import QueryParams
from ._values import bind, prepare_values
from .fragment import CompiledFragment


class InsertTemplate:
    """INSERT statement generator; placeholders are already converted."""

    def __init__(self, dialect: Dialect, model: Type[Any]):
        self.dialect = dialect
        self.model = model
        self.table = model.table

    def _finish(self, columns: List[str], value_sets: List[str], params: QueryParams) -> CompiledFragment:
        quoted = ", ".join(self.dialect.q(column) for column in columns)
        query = f"INSERT INTO {self.table} ({quoted})\nVALUES {', '.join(value_sets)}"
        if self.dialect.supports_returning:
            query += " RETURNING *"
        return CompiledFragment(self.dialect.convert_placeholders(f"{query};"), params)

    def insert(self, columns: Sequence[str], values: Sequence[Any]) -> CompiledFragment:
        columns, values = prepare_values(self.model, columns, values)
        params: QueryParams = []
        markers = []
        for value in values:
            marker, param = bind(self.dialect, value)
            markers.append(marker)
            params.append(param)
        return self._finish(columns, [f"({', '.join(markers)})"], params)

    def insert_many(
        self, columns: Sequence[str], rows: Sequence[Sequence[Any]]
    ) -> CompiledFragment:
        """One multi-row VALUES statement; every row follows `columns` order."""

        prepared_columns: List[str] = []
        value_sets: List[str] = []
        params: QueryParams = []
        for row in rows:
            prepared_columns, values = prepare_values(self.model, columns, row)
            markers = []
            for value in values:
                marker, param = bind(self.dialect, value)
                markers.append(marker)
                params.append(param)
            value_sets.append(f"({', '.join(markers)})")
        return self._finish(prepared_columns, value_sets, params)
