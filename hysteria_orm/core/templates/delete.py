"""DELETE statement templates."""

from __future__ import annotations

from typing import Any, Optional, Type

from ...ports.db_api.dialects import PLACEHOLDER, Dialect
from ..types import QueryParams
from .fragment import CompiledFragment


class DeleteTemplate:
    def __init__(self, dialect: Dialect, model: Type[Any]):
        self.dialect = dialect
        self.table = model.table

    def delete(self, column: str, value: Any) -> CompiledFragment:
        query = f"DELETE FROM {self.table} WHERE {column} = {PLACEHOLDER}"
        return CompiledFragment(self.dialect.convert_placeholders(query), [value])

    def massive_delete(
        self,
        where_fragment: str = "",
        join_fragment: str = "",
        where_params: Optional[QueryParams] = None,
    ) -> CompiledFragment:
        parts = [f"DELETE FROM {self.table}", join_fragment.strip(), where_fragment.strip()]
        query = " ".join(part for part in parts if part)
        return CompiledFragment(self.dialect.convert_placeholders(query), list(where_params or []))
