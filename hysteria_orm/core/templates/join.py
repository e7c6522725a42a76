"""JOIN fragment templates."""

from __future__ import annotations

from typing import Any, Type

from ..case_utils import convert_case


class JoinTemplate:
    """`JOIN related ON related.foreign = table.primary` fragments.

    Dotted column references keep only their column part, converted with the
    owning model's database convention.
    """

    def __init__(self, model: Type[Any], related_table: str, primary_column: str, foreign_column: str):
        convention = model.database_case_convention
        self.table = model.table
        self.related_table = related_table
        self.primary_column = convert_case(primary_column.rpartition(".")[2], convention)
        self.foreign_column = convert_case(foreign_column.rpartition(".")[2], convention)

    def _join(self, kind: str) -> str:
        return (
            f"\n{kind} {self.related_table} ON "
            f"{self.related_table}.{self.foreign_column} = {self.table}.{self.primary_column} "
        )

    def inner_join(self) -> str:
        return self._join("INNER JOIN")

    def left_join(self) -> str:
        return self._join("LEFT JOIN")
