"""Column/value preparation shared by INSERT and UPDATE templates."""

from __future__ import annotations

from typing import Any, List, Sequence, Tuple, Type

from ...ports.db_api.dialects import PLACEHOLDER, Dialect
from ..case_utils import convert_case
from ..metadata import get_model_columns
from ..types import ADDITIONAL_COLUMNS
from .fragment import is_json_value


def prepare_values(
    model: Type[Any], columns: Sequence[str], values: Sequence[Any]
) -> Tuple[List[str], List[Any]]:
    """Drop `$additionalColumns`, run `prepare` and convert names to database case."""

    prepares = {c.column_name: c.prepare for c in get_model_columns(model) if c.prepare}
    prepared_columns: List[str] = []
    prepared_values: List[Any] = []
    for column, value in zip(columns, values):
        if column == ADDITIONAL_COLUMNS:
            continue
        prepare = prepares.get(column)
        prepared_columns.append(convert_case(column, model.database_case_convention))
        prepared_values.append(prepare(value) if prepare else value)
    return prepared_columns, prepared_values


def bind(dialect: Dialect, value: Any) -> Tuple[str, Any]:
    """Return `(placeholder, param)` for one value; mappings become JSON text."""

    if is_json_value(value):
        return dialect.json_placeholder(), dialect.json_dumps(value)
    return PLACEHOLDER, value
