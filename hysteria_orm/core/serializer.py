"""Turn raw driver rows into model-cased result dicts."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Dict, Iterable, List, Optional, Sequence, Type

from ._async_utils import _call_maybe_async
from .case_utils import convert_case, convert_keys
from .metadata import (
    Relation,
    get_dynamic_columns,
    get_model_columns,
    get_primary_key,
    get_relation_names,
    get_relations,
)
from .models import RelationType
from .types import ADDITIONAL_COLUMNS, ModelRecord, RowMapping


def new_record() -> ModelRecord:
    return {ADDITIONAL_COLUMNS: {}}


async def merge_raw_row(
    model: Type[Any],
    row: RowMapping,
    dynamic_columns: Sequence[str] = (),
) -> ModelRecord:
    """Split a raw row into model columns and `$additionalColumns`.

    Keys whose model-cased form is a declared column are stored under that
    cased key; every other key is kept verbatim in the additional bag.
    """

    record = new_record()
    column_names = {c.column_name for c in get_model_columns(model)}
    for key, value in row.items():
        cased = convert_case(key, model.model_case_convention)
        if cased in column_names:
            record[cased] = value
            continue
        record[ADDITIONAL_COLUMNS][key] = value

    if dynamic_columns:
        await add_dynamic_columns_to_record(model, record, dynamic_columns)
    return record


async def add_dynamic_columns_to_record(
    model: Type[Any], record: Dict[str, Any], names: Iterable[str]
) -> Dict[str, Any]:
    """Compute the requested dynamic columns and store them on `record`.

    Unknown names are ignored.
    """

    available = {dc.function_name: dc for dc in get_dynamic_columns(model)}
    for name in names:
        dynamic = available.get(name)
        if dynamic is None:
            continue
        key = convert_case(dynamic.column_name, model.model_case_convention)
        record[key] = await _call_maybe_async(dynamic.function, record)
    return record


def serialize_model(
    record: RowMapping,
    model: Type[Any],
    selected_columns: Sequence[str] = (),
) -> ModelRecord:
    """Serialize one record.

    Hidden columns are dropped, keys are converted to the model convention,
    nested mappings get their keys converted, and `serialize` transforms run
    on their column. An empty `$additionalColumns` bag is omitted.
    """

    convention = model.model_case_convention
    columns = {c.column_name: c for c in get_model_columns(model)}
    hidden = {name for name, c in columns.items() if c.hidden}
    relation_names = set(get_relation_names(model))
    dynamic_names = {
        convert_case(dc.column_name, convention) for dc in get_dynamic_columns(model)
    }
    filter_columns = bool(selected_columns) and "*" not in selected_columns

    serialized: ModelRecord = {}
    for key, value in record.items():
        if key == ADDITIONAL_COLUMNS:
            if value:
                serialized[ADDITIONAL_COLUMNS] = convert_keys(dict(value), convention)
            continue

        cased = convert_case(key, convention)
        if cased in hidden:
            continue
        if filter_columns and cased not in selected_columns and cased not in dynamic_names:
            continue
        if value is None:
            serialized[cased] = None
            continue
        if isinstance(value, list) and key in relation_names:
            continue

        column = columns.get(cased)
        if column is not None and column.serialize is not None:
            value = column.serialize(value)
        if isinstance(value, Mapping):
            value = convert_keys(dict(value), convention)
        serialized[cased] = value

    return serialized


def serialize_models(
    records: Sequence[RowMapping],
    model: Type[Any],
    relation_results: Optional[Mapping[str, List[RowMapping]]] = None,
    selected_columns: Sequence[str] = (),
) -> List[ModelRecord]:
    """Serialize records and attach the rows loaded for each relation.

    Args:
        records: Records produced by `merge_raw_row`.
        model: Model class of the records.
        relation_results: Raw related rows keyed by relation name.
        selected_columns: Model-cased columns to keep; empty keeps all.

    Returns:
        One serialized dict per record, in order.
    """

    relations = get_relations(model) if relation_results else []
    serialized_records = []
    for record in records:
        serialized = serialize_model(record, model, selected_columns)
        for relation in relations:
            if relation.column_name not in relation_results:
                continue
            serialized[relation.column_name] = attach_relation(
                record, relation, relation_results[relation.column_name]
            )
        serialized_records.append(serialized)
    return serialized_records


def attach_relation(
    record: RowMapping, relation: Relation, related_rows: List[RowMapping]
) -> Any:
    """Pick the related rows that belong to `record` and serialize them.

    Returns `None` (one-to-one) or `[]` (one-to-many) when nothing matches.
    """

    owner = relation.owner
    related = relation.model
    owner_pk = get_primary_key(owner)
    owner_pk_value = record.get(convert_case(owner_pk, owner.model_case_convention)) if owner_pk else None

    if relation.type is RelationType.BELONGS_TO:
        related_pk = convert_case(get_primary_key(related) or "", related.database_case_convention)
        by_pk = {row.get(related_pk): row for row in related_rows}
        fk_value = record.get(convert_case(relation.foreign_key, owner.model_case_convention))
        match = by_pk.get(fk_value) if fk_value is not None else None
        return serialize_model(match, related) if match is not None else None

    foreign_key = convert_case(relation.foreign_key, related.database_case_convention)

    if relation.type is RelationType.HAS_ONE:
        by_fk = {row.get(foreign_key): row for row in related_rows}
        match = by_fk.get(owner_pk_value)
        return serialize_model(match, related) if match is not None else None

    if relation.type is RelationType.HAS_MANY:
        return [
            serialize_model(row, related)
            for row in related_rows
            if row.get(foreign_key) == owner_pk_value
        ]

    left_pk = convert_case(owner_pk or "", owner.database_case_convention)
    by_left_pk = {row.get(left_pk): row for row in related_rows}
    match = by_left_pk.get(owner_pk_value)
    if match is None:
        return []
    items = match.get(relation.column_name) or []
    if not isinstance(items, list):
        items = [items]
    return [serialize_model(item, related) for item in items]
