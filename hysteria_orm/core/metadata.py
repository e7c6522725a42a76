"""Model metadata registry populated once per model class at definition time."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Type

from ..errors import ConfigurationError
from .case_utils import convert_case
from .models import (
    Column,
    ColumnDeclaration,
    DynamicColumn,
    RelationDeclaration,
    RelationType,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Relation:
    """Relation declaration resolved against its related model.

    `model` is the related model class; `related_table` is its table.
    """

    type: RelationType
    column_name: str
    owner: Type[Any]
    model: Type[Any]
    foreign_key: str
    through_model: Optional[str] = None
    related_foreign_key: Optional[str] = None

    @property
    def related_table(self) -> str:
        return self.model.table


@dataclass(frozen=True)
class ModelMetadata:
    """Normalized model description used by templates and builders."""

    model: Type[Any]
    table: str
    primary_key: Optional[str]
    columns: List[Column]
    relations: List[RelationDeclaration]
    dynamic_columns: List[DynamicColumn]


_REGISTRY: Dict[type, ModelMetadata] = {}


def default_table_name(cls: type) -> str:
    """Snake-cased class name, pluralized with a trailing `s` unless present."""

    name = convert_case(cls.__name__, "snake")
    return name if name.endswith("s") else f"{name}s"


def build_model_metadata(cls: type) -> ModelMetadata:
    """Collect declarations from `cls` and its bases.

    Args:
        cls: Model class being defined.

    Returns:
        Immutable metadata object.

    Raises:
        ConfigurationError: If more than one primary key is declared.
    """

    columns: Dict[str, Column] = {}
    relations: Dict[str, RelationDeclaration] = {}
    dynamic_columns: Dict[str, DynamicColumn] = {}
    model_case = getattr(cls, "model_case_convention", "snake")

    for klass in reversed(cls.__mro__):
        for name, value in vars(klass).items():
            if isinstance(value, ColumnDeclaration):
                columns[name] = Column(
                    column_name=convert_case(name, model_case),
                    primary_key=value.primary_key,
                    serialize=value.serialize,
                    prepare=value.prepare,
                    hidden=value.hidden,
                )
                continue
            if isinstance(value, RelationDeclaration):
                relations[name] = value
                continue
            fn = getattr(cls, name, None)
            column_name = getattr(fn, "__hysteria_dynamic_column__", None)
            if column_name is not None:
                dynamic_columns[name] = DynamicColumn(
                    column_name=column_name, function_name=name, function=fn
                )

    primary_keys = [c for c in columns.values() if c.primary_key]
    if len(primary_keys) > 1:
        raise ConfigurationError("Multiple primary keys are not allowed")

    table = getattr(cls, "table_name", None)
    return ModelMetadata(
        model=cls,
        table=table if isinstance(table, str) and table else default_table_name(cls),
        primary_key=primary_keys[0].column_name if primary_keys else None,
        columns=list(columns.values()),
        relations=list(relations.values()),
        dynamic_columns=list(dynamic_columns.values()),
    )


def register_model(cls: type) -> ModelMetadata:
    metadata = build_model_metadata(cls)
    _REGISTRY[cls] = metadata
    return metadata


def get_model_metadata(cls: type) -> ModelMetadata:
    try:
        return _REGISTRY[cls]
    except KeyError:
        raise ConfigurationError(f"{cls.__name__} is not a registered model") from None


def get_model_columns(cls: type) -> List[Column]:
    return list(get_model_metadata(cls).columns)


def get_primary_key(cls: type) -> Optional[str]:
    return get_model_metadata(cls).primary_key


def get_dynamic_columns(cls: type) -> List[DynamicColumn]:
    return list(get_model_metadata(cls).dynamic_columns)


def _through_table(through: Any) -> str:
    if isinstance(through, str):
        return through
    if isinstance(through, type):
        return through.table
    return _through_table(through())


def get_relations(cls: type) -> List[Relation]:
    """Resolve every relation declared on `cls` against its related model."""

    metadata = get_model_metadata(cls)
    resolved: List[Relation] = []
    for declaration in metadata.relations:
        through = None
        if declaration.relation_type is RelationType.MANY_TO_MANY:
            through = _through_table(declaration.through)
        resolved.append(
            Relation(
                type=declaration.relation_type,
                column_name=declaration.attribute_name or "",
                owner=cls,
                model=declaration.model(),
                foreign_key=declaration.foreign_key,
                through_model=through,
                related_foreign_key=declaration.related_foreign_key,
            )
        )
    return resolved


def get_relation(cls: type, name: str) -> Relation:
    """Return relation `name` of `cls`.

    Raises:
        ConfigurationError: If the model declares no such relation.
    """

    for relation in get_relations(cls):
        if relation.column_name == name:
            return relation
    logger.error("Relation %s not found in model %s", name, cls.__name__)
    raise ConfigurationError(f"Relation {name} not found in model {cls.__name__}")


def get_relation_names(cls: type) -> List[str]:
    return [declaration.attribute_name or "" for declaration in get_model_metadata(cls).relations]


def get_related_foreign_key(relation: Relation) -> str:
    """Pivot column that references the related model of a many-to-many relation.

    Raises:
        ConfigurationError: If neither an explicit key nor a reciprocal
            relation through the same pivot exists.
    """

    if relation.related_foreign_key:
        return relation.related_foreign_key

    for candidate in get_relations(relation.model):
        if (
            candidate.type is RelationType.MANY_TO_MANY
            and candidate.through_model == relation.through_model
            and candidate.foreign_key
        ):
            return candidate.foreign_key

    message = (
        f"Many to many relation not found for related model {relation.related_table} "
        f"and through model {relation.through_model}, the error is likely in the "
        f"relation definition and was called by relation {relation.column_name} "
        f"in model {relation.owner.table}"
    )
    logger.error(message)
    raise ConfigurationError(message)
