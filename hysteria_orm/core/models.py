"""Declarations used in a model class body: columns, relations, dynamic columns."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Optional, Type, Union


class RelationType(str, Enum):
    """Supported model relation kinds."""

    BELONGS_TO = "belongsTo"
    HAS_ONE = "hasOne"
    HAS_MANY = "hasMany"
    MANY_TO_MANY = "manyToMany"


@dataclass(frozen=True)
class Column:
    """Registered column of a model."""

    column_name: str
    primary_key: bool = False
    serialize: Optional[Callable[[Any], Any]] = None
    prepare: Optional[Callable[[Any], Any]] = None
    hidden: bool = False


@dataclass(frozen=True)
class DynamicColumn:
    """Value computed after fetch and attached under `column_name`.

    Requested by `function_name` through `add_dynamic_columns`.
    """

    column_name: str
    function_name: str
    function: Callable[[Any], Any]


ThroughInput = Union[str, Type[Any], Callable[[], Any]]


class _Declaration:
    """Class-body declaration that learns its attribute name from `__set_name__`."""

    attribute_name: Optional[str] = None

    def __set_name__(self, owner: type, name: str) -> None:
        self.attribute_name = name


class ColumnDeclaration(_Declaration):
    def __init__(
        self,
        *,
        primary_key: bool = False,
        serialize: Optional[Callable[[Any], Any]] = None,
        prepare: Optional[Callable[[Any], Any]] = None,
        hidden: bool = False,
    ) -> None:
        self.primary_key = primary_key
        self.serialize = serialize
        self.prepare = prepare
        self.hidden = hidden

    def __repr__(self) -> str:
        return f"column({self.attribute_name!r}, primary_key={self.primary_key})"


class RelationDeclaration(_Declaration):
    """Unresolved relation; the related model is only looked up on demand."""

    def __init__(
        self,
        relation_type: RelationType,
        model: Callable[[], Type[Any]],
        foreign_key: str,
        *,
        through: Optional[ThroughInput] = None,
        related_foreign_key: Optional[str] = None,
    ) -> None:
        if not callable(model):
            raise TypeError("Related model must be given as a callable, e.g. `lambda: User`.")
        self.relation_type = relation_type
        self.model = model
        self.foreign_key = foreign_key
        self.through = through
        self.related_foreign_key = related_foreign_key

    def __repr__(self) -> str:
        return f"{self.relation_type.value}({self.attribute_name!r}, foreign_key={self.foreign_key!r})"


def column(
    *,
    primary_key: bool = False,
    serialize: Optional[Callable[[Any], Any]] = None,
    prepare: Optional[Callable[[Any], Any]] = None,
    hidden: bool = False,
) -> Any:
    """Declare a model column.

    Args:
        primary_key: Marks the primary key; only one per model.
        serialize: Transform applied to the raw value in query results.
        prepare: Transform applied to the value before INSERT and UPDATE.
        hidden: Exclude the column from query results.
    """

    return ColumnDeclaration(
        primary_key=primary_key, serialize=serialize, prepare=prepare, hidden=hidden
    )


def belongs_to(model: Callable[[], Type[Any]], foreign_key: str) -> Any:
    """The owning model stores `foreign_key` pointing at the related primary key."""

    return RelationDeclaration(RelationType.BELONGS_TO, model, foreign_key)


def has_one(model: Callable[[], Type[Any]], foreign_key: str) -> Any:
    """The related model stores `foreign_key` pointing at the owner primary key."""

    return RelationDeclaration(RelationType.HAS_ONE, model, foreign_key)


def has_many(model: Callable[[], Type[Any]], foreign_key: str) -> Any:
    return RelationDeclaration(RelationType.HAS_MANY, model, foreign_key)


def many_to_many(
    model: Callable[[], Type[Any]],
    through: ThroughInput,
    foreign_key: str,
    related_foreign_key: Optional[str] = None,
) -> Any:
    """Declare a relation through a pivot table.

    Args:
        model: Callable returning the related model class.
        through: Pivot table name, pivot model class, or a callable returning
            either.
        foreign_key: Pivot column that references the owning model.
        related_foreign_key: Pivot column that references the related model.
            When omitted it is taken from the reciprocal `many_to_many`
            declared on the related model through the same pivot.
    """

    return RelationDeclaration(
        RelationType.MANY_TO_MANY,
        model,
        foreign_key,
        through=through,
        related_foreign_key=related_foreign_key,
    )


def dynamic_column(column_name: str) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
    """Mark a function as a dynamic column attached under `column_name`.

    The function receives the fetched row and may be sync or async.
    """

    def decorator(fn: Callable[..., Any]) -> Callable[..., Any]:
        fn.__hysteria_dynamic_column__ = column_name  # type: ignore[attr-defined]
        return fn

    return decorator
