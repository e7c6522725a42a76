"""Correlated relation queries used to load `with_()` relations.

Parent key values are inlined as SQL literals so each statement binds only
the params of the relation's own filter.
"""

from __future__ import annotations

import datetime
import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, List, Optional, Sequence, Type
from uuid import UUID

from ...errors import ConfigurationError, HysteriaError
from ...ports.db_api.dialects import Dialect
from ..case_utils import convert_case
from ..metadata import Relation, get_model_columns, get_primary_key, get_related_foreign_key
from ..models import RelationType
from ..types import QueryParams, RowMapping
from .fragment import CompiledFragment
from .select import split_alias, split_table

logger = logging.getLogger(__name__)

_STANDARD = Dialect()


@dataclass(frozen=True)
class RelationQuery:
    """Filter and ordering state collected for one requested relation.

    `where` is an `AND (...)` fragment with `PLACEHOLDER` tokens; `order_by`,
    `group_by` and `having` hold their expressions without the keyword.
    """

    relation: str
    select: List[str] = field(default_factory=list)
    selected_columns: List[str] = field(default_factory=list)
    where: str = ""
    params: QueryParams = field(default_factory=list)
    join: str = ""
    order_by: str = ""
    group_by: str = ""
    having: str = ""
    limit: Optional[int] = None
    offset: Optional[int] = None
    dynamic_columns: List[str] = field(default_factory=list)
    ignore_after_fetch: bool = False


def to_sql_literal(value: Any, dialect: Optional[Dialect] = None) -> str:
    """Render a key value inline.

    Strings, UUIDs and temporal values are quoted by `dialect`, or with
    standard quoting when no dialect is given.
    """

    if isinstance(value, bool):
        return "TRUE" if value else "FALSE"
    if isinstance(value, (int, float, Decimal)):
        return str(value)
    if isinstance(value, (UUID, datetime.date, datetime.time)):
        value = str(value)
    if isinstance(value, str):
        return (dialect or _STANDARD).string_literal(value)
    raise HysteriaError(f"Unsupported value type: {type(value).__name__}")


def _literal_list(values: Sequence[Any], dialect: Dialect) -> str:
    unique = list(dict.fromkeys(values))
    return ", ".join(to_sql_literal(value, dialect) for value in unique)


def _clause(keyword: str, expression: str) -> str:
    return f"{keyword} {expression}" if expression else ""


def _limit_offset(query: RelationQuery) -> str:
    parts = []
    if query.limit is not None:
        parts.append(f"LIMIT {query.limit}")
    if query.offset:
        parts.append(f"OFFSET {query.offset}")
    return " ".join(parts)


def _join(*parts: str) -> str:
    return " ".join(part for part in parts if part)


class RelationTemplate:
    """Build the secondary query of one relation for a batch of parent records."""

    def __init__(self, dialect: Dialect, model: Type[Any]):
        self.dialect = dialect
        self.model = model

    def _owner_values(self, records: Sequence[RowMapping], key: str) -> List[Any]:
        cased = convert_case(key, self.model.model_case_convention)
        return [record.get(cased) for record in records]

    def _require_keys(
        self, values: List[Any], relation: Relation, kind: str, key: str = "Primary"
    ) -> None:
        if any(not value for value in values):
            message = (
                f"{key} key values are missing for {kind} relation: "
                f"{relation.column_name} {values}"
            )
            logger.error(message)
            raise HysteriaError(message)

    def build(
        self, records: Sequence[RowMapping], relation: Relation, query: RelationQuery
    ) -> CompiledFragment:
        """Return the relation statement; empty SQL means there is nothing to load.

        Raises:
            ConfigurationError: If a model needed for the join has no primary key.
            HysteriaError: If parent key values are missing.
        """

        if relation.type is RelationType.BELONGS_TO:
            values = self._owner_values(records, relation.foreign_key)
            self._require_keys(values, relation, "belongs to", "Foreign")
            if not get_primary_key(relation.model):
                raise ConfigurationError(
                    f"Related Model {relation.related_table} does not have a primary key"
                )
            if not values:
                return CompiledFragment("")
            return self._finish(self._belongs_to(relation, query, values), query)

        primary_key = get_primary_key(self.model)
        if not primary_key:
            raise ConfigurationError(f"Model {self.model.table} does not have a primary key")
        values = self._owner_values(records, primary_key)
        self._require_keys(values, relation, relation.type.value)
        if not values:
            return CompiledFragment("")

        if relation.type is RelationType.HAS_ONE:
            sql = self._has_one(relation, query, values)
        elif relation.type is RelationType.HAS_MANY:
            sql = self._has_many(relation, query, values)
        else:
            sql = self._many_to_many(relation, query, values, primary_key)
        return self._finish(sql, query)

    def _finish(self, sql: str, query: RelationQuery) -> CompiledFragment:
        return CompiledFragment(self.dialect.convert_placeholders(sql), list(query.params))

    def _select(self, relation: Relation, query: RelationQuery) -> str:
        return ", ".join(query.select) if query.select else f"{relation.related_table}.*"

    def _belongs_to(self, relation: Relation, query: RelationQuery, values: List[Any]) -> str:
        related = relation.model
        table = relation.related_table
        related_pk = convert_case(get_primary_key(related), related.database_case_convention)
        return (
            f"SELECT {self._select(relation, query)}, '{relation.column_name}' as relation_name "
            f"FROM {table}\n"
            + _join(
                query.join,
                f"WHERE {table}.{related_pk} IN ({_literal_list(values, self.dialect)})",
                query.where,
                _clause("GROUP BY", query.group_by),
                _clause("HAVING", query.having),
                _clause("ORDER BY", query.order_by),
                _limit_offset(query),
            )
            + ";"
        )

    def _has_one(self, relation: Relation, query: RelationQuery, values: List[Any]) -> str:
        table = relation.related_table
        foreign_key = convert_case(relation.foreign_key, relation.model.database_case_convention)
        return (
            f"SELECT {self._select(relation, query)}, '{relation.column_name}' as relation_name "
            f"FROM {table}\n"
            + _join(
                query.join,
                f"WHERE {table}.{foreign_key} IN ({_literal_list(values, self.dialect)})",
                query.where,
                _clause("GROUP BY", query.group_by),
                _clause("HAVING", query.having),
                _clause("ORDER BY", query.order_by),
            )
            + ";"
        )

    def _has_many(self, relation: Relation, query: RelationQuery, values: List[Any]) -> str:
        """Per-parent pagination through `ROW_NUMBER()` partitioned by the foreign key."""

        table = relation.related_table
        foreign_key = convert_case(relation.foreign_key, relation.model.database_case_convention)
        order = query.order_by or self.dialect.has_many_default_order(table, foreign_key)
        offset = query.offset or 0
        window = f"row_num > {offset}"
        if query.limit is not None:
            window += f" AND row_num <= ({offset} + {query.limit})"
        body = _join(
            query.join,
            f"WHERE {table}.{foreign_key} IN ({_literal_list(values, self.dialect)})",
            query.where,
            _clause("GROUP BY", query.group_by),
            _clause("HAVING", query.having),
        )
        return (
            "WITH CTE AS (\n"
            f"  SELECT {self._select(relation, query)}, '{relation.column_name}' as relation_name,\n"
            f"    ROW_NUMBER() OVER (PARTITION BY {table}.{foreign_key} ORDER BY {order}) as row_num\n"
            f"  FROM {table}\n"
            f"  {body}\n"
            ")\n"
            f"SELECT * FROM CTE WHERE {window};"
        )

    def _json_columns(self, relation: Relation, query: RelationQuery) -> str:
        related = relation.model
        right = relation.related_table
        related_columns = [
            convert_case(c.column_name, related.database_case_convention)
            for c in get_model_columns(related)
        ]
        pairs = []
        for column in query.selected_columns or ["*"]:
            expression, alias = split_alias(column)
            if "*" in expression:
                pairs.extend(f"'{name}', {right}.{name}" for name in related_columns)
                continue
            if alias:
                pairs.append(f"'{alias}', {expression}")
                continue
            table, name = split_table(expression)
            if not table:
                name = convert_case(name, related.database_case_convention)
                pairs.append(f"'{name}', {right}.{name}")
                continue
            pairs.append(f"'{name}', {expression}")
        return ",\n          ".join(pairs)

    def _many_to_many(
        self, relation: Relation, query: RelationQuery, values: List[Any], primary_key: str
    ) -> str:
        """Aggregate the related rows of every parent into one JSON array column."""

        related = relation.model
        related_pk = get_primary_key(related)
        if not related_pk:
            raise ConfigurationError(
                f"Related Model {relation.related_table} does not have a primary key"
            )
        left = self.model.table
        right = relation.related_table
        pivot = relation.through_model
        left_pk = convert_case(primary_key, self.model.database_case_convention)
        right_pk = convert_case(related_pk, related.database_case_convention)
        pivot_left = convert_case(relation.foreign_key, self.model.database_case_convention)
        pivot_right = convert_case(get_related_foreign_key(relation), related.database_case_convention)
        dialect = self.dialect

        left_join = ""
        if dialect.join_left_table_in_pivot:
            left_join = f"\n        JOIN {left} ON {pivot}.{pivot_left} = {left}.{left_pk}"
        subquery_tail = _join(
            query.where,
            _clause("GROUP BY", query.group_by),
            _clause("HAVING", query.having),
            _clause("ORDER BY", query.order_by),
            _limit_offset(query),
        )
        return (
            "SELECT\n"
            f"  {left}.{left_pk} AS {left_pk},\n"
            f"  '{relation.column_name}' AS relation_name,\n"
            "  (\n"
            f"    SELECT {dialect.json_aggregate_function}({dialect.json_aggregate_target})\n"
            "    FROM (\n"
            f"      SELECT {dialect.json_object_function}(\n"
            f"          {self._json_columns(relation, query)}\n"
            "        ) AS json_data\n"
            f"        FROM {right}\n"
            f"        JOIN {pivot} ON {pivot}.{pivot_right} = {right}.{right_pk}"
            f"{left_join}\n"
            f"        WHERE {pivot}.{pivot_left} = {left}.{left_pk} {subquery_tail}\n"
            "    ) t\n"
            f"  ) AS {relation.column_name}\n"
            f"FROM {left}\n"
            f"WHERE {left}.{left_pk} IN ({_literal_list(values, self.dialect)});"
        )
