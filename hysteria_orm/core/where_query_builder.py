"""Stateful WHERE clause builder with nested AND/OR groups."""

from __future__ import annotations

from typing import Any, Callable, Optional, Sequence, Type

from ..ports.db_api.dialects import Dialect
from .templates.fragment import CompiledFragment
from .templates.where import WhereTemplate
from .types import QueryParams

_MISSING = object()


def _operator_and_value(operator_or_value: Any, value: Any) -> tuple[str, Any]:
    if value is _MISSING:
        return "=", operator_or_value
    return operator_or_value, value


def strip_leading_joiner(condition: str) -> str:
    """Drop a leading `WHERE`, `AND` or `OR` keyword from a condition."""

    condition = condition.strip()
    for keyword in ("WHERE ", "AND ", "OR "):
        if condition.upper().startswith(keyword):
            return condition[len(keyword):].strip()
    return condition


class WhereQueryBuilder:
    """Accumulates a WHERE clause and its positional params.

    The first condition opens the clause with `WHERE`; later ones are joined
    with `AND` or `OR`. In nested mode every condition is joined, and the
    leading joiner is stripped when the group is spliced into its parent.
    """

    def __init__(
        self,
        model: Optional[Type[Any]],
        dialect: Dialect,
        *,
        is_nested_condition: bool = False,
    ) -> None:
        self.model = model
        self.dialect = dialect
        self.where_template = WhereTemplate(dialect, model)
        self.is_nested_condition = is_nested_condition
        self.where_query = ""
        self.params: QueryParams = []

    def _add(self, joiner: str, build: Callable[..., CompiledFragment], *args: Any, **kwargs: Any) -> WhereQueryBuilder:
        opening = not self.where_query and not self.is_nested_condition
        if opening:
            joiner = "WHERE"
        elif joiner == "WHERE":
            joiner = "AND"
        fragment = build(joiner, *args, **kwargs)
        self.where_query += fragment.sql
        self.params.extend(fragment.params)
        return self

    def when(self, value: Any, callback: Callable[[Any, WhereQueryBuilder], Any]) -> WhereQueryBuilder:
        """Run `callback(value, self)` only when `value` is not None."""

        if value is None:
            return self
        callback(value, self)
        return self

    def where(self, column: str, operator_or_value: Any, value: Any = _MISSING) -> WhereQueryBuilder:
        """Add `column = value`, or `column <operator> value` with three arguments."""

        operator, value = _operator_and_value(operator_or_value, value)
        return self._add("WHERE", self.where_template.where, column, value, operator)

    def and_where(self, column: str, operator_or_value: Any, value: Any = _MISSING) -> WhereQueryBuilder:
        operator, value = _operator_and_value(operator_or_value, value)
        return self._add("AND", self.where_template.where, column, value, operator)

    def or_where(self, column: str, operator_or_value: Any, value: Any = _MISSING) -> WhereQueryBuilder:
        operator, value = _operator_and_value(operator_or_value, value)
        return self._add("OR", self.where_template.where, column, value, operator)

    def where_not(self, column: str, value: Any) -> WhereQueryBuilder:
        return self._add("WHERE", self.where_template.where_not, column, value)

    def and_where_not(self, column: str, value: Any) -> WhereQueryBuilder:
        return self._add("AND", self.where_template.where_not, column, value)

    def or_where_not(self, column: str, value: Any) -> WhereQueryBuilder:
        return self._add("OR", self.where_template.where_not, column, value)

    def where_between(self, column: str, min_value: Any, max_value: Any) -> WhereQueryBuilder:
        return self._add("WHERE", self.where_template.where_between, column, min_value, max_value)

    def and_where_between(self, column: str, min_value: Any, max_value: Any) -> WhereQueryBuilder:
        return self._add("AND", self.where_template.where_between, column, min_value, max_value)

    def or_where_between(self, column: str, min_value: Any, max_value: Any) -> WhereQueryBuilder:
        return self._add("OR", self.where_template.where_between, column, min_value, max_value)

    def where_not_between(self, column: str, min_value: Any, max_value: Any) -> WhereQueryBuilder:
        return self._add("WHERE", self.where_template.where_not_between, column, min_value, max_value)

    def and_where_not_between(self, column: str, min_value: Any, max_value: Any) -> WhereQueryBuilder:
        return self._add("AND", self.where_template.where_not_between, column, min_value, max_value)

    def or_where_not_between(self, column: str, min_value: Any, max_value: Any) -> WhereQueryBuilder:
        return self._add("OR", self.where_template.where_not_between, column, min_value, max_value)

    def where_in(self, column: str, values: Sequence[Any]) -> WhereQueryBuilder:
        return self._add("WHERE", self.where_template.where_in, column, values)

    def and_where_in(self, column: str, values: Sequence[Any]) -> WhereQueryBuilder:
        return self._add("AND", self.where_template.where_in, column, values)

    def or_where_in(self, column: str, values: Sequence[Any]) -> WhereQueryBuilder:
        return self._add("OR", self.where_template.where_in, column, values)

    def where_not_in(self, column: str, values: Sequence[Any]) -> WhereQueryBuilder:
        return self._add("WHERE", self.where_template.where_not_in, column, values)

    def and_where_not_in(self, column: str, values: Sequence[Any]) -> WhereQueryBuilder:
        return self._add("AND", self.where_template.where_not_in, column, values)

    def or_where_not_in(self, column: str, values: Sequence[Any]) -> WhereQueryBuilder:
        return self._add("OR", self.where_template.where_not_in, column, values)

    def where_null(self, column: str) -> WhereQueryBuilder:
        return self._add("WHERE", self.where_template.where_null, column)

    def and_where_null(self, column: str) -> WhereQueryBuilder:
        return self._add("AND", self.where_template.where_null, column)

    def or_where_null(self, column: str) -> WhereQueryBuilder:
        return self._add("OR", self.where_template.where_null, column)

    def where_not_null(self, column: str) -> WhereQueryBuilder:
        return self._add("WHERE", self.where_template.where_not_null, column)

    def and_where_not_null(self, column: str) -> WhereQueryBuilder:
        return self._add("AND", self.where_template.where_not_null, column)

    def or_where_not_null(self, column: str) -> WhereQueryBuilder:
        return self._add("OR", self.where_template.where_not_null, column)

    def where_regexp(self, column: str, pattern: str) -> WhereQueryBuilder:
        return self._add("WHERE", self.where_template.where_regex, column, pattern)

    def and_where_regexp(self, column: str, pattern: str) -> WhereQueryBuilder:
        return self._add("AND", self.where_template.where_regex, column, pattern)

    def or_where_regexp(self, column: str, pattern: str) -> WhereQueryBuilder:
        return self._add("OR", self.where_template.where_regex, column, pattern)

    def raw_where(self, query: str, params: Optional[QueryParams] = None) -> WhereQueryBuilder:
        """Append a raw condition; bind values with the `PLACEHOLDER` token."""

        return self._add("WHERE", self.where_template.raw_where, query, params)

    def raw_and_where(self, query: str, params: Optional[QueryParams] = None) -> WhereQueryBuilder:
        return self._add("AND", self.where_template.raw_where, query, params)

    def raw_or_where(self, query: str, params: Optional[QueryParams] = None) -> WhereQueryBuilder:
        return self._add("OR", self.where_template.raw_where, query, params)

    def _nested(self, joiner: str, callback: Callable[[WhereQueryBuilder], Any]) -> WhereQueryBuilder:
        nested = WhereQueryBuilder(self.model, self.dialect, is_nested_condition=True)
        callback(nested)
        condition = strip_leading_joiner(nested.where_query)
        if not condition:
            return self

        condition = f"({condition})"
        if not self.where_query:
            self.where_query = condition if self.is_nested_condition else f"\nWHERE {condition}"
        else:
            self.where_query += f" {joiner} {condition}"
        self.params.extend(nested.params)
        return self

    def where_builder(self, callback: Callable[[WhereQueryBuilder], Any]) -> WhereQueryBuilder:
        """Add a parenthesized group built by `callback`, joined with AND."""

        return self._nested("AND", callback)

    def and_where_builder(self, callback: Callable[[WhereQueryBuilder], Any]) -> WhereQueryBuilder:
        return self._nested("AND", callback)

    def or_where_builder(self, callback: Callable[[WhereQueryBuilder], Any]) -> WhereQueryBuilder:
        return self._nested("OR", callback)
