"""Dialect-aware SQL template generators."""

from .delete import DeleteTemplate
from .fragment import CompiledFragment
from .insert import InsertTemplate
from .join import JoinTemplate
from .relation import RelationQuery, RelationTemplate, to_sql_literal
from .select import SelectTemplate
from .update import UpdateTemplate
from .where import WhereTemplate

__all__ = [
    "CompiledFragment",
    "DeleteTemplate",
    "InsertTemplate",
    "JoinTemplate",
    "RelationQuery",
    "RelationTemplate",
    "SelectTemplate",
    "UpdateTemplate",
    "WhereTemplate",
    "to_sql_literal",
]
