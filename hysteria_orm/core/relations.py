"""Load requested relations for a batch of parent records."""

from __future__ import annotations

import json
from typing import Any, Dict, List, Sequence, Type

from ..ports.db_api.async_database import AsyncDatabase
from .metadata import Relation, get_relation
from .models import RelationType
from .serializer import add_dynamic_columns_to_record
from .templates.relation import RelationQuery, RelationTemplate
from .types import RowMapping


class RelationResolver:
    """Issue one correlated query per requested relation, sequentially."""

    def __init__(self, db: AsyncDatabase):
        self.db = db

    async def resolve(
        self,
        model: Type[Any],
        records: Sequence[RowMapping],
        relation_queries: Sequence[RelationQuery],
    ) -> Dict[str, List[Dict[str, Any]]]:
        """Return the related rows of every requested relation keyed by name.

        Raises:
            ConfigurationError: If a relation name is unknown or a model the
                relation joins on has no primary key.
            HysteriaError: If parent key values are missing.
        """

        if not relation_queries or not records:
            return {}

        template = RelationTemplate(self.db.dialect, model)
        results: Dict[str, List[Dict[str, Any]]] = {}
        for query in relation_queries:
            relation = get_relation(model, query.relation)
            fragment = template.build(records, relation, query)
            if not fragment.sql:
                results[query.relation] = []
                continue

            rows = [
                self._clean_row(dict(row), relation)
                for row in await self.db.fetchall(fragment.sql, fragment.params)
            ]
            results[query.relation] = await self._post_process(rows, relation, query)
        return results

    @staticmethod
    def _clean_row(row: Dict[str, Any], relation: Relation) -> Dict[str, Any]:
        row.pop("row_num", None)
        row.pop("relation_name", None)
        if relation.type is RelationType.MANY_TO_MANY:
            items = row.get(relation.column_name)
            if isinstance(items, (str, bytes)):
                items = json.loads(items)
            row[relation.column_name] = items or []
        return row

    async def _post_process(
        self, rows: List[Dict[str, Any]], relation: Relation, query: RelationQuery
    ) -> List[Dict[str, Any]]:
        related = relation.model
        if relation.type is not RelationType.MANY_TO_MANY:
            return await self._apply_hooks(related, rows, query)

        for row in rows:
            row[relation.column_name] = await self._apply_hooks(
                related, row[relation.column_name], query
            )
        return rows

    @staticmethod
    async def _apply_hooks(
        related: Type[Any], rows: List[Dict[str, Any]], query: RelationQuery
    ) -> List[Dict[str, Any]]:
        if query.dynamic_columns:
            for row in rows:
                await add_dynamic_columns_to_record(related, row, query.dynamic_columns)
        if not query.ignore_after_fetch:
            rows = await related.after_fetch(rows)
        return rows
