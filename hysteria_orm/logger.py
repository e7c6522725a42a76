"""SQL statement logging controlled by the data source `logs` flag."""

from __future__ import annotations

import json
import logging
import re
from collections.abc import Mapping
from typing import Any, Optional, Sequence

logger = logging.getLogger("hysteria_orm.sql")

_QMARK = re.compile(r"\?|%s")


def format_param(param: Any) -> str:
    """Render one bound parameter the way it is shown in statement logs."""

    if isinstance(param, str):
        return f"'{param}'"
    if isinstance(param, Mapping) and param:
        return f"'{json.dumps(param, default=str)}'"
    if param is None:
        return "NULL"
    return str(param)


def interpolate(query: str, params: Optional[Sequence[Any]] = None) -> str:
    """Substitute params into `?`, `%s` or `$n` markers for display only.

    The result is never executed; it exists so logged statements can be
    copied and read as plain SQL.
    """

    if not params:
        return query

    for index, param in enumerate(params, start=1):
        formatted = format_param(param)
        query = _QMARK.sub(lambda _m: formatted, query, count=1)
        query = re.sub(rf"\${index}(?!\d)", lambda _m: formatted, query)
    return query


def log(query: str, logs: bool, params: Optional[Sequence[Any]] = None) -> None:
    """Log one statement at INFO level when `logs` is enabled."""

    if not logs:
        return
    logger.info("\n%s", interpolate(query, params))
