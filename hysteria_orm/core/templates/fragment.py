"""Compiled SQL fragment shared by every template generator."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from ..types import QueryParams


@dataclass(frozen=True)
class CompiledFragment:
    """Represents a compiled SQL fragment with its bound parameters."""

    sql: str
    params: QueryParams = field(default_factory=list)


def is_json_value(value: Any) -> bool:
    """Mappings are bound as JSON text."""

    return isinstance(value, Mapping)
