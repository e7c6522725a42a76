"""Shared core type aliases used across templates, builders and ports."""

from __future__ import annotations

import re
from typing import Any, Callable, Dict, List, Mapping, Union

QueryParams = List[Any]

RowMapping = Mapping[str, Any]
Rows = List[RowMapping]

ModelRecord = Dict[str, Any]
"""A serialized model: model-cased keys, relations and `$additionalColumns`."""

CaseConvention = Union[str, re.Pattern, Callable[[str], str]]

ADDITIONAL_COLUMNS = "$additionalColumns"
