"""Identifier case conversion between model and database conventions."""

from __future__ import annotations

import re

from ..errors import ConfigurationError
from .types import CaseConvention

_SNAKE_BOUNDARY = re.compile(r"([a-z0-9])([A-Z])")
_CAMEL_BOUNDARY = re.compile(r"_(\w)")


def to_snake_case(value: str) -> str:
    """Convert `camelCase` to `snake_case`; all-lowercase input is returned as-is."""

    if not isinstance(value, str) or not value:
        return value
    if value == value.lower():
        return value
    return _SNAKE_BOUNDARY.sub(r"\1_\2", value).lower()


def to_camel_case(value: str) -> str:
    """Convert `snake_case` to `camelCase`; all-uppercase input is returned as-is."""

    if not isinstance(value, str) or not value:
        return value
    if value == value.upper():
        return value
    return _CAMEL_BOUNDARY.sub(lambda match: match.group(1).upper(), value)


def convert_case(value: str, to_convention: CaseConvention) -> str:
    """Convert one identifier to the target case convention.

    Args:
        value: Identifier to convert.
        to_convention: `"snake"`, `"camel"`, `"none"`, a compiled regex whose
            matches are replaced by their upper-cased second character, or a
            callable (the value is then passed through unchanged).

    Returns:
        The converted identifier.

    Raises:
        ConfigurationError: If the convention is not one of the above.
    """

    if isinstance(to_convention, str):
        if to_convention == "none":
            return value
        if to_convention == "snake":
            return to_snake_case(value)
        if to_convention == "camel":
            return to_camel_case(value)
        raise ConfigurationError(f"Unsupported case convention {to_convention!r}")

    if isinstance(to_convention, re.Pattern):
        return to_convention.sub(lambda match: match.group(0)[1:2].upper(), value)

    if callable(to_convention):
        return value

    raise ConfigurationError(f"Unsupported case convention {to_convention!r}")


def convert_keys(data: dict, to_convention: CaseConvention) -> dict:
    """Return a shallow copy of `data` with every key converted."""

    return {convert_case(key, to_convention): value for key, value in data.items()}
