"""Helpers for code that accepts both sync and async drivers and callbacks."""

from __future__ import annotations

import inspect
from typing import Any, Callable


async def _maybe_await(value: Any) -> Any:
    """Resolve `value` when it is awaitable, otherwise return it as is."""
    if inspect.isawaitable(value):
        return await value
    return value


async def _call_maybe_async(fn: Callable[..., Any], *args: Any, **kwargs: Any) -> Any:
    """Call `fn`, awaiting the result of coroutine functions."""
    return await _maybe_await(fn(*args, **kwargs))
