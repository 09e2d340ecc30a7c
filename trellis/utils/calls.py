"""Helpers for calling user functions that may or may not be async."""

from __future__ import annotations

import inspect
from typing import Any, Callable


async def resolve(value: Any) -> Any:
    """Await ``value`` if it is awaitable, otherwise return it unchanged."""
    if inspect.isawaitable(value):
        return await value
    return value


def accepts_positional(fn: Callable[..., Any], count: int) -> bool:
    """Return ``True`` when ``fn`` declares ``count`` required positional args.

    Parameters with defaults are not counted, so ``def scale(ctx, factor=3)``
    is treated as a one-argument callable.
    """
    try:
        signature = inspect.signature(fn)
    except (TypeError, ValueError):
        return False

    required = 0
    for param in signature.parameters.values():
        if param.kind is inspect.Parameter.VAR_POSITIONAL:
            return True
        if (
            param.kind
            in (
                inspect.Parameter.POSITIONAL_ONLY,
                inspect.Parameter.POSITIONAL_OR_KEYWORD,
            )
            and param.default is inspect.Parameter.empty
        ):
            required += 1
    return required >= count
