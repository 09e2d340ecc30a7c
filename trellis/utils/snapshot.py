"""Structural copies of JSON-like values."""

from __future__ import annotations

import copy
from typing import Any, TypeVar

from pydantic import BaseModel

from ..constants import DEFAULT_TRUNCATE_LENGTH

T = TypeVar("T")


def snapshot(value: T) -> T:
    """Return a deep copy of ``value`` sharing no mutable state with it.

    Pydantic models are copied with ``model_copy(deep=True)`` so frozen models
    stay frozen; anything else goes through ``copy.deepcopy``.
    """
    if isinstance(value, BaseModel):
        return value.model_copy(deep=True)
    return copy.deepcopy(value)


def truncate_deep(value: Any, max_length: int = DEFAULT_TRUNCATE_LENGTH) -> Any:
    """Shorten every string nested in ``value`` to ``max_length`` characters."""
    if isinstance(value, str):
        return value[:max_length] + "..." if len(value) > max_length else value
    if isinstance(value, list):
        return [truncate_deep(item, max_length) for item in value]
    if isinstance(value, dict):
        return {key: truncate_deep(item, max_length) for key, item in value.items()}
    return value
