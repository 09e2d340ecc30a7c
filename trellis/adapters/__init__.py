"""Event adapters."""

from __future__ import annotations

from .base import HOOKS, Adapter
from .logger import LoggingAdapter
from .persistence import PersistenceAdapter

__all__ = ["Adapter", "HOOKS", "LoggingAdapter", "PersistenceAdapter"]
