"""Persistence layer for trellis run history.

``get_repository`` keeps one repository per process. A call without an
explicit ``database_url`` or ``config`` returns the cached instance; an
explicit URL or config builds a new backend and replaces the cache.
``reset_repository`` drops the cached instance so the next call re-reads the
environment and configuration.
"""

from __future__ import annotations

import os
from typing import Callable, Dict, Optional

from ..config import TrellisConfig, load_config
from .inmemory import InMemoryRunRepository
from .models import RunRecord, StepRecord
from .repository import RunRepository, completed_step_statuses
from .sqlite import SQLiteRunRepository

try:  # pragma: no cover - optional dependency
    from .postgres import PostgresRunRepository
except ImportError:  # pragma: no cover - optional dependency
    PostgresRunRepository = None  # type: ignore

_repository_instance: RunRepository | None = None


def _sqlite_backend(database_url: str) -> RunRepository:
    return SQLiteRunRepository(database_url.replace("sqlite://", "", 1))


def _postgres_backend(database_url: str) -> RunRepository:
    if PostgresRunRepository is None:
        raise RuntimeError("Postgres support not available; install trellis[postgres]")
    return PostgresRunRepository(database_url)


# URL scheme prefix -> backend factory
BACKENDS: Dict[str, Callable[[str], RunRepository]] = {
    "sqlite://": _sqlite_backend,
    "postgres://": _postgres_backend,
    "postgresql://": _postgres_backend,
}


def reset_repository() -> None:
    """Forget the cached repository."""
    global _repository_instance
    _repository_instance = None


def get_repository(
    database_url: Optional[str] = None, config: Optional[TrellisConfig] = None
) -> RunRepository:
    """Return the run repository selected by ``database_url``.

    The URL is the explicit argument, ``TRELLIS_DATABASE_URL``,
    ``DATABASE_URL`` or the loaded configuration, in that order. Without one
    an in-memory repository is used.
    """
    global _repository_instance
    if _repository_instance is not None and database_url is None and config is None:
        return _repository_instance

    config = config or load_config()
    database_url = (
        database_url
        or os.getenv("TRELLIS_DATABASE_URL")
        or os.getenv("DATABASE_URL")
        or config.database_url
    )

    if not database_url:
        _repository_instance = InMemoryRunRepository()
        return _repository_instance

    for prefix, backend in BACKENDS.items():
        if database_url.startswith(prefix):
            _repository_instance = backend(database_url)
            return _repository_instance
    raise ValueError(f"Unsupported database backend: {database_url}")


__all__ = [
    "BACKENDS",
    "RunRecord",
    "StepRecord",
    "RunRepository",
    "InMemoryRunRepository",
    "SQLiteRunRepository",
    "PostgresRunRepository",
    "completed_step_statuses",
    "get_repository",
    "reset_repository",
]
