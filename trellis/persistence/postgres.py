"""PostgreSQL implementation of the run repository."""

from __future__ import annotations

import json
from typing import Any

import asyncpg

from ..constants import Status
from ..contracts import SerializedError, StepStatus
from .models import RunRecord, StepRecord
from .repository import RunRepository, completed_step_statuses


def _dump_error(error: SerializedError | None) -> str | None:
    return error.model_dump_json() if error else None


def _load_json(raw: Any) -> Any:
    return json.loads(raw) if isinstance(raw, str) else raw


class PostgresRunRepository(RunRepository):
    """Persist run history using PostgreSQL."""

    def __init__(self, dsn: str):
        self._dsn = dsn
        self._initialized = False

    async def _connect(self) -> asyncpg.Connection:
        conn = await asyncpg.connect(self._dsn)
        if not self._initialized:
            await self._ensure_schema(conn)
            self._initialized = True
        return conn

    async def _ensure_schema(self, conn: asyncpg.Connection) -> None:
        await conn.execute(
            """
            CREATE TABLE IF NOT EXISTS workflow_runs (
                id TEXT PRIMARY KEY,
                workflow_name TEXT NOT NULL,
                initial_context JSONB NOT NULL,
                context JSONB NOT NULL,
                status TEXT NOT NULL,
                error JSONB,
                created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
                updated_at TIMESTAMPTZ NOT NULL DEFAULT now()
            )
            """
        )
        await conn.execute(
            """
            CREATE TABLE IF NOT EXISTS workflow_steps (
                id SERIAL PRIMARY KEY,
                run_id TEXT NOT NULL REFERENCES workflow_runs(id),
                title TEXT NOT NULL,
                previous_context JSONB NOT NULL,
                new_context JSONB NOT NULL,
                status TEXT NOT NULL,
                error JSONB,
                created_at TIMESTAMPTZ NOT NULL DEFAULT now()
            )
            """
        )

    @staticmethod
    def _run_from_row(row: asyncpg.Record, steps: list[StepRecord]) -> RunRecord:
        error = _load_json(row["error"])
        return RunRecord(
            id=row["id"],
            workflow_name=row["workflow_name"],
            initial_context=_load_json(row["initial_context"]),
            context=_load_json(row["context"]),
            status=Status(row["status"]),
            error=SerializedError.model_validate(error) if error else None,
            created_at=row["created_at"],
            updated_at=row["updated_at"],
            steps=steps,
        )

    # ------------------------------------------------------------------
    async def create_run(
        self,
        run_id: str,
        workflow_name: str,
        initial_context: dict,
        context: dict | None = None,
        status: Status = Status.RUNNING,
    ) -> None:
        conn = await self._connect()
        try:
            await conn.execute(
                """
                INSERT INTO workflow_runs (id, workflow_name, initial_context, context, status)
                VALUES ($1, $2, $3, $4, $5)
                """,
                run_id,
                workflow_name,
                json.dumps(initial_context),
                json.dumps(initial_context if context is None else context),
                Status(status).value,
            )
        finally:
            await conn.close()

    async def update_run(
        self,
        run_id: str,
        context: dict | None = None,
        status: Status | None = None,
        error: SerializedError | None = None,
    ) -> None:
        conn = await self._connect()
        try:
            await conn.execute(
                """
                UPDATE workflow_runs
                SET context = COALESCE($1::jsonb, context),
                    status = COALESCE($2, status),
                    error = $3::jsonb,
                    updated_at = now()
                WHERE id = $4
                """,
                json.dumps(context) if context is not None else None,
                Status(status).value if status is not None else None,
                _dump_error(error),
                run_id,
            )
        finally:
            await conn.close()

    async def record_step(
        self,
        run_id: str,
        title: str,
        previous_context: dict,
        new_context: dict,
        status: Status,
        error: SerializedError | None = None,
    ) -> None:
        conn = await self._connect()
        try:
            await conn.execute(
                """
                INSERT INTO workflow_steps
                    (run_id, title, previous_context, new_context, status, error)
                VALUES ($1, $2, $3, $4, $5, $6)
                """,
                run_id,
                title,
                json.dumps(previous_context),
                json.dumps(new_context),
                Status(status).value,
                _dump_error(error),
            )
        finally:
            await conn.close()

    async def get_run(self, run_id: str) -> RunRecord | None:
        conn = await self._connect()
        try:
            row = await conn.fetchrow("SELECT * FROM workflow_runs WHERE id = $1", run_id)
            if not row:
                return None
            step_rows = await conn.fetch(
                "SELECT * FROM workflow_steps WHERE run_id = $1 ORDER BY id", run_id
            )
        finally:
            await conn.close()

        steps = []
        for r in step_rows:
            error = _load_json(r["error"])
            steps.append(
                StepRecord(
                    id=r["id"],
                    run_id=r["run_id"],
                    title=r["title"],
                    previous_context=_load_json(r["previous_context"]),
                    new_context=_load_json(r["new_context"]),
                    status=Status(r["status"]),
                    error=SerializedError.model_validate(error) if error else None,
                    created_at=r["created_at"],
                )
            )
        return self._run_from_row(row, steps)

    async def list_runs(self, workflow_name: str | None = None) -> list[RunRecord]:
        conn = await self._connect()
        try:
            if workflow_name is None:
                rows = await conn.fetch("SELECT * FROM workflow_runs ORDER BY created_at")
            else:
                rows = await conn.fetch(
                    "SELECT * FROM workflow_runs WHERE workflow_name = $1 ORDER BY created_at",
                    workflow_name,
                )
        finally:
            await conn.close()
        return [self._run_from_row(row, []) for row in rows]

    async def completed_steps(self, run_id: str) -> list[StepStatus]:
        return completed_step_statuses(await self.get_run(run_id))
