"""SQLite implementation of the run repository."""

from __future__ import annotations

import asyncio
import json
import sqlite3
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from ..constants import Status
from ..contracts import SerializedError, StepStatus
from .models import RunRecord, StepRecord
from .repository import RunRepository, completed_step_statuses


def _dump_error(error: SerializedError | None) -> str | None:
    return error.model_dump_json() if error else None


def _load_error(raw: str | None) -> SerializedError | None:
    return SerializedError.model_validate_json(raw) if raw else None


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class SQLiteRunRepository(RunRepository):
    """Persist run history using SQLite."""

    def __init__(self, db_path: str | Path):
        self.db_path = str(db_path)
        self._conn = sqlite3.connect(self.db_path, check_same_thread=False)
        self._conn.row_factory = sqlite3.Row
        self._ensure_schema()

    def close(self) -> None:
        self._conn.close()

    # ------------------------------------------------------------------
    # Schema management
    def _ensure_schema(self) -> None:
        cur = self._conn.cursor()
        cur.execute(
            """
            CREATE TABLE IF NOT EXISTS workflow_runs (
                id TEXT PRIMARY KEY,
                workflow_name TEXT NOT NULL,
                initial_context TEXT NOT NULL,
                context TEXT NOT NULL,
                status TEXT NOT NULL,
                error TEXT,
                created_at TEXT NOT NULL,
                updated_at TEXT NOT NULL
            )
            """
        )
        cur.execute(
            """
            CREATE TABLE IF NOT EXISTS workflow_steps (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                run_id TEXT NOT NULL REFERENCES workflow_runs(id),
                title TEXT NOT NULL,
                previous_context TEXT NOT NULL,
                new_context TEXT NOT NULL,
                status TEXT NOT NULL,
                error TEXT,
                created_at TEXT NOT NULL
            )
            """
        )
        self._conn.commit()

    # ------------------------------------------------------------------
    # Helper methods
    def _execute(self, query: str, *params: Any) -> None:
        cur = self._conn.cursor()
        cur.execute(query, params)
        self._conn.commit()

    def _fetchone(self, query: str, *params: Any) -> sqlite3.Row | None:
        cur = self._conn.cursor()
        cur.execute(query, params)
        return cur.fetchone()

    def _fetchall(self, query: str, *params: Any) -> list[sqlite3.Row]:
        cur = self._conn.cursor()
        cur.execute(query, params)
        return cur.fetchall()

    @staticmethod
    def _run_from_row(row: sqlite3.Row, steps: list[StepRecord]) -> RunRecord:
        return RunRecord(
            id=row["id"],
            workflow_name=row["workflow_name"],
            initial_context=json.loads(row["initial_context"]),
            context=json.loads(row["context"]),
            status=Status(row["status"]),
            error=_load_error(row["error"]),
            created_at=datetime.fromisoformat(row["created_at"]),
            updated_at=datetime.fromisoformat(row["updated_at"]),
            steps=steps,
        )

    # ------------------------------------------------------------------
    # Repository API
    async def create_run(
        self,
        run_id: str,
        workflow_name: str,
        initial_context: dict,
        context: dict | None = None,
        status: Status = Status.RUNNING,
    ) -> None:
        now = _now()
        await asyncio.to_thread(
            self._execute,
            """
            INSERT INTO workflow_runs
                (id, workflow_name, initial_context, context, status, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?)
            """,
            run_id,
            workflow_name,
            json.dumps(initial_context),
            json.dumps(initial_context if context is None else context),
            Status(status).value,
            now,
            now,
        )

    async def update_run(
        self,
        run_id: str,
        context: dict | None = None,
        status: Status | None = None,
        error: SerializedError | None = None,
    ) -> None:
        await asyncio.to_thread(
            self._execute,
            """
            UPDATE workflow_runs
            SET context = COALESCE(?, context),
                status = COALESCE(?, status),
                error = ?,
                updated_at = ?
            WHERE id = ?
            """,
            json.dumps(context) if context is not None else None,
            Status(status).value if status is not None else None,
            _dump_error(error),
            _now(),
            run_id,
        )

    async def record_step(
        self,
        run_id: str,
        title: str,
        previous_context: dict,
        new_context: dict,
        status: Status,
        error: SerializedError | None = None,
    ) -> None:
        await asyncio.to_thread(
            self._execute,
            """
            INSERT INTO workflow_steps
                (run_id, title, previous_context, new_context, status, error, created_at)
            VALUES (?, ?, ?, ?, ?, ?, ?)
            """,
            run_id,
            title,
            json.dumps(previous_context),
            json.dumps(new_context),
            Status(status).value,
            _dump_error(error),
            _now(),
        )

    async def get_run(self, run_id: str) -> RunRecord | None:
        row = await asyncio.to_thread(
            self._fetchone,
            "SELECT * FROM workflow_runs WHERE id = ?",
            run_id,
        )
        if not row:
            return None
        step_rows = await asyncio.to_thread(
            self._fetchall,
            "SELECT * FROM workflow_steps WHERE run_id = ? ORDER BY id",
            run_id,
        )
        steps = [
            StepRecord(
                id=r["id"],
                run_id=r["run_id"],
                title=r["title"],
                previous_context=json.loads(r["previous_context"]),
                new_context=json.loads(r["new_context"]),
                status=Status(r["status"]),
                error=_load_error(r["error"]),
                created_at=datetime.fromisoformat(r["created_at"]),
            )
            for r in step_rows
        ]
        return self._run_from_row(row, steps)

    async def list_runs(self, workflow_name: str | None = None) -> list[RunRecord]:
        if workflow_name is None:
            rows = await asyncio.to_thread(
                self._fetchall,
                "SELECT * FROM workflow_runs ORDER BY created_at, rowid",
            )
        else:
            rows = await asyncio.to_thread(
                self._fetchall,
                "SELECT * FROM workflow_runs WHERE workflow_name = ? ORDER BY created_at, rowid",
                workflow_name,
            )
        return [self._run_from_row(row, []) for row in rows]

    async def completed_steps(self, run_id: str) -> list[StepStatus]:
        return completed_step_statuses(await self.get_run(run_id))
