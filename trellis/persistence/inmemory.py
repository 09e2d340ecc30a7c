"""In-memory implementation of the run repository."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Dict

from ..constants import Status
from ..contracts import SerializedError, StepStatus
from .models import RunRecord, StepRecord
from .repository import RunRepository, completed_step_statuses


class InMemoryRunRepository(RunRepository):
    """Store run history in local memory.

    Useful for tests or when no database is configured. Data is not
    persisted across process restarts.
    """

    def __init__(self) -> None:
        self._runs: Dict[str, RunRecord] = {}
        self._step_id = 0

    # ------------------------------------------------------------------
    async def create_run(
        self,
        run_id: str,
        workflow_name: str,
        initial_context: dict,
        context: dict | None = None,
        status: Status = Status.RUNNING,
    ) -> None:
        now = datetime.now(timezone.utc)
        self._runs[run_id] = RunRecord(
            id=run_id,
            workflow_name=workflow_name,
            initial_context=initial_context,
            context=initial_context if context is None else context,
            status=status,
            created_at=now,
            updated_at=now,
        )

    async def update_run(
        self,
        run_id: str,
        context: dict | None = None,
        status: Status | None = None,
        error: SerializedError | None = None,
    ) -> None:
        run = self._runs.get(run_id)
        if not run:
            return
        if context is not None:
            run.context = context
        if status is not None:
            run.status = status
        run.error = error
        run.updated_at = datetime.now(timezone.utc)

    async def record_step(
        self,
        run_id: str,
        title: str,
        previous_context: dict,
        new_context: dict,
        status: Status,
        error: SerializedError | None = None,
    ) -> None:
        run = self._runs.get(run_id)
        if not run:
            return
        self._step_id += 1
        run.steps.append(
            StepRecord(
                id=self._step_id,
                run_id=run_id,
                title=title,
                previous_context=previous_context,
                new_context=new_context,
                status=status,
                error=error,
                created_at=datetime.now(timezone.utc),
            )
        )

    async def get_run(self, run_id: str) -> RunRecord | None:
        run = self._runs.get(run_id)
        return run.model_copy(deep=True) if run else None

    async def list_runs(self, workflow_name: str | None = None) -> list[RunRecord]:
        return [
            run.model_copy(update={"steps": []}, deep=True)
            for run in self._runs.values()
            if workflow_name is None or run.workflow_name == workflow_name
        ]

    async def completed_steps(self, run_id: str) -> list[StepStatus]:
        return completed_step_statuses(await self.get_run(run_id))
