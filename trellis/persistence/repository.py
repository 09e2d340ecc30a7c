"""Repository abstraction for run history persistence."""

from __future__ import annotations

from typing import Protocol

from ..constants import Status
from ..contracts import SerializedError, StepStatus
from .models import RunRecord


class RunRepository(Protocol):
    """Protocol for run history persistence backends."""

    async def create_run(
        self,
        run_id: str,
        workflow_name: str,
        initial_context: dict,
        context: dict | None = None,
        status: Status = Status.RUNNING,
    ) -> None:
        """Persist a new run."""

    async def update_run(
        self,
        run_id: str,
        context: dict | None = None,
        status: Status | None = None,
        error: SerializedError | None = None,
    ) -> None:
        """Update the current context, status or error of a run."""

    async def record_step(
        self,
        run_id: str,
        title: str,
        previous_context: dict,
        new_context: dict,
        status: Status,
        error: SerializedError | None = None,
    ) -> None:
        """Append one step execution to a run."""

    async def get_run(self, run_id: str) -> RunRecord | None:
        """Retrieve a run with its step history."""

    async def list_runs(self, workflow_name: str | None = None) -> list[RunRecord]:
        """Return persisted runs, optionally for one workflow, without steps."""

    async def completed_steps(self, run_id: str) -> list[StepStatus]:
        """Return the completed steps of a run as resumption records."""


def completed_step_statuses(run: RunRecord | None) -> list[StepStatus]:
    """Convert the ``complete`` step rows of ``run`` into ``StepStatus`` records."""
    if run is None:
        return []
    return [
        StepStatus(title=step.title, status=Status.COMPLETE, context=step.new_context)
        for step in run.steps
        if step.status == Status.COMPLETE
    ]
