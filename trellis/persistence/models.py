"""Data models for persisted run history."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, Field

from ..constants import Status
from ..contracts import SerializedError


class StepRecord(BaseModel):
    """One step execution within a run."""

    id: Optional[int] = None
    run_id: str
    title: str
    previous_context: dict[str, Any] = Field(default_factory=dict)
    new_context: dict[str, Any] = Field(default_factory=dict)
    status: Status
    error: Optional[SerializedError] = None
    created_at: Optional[datetime] = None


class RunRecord(BaseModel):
    """Persisted state of one workflow run."""

    id: str
    workflow_name: str
    initial_context: dict[str, Any] = Field(default_factory=dict)
    context: dict[str, Any] = Field(default_factory=dict)
    status: Status = Status.RUNNING
    error: Optional[SerializedError] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    steps: list[StepRecord] = Field(default_factory=list)
