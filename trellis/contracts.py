"""Core data contracts for trellis workflow runs."""

from __future__ import annotations

import traceback
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, JsonValue, TypeAdapter

from .constants import EventType, Status, StepEventType

Context = Dict[str, JsonValue]

_CONTEXT_ADAPTER: TypeAdapter[Context] = TypeAdapter(Context)


def _tuples_as_lists(value: Any) -> Any:
    if isinstance(value, (list, tuple)):
        return [_tuples_as_lists(item) for item in value]
    if isinstance(value, dict):
        return {key: _tuples_as_lists(item) for key, item in value.items()}
    return value


def validate_context(value: Any) -> Context:
    """Validate that ``value`` is a JSON object and return it.

    Tuples are accepted and stored as lists, the way ``json.dumps`` writes them.
    """
    return _CONTEXT_ADAPTER.validate_python(_tuples_as_lists(value))


class SerializedError(BaseModel):
    """Transport form of a failure, independent of the exception object."""

    model_config = ConfigDict(frozen=True)

    name: str
    message: str
    stack: Optional[str] = None

    @classmethod
    def from_exception(cls, exc: BaseException) -> "SerializedError":
        return cls(
            name=type(exc).__name__,
            message=str(exc),
            stack="".join(
                traceback.format_exception(type(exc), exc, exc.__traceback__)
            ),
        )


class StepStatus(BaseModel):
    """Outcome of one declared step at a point in a run."""

    model_config = ConfigDict(frozen=True)

    title: str
    status: Status = Status.PENDING
    context: Context = Field(default_factory=dict)
    error: Optional[SerializedError] = None

    @property
    def is_terminal(self) -> bool:
        return self.status in (Status.COMPLETE, Status.ERROR)


class StepEvent(BaseModel):
    """Event delivered to step-scoped handlers."""

    model_config = ConfigDict(frozen=True)

    type: StepEventType
    title: str
    status: Status
    previous_context: Context
    new_context: Context
    completed_step: StepStatus
    error: Optional[SerializedError] = None
    options: Dict[str, JsonValue] = Field(default_factory=dict)


class Event(BaseModel):
    """Snapshot of a workflow run at one lifecycle transition.

    ``steps`` always holds one record per declared step, reflecting the run
    as of this event.
    """

    model_config = ConfigDict(frozen=True)

    run_id: str
    workflow_name: str
    description: Optional[str] = None
    type: EventType
    status: Status
    previous_context: Context
    new_context: Context
    error: Optional[SerializedError] = None
    completed_step: Optional[StepStatus] = None
    steps: List[StepStatus] = Field(default_factory=list)
    options: Dict[str, JsonValue] = Field(default_factory=dict)

    @property
    def is_terminal(self) -> bool:
        return self.type in (EventType.COMPLETE, EventType.ERROR)
