"""Event kinds, statuses and defaults shared across trellis."""

from __future__ import annotations

from enum import Enum


class EventType(str, Enum):
    """Kinds of workflow-scoped events."""

    START = "workflow:start"
    RESTART = "workflow:restart"
    UPDATE = "workflow:update"
    ERROR = "workflow:error"
    COMPLETE = "workflow:complete"


class StepEventType(str, Enum):
    """Kinds of step-scoped events."""

    COMPLETE = "step:complete"
    ERROR = "step:error"


class Status(str, Enum):
    """Lifecycle status of a step or a run."""

    PENDING = "pending"
    RUNNING = "running"
    COMPLETE = "complete"
    ERROR = "error"


DEFAULT_MODEL = "anthropic:claude-3-5-sonnet-latest"
DEFAULT_TRUNCATE_LENGTH = 100
FILES_CONTEXT_KEY = "files"
