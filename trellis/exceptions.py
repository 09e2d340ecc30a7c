"""Exception types raised by trellis."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .contracts import SerializedError


class TrellisError(Exception):
    """Base class for trellis errors."""


class DuplicateWorkflowError(TrellisError, ValueError):
    """Raised when a workflow name is registered twice in one process."""

    def __init__(self, name: str) -> None:
        super().__init__(f'Workflow name "{name}" already exists. Names must be unique.')
        self.name = name


class ConfigurationError(TrellisError):
    """Raised when a step needs a collaborator the workflow does not have."""


class ResumptionError(TrellisError):
    """Raised for a resumption request that cannot match the declared steps."""


class WorkflowFailedError(TrellisError):
    """A nested workflow run ended with an error event."""

    def __init__(self, error: "SerializedError") -> None:
        super().__init__(error.message)
        self.error = error

    @property
    def error_name(self) -> str:
        return self.error.name
