"""trellis: sequential workflow engine with observable, resumable runs."""

from .adapters import Adapter, LoggingAdapter, PersistenceAdapter
from .builders import file_step, merge_step, prompt_step, reduce, step, subworkflow, workflow
from .constants import EventType, Status, StepEventType
from .contracts import Event, SerializedError, StepEvent, StepStatus
from .events import on
from .exceptions import (
    ConfigurationError,
    DuplicateWorkflowError,
    ResumptionError,
    TrellisError,
    WorkflowFailedError,
)
from .files import InMemoryFileStore, LocalFileStore
from .persistence import get_repository
from .prompts import PydanticAIPromptClient, prompt
from .runner import Runner
from .runtime import StepRuntime, WorkflowConfiguration
from .step import Step
from .workflow import Workflow, clear_workflow_registry

__version__ = "0.1.0"
__all__ = [
    "Adapter",
    "ConfigurationError",
    "DuplicateWorkflowError",
    "Event",
    "EventType",
    "InMemoryFileStore",
    "LocalFileStore",
    "LoggingAdapter",
    "PersistenceAdapter",
    "PydanticAIPromptClient",
    "ResumptionError",
    "Runner",
    "SerializedError",
    "Status",
    "Step",
    "StepEvent",
    "StepEventType",
    "StepRuntime",
    "StepStatus",
    "TrellisError",
    "Workflow",
    "WorkflowConfiguration",
    "WorkflowFailedError",
    "clear_workflow_registry",
    "file_step",
    "get_repository",
    "merge_step",
    "on",
    "prompt",
    "prompt_step",
    "reduce",
    "step",
    "subworkflow",
    "workflow",
]
