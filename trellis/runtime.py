"""Collaborators made available to step actions at run time."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field

from .files import FileStore, LocalFileStore
from .prompts import PromptClient


class WorkflowConfiguration(BaseModel):
    """Capabilities injected into a workflow's step actions."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    file_store: Optional[FileStore] = Field(default_factory=LocalFileStore)
    prompt_client: Optional[PromptClient] = None
    workflow_dir: Optional[Path] = None

    def merged(self, **changes: Any) -> "WorkflowConfiguration":
        """Return a validated copy with ``changes`` applied."""
        unknown = set(changes) - set(type(self).model_fields)
        if unknown:
            raise TypeError(f"Unknown configuration fields: {sorted(unknown)}")
        return type(self)(**{**dict(self), **changes})

    def missing(self, capability: str) -> bool:
        return getattr(self, capability, None) is None


@dataclass(frozen=True)
class StepRuntime:
    """Second argument handed to actions that accept one."""

    options: Dict[str, Any] = field(default_factory=dict)
    configuration: WorkflowConfiguration = field(default_factory=WorkflowConfiguration)

    @property
    def file_store(self) -> Optional[FileStore]:
        return self.configuration.file_store

    @property
    def prompt_client(self) -> Optional[PromptClient]:
        return self.configuration.prompt_client

    @property
    def workflow_dir(self) -> Optional[Path]:
        return self.configuration.workflow_dir
