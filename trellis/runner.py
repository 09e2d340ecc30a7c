"""Drive a workflow's event stream and fan it out to adapters."""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, Iterable, Mapping, Optional, Sequence

from .adapters import Adapter
from .constants import Status
from .contracts import Event
from .utils.snapshot import snapshot, truncate_deep
from .workflow import CompletedStepInput, Workflow

logger = logging.getLogger(__name__)


class Runner:
    """Consume a run and hand every event to each adapter.

    Adapters for one event run concurrently; the next event is not requested
    until all of them finish. An adapter failure propagates to the caller.
    """

    def __init__(self, adapters: Iterable[Adapter] = (), verbose: bool = False) -> None:
        self.adapters = list(adapters)
        self.verbose = verbose

    async def run(
        self,
        workflow: Workflow,
        initial_context: Optional[Mapping[str, Any]] = None,
        initial_completed_steps: Sequence[CompletedStepInput] = (),
        options: Optional[Mapping[str, Any]] = None,
        run_id: Optional[str] = None,
    ) -> Optional[Event]:
        """Run ``workflow`` to its end and return the last event."""
        last_event: Optional[Event] = None
        async for event in workflow.run(
            initial_context=initial_context,
            initial_completed_steps=initial_completed_steps,
            options=options,
            run_id=run_id,
        ):
            await asyncio.gather(
                *(adapter.dispatch(snapshot(event)) for adapter in self.adapters)
            )
            step = event.completed_step
            if step and step.status == Status.COMPLETE:
                logger.info(f"{step.title} ✅")
            if event.is_terminal and self.verbose:
                rendered = json.dumps(truncate_deep(event.new_context), indent=2)
                logger.info(f"Workflow completed: \n\n {rendered}")
            last_event = event
        return last_event
