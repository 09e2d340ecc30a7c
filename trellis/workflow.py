"""Workflow definition and the sequential run loop."""

from __future__ import annotations

import logging
import uuid
from typing import Any, AsyncIterator, Iterable, List, Mapping, Optional, Sequence, Set, Union

from .constants import EventType, Status
from .contracts import Context, Event, StepStatus, validate_context
from .events import WorkflowSubscription, dispatch
from .exceptions import ConfigurationError, DuplicateWorkflowError, ResumptionError
from .runtime import WorkflowConfiguration
from .step import Step
from .utils.snapshot import snapshot

logger = logging.getLogger(__name__)

# Names of every workflow constructed in this process. Two workflows built
# concurrently with the same name is a user error.
_workflow_names: Set[str] = set()


def clear_workflow_registry() -> None:
    """Forget every registered workflow name."""
    _workflow_names.clear()


def registered_workflow_names() -> frozenset[str]:
    return frozenset(_workflow_names)


CompletedStepInput = Union[StepStatus, Mapping[str, Any]]


class Workflow:
    """An ordered, named list of steps plus workflow-scoped handlers."""

    def __init__(
        self,
        name: str,
        steps: Iterable[Step] = (),
        handlers: Iterable[WorkflowSubscription] = (),
        description: Optional[str] = None,
        configuration: Optional[WorkflowConfiguration] = None,
    ) -> None:
        if name in _workflow_names:
            raise DuplicateWorkflowError(name)
        self._name = name
        self._description = description
        self._steps = tuple(steps)
        self._handlers = tuple(handlers)
        self._configuration = configuration or WorkflowConfiguration()
        _workflow_names.add(name)

    def __repr__(self) -> str:
        return f"Workflow(name={self._name!r}, steps={len(self._steps)})"

    @property
    def name(self) -> str:
        return self._name

    @property
    def description(self) -> Optional[str]:
        return self._description

    @property
    def steps(self) -> tuple[Step, ...]:
        return self._steps

    @property
    def handlers(self) -> tuple[WorkflowSubscription, ...]:
        return self._handlers

    @property
    def configuration(self) -> WorkflowConfiguration:
        return self._configuration

    def configure(self, **changes: Any) -> "Workflow":
        """Merge ``changes`` into the configuration used by future runs."""
        self._configuration = self._configuration.merged(**changes)
        return self

    def _check_requirements(
        self, configuration: WorkflowConfiguration, steps: Sequence[Step]
    ) -> None:
        for step in steps:
            for capability in sorted(step.requires):
                if configuration.missing(capability):
                    raise ConfigurationError(
                        f'Step "{step.title}" in workflow "{self._name}" '
                        f"requires a {capability} but none is configured"
                    )

    def run(
        self,
        initial_context: Optional[Mapping[str, Any]] = None,
        initial_completed_steps: Sequence[CompletedStepInput] = (),
        options: Optional[Mapping[str, Any]] = None,
        run_id: Optional[str] = None,
    ) -> AsyncIterator[Event]:
        """Return the lazy event sequence of one run.

        Args:
            initial_context: JSON object the first step receives.
            initial_completed_steps: Records of the first N declared steps from
                an earlier run. Matched to declared steps by position only.
            options: JSON object passed unchanged into every event and action.
            run_id: Identifier copied into every event; generated when omitted.

        Raises:
            ValidationError: ``initial_context`` or ``options`` is not JSON.
            ResumptionError: More completed records than declared steps.
            ConfigurationError: A remaining step needs a missing collaborator.
        """
        context = validate_context(snapshot(dict(initial_context or {})))
        run_options = validate_context(snapshot(dict(options or {})))
        completed = [
            snapshot(StepStatus.model_validate(record))
            for record in initial_completed_steps
        ]
        if len(completed) > len(self._steps):
            raise ResumptionError(
                f'Workflow "{self._name}" declares {len(self._steps)} steps but '
                f"{len(completed)} completed steps were supplied"
            )

        configuration = self._configuration
        self._check_requirements(configuration, self._steps[len(completed):])

        return self._run(
            run_id or str(uuid.uuid4()), context, completed, run_options, configuration
        )

    def _event(
        self,
        run_id: str,
        kind: EventType,
        status: Status,
        previous_context: Context,
        new_context: Context,
        statuses: List[StepStatus],
        options: Context,
        completed_step: Optional[StepStatus] = None,
    ) -> Event:
        return Event(
            run_id=run_id,
            workflow_name=self._name,
            description=self._description,
            type=kind,
            status=status,
            previous_context=snapshot(previous_context),
            new_context=snapshot(new_context),
            error=completed_step.error if completed_step else None,
            completed_step=snapshot(completed_step),
            steps=snapshot(statuses),
            options=snapshot(options),
        )

    async def _emit(self, event: Event) -> Event:
        await dispatch(self._handlers, event)
        return snapshot(event)

    def _pending(self, index: int, context: Context) -> StepStatus:
        return StepStatus(
            title=self._steps[index].title,
            status=Status.PENDING,
            context=snapshot(context),
        )

    async def _run(
        self,
        run_id: str,
        initial_context: Context,
        completed: List[StepStatus],
        options: Context,
        configuration: WorkflowConfiguration,
    ) -> AsyncIterator[Event]:
        current_context = snapshot(completed[-1].context if completed else initial_context)
        statuses: List[StepStatus] = [
            completed[index] if index < len(completed) else self._pending(index, current_context)
            for index in range(len(self._steps))
        ]
        remaining = range(len(completed), len(self._steps))

        logger.info(
            f"{'Restarting' if completed else 'Starting'} workflow {self._name!r} "
            f"run_id={run_id} at step {len(completed) + 1}/{len(self._steps)}"
        )
        yield await self._emit(
            self._event(
                run_id,
                EventType.RESTART if completed else EventType.START,
                Status.RUNNING if remaining else Status.COMPLETE,
                initial_context,
                current_context,
                statuses,
                options,
            )
        )

        for index in remaining:
            step = self._steps[index]
            previous_context = snapshot(current_context)
            statuses[index] = StepStatus(
                title=step.title, status=Status.RUNNING, context=snapshot(current_context)
            )
            logger.debug(f"Running step {step.title!r} ({index + 1}/{len(self._steps)})")

            outcome = await step.run(current_context, options, configuration)
            statuses[index] = outcome

            if outcome.status == Status.ERROR:
                logger.error(
                    f"Workflow {self._name!r} run_id={run_id} failed at step "
                    f"{step.title!r}: {outcome.error.message if outcome.error else ''}"
                )
                yield await self._emit(
                    self._event(
                        run_id,
                        EventType.ERROR,
                        Status.ERROR,
                        previous_context,
                        current_context,
                        statuses,
                        options,
                        completed_step=outcome,
                    )
                )
                return

            current_context = snapshot(outcome.context)
            for later in range(index + 1, len(self._steps)):
                statuses[later] = self._pending(later, current_context)
            logger.info(f"Step {step.title!r} complete")

            yield await self._emit(
                self._event(
                    run_id,
                    EventType.UPDATE,
                    Status.RUNNING,
                    previous_context,
                    current_context,
                    statuses,
                    options,
                    completed_step=outcome,
                )
            )

        logger.info(f"Workflow {self._name!r} run_id={run_id} complete")
        yield await self._emit(
            self._event(
                run_id,
                EventType.COMPLETE,
                Status.COMPLETE,
                initial_context,
                current_context,
                statuses,
                options,
            )
        )
