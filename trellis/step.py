"""Step definition and single-step execution."""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, FrozenSet, Mapping, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field

from .constants import Status, StepEventType
from .contracts import Context, SerializedError, StepEvent, StepStatus, validate_context
from .events import StepSubscription, dispatch
from .runtime import StepRuntime, WorkflowConfiguration
from .utils.calls import accepts_positional, resolve
from .utils.snapshot import snapshot

logger = logging.getLogger(__name__)

Action = Callable[..., Any]
Reducer = Callable[[Any, Context], Any]


def merge_into_context(result: Any, context: Context) -> Context:
    """Shallow-merge a mapping ``result`` over ``context``.

    ``None`` and non-mapping results leave the context unchanged.
    """
    if isinstance(result, Mapping):
        return {**context, **result}
    return context


class Step(BaseModel):
    """One unit of work in a workflow.

    ``action`` computes a result from the context. ``reducer`` folds that
    result back into a new context; without a reducer the result is discarded
    and the context carries forward unchanged. Steps are never mutated by the
    engine.
    """

    model_config = ConfigDict(frozen=True)

    title: str
    action: Action
    reducer: Optional[Reducer] = None
    handlers: Tuple[StepSubscription, ...] = ()
    requires: FrozenSet[str] = Field(default_factory=frozenset)

    @classmethod
    def merge(
        cls,
        title: str,
        fn: Action,
        *handlers: StepSubscription,
        requires: FrozenSet[str] | Tuple[str, ...] = (),
    ) -> "Step":
        """Build a step whose result is shallow-merged into the context."""
        return cls(
            title=title,
            action=fn,
            reducer=merge_into_context,
            handlers=handlers,
            requires=frozenset(requires),
        )

    async def _call_action(self, context: Context, runtime: StepRuntime) -> Any:
        if accepts_positional(self.action, 2):
            return await resolve(self.action(context, runtime))
        return await resolve(self.action(context))

    async def run(
        self,
        context: Context,
        options: Optional[Dict[str, Any]] = None,
        configuration: Optional[WorkflowConfiguration] = None,
    ) -> StepStatus:
        """Execute the step against ``context`` and return its terminal status.

        Action and reducer failures are captured in an ``error`` status whose
        context is the one the step started from. Handler failures propagate.
        """
        options = options or {}
        previous_context = snapshot(context)
        runtime = StepRuntime(
            options=snapshot(options),
            configuration=configuration or WorkflowConfiguration(),
        )

        try:
            result = await self._call_action(snapshot(previous_context), runtime)
            if self.reducer is None:
                new_context = snapshot(previous_context)
            else:
                new_context = await resolve(
                    self.reducer(result, snapshot(previous_context))
                )
                new_context = validate_context(snapshot(new_context))
        except Exception as exc:
            error = SerializedError.from_exception(exc)
            logger.error(f"Step {self.title!r} failed: {error.name}: {error.message}")
            failed = StepStatus(
                title=self.title,
                status=Status.ERROR,
                context=snapshot(previous_context),
                error=error,
            )
            await dispatch(
                self.handlers,
                StepEvent(
                    type=StepEventType.ERROR,
                    title=self.title,
                    status=Status.ERROR,
                    previous_context=previous_context,
                    new_context=previous_context,
                    completed_step=failed,
                    error=error,
                    options=options,
                ),
            )
            return failed

        completed = StepStatus(
            title=self.title,
            status=Status.COMPLETE,
            context=snapshot(new_context),
        )
        await dispatch(
            self.handlers,
            StepEvent(
                type=StepEventType.COMPLETE,
                title=self.title,
                status=Status.COMPLETE,
                previous_context=previous_context,
                new_context=new_context,
                completed_step=completed,
                options=options,
            ),
        )
        return completed
