"""Builders for declaring workflows.

Example::

    counter = workflow(
        "counter",
        step("double", lambda ctx: ctx["value"] * 2, reduce(lambda r, ctx: {"value": r})),
        merge_step("add ten", lambda ctx: {"value": ctx["value"] + 10}),
        on("workflow:complete", print),
    )
"""

from __future__ import annotations

from typing import Any, Callable, Mapping, Optional, Tuple, Type, Union

from pydantic import BaseModel, ConfigDict

from .constants import FILES_CONTEXT_KEY, EventType
from .contracts import Context, SerializedError
from .events import StepSubscription, WorkflowSubscription
from .exceptions import WorkflowFailedError
from .prompts import ModelT, PromptClient, prompt
from .runtime import StepRuntime
from .step import Action, Reducer, Step
from .workflow import Workflow


class ReducerBlock(BaseModel):
    """Marks a callable as the reducer argument of ``step``."""

    model_config = ConfigDict(frozen=True)

    handler: Reducer


class WorkflowMetadata(BaseModel):
    name: str
    description: Optional[str] = None


def reduce(handler: Reducer) -> ReducerBlock:
    """Wrap ``handler`` as a reducer for ``step``."""
    return ReducerBlock(handler=handler)


def step(
    title: str,
    action: Action,
    *blocks: Union[ReducerBlock, StepSubscription],
    requires: Tuple[str, ...] = (),
) -> Step:
    """Build an explicit-form step.

    ``blocks`` holds at most one ``reduce(...)`` followed by ``on(...)``
    step subscriptions. Without a reducer the action's result is discarded.
    """
    reducer: Optional[Reducer] = None
    handlers = []
    for block in blocks:
        if isinstance(block, ReducerBlock):
            if reducer is not None:
                raise ValueError(f'Step "{title}" declares more than one reducer')
            reducer = block.handler
        elif isinstance(block, StepSubscription):
            handlers.append(block)
        else:
            raise TypeError(
                f'Step "{title}" accepts reduce(...) and step event handlers, '
                f"got {type(block).__name__}"
            )
    return Step(
        title=title,
        action=action,
        reducer=reducer,
        handlers=tuple(handlers),
        requires=frozenset(requires),
    )


def merge_step(
    title: str,
    fn: Action,
    *handlers: StepSubscription,
    requires: Tuple[str, ...] = (),
) -> Step:
    """Build a function-form step whose mapping result is merged into the context."""
    return Step.merge(title, fn, *handlers, requires=requires)


def workflow(
    metadata: Union[str, Mapping[str, Any], WorkflowMetadata],
    *blocks: Union[Step, WorkflowSubscription],
) -> Workflow:
    """Build a workflow from a name (or ``{"name", "description"}``) and blocks."""
    if isinstance(metadata, str):
        meta = WorkflowMetadata(name=metadata)
    elif isinstance(metadata, WorkflowMetadata):
        meta = metadata
    else:
        meta = WorkflowMetadata.model_validate(metadata)

    steps = []
    handlers = []
    for block in blocks:
        if isinstance(block, Step):
            steps.append(block)
        elif isinstance(block, WorkflowSubscription):
            handlers.append(block)
        else:
            raise TypeError(
                f'Workflow "{meta.name}" accepts steps and workflow event handlers, '
                f"got {type(block).__name__}"
            )
    return Workflow(meta.name, steps, handlers, description=meta.description)


def file_step(name: str, path: str) -> Step:
    """Read ``path`` through the configured file store into ``context["files"][name]``."""

    async def _read(context: Context, runtime: StepRuntime) -> str:
        files = context.get(FILES_CONTEXT_KEY) or {}
        if name in files:
            raise ValueError(
                f'File name "{name}" already exists in this workflow run. '
                "Names must be unique within a workflow."
            )
        return await runtime.file_store.read_file(path, runtime.workflow_dir)

    def _store(contents: str, context: Context) -> Context:
        files = dict(context.get(FILES_CONTEXT_KEY) or {})
        files[name] = contents
        return {**context, FILES_CONTEXT_KEY: files}

    return step(f"Reading file: {name}", _read, reduce(_store), requires=("file_store",))


def prompt_step(
    title: str,
    template: Callable[[Context], str],
    response_model: Type[ModelT],
    *blocks: Union[ReducerBlock, StepSubscription],
    client: Optional[PromptClient] = None,
) -> Step:
    """Build a step whose action asks a prompt client for ``response_model``.

    Without an explicit reducer the validated response fields are merged
    into the context.
    """
    if not any(isinstance(block, ReducerBlock) for block in blocks):
        blocks = (reduce(_merge_model), *blocks)
    return step(
        title,
        prompt(template, response_model, client),
        *blocks,
        requires=() if client is not None else ("prompt_client",),
    )


def _merge_model(result: BaseModel, context: Context) -> Context:
    return {**context, **result.model_dump(mode="json")}


def subworkflow(
    child: Workflow,
    initial_context: Union[Mapping[str, Any], Callable[[], Mapping[str, Any]]],
) -> Callable[[Context], Any]:
    """Build an action that runs ``child`` to completion and returns its final context."""

    async def _run_child(context: Context) -> Context:
        seed = initial_context() if callable(initial_context) else initial_context
        final_context: Optional[Context] = None
        async for event in child.run(initial_context=seed):
            if event.type == EventType.ERROR:
                raise WorkflowFailedError(
                    event.error
                    or SerializedError(name="Error", message="Nested workflow failed")
                )
            if event.type == EventType.COMPLETE:
                final_context = event.new_context
        if final_context is None:
            raise WorkflowFailedError(
                SerializedError(
                    name="WorkflowFailedError",
                    message=f'Workflow "{child.name}" did not complete successfully',
                )
            )
        return final_context

    _run_child.__name__ = f"run_{child.name}"
    return _run_child
