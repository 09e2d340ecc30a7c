"""Handler registry for workflow- and step-scoped events."""

from __future__ import annotations

import logging
from typing import Any, Callable, Iterable, Union, overload

from pydantic import BaseModel, ConfigDict

from .constants import EventType, StepEventType
from .contracts import Event, StepEvent
from .utils.calls import resolve
from .utils.snapshot import snapshot

logger = logging.getLogger(__name__)

EventHandler = Callable[[Any], Any]


class StepSubscription(BaseModel):
    """A handler bound to one step event kind."""

    model_config = ConfigDict(frozen=True)

    kind: StepEventType
    handler: EventHandler


class WorkflowSubscription(BaseModel):
    """A handler bound to one workflow event kind."""

    model_config = ConfigDict(frozen=True)

    kind: EventType
    handler: EventHandler


Subscription = Union[StepSubscription, WorkflowSubscription]


@overload
def on(kind: StepEventType, handler: EventHandler) -> StepSubscription: ...


@overload
def on(kind: EventType, handler: EventHandler) -> WorkflowSubscription: ...


@overload
def on(kind: str, handler: EventHandler) -> Subscription: ...


def on(kind, handler):
    """Subscribe ``handler`` to ``kind``.

    ``kind`` is an ``EventType``/``StepEventType`` member or its string value
    (``"workflow:update"``, ``"step:error"``...). Workflow kinds produce a
    ``WorkflowSubscription``, step kinds a ``StepSubscription``.
    """
    if not callable(handler):
        raise TypeError(f"Handler for {kind!r} must be callable")

    if isinstance(kind, EventType):
        return WorkflowSubscription(kind=kind, handler=handler)
    if isinstance(kind, StepEventType):
        return StepSubscription(kind=kind, handler=handler)

    try:
        return WorkflowSubscription(kind=EventType(kind), handler=handler)
    except ValueError:
        pass
    try:
        return StepSubscription(kind=StepEventType(kind), handler=handler)
    except ValueError:
        raise ValueError(f"Unknown event kind: {kind!r}") from None


async def dispatch(
    subscriptions: Iterable[Subscription], event: Union[Event, StepEvent]
) -> None:
    """Invoke every subscription matching ``event.type`` in registration order.

    Each handler gets its own deep copy of ``event`` and is awaited before the
    next one starts. Handler exceptions propagate to the caller.
    """
    for subscription in subscriptions:
        if subscription.kind != event.type:
            continue
        logger.debug(f"Dispatching {event.type.value} to {subscription.handler!r}")
        await resolve(subscription.handler(snapshot(event)))
