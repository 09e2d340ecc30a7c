"""Base adapter interface for observing workflow events."""

from __future__ import annotations

import abc
from typing import Dict

from ..constants import EventType
from ..contracts import Event
from ..utils.calls import resolve

HOOKS: Dict[EventType, str] = {
    EventType.START: "started",
    EventType.RESTART: "restarted",
    EventType.UPDATE: "updated",
    EventType.ERROR: "error",
    EventType.COMPLETE: "completed",
}


class Adapter(metaclass=abc.ABCMeta):
    """External observer of workflow events.

    Subclasses define any of ``started``, ``restarted``, ``updated``,
    ``error`` and ``completed``; ``dispatch`` calls the hook matching the
    event kind and does nothing when the subclass does not define it.
    """

    async def dispatch(self, event: Event) -> None:
        hook = getattr(self, HOOKS[event.type], None)
        if hook is not None:
            await resolve(hook(event))
