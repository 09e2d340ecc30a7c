"""Adapter logging every workflow event."""

from __future__ import annotations

import logging
from typing import Optional

from ..contracts import Event
from .base import Adapter


class LoggingAdapter(Adapter):
    """Log each event through the standard ``logging`` module."""

    def __init__(self, logger: Optional[logging.Logger] = None, level: int = logging.INFO) -> None:
        self.logger = logger or logging.getLogger("trellis.events")
        self.level = level

    async def dispatch(self, event: Event) -> None:
        step = f" step={event.completed_step.title!r}" if event.completed_step else ""
        self.logger.log(
            logging.ERROR if event.error else self.level,
            f"{event.workflow_name} run_id={event.run_id} {event.type.value} "
            f"status={event.status.value}{step}"
            + (f" error={event.error.name}: {event.error.message}" if event.error else ""),
        )
