"""Adapter recording run and step history in a repository."""

from __future__ import annotations

import logging

from ..constants import Status
from ..contracts import Event
from ..persistence import RunRepository
from .base import Adapter

logger = logging.getLogger(__name__)


class PersistenceAdapter(Adapter):
    """Write one row per run and one row per step execution."""

    def __init__(self, repository: RunRepository) -> None:
        self.repository = repository

    async def started(self, event: Event) -> None:
        await self.repository.create_run(
            event.run_id,
            event.workflow_name,
            event.previous_context,
            event.new_context,
            status=event.status,
        )

    async def restarted(self, event: Event) -> None:
        existing = await self.repository.get_run(event.run_id)
        if existing is None:
            await self.started(event)
            return
        logger.info(f"Resuming persisted run {event.run_id}")
        await self.repository.update_run(
            event.run_id, context=event.new_context, status=event.status
        )

    async def updated(self, event: Event) -> None:
        step = event.completed_step
        await self.repository.record_step(
            event.run_id,
            step.title if step else "",
            event.previous_context,
            event.new_context,
            Status.COMPLETE,
        )
        await self.repository.update_run(
            event.run_id, context=event.new_context, status=Status.RUNNING
        )

    async def error(self, event: Event) -> None:
        step = event.completed_step
        await self.repository.record_step(
            event.run_id,
            step.title if step else "",
            event.previous_context,
            event.new_context,
            Status.ERROR,
            error=event.error,
        )
        await self.repository.update_run(
            event.run_id,
            context=event.new_context,
            status=Status.ERROR,
            error=event.error,
        )

    async def completed(self, event: Event) -> None:
        await self.repository.update_run(
            event.run_id, context=event.new_context, status=Status.COMPLETE
        )
