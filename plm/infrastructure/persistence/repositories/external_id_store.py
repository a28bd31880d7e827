"""Stores tracker ids from outbox jobs, outside any request transaction."""

from __future__ import annotations

import logging

from plm.infrastructure.persistence.database import get_session_factory
from plm.infrastructure.persistence.repositories.task_repo import TaskRepository

logger = logging.getLogger(__name__)


class SqlExternalTaskIdStore:
    """Opens its own short transaction per save. Implements IExternalTaskIdStore."""

    async def save_external_task_id(self, task_id: str, external_task_id: str) -> None:
        session_factory = get_session_factory()
        async with session_factory() as session:
            async with session.begin():
                await TaskRepository(session).set_external_task_id(task_id, external_task_id)
        logger.info("Task %s linked to external task %s", task_id, external_task_id)
