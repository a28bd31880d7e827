"""Procurement control hook called when a task starts."""

from __future__ import annotations

from plm.application.dtos.task import TaskResult
from plm.shared.telemetry.logging import get_logger

logger = get_logger(__name__)


class LogOnlyProcurementHook:
    """IProcurementHook that records the start; procurement gating lives in another service."""

    async def on_task_started(self, task: TaskResult) -> None:
        logger.info(
            "Procurement hook: task %s (%s) started in project %s",
            task.id,
            task.code,
            task.project_id,
        )
