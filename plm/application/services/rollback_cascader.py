"""Rollback cascader: send a target task back to in_progress, optionally resetting later work.

The cascade is sequence-based: every task in the target's phase with a
strictly greater sequence that is in CASCADE_RESET_STATUSES goes back to
pending. It does not follow dependency edges, so tasks outside the phase
are never touched.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from plm.application.dtos.task import Actor, TaskResult
from plm.application.interfaces.repositories import (
    ITaskActionLogRepository,
    ITaskRepository,
    IUnitOfWork,
)
from plm.application.services.side_effects import TaskSideEffects
from plm.domain.entities.task import CASCADE_RESET_STATUSES, require_edge
from plm.domain.enums import TaskAction, TaskStatus
from plm.domain.exceptions import ConcurrencyConflictException, ResourceNotFoundException
from plm.shared.telemetry.logging import get_logger

logger = get_logger(__name__)

_RESET_FIELDS = {"progress": 0, "completed_at": None}


@dataclass(frozen=True)
class RollbackResult:
    target: TaskResult
    reset_task_ids: list[str] = field(default_factory=list)
    failed_task_ids: list[str] = field(default_factory=list)


class RollbackCascader:
    """Resets a rollback target and, with cascade, later tasks of its phase."""

    def __init__(
        self,
        task_repo: ITaskRepository,
        log_repo: ITaskActionLogRepository,
        uow: IUnitOfWork,
        side_effects: TaskSideEffects,
    ) -> None:
        self._task_repo = task_repo
        self._log_repo = log_repo
        self._uow = uow
        self._side_effects = side_effects

    async def rollback(
        self,
        triggering_task: TaskResult,
        target_code: str,
        cascade: bool,
        actor: Actor,
        comment: str | None = None,
    ) -> RollbackResult:
        """Reset target (by project + code) to in_progress; cascade within its phase.

        Raises:
            ResourceNotFoundException: No task with target_code in the project.
            InvalidTransitionException: Target is cancelled.
            ConcurrencyConflictException: Target changed while being reset.
        """
        target = await self._task_repo.get_by_project_and_code(
            triggering_task.project_id, target_code
        )
        if target is None:
            raise ResourceNotFoundException("task", f"{triggering_task.project_id}/{target_code}")
        require_edge(target.id, target.status, TaskStatus.IN_PROGRESS, "rollback")
        updated = await self._task_repo.transition(
            target, TaskStatus.IN_PROGRESS, dict(_RESET_FIELDS)
        )
        if updated is None:
            raise ConcurrencyConflictException("task", target.id)
        await self._log_repo.append(
            updated,
            TaskAction.ROLLBACK,
            actor,
            from_status=target.status,
            to_status=updated.status,
            payload={"triggered_by_task": triggering_task.id, "cascade": cascade},
            comment=comment,
        )
        self._side_effects.publish_task_update(
            updated, "rolled_back", {"triggered_by_task": triggering_task.id}
        )
        logger.info(
            "Rolled back task %s (triggered by %s, cascade=%s)",
            updated.id,
            triggering_task.id,
            cascade,
        )
        if not cascade or updated.phase_id is None:
            return RollbackResult(target=updated)

        reset: list[str] = []
        failed: list[str] = []
        for task in await self._task_repo.list_by_phase(updated.project_id, updated.phase_id):
            if task.id == updated.id or task.sequence <= updated.sequence:
                continue
            if task.status not in CASCADE_RESET_STATUSES:
                continue
            try:
                async with self._uow.savepoint():
                    if await self._reset_to_pending(task, actor, triggering_task):
                        reset.append(task.id)
            except Exception:
                logger.exception("Cascade rollback failed for task %s", task.id)
                failed.append(task.id)
        return RollbackResult(target=updated, reset_task_ids=reset, failed_task_ids=failed)

    async def _reset_to_pending(
        self, task: TaskResult, actor: Actor, triggering_task: TaskResult
    ) -> bool:
        updated = await self._task_repo.transition(task, TaskStatus.PENDING, dict(_RESET_FIELDS))
        if updated is None:
            logger.info("Task %s changed concurrently; skipping cascade reset", task.id)
            return False
        await self._log_repo.append(
            updated,
            TaskAction.ROLLBACK,
            actor,
            from_status=task.status,
            to_status=updated.status,
            payload={"cascade": True, "triggered_by_task": triggering_task.id},
            comment="cascade rollback",
        )
        self._side_effects.publish_task_update(updated, "rolled_back", {"cascade": True})
        return True
