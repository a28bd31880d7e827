"""Dependency resolver: start gating and chain activation.

check_dependencies_completed blocks a start while any predecessor does
not clear the task. check_and_start_dependent_tasks runs after a task
finishes and moves every pending follower whose dependencies now all
clear to in_progress, one hop per trigger. Followers are processed
independently: each runs in its own savepoint and a failure is logged
without stopping the rest.
"""

from __future__ import annotations

from plm.application.dtos.task import Actor, TaskDependencyResult, TaskResult
from plm.application.interfaces.repositories import (
    ITaskActionLogRepository,
    ITaskDependencyRepository,
    ITaskRepository,
    IUnitOfWork,
)
from plm.application.services.side_effects import TaskSideEffects
from plm.domain.entities.task import dependency_clears
from plm.domain.enums import TaskAction, TaskStatus
from plm.domain.exceptions import DependencyNotSatisfiedException
from plm.shared.telemetry.logging import get_logger
from plm.shared.utils.datetime import utc_now

logger = get_logger(__name__)


class DependencyResolver:
    """Decides whether predecessors clear a task and activates ready followers."""

    def __init__(
        self,
        task_repo: ITaskRepository,
        dependency_repo: ITaskDependencyRepository,
        log_repo: ITaskActionLogRepository,
        uow: IUnitOfWork,
        side_effects: TaskSideEffects,
    ) -> None:
        self._task_repo = task_repo
        self._dependency_repo = dependency_repo
        self._log_repo = log_repo
        self._uow = uow
        self._side_effects = side_effects

    async def check_dependencies_completed(self, task: TaskResult) -> None:
        """Raise DependencyNotSatisfiedException for the first predecessor that blocks task."""
        blocker = await self._first_blocker(task)
        if blocker is None:
            return
        edge, predecessor = blocker
        raise DependencyNotSatisfiedException(
            task_id=task.id,
            predecessor_id=predecessor.id,
            predecessor_title=predecessor.title,
            predecessor_status=predecessor.status.value,
            dependency_type=edge.dependency_type.value,
        )

    async def is_cleared(self, task: TaskResult) -> bool:
        return await self._first_blocker(task) is None

    async def check_and_start_dependent_tasks(self, trigger: TaskResult) -> list[str]:
        """Start every pending follower of a finished trigger whose dependencies all clear.

        Returns:
            Ids of tasks moved to in_progress.
        """
        activated: list[str] = []
        for edge in await self._dependency_repo.list_dependents(trigger.id):
            try:
                async with self._uow.savepoint():
                    started = await self._try_start(edge.task_id, trigger)
            except Exception:
                logger.exception(
                    "Chain activation failed for task %s (trigger %s)", edge.task_id, trigger.id
                )
                continue
            if started is not None:
                activated.append(started.id)
        return activated

    async def _try_start(self, task_id: str, trigger: TaskResult) -> TaskResult | None:
        task = await self._task_repo.get_by_id(task_id)
        if task is None or task.status is not TaskStatus.PENDING:
            return None
        if not await self.is_cleared(task):
            return None
        updated = await self._task_repo.transition(
            task, TaskStatus.IN_PROGRESS, {"actual_start": utc_now()}
        )
        if updated is None:
            logger.info("Task %s changed concurrently; skipping auto-start", task.id)
            return None
        await self._log_repo.append(
            updated,
            TaskAction.START,
            Actor.system(),
            from_status=task.status,
            to_status=updated.status,
            payload={"auto_started": True, "completed_dep_task": trigger.id},
        )
        self._side_effects.task_started(updated)
        self._side_effects.publish_task_update(
            updated, "auto_started", {"trigger_task_id": trigger.id}
        )
        logger.info("Auto-started task %s after %s", updated.id, trigger.id)
        return updated

    async def _first_blocker(
        self, task: TaskResult
    ) -> tuple[TaskDependencyResult, TaskResult] | None:
        for edge in await self._dependency_repo.list_for_task(task.id):
            predecessor = await self._task_repo.get_by_id(edge.depends_on_task_id)
            if predecessor is None:
                logger.warning(
                    "Task %s depends on missing task %s; ignoring edge",
                    task.id,
                    edge.depends_on_task_id,
                )
                continue
            if not dependency_clears(edge.dependency_type, predecessor.status):
                return edge, predecessor
        return None
