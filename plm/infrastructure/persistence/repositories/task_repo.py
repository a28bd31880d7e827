"""Task, dependency and action log repositories. Return application DTOs."""

from __future__ import annotations

from typing import Any

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from plm.application.dtos.task import (
    Actor,
    TaskActionLogResult,
    TaskCreate,
    TaskDependencyResult,
    TaskResult,
)
from plm.domain.entities.task import require_edge
from plm.domain.enums import DependencyType, TaskAction, TaskStatus, TaskType
from plm.infrastructure.persistence.models.task import Task, TaskActionLog, TaskDependency
from plm.infrastructure.persistence.repositories.base import BaseRepository
from plm.shared.enums import ActorType
from plm.shared.utils import utc_now

# Columns a status transition may change alongside status and version.
_TRANSITION_COLUMNS = frozenset(
    {
        "assignee_id",
        "assignee_external_ref",
        "actual_start",
        "completed_at",
        "progress",
    }
)


def _to_result(t: Task) -> TaskResult:
    """Map Task ORM to TaskResult DTO."""
    return TaskResult(
        id=t.id,
        project_id=t.project_id,
        phase_id=t.phase_id,
        parent_task_id=t.parent_task_id,
        code=t.code,
        title=t.title,
        description=t.description,
        task_type=TaskType(t.task_type),
        status=TaskStatus(t.status),
        priority=t.priority,
        assignee_id=t.assignee_id,
        assignee_external_ref=t.assignee_external_ref,
        default_assignee_role=t.default_assignee_role,
        requires_approval=t.requires_approval,
        approval_type=t.approval_type,
        auto_create_external_task=t.auto_create_external_task,
        external_task_id=t.external_task_id,
        planned_start=t.planned_start,
        planned_end=t.planned_end,
        actual_start=t.actual_start,
        completed_at=t.completed_at,
        progress=t.progress,
        sequence=t.sequence,
        version=t.version,
        created_by=t.created_by,
        created_at=t.created_at,
        updated_at=t.updated_at,
    )


def _dependency_to_result(d: TaskDependency) -> TaskDependencyResult:
    return TaskDependencyResult(
        id=d.id,
        task_id=d.task_id,
        depends_on_task_id=d.depends_on_task_id,
        dependency_type=DependencyType(d.dependency_type),
        lag_days=d.lag_days,
    )


def _log_to_result(row: TaskActionLog) -> TaskActionLogResult:
    return TaskActionLogResult(
        id=row.id,
        task_id=row.task_id,
        project_id=row.project_id,
        action=TaskAction(row.action),
        from_status=row.from_status,
        to_status=row.to_status,
        actor_id=row.actor_id,
        actor_type=ActorType(row.actor_type),
        payload=row.payload or {},
        comment=row.comment,
        created_at=row.created_at,
    )


class TaskRepository(BaseRepository[Task]):
    """Task repository. Implements ITaskRepository."""

    def __init__(self, db: AsyncSession) -> None:
        super().__init__(db, Task)

    async def get_by_id(self, task_id: str) -> TaskResult | None:
        row = await self.get_orm_by_id(task_id)
        return _to_result(row) if row else None

    async def get_by_project_and_code(self, project_id: str, code: str) -> TaskResult | None:
        result = await self.db.execute(
            select(Task).where(Task.project_id == project_id, Task.code == code)
        )
        row = result.scalar_one_or_none()
        return _to_result(row) if row else None

    async def list_by_project(self, project_id: str) -> list[TaskResult]:
        result = await self.db.execute(
            select(Task).where(Task.project_id == project_id).order_by(Task.sequence)
        )
        return [_to_result(t) for t in result.scalars().all()]

    async def list_by_phase(self, project_id: str, phase_id: str) -> list[TaskResult]:
        result = await self.db.execute(
            select(Task)
            .where(Task.project_id == project_id, Task.phase_id == phase_id)
            .order_by(Task.sequence)
        )
        return [_to_result(t) for t in result.scalars().all()]

    async def list_unassigned_for_role(
        self, project_id: str, phase_id: str, role_code: str
    ) -> list[TaskResult]:
        result = await self.db.execute(
            select(Task)
            .where(
                Task.project_id == project_id,
                Task.phase_id == phase_id,
                Task.default_assignee_role == role_code,
                Task.status == TaskStatus.UNASSIGNED.value,
                Task.assignee_id.is_(None),
            )
            .order_by(Task.sequence)
        )
        return [_to_result(t) for t in result.scalars().all()]

    async def create(self, task: TaskCreate) -> TaskResult:
        row = await self.add(
            Task(
                project_id=task.project_id,
                phase_id=task.phase_id,
                parent_task_id=task.parent_task_id,
                code=task.code,
                title=task.title,
                description=task.description,
                task_type=task.task_type.value,
                status=task.status.value,
                priority=task.priority,
                assignee_id=task.assignee_id,
                assignee_external_ref=task.assignee_external_ref,
                default_assignee_role=task.default_assignee_role,
                requires_approval=task.requires_approval,
                approval_type=task.approval_type,
                auto_create_external_task=task.auto_create_external_task,
                planned_start=task.planned_start,
                planned_end=task.planned_end,
                sequence=task.sequence,
                created_by=task.created_by,
            )
        )
        return _to_result(row)

    async def transition(
        self,
        task: TaskResult,
        new_status: TaskStatus,
        changes: dict[str, Any] | None = None,
    ) -> TaskResult | None:
        """Compare-and-swap the status (optimistic lock on status and version).

        Returns the updated task, or None if another writer won the race.
        Raises InvalidTransitionException for an edge outside the lifecycle.
        """
        require_edge(task.id, task.status, new_status, "transition")
        values = dict(changes or {})
        unknown = set(values) - _TRANSITION_COLUMNS
        if unknown:
            raise ValueError(f"transition cannot change columns: {sorted(unknown)}")
        stmt = (
            update(Task)
            .where(
                Task.id == task.id,
                Task.status == task.status.value,
                Task.version == task.version,
            )
            .values(
                status=new_status.value,
                version=Task.version + 1,
                updated_at=utc_now(),
                **values,
            )
            .execution_options(synchronize_session=False)
        )
        result = await self.db.execute(stmt)
        if result.rowcount != 1:
            return None
        row = await self.reload(task.id)
        return _to_result(row) if row else None

    async def set_external_task_id(self, task_id: str, external_task_id: str) -> None:
        """Store the tracker id without touching status or version."""
        await self.db.execute(
            update(Task)
            .where(Task.id == task_id)
            .values(external_task_id=external_task_id)
            .execution_options(synchronize_session=False)
        )


class TaskDependencyRepository(BaseRepository[TaskDependency]):
    """Task dependency repository. Implements ITaskDependencyRepository."""

    def __init__(self, db: AsyncSession) -> None:
        super().__init__(db, TaskDependency)

    async def list_for_task(self, task_id: str) -> list[TaskDependencyResult]:
        result = await self.db.execute(
            select(TaskDependency).where(TaskDependency.task_id == task_id)
        )
        return [_dependency_to_result(d) for d in result.scalars().all()]

    async def list_dependents(self, depends_on_task_id: str) -> list[TaskDependencyResult]:
        result = await self.db.execute(
            select(TaskDependency).where(
                TaskDependency.depends_on_task_id == depends_on_task_id
            )
        )
        return [_dependency_to_result(d) for d in result.scalars().all()]

    async def create(
        self,
        task_id: str,
        depends_on_task_id: str,
        dependency_type: DependencyType,
        lag_days: int,
    ) -> TaskDependencyResult:
        row = await self.add(
            TaskDependency(
                task_id=task_id,
                depends_on_task_id=depends_on_task_id,
                dependency_type=dependency_type.value,
                lag_days=lag_days,
            )
        )
        return _dependency_to_result(row)


class TaskActionLogRepository(BaseRepository[TaskActionLog]):
    """Append-only action log. Implements ITaskActionLogRepository."""

    def __init__(self, db: AsyncSession) -> None:
        super().__init__(db, TaskActionLog)

    async def append(
        self,
        task: TaskResult,
        action: TaskAction,
        actor: Actor,
        *,
        from_status: TaskStatus | None,
        to_status: TaskStatus | None,
        payload: dict[str, Any] | None = None,
        comment: str | None = None,
    ) -> TaskActionLogResult:
        row = await self.add(
            TaskActionLog(
                task_id=task.id,
                project_id=task.project_id,
                action=action.value,
                from_status=from_status.value if from_status else None,
                to_status=to_status.value if to_status else None,
                actor_id=actor.id,
                actor_type=actor.type.value,
                payload=payload or {},
                comment=comment,
            )
        )
        return _log_to_result(row)

    async def list_for_task(self, task_id: str) -> list[TaskActionLogResult]:
        result = await self.db.execute(
            select(TaskActionLog)
            .where(TaskActionLog.task_id == task_id)
            .order_by(TaskActionLog.seq.desc())
        )
        return [_log_to_result(r) for r in result.scalars().all()]
