"""DTOs for tasks, dependencies and the action log (no dependency on ORM)."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any

from plm.domain.enums import DependencyType, TaskAction, TaskStatus, TaskType
from plm.shared.enums import ActorType


@dataclass(frozen=True)
class Actor:
    """Who performs an operation; recorded on every log row."""

    id: str
    type: ActorType = ActorType.USER

    @classmethod
    def system(cls) -> Actor:
        return cls(id="system", type=ActorType.SYSTEM)

    @classmethod
    def agent(cls) -> Actor:
        return cls(id="agent", type=ActorType.AGENT)


@dataclass(frozen=True)
class TaskResult:
    """Read model for a project task."""

    id: str
    project_id: str
    phase_id: str | None
    parent_task_id: str | None
    code: str
    title: str
    description: str | None
    task_type: TaskType
    status: TaskStatus
    priority: str
    assignee_id: str | None
    assignee_external_ref: str | None
    default_assignee_role: str | None
    requires_approval: bool
    approval_type: str | None
    auto_create_external_task: bool
    external_task_id: str | None
    planned_start: date | None
    planned_end: date | None
    actual_start: datetime | None
    completed_at: datetime | None
    progress: int
    sequence: int
    version: int
    created_by: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


@dataclass(frozen=True)
class TaskCreate:
    """Write model used by template instantiation."""

    project_id: str
    code: str
    title: str
    task_type: TaskType
    status: TaskStatus
    sequence: int
    phase_id: str | None = None
    parent_task_id: str | None = None
    description: str | None = None
    priority: str = "medium"
    assignee_id: str | None = None
    assignee_external_ref: str | None = None
    default_assignee_role: str | None = None
    requires_approval: bool = False
    approval_type: str | None = None
    auto_create_external_task: bool = False
    planned_start: date | None = None
    planned_end: date | None = None
    created_by: str | None = None


@dataclass(frozen=True)
class TaskDependencyResult:
    """Edge: task_id depends on depends_on_task_id."""

    id: str
    task_id: str
    depends_on_task_id: str
    dependency_type: DependencyType
    lag_days: int


@dataclass(frozen=True)
class TaskActionLogResult:
    """One append-only action log row."""

    id: str
    task_id: str
    project_id: str
    action: TaskAction
    from_status: str | None
    to_status: str | None
    actor_id: str
    actor_type: ActorType
    payload: dict[str, Any] = field(default_factory=dict)
    comment: str | None = None
    created_at: datetime | None = None
