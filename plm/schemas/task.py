"""Task API schemas."""

from datetime import date, datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from plm.domain.enums import TaskAction, TaskStatus, TaskType
from plm.schemas.approval import ApprovalRequestResponse, ApprovalSubmitRequest
from plm.shared.enums import ActorType


class TaskAssignRequest(BaseModel):
    """Request body for POST /tasks/{id}/assign."""

    assignee_id: str = Field(..., min_length=1, max_length=128)
    assignee_external_ref: str | None = Field(default=None, max_length=255)


class TaskCommentRequest(BaseModel):
    """Optional comment for start / cancel."""

    comment: str | None = Field(default=None, max_length=2000)


class TaskCompleteRequest(BaseModel):
    """Request body for POST /tasks/{id}/complete.

    approval is submitted only when the task lands in reviewing.
    """

    comment: str | None = Field(default=None, max_length=2000)
    approval: ApprovalSubmitRequest | None = None


class TaskReviewRequest(BaseModel):
    """Request body for POST /tasks/{id}/review."""

    outcome_code: str = Field(..., min_length=1, max_length=64)
    comment: str | None = Field(default=None, max_length=2000)


class TaskRollbackRequest(BaseModel):
    """Request body for POST /tasks/{id}/rollback."""

    target_task_code: str = Field(..., min_length=1, max_length=64)
    cascade: bool = False
    comment: str | None = Field(default=None, max_length=2000)


class TaskResponse(BaseModel):
    """Task response."""

    model_config = ConfigDict(from_attributes=True)

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
    created_at: datetime | None = None
    updated_at: datetime | None = None


class TaskCompleteResponse(BaseModel):
    """Completed (or reviewing) task plus the approval opened for it, if any."""

    task: TaskResponse
    approval: ApprovalRequestResponse | None = None


class TaskRollbackResponse(BaseModel):
    """Rollback target after reset and the tasks the cascade touched."""

    model_config = ConfigDict(from_attributes=True)

    target: TaskResponse
    reset_task_ids: list[str]
    failed_task_ids: list[str]


class TaskActionLogResponse(BaseModel):
    """One action log row."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    task_id: str
    project_id: str
    action: TaskAction
    from_status: str | None
    to_status: str | None
    actor_id: str
    actor_type: ActorType
    payload: dict[str, Any]
    comment: str | None
    created_at: datetime | None
