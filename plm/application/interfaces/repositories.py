"""Repository interfaces (ports) for the application layer.

Protocols define the contract the workflow engine needs from the
transactional store. SQLAlchemy implementations live in
plm.infrastructure.persistence.repositories; unit tests use in-memory fakes.
"""

from __future__ import annotations

from contextlib import AbstractAsyncContextManager
from datetime import date
from typing import Any, Protocol

from plm.application.dtos.approval import (
    ApprovalDefinitionResult,
    ApprovalRequestResult,
    ApprovalReviewerResult,
    ReviewerCreate,
)
from plm.application.dtos.project import (
    PhaseResult,
    ProjectResult,
    RoleAssignmentResult,
)
from plm.application.dtos.task import (
    Actor,
    TaskActionLogResult,
    TaskCreate,
    TaskDependencyResult,
    TaskResult,
)
from plm.application.dtos.template import TemplateCreate, TemplateOutcomeSpec, TemplateResult
from plm.domain.enums import (
    ApprovalDefinitionStatus,
    ApprovalStatus,
    DependencyType,
    ProjectPhase,
    ReviewerStatus,
    TaskAction,
    TaskStatus,
)


# Unit of work interface
class IUnitOfWork(Protocol):
    """Protocol for nested transaction scopes inside the request transaction."""

    def savepoint(self) -> AbstractAsyncContextManager[None]:
        """Scope whose writes roll back alone if the block raises."""
        ...


# Task repository interface
class ITaskRepository(Protocol):
    """Protocol for task reads and compare-and-swap status writes."""

    async def get_by_id(self, task_id: str) -> TaskResult | None: ...

    async def get_by_project_and_code(
        self, project_id: str, code: str
    ) -> TaskResult | None: ...

    async def list_by_project(self, project_id: str) -> list[TaskResult]: ...

    async def list_by_phase(self, project_id: str, phase_id: str) -> list[TaskResult]:
        """Tasks of one phase ordered by sequence."""
        ...

    async def list_unassigned_for_role(
        self, project_id: str, phase_id: str, role_code: str
    ) -> list[TaskResult]:
        """Unassigned tasks without assignee whose default role is role_code."""
        ...

    async def create(self, task: TaskCreate) -> TaskResult: ...

    async def transition(
        self,
        task: TaskResult,
        new_status: TaskStatus,
        changes: dict[str, Any] | None = None,
    ) -> TaskResult | None:
        """Compare-and-swap on (task.id, task.status, task.version).

        Applies new_status plus changes and bumps version. Returns the updated
        task, or None when another writer changed the row first.
        """
        ...

    async def set_external_task_id(self, task_id: str, external_task_id: str) -> None: ...


# Task dependency repository interface
class ITaskDependencyRepository(Protocol):
    """Protocol for dependency edges between instantiated tasks."""

    async def list_for_task(self, task_id: str) -> list[TaskDependencyResult]:
        """Edges where task_id is the dependent side."""
        ...

    async def list_dependents(self, depends_on_task_id: str) -> list[TaskDependencyResult]:
        """Edges whose predecessor is depends_on_task_id."""
        ...

    async def create(
        self,
        task_id: str,
        depends_on_task_id: str,
        dependency_type: DependencyType,
        lag_days: int,
    ) -> TaskDependencyResult: ...


# Task action log repository interface
class ITaskActionLogRepository(Protocol):
    """Protocol for the append-only task action log."""

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
    ) -> TaskActionLogResult: ...

    async def list_for_task(self, task_id: str) -> list[TaskActionLogResult]:
        """Rows for a task, newest first."""
        ...


# Project repository interface
class IProjectRepository(Protocol):
    """Protocol for projects, their phases and phase role assignments."""

    async def create_project(
        self,
        name: str,
        start_date: date,
        *,
        skip_weekends: bool,
        code: str | None = None,
        template_id: str | None = None,
        created_by: str | None = None,
    ) -> ProjectResult: ...

    async def get_by_id(self, project_id: str) -> ProjectResult | None: ...

    async def create_phase(
        self, project_id: str, phase: ProjectPhase, name: str, sequence: int
    ) -> PhaseResult: ...

    async def list_phases(self, project_id: str) -> list[PhaseResult]: ...

    async def get_phase(self, phase_id: str) -> PhaseResult | None: ...

    async def upsert_role_assignment(
        self,
        project_id: str,
        phase_id: str,
        role_code: str,
        user_id: str,
        user_external_ref: str | None,
    ) -> RoleAssignmentResult: ...


# Template repository interface
class ITemplateRepository(Protocol):
    """Protocol for project templates, their task graph and review outcomes."""

    async def create(self, template: TemplateCreate) -> TemplateResult: ...

    async def get_by_id(self, template_id: str) -> TemplateResult | None: ...

    async def get_outcome(
        self, template_id: str, task_code: str, outcome_code: str
    ) -> TemplateOutcomeSpec | None: ...


# Approval repository interface
class IApprovalRepository(Protocol):
    """Protocol for approval definitions, requests and reviewer rows."""

    async def create_definition(
        self, code: str, name: str, flow_schema: dict[str, Any]
    ) -> ApprovalDefinitionResult: ...

    async def get_definition(self, definition_id: str) -> ApprovalDefinitionResult | None: ...

    async def list_definitions(
        self, status: ApprovalDefinitionStatus | None = None
    ) -> list[ApprovalDefinitionResult]: ...

    async def update_definition(
        self,
        definition_id: str,
        *,
        name: str | None = None,
        flow_schema: dict[str, Any] | None = None,
    ) -> ApprovalDefinitionResult | None: ...

    async def set_definition_status(
        self, definition_id: str, status: ApprovalDefinitionStatus
    ) -> ApprovalDefinitionResult | None: ...

    async def create_request(
        self,
        *,
        title: str,
        requested_by: str,
        current_node: int,
        flow_snapshot: dict[str, Any],
        selected_approvers: dict[str, list[str]],
        definition_id: str | None = None,
        project_id: str | None = None,
        task_id: str | None = None,
        description: str | None = None,
        form_data: dict[str, Any] | None = None,
    ) -> ApprovalRequestResult: ...

    async def get_request(self, approval_id: str) -> ApprovalRequestResult | None:
        """Request with all reviewer rows (ordered by node_index, sequence)."""
        ...

    async def list_requests(
        self, status: ApprovalStatus | None = None, skip: int = 0, limit: int = 100
    ) -> list[ApprovalRequestResult]: ...

    async def list_pending_for_user(self, user_id: str) -> list[ApprovalRequestResult]:
        """Pending requests where user_id has a pending reviewer row at the current node."""
        ...

    async def add_reviewers(
        self, approval_id: str, reviewers: list[ReviewerCreate]
    ) -> list[ApprovalReviewerResult]: ...

    async def decide_reviewer(
        self, reviewer_id: str, status: ReviewerStatus, comment: str | None
    ) -> bool:
        """Set a pending reviewer's decision. False if it was already decided."""
        ...

    async def claim_request(self, approval_id: str, expected_version: int) -> bool:
        """Bump version if it still equals expected_version (locks the row until commit).

        Every decision claims the request first, so two reviewers deciding
        at once cannot both observe the other as still pending.
        """
        ...

    async def advance_node(self, approval_id: str, new_node: int) -> bool:
        """Move current_node forward to new_node. False unless new_node > current_node."""
        ...

    async def finish_request(
        self,
        approval_id: str,
        status: ApprovalStatus,
        result_comment: str | None,
    ) -> bool:
        """Move a pending request to a terminal status. False if it was not pending."""
        ...
