"""DTOs for projects, phases, role assignments and instantiation."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime

from plm.domain.enums import ProjectPhase


@dataclass(frozen=True)
class ProjectResult:
    id: str
    name: str
    code: str | None
    template_id: str | None
    start_date: date
    skip_weekends: bool
    status: str
    created_by: str | None = None
    created_at: datetime | None = None


@dataclass(frozen=True)
class PhaseResult:
    id: str
    project_id: str
    phase: ProjectPhase
    name: str
    sequence: int


@dataclass(frozen=True)
class RoleAssignmentResult:
    """User bound to a role within one project phase."""

    id: str
    project_id: str
    phase_id: str
    role_code: str
    user_id: str
    user_external_ref: str | None


@dataclass(frozen=True)
class RoleAssignmentInput:
    """One entry of an assign-phase-roles request."""

    role_code: str
    user_id: str
    user_external_ref: str | None = None


@dataclass(frozen=True)
class PhaseRoleAssignmentOutcome:
    """Result of assigning roles for a phase: stored assignments and tasks assigned."""

    assignments: list[RoleAssignmentResult]
    assigned_task_ids: list[str]
    failed_task_ids: list[str]


@dataclass(frozen=True)
class InstantiationResult:
    """Project created from a template."""

    project: ProjectResult
    phases: list[PhaseResult]
    task_count: int
    dependency_count: int
