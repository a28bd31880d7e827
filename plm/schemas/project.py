"""Project, phase and role assignment API schemas."""

from datetime import date, datetime

from pydantic import BaseModel, ConfigDict, Field

from plm.domain.enums import ProjectPhase


class ProjectFromTemplateRequest(BaseModel):
    """Request body for POST /projects/from-template."""

    template_id: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1, max_length=255)
    start_date: date
    code: str | None = Field(default=None, max_length=64)
    skip_weekends: bool | None = Field(
        default=None, description="Defaults to DEFAULT_SKIP_WEEKENDS"
    )
    role_assignments: dict[str, str] = Field(
        default_factory=dict, description="role_code -> user_id for initial assignees"
    )


class ProjectResponse(BaseModel):
    """Project response."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    code: str | None
    template_id: str | None
    start_date: date
    skip_weekends: bool
    status: str
    created_by: str | None = None
    created_at: datetime | None = None


class PhaseResponse(BaseModel):
    """Project phase response."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    project_id: str
    phase: ProjectPhase
    name: str
    sequence: int


class InstantiationResponse(BaseModel):
    """Project created from a template."""

    model_config = ConfigDict(from_attributes=True)

    project: ProjectResponse
    phases: list[PhaseResponse]
    task_count: int
    dependency_count: int


class RoleAssignmentItem(BaseModel):
    """One role binding in an assign-roles request."""

    role_code: str = Field(..., min_length=1, max_length=64)
    user_id: str = Field(..., min_length=1, max_length=128)
    user_external_ref: str | None = Field(default=None, max_length=255)


class PhaseRolesRequest(BaseModel):
    """Request body for PUT /projects/{id}/phases/{phase_id}/roles."""

    assignments: list[RoleAssignmentItem] = Field(..., min_length=1)


class RoleAssignmentResponse(BaseModel):
    """Stored role assignment."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    project_id: str
    phase_id: str
    role_code: str
    user_id: str
    user_external_ref: str | None


class PhaseRolesResponse(BaseModel):
    """Stored assignments plus the tasks that were (or failed to be) auto-assigned."""

    model_config = ConfigDict(from_attributes=True)

    assignments: list[RoleAssignmentResponse]
    assigned_task_ids: list[str]
    failed_task_ids: list[str]
