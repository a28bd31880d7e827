"""Project API: instantiate from template, read project/phases/tasks, assign phase roles."""

from typing import Annotated

from fastapi import APIRouter, Depends

from plm.api.v1.dependencies import (
    get_instantiate_project_use_case,
    get_operator,
    get_project_repo,
    get_task_repo,
    get_task_workflow,
)
from plm.application.dtos.project import RoleAssignmentInput
from plm.application.dtos.task import Actor
from plm.application.use_cases.projects import InstantiateProjectFromTemplateUseCase
from plm.application.use_cases.tasks import TaskWorkflowService
from plm.core.config import get_settings
from plm.domain.exceptions import ResourceNotFoundException
from plm.infrastructure.persistence.repositories import ProjectRepository, TaskRepository
from plm.schemas.project import (
    InstantiationResponse,
    PhaseResponse,
    PhaseRolesRequest,
    PhaseRolesResponse,
    ProjectFromTemplateRequest,
    ProjectResponse,
)
from plm.schemas.task import TaskResponse

router = APIRouter()


@router.post("/from-template", response_model=InstantiationResponse, status_code=201)
async def create_project_from_template(
    body: ProjectFromTemplateRequest,
    actor: Annotated[Actor, Depends(get_operator)],
    use_case: Annotated[
        InstantiateProjectFromTemplateUseCase, Depends(get_instantiate_project_use_case)
    ],
):
    """Create a project with phases, scheduled tasks and dependencies from a template."""
    skip_weekends = (
        body.skip_weekends
        if body.skip_weekends is not None
        else get_settings().default_skip_weekends
    )
    result = await use_case.execute(
        body.template_id,
        body.name,
        body.start_date,
        skip_weekends=skip_weekends,
        role_assignments=body.role_assignments,
        project_code=body.code,
        created_by=actor.id,
    )
    return InstantiationResponse.model_validate(result)


@router.get("/{project_id}", response_model=ProjectResponse)
async def get_project(
    project_id: str,
    project_repo: Annotated[ProjectRepository, Depends(get_project_repo)],
):
    """Get a project by id."""
    project = await project_repo.get_by_id(project_id)
    if project is None:
        raise ResourceNotFoundException("project", project_id)
    return ProjectResponse.model_validate(project)


@router.get("/{project_id}/phases", response_model=list[PhaseResponse])
async def list_project_phases(
    project_id: str,
    project_repo: Annotated[ProjectRepository, Depends(get_project_repo)],
):
    """Phases of a project in sequence order."""
    if await project_repo.get_by_id(project_id) is None:
        raise ResourceNotFoundException("project", project_id)
    return [PhaseResponse.model_validate(p) for p in await project_repo.list_phases(project_id)]


@router.get("/{project_id}/tasks", response_model=list[TaskResponse])
async def list_project_tasks(
    project_id: str,
    task_repo: Annotated[TaskRepository, Depends(get_task_repo)],
):
    """Tasks of a project ordered by sequence."""
    return [TaskResponse.model_validate(t) for t in await task_repo.list_by_project(project_id)]


@router.put("/{project_id}/phases/{phase_id}/roles", response_model=PhaseRolesResponse)
async def assign_phase_roles(
    project_id: str,
    phase_id: str,
    body: PhaseRolesRequest,
    actor: Annotated[Actor, Depends(get_operator)],
    workflow: Annotated[TaskWorkflowService, Depends(get_task_workflow)],
):
    """Bind users to roles for a phase and assign that phase's unassigned tasks."""
    outcome = await workflow.assign_phase_roles(
        project_id,
        phase_id,
        [RoleAssignmentInput(**a.model_dump()) for a in body.assignments],
        actor,
    )
    return PhaseRolesResponse.model_validate(outcome)
