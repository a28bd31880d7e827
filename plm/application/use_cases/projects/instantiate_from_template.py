"""Instantiate a project from a template.

Creates the project and its five phases, computes every task's planned
dates from the template dependency graph, then creates tasks in three
passes (milestones, tasks, subtasks) so a parent row always exists
before its children reference it, and finally the dependency edges.
"""

from __future__ import annotations

from datetime import date

from plm.application.dtos.project import InstantiationResult
from plm.application.dtos.task import TaskCreate
from plm.application.dtos.template import TemplateTaskSpec
from plm.application.interfaces.repositories import (
    IProjectRepository,
    ITaskDependencyRepository,
    ITaskRepository,
    ITemplateRepository,
)
from plm.application.services.calendar_calculator import CalendarCalculator
from plm.domain.enums import ProjectPhase, TaskStatus, TaskType
from plm.domain.exceptions import ResourceNotFoundException
from plm.shared.telemetry.logging import get_logger
from plm.shared.telemetry.tracing import traced

logger = get_logger(__name__)

_CREATION_PASSES = (TaskType.MILESTONE, TaskType.TASK, TaskType.SUBTASK)


class InstantiateProjectFromTemplateUseCase:
    """Creates a project with phases, scheduled tasks and dependencies from a template."""

    def __init__(
        self,
        project_repo: IProjectRepository,
        template_repo: ITemplateRepository,
        task_repo: ITaskRepository,
        dependency_repo: ITaskDependencyRepository,
    ) -> None:
        self._project_repo = project_repo
        self._template_repo = template_repo
        self._task_repo = task_repo
        self._dependency_repo = dependency_repo

    @traced("project.instantiate_from_template")
    async def execute(
        self,
        template_id: str,
        project_name: str,
        start_date: date,
        *,
        skip_weekends: bool,
        role_assignments: dict[str, str] | None = None,
        project_code: str | None = None,
        created_by: str | None = None,
    ) -> InstantiationResult:
        """Create the project.

        Args:
            template_id: Template to instantiate.
            project_name: Name of the new project.
            start_date: Planned start of tasks with no dependencies.
            skip_weekends: Whether work-day stepping skips Saturday/Sunday.
            role_assignments: role_code -> user_id used for initial assignees.
            project_code: Optional project code.
            created_by: Operator creating the project.

        Raises:
            ResourceNotFoundException: Unknown template.
            ValidationException: Template dependency graph has a cycle.
        """
        template = await self._template_repo.get_by_id(template_id)
        if template is None:
            raise ResourceNotFoundException("template", template_id)
        roles = role_assignments or {}

        # Dates first: a cyclic template fails before anything is written.
        dates = CalendarCalculator(
            template.tasks, template.dependencies, start_date, skip_weekends
        ).calculate()

        project = await self._project_repo.create_project(
            project_name,
            start_date,
            skip_weekends=skip_weekends,
            code=project_code,
            template_id=template.id,
            created_by=created_by,
        )
        phases = [
            await self._project_repo.create_phase(
                project.id, phase, phase.display_name, sequence
            )
            for sequence, phase in enumerate(ProjectPhase, start=1)
        ]
        phase_ids = {p.phase.value: p.id for p in phases}

        task_ids: dict[str, str] = {}
        sequence = 0
        for task_type in _CREATION_PASSES:
            for spec in _ordered(template.tasks, task_type):
                sequence += 1
                assignee = roles.get(spec.default_assignee_role) if spec.default_assignee_role else None
                task_dates = dates[spec.task_code]
                created = await self._task_repo.create(
                    TaskCreate(
                        project_id=project.id,
                        code=spec.task_code,
                        title=spec.name,
                        description=spec.description,
                        task_type=task_type,
                        status=TaskStatus.PENDING if assignee else TaskStatus.UNASSIGNED,
                        sequence=sequence,
                        phase_id=_phase_id(phase_ids, spec.phase),
                        parent_task_id=task_ids.get(spec.parent_task_code or ""),
                        assignee_id=assignee,
                        default_assignee_role=spec.default_assignee_role,
                        priority="high" if spec.is_critical else "medium",
                        requires_approval=spec.requires_approval,
                        approval_type=spec.approval_type,
                        auto_create_external_task=spec.auto_create_external_task,
                        planned_start=task_dates.start,
                        planned_end=task_dates.end,
                        created_by=created_by,
                    )
                )
                task_ids[spec.task_code] = created.id

        dependency_count = 0
        for dep in template.dependencies:
            task_id = task_ids.get(dep.task_code)
            depends_on = task_ids.get(dep.depends_on_task_code)
            if task_id is None or depends_on is None:
                logger.warning(
                    "Template %s: skipping dependency %s -> %s (unknown task code)",
                    template.id,
                    dep.task_code,
                    dep.depends_on_task_code,
                )
                continue
            await self._dependency_repo.create(
                task_id, depends_on, dep.dependency_type, dep.lag_days
            )
            dependency_count += 1

        logger.info(
            "Project %s created from template %s: %d tasks, %d dependencies",
            project.id,
            template.id,
            len(task_ids),
            dependency_count,
        )
        return InstantiationResult(
            project=project,
            phases=phases,
            task_count=len(task_ids),
            dependency_count=dependency_count,
        )


def _ordered(tasks: list[TemplateTaskSpec], task_type: TaskType) -> list[TemplateTaskSpec]:
    return sorted(
        (t for t in tasks if t.task_type is task_type),
        key=lambda t: t.sort_order,
    )


def _phase_id(phase_ids: dict[str, str], phase: str) -> str | None:
    return phase_ids.get((phase or "").strip().lower())
