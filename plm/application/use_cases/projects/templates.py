"""Project template authoring."""

from __future__ import annotations

from datetime import date

from plm.application.dtos.template import TemplateCreate, TemplateResult
from plm.application.interfaces.repositories import ITemplateRepository
from plm.application.services.calendar_calculator import CalendarCalculator
from plm.domain.enums import OutcomeType, ProjectPhase
from plm.domain.exceptions import ResourceNotFoundException, ValidationException


class TemplateService:
    """Validates and stores templates; reads them back."""

    def __init__(self, template_repo: ITemplateRepository) -> None:
        self._template_repo = template_repo

    async def create_template(self, template: TemplateCreate) -> TemplateResult:
        """Store a template after validating its task graph.

        Raises:
            ValidationException: Duplicate task codes, unknown phase, unknown
                codes in dependencies/outcomes/parents, or a dependency cycle.
        """
        validate_template(template)
        return await self._template_repo.create(template)

    async def get_template(self, template_id: str) -> TemplateResult:
        template = await self._template_repo.get_by_id(template_id)
        if template is None:
            raise ResourceNotFoundException("template", template_id)
        return template


def validate_template(template: TemplateCreate) -> None:
    phases = set(ProjectPhase.values())
    codes: set[str] = set()
    for task in template.tasks:
        if task.task_code in codes:
            raise ValidationException(f"duplicate task_code {task.task_code}", field="tasks")
        codes.add(task.task_code)
        if task.phase.strip().lower() not in phases:
            raise ValidationException(
                f"task {task.task_code} has unknown phase {task.phase}", field="tasks"
            )
        if task.estimated_days < 1:
            raise ValidationException(
                f"task {task.task_code} estimated_days must be >= 1", field="tasks"
            )

    for task in template.tasks:
        if task.parent_task_code and task.parent_task_code not in codes:
            raise ValidationException(
                f"task {task.task_code} has unknown parent {task.parent_task_code}",
                field="tasks",
            )

    for dep in template.dependencies:
        for code in (dep.task_code, dep.depends_on_task_code):
            if code not in codes:
                raise ValidationException(
                    f"dependency references unknown task_code {code}", field="dependencies"
                )
        if dep.task_code == dep.depends_on_task_code:
            raise ValidationException(
                f"task {dep.task_code} cannot depend on itself", field="dependencies"
            )

    for outcome in template.outcomes:
        if outcome.task_code not in codes:
            raise ValidationException(
                f"outcome references unknown task_code {outcome.task_code}", field="outcomes"
            )
        if outcome.outcome_type is OutcomeType.FAIL_ROLLBACK and (
            outcome.rollback_to_task_code not in codes
        ):
            raise ValidationException(
                f"outcome {outcome.outcome_code} needs a known rollback_to_task_code",
                field="outcomes",
            )

    # Raises on cycles; the anchor date is irrelevant here.
    CalendarCalculator(
        template.tasks, template.dependencies, date(2000, 1, 3), skip_weekends=False
    ).calculate()
