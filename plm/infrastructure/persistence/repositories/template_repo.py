"""Project template repository. Returns application DTOs."""

from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from plm.application.dtos.template import (
    TemplateCreate,
    TemplateDependencySpec,
    TemplateOutcomeSpec,
    TemplateResult,
    TemplateTaskSpec,
)
from plm.domain.enums import DependencyType, OutcomeType, TaskType
from plm.infrastructure.persistence.models.template import (
    ProjectTemplate,
    TemplateTask,
    TemplateTaskDependency,
    TemplateTaskOutcome,
)
from plm.infrastructure.persistence.repositories.base import BaseRepository


def _task_to_spec(t: TemplateTask) -> TemplateTaskSpec:
    return TemplateTaskSpec(
        task_code=t.task_code,
        name=t.name,
        phase=t.phase,
        task_type=TaskType(t.task_type),
        description=t.description,
        parent_task_code=t.parent_task_code,
        default_assignee_role=t.default_assignee_role,
        estimated_days=t.estimated_days,
        is_critical=t.is_critical,
        requires_approval=t.requires_approval,
        approval_type=t.approval_type,
        auto_create_external_task=t.auto_create_external_task,
        sort_order=t.sort_order,
    )


def _dependency_to_spec(d: TemplateTaskDependency) -> TemplateDependencySpec:
    return TemplateDependencySpec(
        task_code=d.task_code,
        depends_on_task_code=d.depends_on_task_code,
        dependency_type=DependencyType(d.dependency_type),
        lag_days=d.lag_days,
    )


def _outcome_to_spec(o: TemplateTaskOutcome) -> TemplateOutcomeSpec:
    return TemplateOutcomeSpec(
        task_code=o.task_code,
        outcome_code=o.outcome_code,
        name=o.name,
        outcome_type=OutcomeType(o.outcome_type),
        rollback_to_task_code=o.rollback_to_task_code,
        rollback_cascade=o.rollback_cascade,
    )


class TemplateRepository(BaseRepository[ProjectTemplate]):
    """Template repository. Implements ITemplateRepository."""

    def __init__(self, db: AsyncSession) -> None:
        super().__init__(db, ProjectTemplate)

    async def create(self, template: TemplateCreate) -> TemplateResult:
        row = await self.add(
            ProjectTemplate(
                code=template.code, name=template.name, description=template.description
            )
        )
        self.db.add_all(
            [
                TemplateTask(
                    template_id=row.id,
                    task_code=t.task_code,
                    name=t.name,
                    description=t.description,
                    phase=t.phase.strip().lower(),
                    parent_task_code=t.parent_task_code,
                    task_type=t.task_type.value,
                    default_assignee_role=t.default_assignee_role,
                    estimated_days=t.estimated_days,
                    is_critical=t.is_critical,
                    requires_approval=t.requires_approval,
                    approval_type=t.approval_type,
                    auto_create_external_task=t.auto_create_external_task,
                    sort_order=t.sort_order,
                )
                for t in template.tasks
            ]
        )
        self.db.add_all(
            [
                TemplateTaskDependency(
                    template_id=row.id,
                    task_code=d.task_code,
                    depends_on_task_code=d.depends_on_task_code,
                    dependency_type=d.dependency_type.value,
                    lag_days=d.lag_days,
                )
                for d in template.dependencies
            ]
        )
        self.db.add_all(
            [
                TemplateTaskOutcome(
                    template_id=row.id,
                    task_code=o.task_code,
                    outcome_code=o.outcome_code,
                    name=o.name,
                    outcome_type=o.outcome_type.value,
                    rollback_to_task_code=o.rollback_to_task_code,
                    rollback_cascade=o.rollback_cascade,
                )
                for o in template.outcomes
            ]
        )
        await self.db.flush()
        result = await self.get_by_id(row.id)
        assert result is not None
        return result

    async def get_by_id(self, template_id: str) -> TemplateResult | None:
        row = await self.get_orm_by_id(template_id)
        if row is None:
            return None
        tasks = await self.db.execute(
            select(TemplateTask)
            .where(TemplateTask.template_id == template_id)
            .order_by(TemplateTask.sort_order, TemplateTask.task_code)
        )
        dependencies = await self.db.execute(
            select(TemplateTaskDependency).where(
                TemplateTaskDependency.template_id == template_id
            )
        )
        outcomes = await self.db.execute(
            select(TemplateTaskOutcome).where(TemplateTaskOutcome.template_id == template_id)
        )
        return TemplateResult(
            id=row.id,
            code=row.code,
            name=row.name,
            description=row.description,
            tasks=[_task_to_spec(t) for t in tasks.scalars().all()],
            dependencies=[_dependency_to_spec(d) for d in dependencies.scalars().all()],
            outcomes=[_outcome_to_spec(o) for o in outcomes.scalars().all()],
        )

    async def get_outcome(
        self, template_id: str, task_code: str, outcome_code: str
    ) -> TemplateOutcomeSpec | None:
        result = await self.db.execute(
            select(TemplateTaskOutcome).where(
                TemplateTaskOutcome.template_id == template_id,
                TemplateTaskOutcome.task_code == task_code,
                TemplateTaskOutcome.outcome_code == outcome_code,
            )
        )
        row = result.scalar_one_or_none()
        return _outcome_to_spec(row) if row else None
