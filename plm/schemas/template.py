"""Project template API schemas."""

from pydantic import BaseModel, ConfigDict, Field

from plm.application.dtos.template import (
    TemplateCreate,
    TemplateDependencySpec,
    TemplateOutcomeSpec,
    TemplateTaskSpec,
)
from plm.domain.enums import DependencyType, OutcomeType, TaskType


class TemplateTaskSchema(BaseModel):
    """Template task keyed by task_code."""

    model_config = ConfigDict(from_attributes=True)

    task_code: str = Field(..., min_length=1, max_length=64)
    name: str = Field(..., min_length=1, max_length=255)
    phase: str = Field(..., description="concept, evt, dvt, pvt or mp")
    task_type: TaskType = TaskType.TASK
    description: str | None = None
    parent_task_code: str | None = None
    default_assignee_role: str | None = Field(default=None, max_length=64)
    estimated_days: int = Field(default=1, ge=1)
    is_critical: bool = False
    requires_approval: bool = False
    approval_type: str | None = Field(default=None, max_length=64)
    auto_create_external_task: bool = False
    sort_order: int = 0


class TemplateDependencySchema(BaseModel):
    """task_code depends on depends_on_task_code."""

    model_config = ConfigDict(from_attributes=True)

    task_code: str = Field(..., min_length=1)
    depends_on_task_code: str = Field(..., min_length=1)
    dependency_type: DependencyType = DependencyType.FS
    lag_days: int = 0


class TemplateOutcomeSchema(BaseModel):
    """Review outcome configured for a template task."""

    model_config = ConfigDict(from_attributes=True)

    task_code: str = Field(..., min_length=1)
    outcome_code: str = Field(..., min_length=1, max_length=64)
    name: str = Field(..., min_length=1, max_length=255)
    outcome_type: OutcomeType
    rollback_to_task_code: str | None = None
    rollback_cascade: bool = False


class TemplateCreateRequest(BaseModel):
    """Request body for POST /templates."""

    code: str = Field(..., min_length=1, max_length=64)
    name: str = Field(..., min_length=1, max_length=255)
    description: str | None = None
    tasks: list[TemplateTaskSchema] = Field(..., min_length=1)
    dependencies: list[TemplateDependencySchema] = Field(default_factory=list)
    outcomes: list[TemplateOutcomeSchema] = Field(default_factory=list)

    def to_dto(self) -> TemplateCreate:
        return TemplateCreate(
            code=self.code,
            name=self.name,
            description=self.description,
            tasks=[TemplateTaskSpec(**t.model_dump()) for t in self.tasks],
            dependencies=[TemplateDependencySpec(**d.model_dump()) for d in self.dependencies],
            outcomes=[TemplateOutcomeSpec(**o.model_dump()) for o in self.outcomes],
        )


class TemplateResponse(BaseModel):
    """Template with its tasks, dependencies and outcomes."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    code: str
    name: str
    description: str | None
    tasks: list[TemplateTaskSchema]
    dependencies: list[TemplateDependencySchema]
    outcomes: list[TemplateOutcomeSchema]
