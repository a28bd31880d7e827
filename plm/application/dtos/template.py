"""DTOs for project templates (tasks keyed by task_code, not by id)."""

from __future__ import annotations

from dataclasses import dataclass, field

from plm.domain.enums import DependencyType, OutcomeType, TaskType


@dataclass(frozen=True)
class TemplateTaskSpec:
    """Template task as authored and as read back."""

    task_code: str
    name: str
    phase: str
    task_type: TaskType = TaskType.TASK
    description: str | None = None
    parent_task_code: str | None = None
    default_assignee_role: str | None = None
    estimated_days: int = 1
    is_critical: bool = False
    requires_approval: bool = False
    approval_type: str | None = None
    auto_create_external_task: bool = False
    sort_order: int = 0


@dataclass(frozen=True)
class TemplateDependencySpec:
    """Template edge: task_code depends on depends_on_task_code."""

    task_code: str
    depends_on_task_code: str
    dependency_type: DependencyType = DependencyType.FS
    lag_days: int = 0


@dataclass(frozen=True)
class TemplateOutcomeSpec:
    """Configured review outcome for a template task."""

    task_code: str
    outcome_code: str
    name: str
    outcome_type: OutcomeType
    rollback_to_task_code: str | None = None
    rollback_cascade: bool = False


@dataclass(frozen=True)
class TemplateCreate:
    code: str
    name: str
    description: str | None = None
    tasks: list[TemplateTaskSpec] = field(default_factory=list)
    dependencies: list[TemplateDependencySpec] = field(default_factory=list)
    outcomes: list[TemplateOutcomeSpec] = field(default_factory=list)


@dataclass(frozen=True)
class TemplateResult:
    id: str
    code: str
    name: str
    description: str | None
    tasks: list[TemplateTaskSpec] = field(default_factory=list)
    dependencies: list[TemplateDependencySpec] = field(default_factory=list)
    outcomes: list[TemplateOutcomeSpec] = field(default_factory=list)
