"""Persistence models: ORM entities and mixins."""

from plm.infrastructure.persistence.models.approval import (
    ApprovalDefinition,
    ApprovalRequest,
    ApprovalReviewer,
)
from plm.infrastructure.persistence.models.mixins import (
    CuidMixin,
    TimestampedModel,
    TimestampMixin,
    VersionedMixin,
    VersionedModel,
)
from plm.infrastructure.persistence.models.project import (
    Project,
    ProjectPhase,
    ProjectRoleAssignment,
)
from plm.infrastructure.persistence.models.task import Task, TaskActionLog, TaskDependency
from plm.infrastructure.persistence.models.template import (
    ProjectTemplate,
    TemplateTask,
    TemplateTaskDependency,
    TemplateTaskOutcome,
)

__all__ = [
    "ApprovalDefinition",
    "ApprovalRequest",
    "ApprovalReviewer",
    "CuidMixin",
    "Project",
    "ProjectPhase",
    "ProjectRoleAssignment",
    "ProjectTemplate",
    "Task",
    "TaskActionLog",
    "TaskDependency",
    "TemplateTask",
    "TemplateTaskDependency",
    "TemplateTaskOutcome",
    "TimestampMixin",
    "TimestampedModel",
    "VersionedMixin",
    "VersionedModel",
]
