"""Application DTOs (frozen dataclasses, no ORM types)."""

from plm.application.dtos.approval import (
    ApprovalDefinitionResult,
    ApprovalRequestResult,
    ApprovalReviewerResult,
    ApprovalSubmission,
    ReviewerCreate,
    RoutingDecision,
)
from plm.application.dtos.project import (
    InstantiationResult,
    PhaseResult,
    PhaseRoleAssignmentOutcome,
    ProjectResult,
    RoleAssignmentInput,
    RoleAssignmentResult,
)
from plm.application.dtos.task import (
    Actor,
    TaskActionLogResult,
    TaskCreate,
    TaskDependencyResult,
    TaskResult,
)
from plm.application.dtos.template import (
    TemplateCreate,
    TemplateDependencySpec,
    TemplateOutcomeSpec,
    TemplateResult,
    TemplateTaskSpec,
)

__all__ = [
    "Actor",
    "ApprovalDefinitionResult",
    "ApprovalRequestResult",
    "ApprovalReviewerResult",
    "ApprovalSubmission",
    "InstantiationResult",
    "PhaseResult",
    "PhaseRoleAssignmentOutcome",
    "ProjectResult",
    "ReviewerCreate",
    "RoleAssignmentInput",
    "RoleAssignmentResult",
    "RoutingDecision",
    "TaskActionLogResult",
    "TaskCreate",
    "TaskDependencyResult",
    "TaskResult",
    "TemplateCreate",
    "TemplateDependencySpec",
    "TemplateOutcomeSpec",
    "TemplateResult",
    "TemplateTaskSpec",
]
