"""Application use cases: one entry point per workflow."""

from plm.application.use_cases.approvals import ApprovalDefinitionService, ApprovalRouter
from plm.application.use_cases.projects import (
    InstantiateProjectFromTemplateUseCase,
    TemplateService,
)
from plm.application.use_cases.tasks import TaskWorkflowService

__all__ = [
    "ApprovalDefinitionService",
    "ApprovalRouter",
    "InstantiateProjectFromTemplateUseCase",
    "TaskWorkflowService",
    "TemplateService",
]
