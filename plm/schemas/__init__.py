"""Pydantic request/response schemas for the API."""

from plm.schemas.approval import (
    ApprovalCreateRequest,
    ApprovalDefinitionCreateRequest,
    ApprovalDefinitionResponse,
    ApprovalRequestResponse,
)
from plm.schemas.health import HealthResponse
from plm.schemas.project import InstantiationResponse, ProjectFromTemplateRequest, ProjectResponse
from plm.schemas.task import TaskCompleteRequest, TaskResponse
from plm.schemas.template import TemplateCreateRequest, TemplateResponse

__all__ = [
    "ApprovalCreateRequest",
    "ApprovalDefinitionCreateRequest",
    "ApprovalDefinitionResponse",
    "ApprovalRequestResponse",
    "HealthResponse",
    "InstantiationResponse",
    "ProjectFromTemplateRequest",
    "ProjectResponse",
    "TaskCompleteRequest",
    "TaskResponse",
    "TemplateCreateRequest",
    "TemplateResponse",
]
