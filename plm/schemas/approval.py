"""Approval definition and approval request API schemas."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from plm.domain.enums import ApprovalDefinitionStatus, ApprovalStatus, ReviewerStatus


class ApprovalDefinitionCreateRequest(BaseModel):
    """Request body for creating an approval definition (draft)."""

    code: str = Field(..., min_length=1, max_length=64)
    name: str = Field(..., min_length=1, max_length=255)
    flow_schema: dict[str, Any] = Field(
        ..., description='Flow graph: {"nodes": [{"type": "submit"|"approve"|"end", ...}]}'
    )


class ApprovalDefinitionUpdateRequest(BaseModel):
    """Request body for editing a definition; omitted fields are left unchanged."""

    name: str | None = Field(default=None, min_length=1, max_length=255)
    flow_schema: dict[str, Any] | None = None


class ApprovalDefinitionResponse(BaseModel):
    """Approval definition response."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    code: str
    name: str
    flow_schema: dict[str, Any]
    status: ApprovalDefinitionStatus
    created_at: datetime | None = None
    updated_at: datetime | None = None


class ApprovalSubmitRequest(BaseModel):
    """Request body for submitting an approval request from a published definition."""

    definition_id: str = Field(..., min_length=1)
    title: str = Field(..., min_length=1, max_length=255)
    description: str | None = None
    form_data: dict[str, Any] = Field(default_factory=dict)
    selected_approvers: dict[str, list[str]] = Field(
        default_factory=dict,
        description="Node index -> approver ids for self_select nodes",
    )


class ApprovalCreateRequest(ApprovalSubmitRequest):
    """POST /approvals body; task_id links the request to a reviewing task."""

    task_id: str | None = None
    project_id: str | None = None


class ApprovalDecisionRequest(BaseModel):
    """Request body for approve / reject."""

    comment: str | None = Field(default=None, max_length=2000)


class ApprovalReviewerResponse(BaseModel):
    """Reviewer row."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    user_id: str
    node_index: int
    node_name: str
    sequence: int
    status: ReviewerStatus
    comment: str | None
    decided_at: datetime | None


class ApprovalRequestResponse(BaseModel):
    """Approval request with its reviewers."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    title: str
    status: ApprovalStatus
    requested_by: str
    current_node: int
    version: int
    project_id: str | None
    task_id: str | None
    definition_id: str | None
    description: str | None
    form_data: dict[str, Any]
    selected_approvers: dict[str, list[str]]
    result_comment: str | None
    reviewers: list[ApprovalReviewerResponse]
    created_at: datetime | None = None
    updated_at: datetime | None = None
