"""DTOs for approval definitions, requests, reviewers and routing decisions."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from plm.domain.enums import (
    ApprovalDefinitionStatus,
    ApprovalStatus,
    ReviewerStatus,
    RoutingChannel,
)


@dataclass(frozen=True)
class ApprovalDefinitionResult:
    id: str
    code: str
    name: str
    flow_schema: dict[str, Any]
    status: ApprovalDefinitionStatus
    created_at: datetime | None = None
    updated_at: datetime | None = None


@dataclass(frozen=True)
class ApprovalReviewerResult:
    id: str
    approval_id: str
    user_id: str
    node_index: int
    node_name: str
    sequence: int
    status: ReviewerStatus
    comment: str | None = None
    decided_at: datetime | None = None


@dataclass(frozen=True)
class ApprovalRequestResult:
    id: str
    title: str
    status: ApprovalStatus
    requested_by: str
    current_node: int
    flow_snapshot: dict[str, Any]
    version: int
    project_id: str | None = None
    task_id: str | None = None
    definition_id: str | None = None
    description: str | None = None
    form_data: dict[str, Any] = field(default_factory=dict)
    selected_approvers: dict[str, list[str]] = field(default_factory=dict)
    result_comment: str | None = None
    reviewers: list[ApprovalReviewerResult] = field(default_factory=list)
    created_at: datetime | None = None
    updated_at: datetime | None = None

    def reviewers_at(self, node_index: int) -> list[ApprovalReviewerResult]:
        return [r for r in self.reviewers if r.node_index == node_index]


@dataclass(frozen=True)
class ApprovalSubmission:
    """Caller input for creating an approval request from a definition."""

    definition_id: str
    title: str
    description: str | None = None
    form_data: dict[str, Any] = field(default_factory=dict)
    # node index (as string) -> approver ids chosen by the submitter
    selected_approvers: dict[str, list[str]] = field(default_factory=dict)


@dataclass(frozen=True)
class ReviewerCreate:
    user_id: str
    node_index: int
    node_name: str
    sequence: int


@dataclass(frozen=True)
class RoutingDecision:
    """Routing policy verdict."""

    channel: RoutingChannel
    rule_id: str | None = None
    rule_name: str | None = None
    reason: str | None = None

    @classmethod
    def human(cls, reason: str | None = None) -> RoutingDecision:
        return cls(channel=RoutingChannel.HUMAN, reason=reason)
