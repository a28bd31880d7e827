"""Approval ORM models: definition, request (flow snapshot) and reviewer rows."""

from datetime import datetime
from typing import Any

from sqlalchemy import JSON, DateTime, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from plm.domain.enums import ApprovalDefinitionStatus, ApprovalStatus, ReviewerStatus
from plm.infrastructure.persistence.database import Base
from plm.infrastructure.persistence.models.mixins import (
    TimestampedModel,
    VersionedModel,
    enum_check,
)


class ApprovalDefinition(TimestampedModel, Base):
    """Approval flow definition. Table: approval_definition."""

    __tablename__ = "approval_definition"

    code: Mapped[str] = mapped_column(String(64), nullable=False, unique=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    flow_schema: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False)
    status: Mapped[str] = mapped_column(
        String(16),
        nullable=False,
        default=ApprovalDefinitionStatus.DRAFT.value,
        server_default=ApprovalDefinitionStatus.DRAFT.value,
    )

    __table_args__ = (
        enum_check(
            "status", ApprovalDefinitionStatus.values(), "approval_definition_status_check"
        ),
    )


class ApprovalRequest(VersionedModel, Base):
    """Approval request over a frozen flow snapshot. Table: approval_request."""

    __tablename__ = "approval_request"

    project_id: Mapped[str | None] = mapped_column(
        String, ForeignKey("project.id", ondelete="SET NULL"), nullable=True, index=True
    )
    task_id: Mapped[str | None] = mapped_column(
        String, ForeignKey("task.id", ondelete="SET NULL"), nullable=True, index=True
    )
    definition_id: Mapped[str | None] = mapped_column(
        String, ForeignKey("approval_definition.id", ondelete="SET NULL"), nullable=True
    )
    title: Mapped[str] = mapped_column(String(500), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    form_data: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)
    status: Mapped[str] = mapped_column(
        String(16),
        nullable=False,
        default=ApprovalStatus.PENDING.value,
        server_default=ApprovalStatus.PENDING.value,
        index=True,
    )
    result_comment: Mapped[str | None] = mapped_column(Text, nullable=True)
    requested_by: Mapped[str] = mapped_column(String, nullable=False, index=True)
    current_node: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    flow_snapshot: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False)
    selected_approvers: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)

    __table_args__ = (
        enum_check("status", ApprovalStatus.values(), "approval_request_status_check"),
    )


class ApprovalReviewer(TimestampedModel, Base):
    """One reviewer at one node of a request. Table: approval_reviewer."""

    __tablename__ = "approval_reviewer"

    approval_id: Mapped[str] = mapped_column(
        String, ForeignKey("approval_request.id", ondelete="CASCADE"), nullable=False
    )
    user_id: Mapped[str] = mapped_column(String, nullable=False)
    node_index: Mapped[int] = mapped_column(Integer, nullable=False)
    node_name: Mapped[str] = mapped_column(String(255), nullable=False)
    sequence: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    status: Mapped[str] = mapped_column(
        String(16),
        nullable=False,
        default=ReviewerStatus.PENDING.value,
        server_default=ReviewerStatus.PENDING.value,
    )
    comment: Mapped[str | None] = mapped_column(Text, nullable=True)
    decided_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    __table_args__ = (
        Index("ix_approval_reviewer_approval_node", "approval_id", "node_index"),
        Index("ix_approval_reviewer_user_status", "user_id", "status"),
        enum_check("status", ReviewerStatus.values(), "approval_reviewer_status_check"),
    )
