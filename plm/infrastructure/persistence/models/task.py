"""Task, TaskDependency and TaskActionLog ORM models."""

from datetime import date, datetime
from typing import Any

import sqlalchemy as sa
from sqlalchemy import (
    JSON,
    BigInteger,
    Boolean,
    CheckConstraint,
    Date,
    DateTime,
    ForeignKey,
    Identity,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from plm.domain.enums import DependencyType, TaskAction, TaskStatus, TaskType
from plm.infrastructure.persistence.database import Base
from plm.infrastructure.persistence.models.mixins import (
    CuidMixin,
    VersionedModel,
    enum_check,
)
from plm.shared.enums import ActorType


class Task(VersionedModel, Base):
    """Project task. Table: task. Status writes are compare-and-swap on version."""

    __tablename__ = "task"

    project_id: Mapped[str] = mapped_column(
        String, ForeignKey("project.id", ondelete="CASCADE"), nullable=False, index=True
    )
    phase_id: Mapped[str | None] = mapped_column(
        String, ForeignKey("project_phase.id", ondelete="SET NULL"), nullable=True
    )
    parent_task_id: Mapped[str | None] = mapped_column(
        String, ForeignKey("task.id", ondelete="SET NULL"), nullable=True
    )
    code: Mapped[str] = mapped_column(String(64), nullable=False)
    title: Mapped[str] = mapped_column(String(500), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    task_type: Mapped[str] = mapped_column(
        String(16), nullable=False, default=TaskType.TASK.value
    )
    status: Mapped[str] = mapped_column(
        String(32),
        nullable=False,
        default=TaskStatus.UNASSIGNED.value,
        server_default=TaskStatus.UNASSIGNED.value,
    )
    priority: Mapped[str] = mapped_column(
        String(16), nullable=False, default="medium", server_default="medium"
    )
    assignee_id: Mapped[str | None] = mapped_column(String, nullable=True, index=True)
    assignee_external_ref: Mapped[str | None] = mapped_column(String, nullable=True)
    default_assignee_role: Mapped[str | None] = mapped_column(String(64), nullable=True)
    requires_approval: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=sa.text("false")
    )
    approval_type: Mapped[str | None] = mapped_column(String(64), nullable=True)
    auto_create_external_task: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=sa.text("false")
    )
    external_task_id: Mapped[str | None] = mapped_column(String, nullable=True)
    planned_start: Mapped[date | None] = mapped_column(Date, nullable=True)
    planned_end: Mapped[date | None] = mapped_column(Date, nullable=True)
    actual_start: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    completed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    progress: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0, server_default=sa.text("0")
    )
    sequence: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_by: Mapped[str | None] = mapped_column(String, nullable=True)

    __table_args__ = (
        UniqueConstraint("project_id", "code", name="uq_task_project_code"),
        Index("ix_task_phase_sequence", "project_id", "phase_id", "sequence"),
        enum_check("status", TaskStatus.values(), "task_status_check"),
        enum_check("task_type", TaskType.values(), "task_type_check"),
        CheckConstraint("progress BETWEEN 0 AND 100", name="task_progress_check"),
    )


class TaskDependency(CuidMixin, Base):
    """Edge: task_id depends on depends_on_task_id. Table: task_dependency."""

    __tablename__ = "task_dependency"

    task_id: Mapped[str] = mapped_column(
        String, ForeignKey("task.id", ondelete="CASCADE"), nullable=False, index=True
    )
    depends_on_task_id: Mapped[str] = mapped_column(
        String, ForeignKey("task.id", ondelete="CASCADE"), nullable=False, index=True
    )
    dependency_type: Mapped[str] = mapped_column(
        String(2), nullable=False, default=DependencyType.FS.value
    )
    lag_days: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    __table_args__ = (
        UniqueConstraint("task_id", "depends_on_task_id", name="uq_task_dependency_pair"),
        enum_check("dependency_type", DependencyType.values(), "task_dependency_type_check"),
    )


class TaskActionLog(CuidMixin, Base):
    """Append-only task action history. Table: task_action_log.

    seq is the write order; created_at is the transaction time and repeats
    for rows written in the same request.
    """

    __tablename__ = "task_action_log"

    task_id: Mapped[str] = mapped_column(
        String, ForeignKey("task.id", ondelete="CASCADE"), nullable=False
    )
    project_id: Mapped[str] = mapped_column(String, nullable=False, index=True)
    action: Mapped[str] = mapped_column(String(32), nullable=False)
    from_status: Mapped[str | None] = mapped_column(String(32), nullable=True)
    to_status: Mapped[str | None] = mapped_column(String(32), nullable=True)
    actor_id: Mapped[str] = mapped_column(String, nullable=False)
    actor_type: Mapped[str] = mapped_column(
        String(16), nullable=False, default=ActorType.USER.value
    )
    payload: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)
    comment: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    seq: Mapped[int] = mapped_column(BigInteger, Identity(), nullable=False)

    __table_args__ = (
        Index("ix_task_action_log_task_seq", "task_id", "seq"),
        enum_check("action", TaskAction.values(), "task_action_log_action_check"),
        enum_check("actor_type", ActorType.values(), "task_action_log_actor_type_check"),
    )

