"""Project template ORM models: template, tasks, dependencies, review outcomes.

Template rows reference each other by task_code, not by id; codes are
resolved to task ids at instantiation.
"""

import sqlalchemy as sa
from sqlalchemy import Boolean, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from plm.domain.enums import DependencyType, OutcomeType, TaskType
from plm.infrastructure.persistence.database import Base
from plm.infrastructure.persistence.models.mixins import (
    CuidMixin,
    TimestampedModel,
    enum_check,
)


class ProjectTemplate(TimestampedModel, Base):
    """Template definition. Table: project_template."""

    __tablename__ = "project_template"

    code: Mapped[str] = mapped_column(String(64), nullable=False, unique=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)


class TemplateTask(CuidMixin, Base):
    """Task blueprint. Table: template_task."""

    __tablename__ = "template_task"

    template_id: Mapped[str] = mapped_column(
        String,
        ForeignKey("project_template.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    task_code: Mapped[str] = mapped_column(String(64), nullable=False)
    name: Mapped[str] = mapped_column(String(500), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    phase: Mapped[str] = mapped_column(String(16), nullable=False)
    parent_task_code: Mapped[str | None] = mapped_column(String(64), nullable=True)
    task_type: Mapped[str] = mapped_column(
        String(16), nullable=False, default=TaskType.TASK.value
    )
    default_assignee_role: Mapped[str | None] = mapped_column(String(64), nullable=True)
    estimated_days: Mapped[int] = mapped_column(
        Integer, nullable=False, default=1, server_default=sa.text("1")
    )
    is_critical: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=sa.text("false")
    )
    requires_approval: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=sa.text("false")
    )
    approval_type: Mapped[str | None] = mapped_column(String(64), nullable=True)
    auto_create_external_task: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=sa.text("false")
    )
    sort_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    __table_args__ = (
        UniqueConstraint("template_id", "task_code", name="uq_template_task_code"),
        enum_check("task_type", TaskType.values(), "template_task_type_check"),
    )


class TemplateTaskDependency(CuidMixin, Base):
    """Template edge between task codes. Table: template_task_dependency."""

    __tablename__ = "template_task_dependency"

    template_id: Mapped[str] = mapped_column(
        String,
        ForeignKey("project_template.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    task_code: Mapped[str] = mapped_column(String(64), nullable=False)
    depends_on_task_code: Mapped[str] = mapped_column(String(64), nullable=False)
    dependency_type: Mapped[str] = mapped_column(
        String(2), nullable=False, default=DependencyType.FS.value
    )
    lag_days: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    __table_args__ = (
        enum_check(
            "dependency_type",
            DependencyType.values(),
            "template_task_dependency_type_check",
        ),
    )


class TemplateTaskOutcome(CuidMixin, Base):
    """Configured review outcome for a template task. Table: template_task_outcome."""

    __tablename__ = "template_task_outcome"

    template_id: Mapped[str] = mapped_column(
        String,
        ForeignKey("project_template.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    task_code: Mapped[str] = mapped_column(String(64), nullable=False)
    outcome_code: Mapped[str] = mapped_column(String(64), nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    outcome_type: Mapped[str] = mapped_column(String(16), nullable=False)
    rollback_to_task_code: Mapped[str | None] = mapped_column(String(64), nullable=True)
    rollback_cascade: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=sa.text("false")
    )

    __table_args__ = (
        UniqueConstraint(
            "template_id", "task_code", "outcome_code", name="uq_template_task_outcome"
        ),
        enum_check("outcome_type", OutcomeType.values(), "template_task_outcome_type_check"),
    )
