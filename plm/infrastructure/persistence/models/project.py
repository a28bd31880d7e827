"""Project, ProjectPhase and ProjectRoleAssignment ORM models."""

from datetime import date

import sqlalchemy as sa
from sqlalchemy import Boolean, Date, ForeignKey, Index, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from plm.domain.enums import ProjectPhase as ProjectPhaseKind
from plm.infrastructure.persistence.database import Base
from plm.infrastructure.persistence.models.mixins import TimestampedModel, enum_check


class Project(TimestampedModel, Base):
    """Project instantiated from a template. Table: project."""

    __tablename__ = "project"

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    code: Mapped[str | None] = mapped_column(String(64), nullable=True, index=True)
    template_id: Mapped[str | None] = mapped_column(
        String, ForeignKey("project_template.id", ondelete="SET NULL"), nullable=True
    )
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    skip_weekends: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=True, server_default=sa.text("true")
    )
    status: Mapped[str] = mapped_column(
        String(32), nullable=False, default="active", server_default="active"
    )
    created_by: Mapped[str | None] = mapped_column(String, nullable=True)


class ProjectPhase(TimestampedModel, Base):
    """One of the five lifecycle phases of a project. Table: project_phase."""

    __tablename__ = "project_phase"

    project_id: Mapped[str] = mapped_column(
        String, ForeignKey("project.id", ondelete="CASCADE"), nullable=False, index=True
    )
    phase: Mapped[str] = mapped_column(String(16), nullable=False)
    name: Mapped[str] = mapped_column(String(64), nullable=False)
    sequence: Mapped[int] = mapped_column(Integer, nullable=False)

    __table_args__ = (
        UniqueConstraint("project_id", "phase", name="uq_project_phase"),
        enum_check("phase", ProjectPhaseKind.values(), "project_phase_phase_check"),
    )


class ProjectRoleAssignment(TimestampedModel, Base):
    """User bound to a role code within a project phase. Table: project_role_assignment."""

    __tablename__ = "project_role_assignment"

    project_id: Mapped[str] = mapped_column(
        String, ForeignKey("project.id", ondelete="CASCADE"), nullable=False
    )
    phase_id: Mapped[str] = mapped_column(
        String, ForeignKey("project_phase.id", ondelete="CASCADE"), nullable=False
    )
    role_code: Mapped[str] = mapped_column(String(64), nullable=False)
    user_id: Mapped[str] = mapped_column(String, nullable=False)
    user_external_ref: Mapped[str | None] = mapped_column(String, nullable=True)

    __table_args__ = (
        UniqueConstraint(
            "project_id", "phase_id", "role_code", name="uq_project_role_assignment"
        ),
        Index("ix_project_role_assignment_phase", "project_id", "phase_id"),
    )
