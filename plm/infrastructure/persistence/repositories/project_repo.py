"""Project, phase and role assignment repository. Returns application DTOs."""

from __future__ import annotations

from datetime import date

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from plm.application.dtos.project import PhaseResult, ProjectResult, RoleAssignmentResult
from plm.domain.enums import ProjectPhase as ProjectPhaseKind
from plm.infrastructure.persistence.models.project import (
    Project,
    ProjectPhase,
    ProjectRoleAssignment,
)
from plm.infrastructure.persistence.repositories.base import BaseRepository


def _project_to_result(p: Project) -> ProjectResult:
    return ProjectResult(
        id=p.id,
        name=p.name,
        code=p.code,
        template_id=p.template_id,
        start_date=p.start_date,
        skip_weekends=p.skip_weekends,
        status=p.status,
        created_by=p.created_by,
        created_at=p.created_at,
    )


def _phase_to_result(p: ProjectPhase) -> PhaseResult:
    return PhaseResult(
        id=p.id,
        project_id=p.project_id,
        phase=ProjectPhaseKind(p.phase),
        name=p.name,
        sequence=p.sequence,
    )


def _assignment_to_result(a: ProjectRoleAssignment) -> RoleAssignmentResult:
    return RoleAssignmentResult(
        id=a.id,
        project_id=a.project_id,
        phase_id=a.phase_id,
        role_code=a.role_code,
        user_id=a.user_id,
        user_external_ref=a.user_external_ref,
    )


class ProjectRepository(BaseRepository[Project]):
    """Project repository. Implements IProjectRepository."""

    def __init__(self, db: AsyncSession) -> None:
        super().__init__(db, Project)

    async def create_project(
        self,
        name: str,
        start_date: date,
        *,
        skip_weekends: bool,
        code: str | None = None,
        template_id: str | None = None,
        created_by: str | None = None,
    ) -> ProjectResult:
        row = await self.add(
            Project(
                name=name,
                code=code,
                template_id=template_id,
                start_date=start_date,
                skip_weekends=skip_weekends,
                created_by=created_by,
            )
        )
        return _project_to_result(row)

    async def get_by_id(self, project_id: str) -> ProjectResult | None:
        row = await self.get_orm_by_id(project_id)
        return _project_to_result(row) if row else None

    async def create_phase(
        self, project_id: str, phase: ProjectPhaseKind, name: str, sequence: int
    ) -> PhaseResult:
        row = ProjectPhase(
            project_id=project_id, phase=phase.value, name=name, sequence=sequence
        )
        self.db.add(row)
        await self.db.flush()
        return _phase_to_result(row)

    async def list_phases(self, project_id: str) -> list[PhaseResult]:
        result = await self.db.execute(
            select(ProjectPhase)
            .where(ProjectPhase.project_id == project_id)
            .order_by(ProjectPhase.sequence)
        )
        return [_phase_to_result(p) for p in result.scalars().all()]

    async def get_phase(self, phase_id: str) -> PhaseResult | None:
        result = await self.db.execute(select(ProjectPhase).where(ProjectPhase.id == phase_id))
        row = result.scalar_one_or_none()
        return _phase_to_result(row) if row else None

    async def upsert_role_assignment(
        self,
        project_id: str,
        phase_id: str,
        role_code: str,
        user_id: str,
        user_external_ref: str | None,
    ) -> RoleAssignmentResult:
        """Insert or replace the user bound to (project, phase, role)."""
        result = await self.db.execute(
            select(ProjectRoleAssignment).where(
                ProjectRoleAssignment.project_id == project_id,
                ProjectRoleAssignment.phase_id == phase_id,
                ProjectRoleAssignment.role_code == role_code,
            )
        )
        row = result.scalar_one_or_none()
        if row is None:
            row = ProjectRoleAssignment(
                project_id=project_id,
                phase_id=phase_id,
                role_code=role_code,
                user_id=user_id,
                user_external_ref=user_external_ref,
            )
            self.db.add(row)
        else:
            row.user_id = user_id
            row.user_external_ref = user_external_ref
        await self.db.flush()
        return _assignment_to_result(row)
