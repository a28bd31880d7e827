"""Project, template and instantiation dependencies (composition root)."""

from __future__ import annotations

from typing import Annotated

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from plm.application.use_cases.projects import (
    InstantiateProjectFromTemplateUseCase,
    TemplateService,
)
from plm.infrastructure.persistence.database import get_db, get_db_transactional
from plm.infrastructure.persistence.repositories import (
    ProjectRepository,
    TaskDependencyRepository,
    TaskRepository,
    TemplateRepository,
)


async def get_project_repo(
    db: Annotated[AsyncSession, Depends(get_db)],
) -> ProjectRepository:
    """Project repository for read operations."""
    return ProjectRepository(db)


async def get_template_service(
    db: Annotated[AsyncSession, Depends(get_db)],
) -> TemplateService:
    """Template reads."""
    return TemplateService(TemplateRepository(db))


async def get_template_service_for_write(
    db: Annotated[AsyncSession, Depends(get_db_transactional)],
) -> TemplateService:
    """Template creation (transactional)."""
    return TemplateService(TemplateRepository(db))


async def get_instantiate_project_use_case(
    db: Annotated[AsyncSession, Depends(get_db_transactional)],
) -> InstantiateProjectFromTemplateUseCase:
    """Create project + phases + tasks + dependencies in one transaction."""
    return InstantiateProjectFromTemplateUseCase(
        project_repo=ProjectRepository(db),
        template_repo=TemplateRepository(db),
        task_repo=TaskRepository(db),
        dependency_repo=TaskDependencyRepository(db),
    )
