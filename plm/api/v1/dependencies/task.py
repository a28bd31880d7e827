"""Task workflow dependencies (composition root)."""

from __future__ import annotations

from typing import Annotated

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from plm.application.services.dependency_resolver import DependencyResolver
from plm.application.services.rollback_cascader import RollbackCascader
from plm.application.services.side_effects import TaskSideEffects
from plm.application.use_cases.tasks import TaskWorkflowService
from plm.infrastructure.persistence.database import (
    SqlAlchemyUnitOfWork,
    get_db,
    get_db_transactional,
)
from plm.infrastructure.persistence.repositories import (
    ProjectRepository,
    TaskActionLogRepository,
    TaskDependencyRepository,
    TaskRepository,
    TemplateRepository,
)

from . import common


def build_task_workflow(
    request: Request, db: AsyncSession, side_effects: TaskSideEffects
) -> TaskWorkflowService:
    """Wire TaskWorkflowService and its collaborators onto one session."""
    task_repo = TaskRepository(db)
    log_repo = TaskActionLogRepository(db)
    uow = SqlAlchemyUnitOfWork(db)
    return TaskWorkflowService(
        task_repo=task_repo,
        log_repo=log_repo,
        project_repo=ProjectRepository(db),
        template_repo=TemplateRepository(db),
        resolver=DependencyResolver(
            task_repo, TaskDependencyRepository(db), log_repo, uow, side_effects
        ),
        cascader=RollbackCascader(task_repo, log_repo, uow, side_effects),
        side_effects=side_effects,
        uow=uow,
        routing_policy=getattr(request.app.state, "routing_policy", None),
    )


async def get_task_workflow(
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db_transactional)],
    side_effects: Annotated[TaskSideEffects, Depends(common.get_side_effects)],
) -> TaskWorkflowService:
    """Task workflow for state-changing operations (transactional)."""
    return build_task_workflow(request, db, side_effects)


async def get_task_reader(
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> TaskWorkflowService:
    """Task workflow for reads (get task, history); never writes."""
    return build_task_workflow(request, db, TaskSideEffects(request.app.state.outbox))


async def get_task_repo(
    db: Annotated[AsyncSession, Depends(get_db)],
) -> TaskRepository:
    """Task repository for read operations (project task lists)."""
    return TaskRepository(db)
