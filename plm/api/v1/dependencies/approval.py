"""Approval definition and approval request dependencies (composition root)."""

from __future__ import annotations

from typing import Annotated

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from plm.application.services.side_effects import TaskSideEffects
from plm.application.use_cases.approvals import ApprovalDefinitionService, ApprovalRouter
from plm.application.use_cases.tasks import TaskWorkflowService
from plm.infrastructure.persistence.database import get_db, get_db_transactional
from plm.infrastructure.persistence.repositories import ApprovalRepository, TaskRepository

from . import common, task


async def get_approval_router(
    db: Annotated[AsyncSession, Depends(get_db_transactional)],
    workflow: Annotated[TaskWorkflowService, Depends(task.get_task_workflow)],
    side_effects: Annotated[TaskSideEffects, Depends(common.get_side_effects)],
) -> ApprovalRouter:
    """Approval router for submit / approve / reject (shares the task workflow's transaction)."""
    return ApprovalRouter(ApprovalRepository(db), TaskRepository(db), workflow, side_effects)


async def get_approval_reader(
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> ApprovalRouter:
    """Approval router for reads (get, list, pending)."""
    side_effects = TaskSideEffects(request.app.state.outbox)
    return ApprovalRouter(
        ApprovalRepository(db),
        TaskRepository(db),
        task.build_task_workflow(request, db, side_effects),
        side_effects,
    )


async def get_approval_definition_service(
    db: Annotated[AsyncSession, Depends(get_db_transactional)],
) -> ApprovalDefinitionService:
    """Definition authoring (create draft, edit, publish, unpublish)."""
    return ApprovalDefinitionService(ApprovalRepository(db))


async def get_approval_definition_reader(
    db: Annotated[AsyncSession, Depends(get_db)],
) -> ApprovalDefinitionService:
    """Definition reads (get, list)."""
    return ApprovalDefinitionService(ApprovalRepository(db))
