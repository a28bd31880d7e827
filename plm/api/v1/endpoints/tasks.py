"""Task API: lifecycle operations delegating to TaskWorkflowService and ApprovalRouter."""

from typing import Annotated

from fastapi import APIRouter, Depends

from plm.api.v1.dependencies import (
    get_approval_router,
    get_operator,
    get_task_reader,
    get_task_workflow,
)
from plm.application.dtos.approval import ApprovalSubmission
from plm.application.dtos.task import Actor
from plm.application.use_cases.approvals import ApprovalRouter
from plm.application.use_cases.tasks import TaskWorkflowService
from plm.schemas.approval import ApprovalRequestResponse
from plm.schemas.task import (
    TaskActionLogResponse,
    TaskAssignRequest,
    TaskCommentRequest,
    TaskCompleteRequest,
    TaskCompleteResponse,
    TaskResponse,
    TaskReviewRequest,
    TaskRollbackRequest,
    TaskRollbackResponse,
)

router = APIRouter()


@router.get("/{task_id}", response_model=TaskResponse)
async def get_task(
    task_id: str,
    workflow: Annotated[TaskWorkflowService, Depends(get_task_reader)],
):
    """Get a task by id."""
    return TaskResponse.model_validate(await workflow.get_task(task_id))


@router.get("/{task_id}/history", response_model=list[TaskActionLogResponse])
async def get_task_history(
    task_id: str,
    workflow: Annotated[TaskWorkflowService, Depends(get_task_reader)],
):
    """Action log for a task, newest first."""
    rows = await workflow.get_task_history(task_id)
    return [TaskActionLogResponse.model_validate(r) for r in rows]


@router.post("/{task_id}/assign", response_model=TaskResponse)
async def assign_task(
    task_id: str,
    body: TaskAssignRequest,
    actor: Annotated[Actor, Depends(get_operator)],
    workflow: Annotated[TaskWorkflowService, Depends(get_task_workflow)],
):
    """Assign (or reassign) a task; moves it to pending."""
    task = await workflow.assign_task(
        task_id, body.assignee_id, actor, body.assignee_external_ref
    )
    return TaskResponse.model_validate(task)


@router.post("/{task_id}/start", response_model=TaskResponse)
async def start_task(
    task_id: str,
    actor: Annotated[Actor, Depends(get_operator)],
    workflow: Annotated[TaskWorkflowService, Depends(get_task_workflow)],
):
    """Start a pending task whose predecessors allow it."""
    return TaskResponse.model_validate(await workflow.start_task(task_id, actor))


@router.post("/{task_id}/complete", response_model=TaskCompleteResponse)
async def complete_task(
    task_id: str,
    body: TaskCompleteRequest,
    actor: Annotated[Actor, Depends(get_operator)],
    approval_router: Annotated[ApprovalRouter, Depends(get_approval_router)],
):
    """Complete a task, or submit it for review when it requires approval.

    When the task lands in reviewing and body.approval is set, the approval
    request is opened in the same transaction.
    """
    submission = (
        ApprovalSubmission(**body.approval.model_dump()) if body.approval else None
    )
    task, approval = await approval_router.complete_and_submit(
        task_id, actor, submission, body.comment
    )
    return TaskCompleteResponse(
        task=TaskResponse.model_validate(task),
        approval=ApprovalRequestResponse.model_validate(approval) if approval else None,
    )


@router.post("/{task_id}/review", response_model=TaskResponse)
async def review_task(
    task_id: str,
    body: TaskReviewRequest,
    actor: Annotated[Actor, Depends(get_operator)],
    workflow: Annotated[TaskWorkflowService, Depends(get_task_workflow)],
):
    """Apply a review outcome (pass, reject or a configured outcome code)."""
    task = await workflow.submit_review(task_id, body.outcome_code, actor, body.comment)
    return TaskResponse.model_validate(task)


@router.post("/{task_id}/rollback", response_model=TaskRollbackResponse)
async def rollback_task(
    task_id: str,
    body: TaskRollbackRequest,
    actor: Annotated[Actor, Depends(get_operator)],
    workflow: Annotated[TaskWorkflowService, Depends(get_task_workflow)],
):
    """Roll a task of the same project back to in_progress, optionally cascading."""
    result = await workflow.rollback_task(
        task_id, body.target_task_code, body.cascade, actor, body.comment
    )
    return TaskRollbackResponse.model_validate(result)


@router.post("/{task_id}/cancel", response_model=TaskResponse)
async def cancel_task(
    task_id: str,
    actor: Annotated[Actor, Depends(get_operator)],
    workflow: Annotated[TaskWorkflowService, Depends(get_task_workflow)],
    body: TaskCommentRequest | None = None,
):
    """Cancel a task that has not finished."""
    task = await workflow.cancel_task(task_id, actor, body.comment if body else None)
    return TaskResponse.model_validate(task)
