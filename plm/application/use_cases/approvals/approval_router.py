"""Approval router: multi-node approval requests over a frozen flow snapshot.

A request walks its flow's approve nodes in order. Every reviewer at the
current node must approve before the next node's reviewers are created
and current_node advances; after the last node the request is approved
and the linked task is confirmed. A single rejection at any node rejects
the whole request and sends the linked task back for rework.
"""

from __future__ import annotations

from plm.application.dtos.approval import (
    ApprovalRequestResult,
    ApprovalReviewerResult,
    ApprovalSubmission,
    ReviewerCreate,
)
from plm.application.dtos.task import Actor, TaskResult
from plm.application.interfaces.repositories import IApprovalRepository, ITaskRepository
from plm.application.services.side_effects import TaskSideEffects
from plm.application.use_cases.tasks.task_workflow import TaskWorkflowService
from plm.domain.entities.approval_flow import FlowNode, FlowSchema, parse_flow_schema
from plm.domain.enums import (
    ApprovalDefinitionStatus,
    ApprovalStatus,
    ApproverType,
    ReviewerStatus,
    TaskStatus,
)
from plm.domain.exceptions import (
    ApproverResolutionException,
    ConcurrencyConflictException,
    GuardViolationException,
    ResourceNotFoundException,
    ValidationException,
)
from plm.shared.telemetry.logging import get_logger
from plm.shared.telemetry.tracing import traced

logger = get_logger(__name__)


def resolve_approvers(
    node: FlowNode,
    requested_by: str,
    selected_approvers: dict[str, list[str]],
) -> list[str]:
    """Return the reviewer user ids for an approve node (deduplicated, in order).

    Raises:
        ApproverResolutionException: The node's approver type cannot produce
            any reviewer from the data available.
    """
    approver_type = node.approver_type
    if approver_type is None:
        raise ApproverResolutionException(node.index, "none", "node has no approver type")

    if approver_type is ApproverType.DESIGNATED:
        ids = list(node.approver_ids)
    elif approver_type is ApproverType.SELF_SELECT:
        ids = list(selected_approvers.get(str(node.index)) or [])
        if not ids:
            raise ApproverResolutionException(
                node.index, approver_type.value, "submitter must select approvers for this node"
            )
    elif approver_type is ApproverType.SUBMITTER:
        ids = [requested_by]
    elif approver_type in (
        ApproverType.SUPERVISOR,
        ApproverType.DEPT_LEADER,
        ApproverType.ROLE,
    ):
        ids = list(node.approver_ids)
        if not ids:
            raise ApproverResolutionException(
                node.index,
                approver_type.value,
                "organization lookup is not supported; specify approver_ids",
            )
    else:
        raise ValueError(f"unhandled approver type: {approver_type!r}")

    resolved = list(dict.fromkeys(i for i in ids if i))
    if not resolved:
        raise ApproverResolutionException(node.index, approver_type.value, "no approvers resolved")
    return resolved


class ApprovalRouter:
    """Submits, advances, approves and rejects approval requests."""

    def __init__(
        self,
        approval_repo: IApprovalRepository,
        task_repo: ITaskRepository,
        workflow: TaskWorkflowService,
        side_effects: TaskSideEffects,
    ) -> None:
        self._approval_repo = approval_repo
        self._task_repo = task_repo
        self._workflow = workflow
        self._side_effects = side_effects

    @traced("approval.submit")
    async def submit(
        self,
        submission: ApprovalSubmission,
        requested_by: Actor,
        *,
        task_id: str | None = None,
        project_id: str | None = None,
    ) -> ApprovalRequestResult:
        """Create a request from a published definition and materialize the first node.

        Raises:
            ResourceNotFoundException: Unknown definition or task.
            GuardViolationException: Definition not published, flow has no
                approve node, or the linked task is not reviewing.
            ApproverResolutionException: First node's approvers cannot be resolved.
        """
        definition = await self._approval_repo.get_definition(submission.definition_id)
        if definition is None:
            raise ResourceNotFoundException("approval_definition", submission.definition_id)
        if definition.status is not ApprovalDefinitionStatus.PUBLISHED:
            raise GuardViolationException(
                f"approval definition {definition.code} is not published",
                details={"definition_id": definition.id, "status": definition.status.value},
            )
        flow = _checked_flow(definition.flow_schema)

        task: TaskResult | None = None
        if task_id is not None:
            task = await self._task_repo.get_by_id(task_id)
            if task is None:
                raise ResourceNotFoundException("task", task_id)
            if task.status is not TaskStatus.REVIEWING:
                raise GuardViolationException(
                    f"task {task.id} must be reviewing to request approval (is {task.status.value})",
                    details={"task_id": task.id, "status": task.status.value},
                )
            project_id = task.project_id

        node = flow.first_approve_node(0)
        if node is None:
            raise GuardViolationException(
                f"approval definition {definition.code} has no approve node",
                details={"definition_id": definition.id},
            )
        approvers = resolve_approvers(node, requested_by.id, submission.selected_approvers)

        request = await self._approval_repo.create_request(
            title=submission.title,
            description=submission.description,
            requested_by=requested_by.id,
            current_node=node.index,
            flow_snapshot=definition.flow_schema,
            selected_approvers=submission.selected_approvers,
            definition_id=definition.id,
            project_id=project_id,
            task_id=task.id if task else None,
            form_data=submission.form_data,
        )
        reviewers = await self._materialize(request.id, node, approvers)
        self._side_effects.notify_reviewers(request, reviewers)
        if task is not None:
            self._side_effects.publish_task_update(
                task, "approval_submitted", {"approval_id": request.id}
            )
        logger.info(
            "Approval %s submitted by %s (node %d, %d reviewers)",
            request.id,
            requested_by.id,
            node.index,
            len(reviewers),
        )
        return await self.get_approval(request.id)

    async def complete_and_submit(
        self,
        task_id: str,
        actor: Actor,
        submission: ApprovalSubmission | None,
        comment: str | None = None,
    ) -> tuple[TaskResult, ApprovalRequestResult | None]:
        """Complete a task; when it lands in reviewing and a submission is given, open the approval."""
        task = await self._workflow.complete_task(task_id, actor, comment)
        if submission is None or task.status is not TaskStatus.REVIEWING:
            return task, None
        request = await self.submit(submission, actor, task_id=task.id)
        return task, request

    @traced("approval.approve")
    async def approve(
        self, approval_id: str, actor: Actor, comment: str | None = None
    ) -> ApprovalRequestResult:
        """Record actor's approval at the current node and advance when the node is resolved.

        Raises:
            GuardViolationException: Request is not pending or actor has no
                pending review at the current node.
            ApproverResolutionException: Next node's approvers cannot be resolved
                (nothing is written).
            ConcurrencyConflictException: A concurrent decision moved the request.
        """
        request = await self._pending_request(approval_id)
        reviewer = _pending_reviewer_for(request, actor.id)
        await self._claim(request)
        await self._decide(reviewer, ReviewerStatus.APPROVED, comment)

        waiting = [
            r
            for r in request.reviewers_at(request.current_node)
            if r.id != reviewer.id and r.status is ReviewerStatus.PENDING
        ]
        if waiting:
            logger.info(
                "Approval %s node %d waiting on %d reviewers",
                request.id,
                request.current_node,
                len(waiting),
            )
            return await self.get_approval(request.id)

        flow = parse_flow_schema(request.flow_snapshot)
        next_node = flow.next_approve_node(request.current_node)
        if next_node is not None:
            approvers = resolve_approvers(
                next_node, request.requested_by, request.selected_approvers
            )
            reviewers = await self._materialize(request.id, next_node, approvers)
            if not await self._approval_repo.advance_node(request.id, next_node.index):
                raise ConcurrencyConflictException("approval_request", request.id)
            self._side_effects.notify_reviewers(request, reviewers)
            logger.info("Approval %s advanced to node %d", request.id, next_node.index)
            return await self.get_approval(request.id)

        if not await self._approval_repo.finish_request(
            request.id, ApprovalStatus.APPROVED, comment
        ):
            raise ConcurrencyConflictException("approval_request", request.id)
        if request.task_id:
            await self._workflow.confirm_after_approval(request.task_id, actor, request.id)
        finished = await self.get_approval(request.id)
        self._side_effects.notify_approval_result(finished)
        await self._publish_for_task(finished, "approval_approved")
        logger.info("Approval %s approved", request.id)
        return finished

    @traced("approval.reject")
    async def reject(
        self, approval_id: str, actor: Actor, comment: str | None = None
    ) -> ApprovalRequestResult:
        """Reject the whole request and return the linked task to in_progress."""
        request = await self._pending_request(approval_id)
        reviewer = _pending_reviewer_for(request, actor.id)
        await self._claim(request)
        await self._decide(reviewer, ReviewerStatus.REJECTED, comment)
        if not await self._approval_repo.finish_request(
            request.id, ApprovalStatus.REJECTED, comment
        ):
            raise ConcurrencyConflictException("approval_request", request.id)
        if request.task_id:
            await self._workflow.return_for_rework(request.task_id, actor, request.id, comment)
        finished = await self.get_approval(request.id)
        self._side_effects.notify_approval_result(finished)
        await self._publish_for_task(finished, "approval_rejected")
        logger.info("Approval %s rejected by %s", request.id, actor.id)
        return finished

    async def get_approval(self, approval_id: str) -> ApprovalRequestResult:
        request = await self._approval_repo.get_request(approval_id)
        if request is None:
            raise ResourceNotFoundException("approval_request", approval_id)
        return request

    async def list_approvals(
        self, status: ApprovalStatus | None = None, skip: int = 0, limit: int = 100
    ) -> list[ApprovalRequestResult]:
        return await self._approval_repo.list_requests(status, skip, limit)

    async def list_my_pending(self, user_id: str) -> list[ApprovalRequestResult]:
        return await self._approval_repo.list_pending_for_user(user_id)

    async def _pending_request(self, approval_id: str) -> ApprovalRequestResult:
        request = await self.get_approval(approval_id)
        if request.status is not ApprovalStatus.PENDING:
            raise GuardViolationException(
                f"approval {request.id} is {request.status.value}",
                details={"approval_id": request.id, "status": request.status.value},
            )
        return request

    async def _claim(self, request: ApprovalRequestResult) -> None:
        if not await self._approval_repo.claim_request(request.id, request.version):
            raise ConcurrencyConflictException("approval_request", request.id)

    async def _decide(
        self,
        reviewer: ApprovalReviewerResult,
        status: ReviewerStatus,
        comment: str | None,
    ) -> None:
        if not await self._approval_repo.decide_reviewer(reviewer.id, status, comment):
            raise ConcurrencyConflictException("approval_reviewer", reviewer.id)

    async def _materialize(
        self, approval_id: str, node: FlowNode, approvers: list[str]
    ) -> list[ApprovalReviewerResult]:
        return await self._approval_repo.add_reviewers(
            approval_id,
            [
                ReviewerCreate(
                    user_id=user_id,
                    node_index=node.index,
                    node_name=node.name,
                    sequence=sequence,
                )
                for sequence, user_id in enumerate(approvers)
            ],
        )

    async def _publish_for_task(self, request: ApprovalRequestResult, action: str) -> None:
        if not request.task_id:
            return
        task = await self._task_repo.get_by_id(request.task_id)
        if task is not None:
            self._side_effects.publish_task_update(task, action, {"approval_id": request.id})


def _pending_reviewer_for(request: ApprovalRequestResult, user_id: str) -> ApprovalReviewerResult:
    for reviewer in request.reviewers_at(request.current_node):
        if reviewer.user_id == user_id and reviewer.status is ReviewerStatus.PENDING:
            return reviewer
    raise GuardViolationException(
        f"user {user_id} has no pending review on approval {request.id}",
        details={"approval_id": request.id, "user_id": user_id},
    )


def _checked_flow(raw: dict) -> FlowSchema:
    flow = parse_flow_schema(raw)
    unsupported = flow.unsupported_policies()
    if unsupported:
        node = unsupported[0]
        raise ValidationException(
            f"approve node {node.index} uses multi_approve={node.multi_approve.value}; only 'all' is supported",
            field="flow_schema",
        )
    return flow
