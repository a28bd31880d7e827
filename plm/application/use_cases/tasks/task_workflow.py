"""Task state machine: every task lifecycle operation.

Each operation loads the task, checks its precondition against the
lifecycle table, writes the new status with a compare-and-swap on
(status, version), appends an action log row and buffers its outbound
side effects. Guard violations and lookup failures raise before any write.
"""

from __future__ import annotations

from typing import Any

from plm.application.dtos.approval import RoutingDecision
from plm.application.dtos.project import (
    PhaseRoleAssignmentOutcome,
    RoleAssignmentInput,
)
from plm.application.dtos.task import Actor, TaskActionLogResult, TaskResult
from plm.application.dtos.template import TemplateOutcomeSpec
from plm.application.interfaces.repositories import (
    IProjectRepository,
    ITaskActionLogRepository,
    ITaskRepository,
    ITemplateRepository,
    IUnitOfWork,
)
from plm.application.interfaces.services import IRoutingPolicy
from plm.application.services.dependency_resolver import DependencyResolver
from plm.application.services.rollback_cascader import RollbackCascader, RollbackResult
from plm.application.services.side_effects import TaskSideEffects
from plm.domain.entities.task import (
    ASSIGNABLE_STATUSES,
    CANCELLABLE_STATUSES,
    require_status,
)
from plm.domain.enums import (
    OutcomeType,
    RoutingChannel,
    TaskAction,
    TaskStatus,
)
from plm.domain.exceptions import (
    ConcurrencyConflictException,
    GuardViolationException,
    PlmException,
    ResourceNotFoundException,
    ValidationException,
)
from plm.shared.telemetry.logging import get_logger
from plm.shared.telemetry.tracing import add_span_attributes, traced
from plm.shared.utils.datetime import utc_now

logger = get_logger(__name__)

ROUTING_DOMAIN = "plm_task"
ROUTING_EVENT_TASK_COMPLETE = "task_complete"

# Outcome codes that work without a template outcome row.
_BUILTIN_OUTCOMES: dict[str, OutcomeType] = {
    "pass": OutcomeType.PASS,
    "approve": OutcomeType.PASS,
    "approved": OutcomeType.PASS,
    "reject": OutcomeType.REJECT,
    "rejected": OutcomeType.REJECT,
}


class TaskWorkflowService:
    """Drives tasks through assign / start / complete / review / rollback / cancel."""

    def __init__(
        self,
        task_repo: ITaskRepository,
        log_repo: ITaskActionLogRepository,
        project_repo: IProjectRepository,
        template_repo: ITemplateRepository,
        resolver: DependencyResolver,
        cascader: RollbackCascader,
        side_effects: TaskSideEffects,
        uow: IUnitOfWork,
        routing_policy: IRoutingPolicy | None = None,
    ) -> None:
        self._task_repo = task_repo
        self._log_repo = log_repo
        self._project_repo = project_repo
        self._template_repo = template_repo
        self._resolver = resolver
        self._cascader = cascader
        self._side_effects = side_effects
        self._uow = uow
        self._routing_policy = routing_policy

    async def get_task(self, task_id: str) -> TaskResult:
        task = await self._task_repo.get_by_id(task_id)
        if task is None:
            raise ResourceNotFoundException("task", task_id)
        return task

    @traced("task.assign")
    async def assign_task(
        self,
        task_id: str,
        assignee_id: str,
        actor: Actor,
        assignee_external_ref: str | None = None,
    ) -> TaskResult:
        """Set the assignee and move the task to pending.

        Raises:
            ResourceNotFoundException: Unknown task.
            InvalidTransitionException: Task is past assignment.
        """
        if not assignee_id:
            raise ValidationException("assignee_id is required", field="assignee_id")
        task = await self.get_task(task_id)
        require_status(task.id, task.status, "assign", *ASSIGNABLE_STATUSES)
        updated = await self._write(
            task,
            TaskStatus.PENDING,
            {"assignee_id": assignee_id, "assignee_external_ref": assignee_external_ref},
        )
        await self._log(
            task,
            updated,
            TaskAction.ASSIGN,
            actor,
            payload={
                "assignee_id": assignee_id,
                "assignee_external_ref": assignee_external_ref,
            },
        )
        if updated.auto_create_external_task and not updated.external_task_id:
            self._side_effects.create_external_task(updated)
        self._side_effects.notify_assignment(updated)
        self._side_effects.publish_task_update(updated, "assigned", {"assignee_id": assignee_id})
        return updated

    @traced("task.start")
    async def start_task(self, task_id: str, actor: Actor) -> TaskResult:
        """Start a pending task whose predecessors all clear it.

        Raises:
            InvalidTransitionException: Task is not pending.
            DependencyNotSatisfiedException: A predecessor blocks the start.
        """
        task = await self.get_task(task_id)
        require_status(task.id, task.status, "start", TaskStatus.PENDING)
        await self._resolver.check_dependencies_completed(task)
        updated = await self._write(task, TaskStatus.IN_PROGRESS, {"actual_start": utc_now()})
        await self._log(task, updated, TaskAction.START, actor)
        self._side_effects.task_started(updated)
        self._side_effects.publish_task_update(updated, "started")
        return updated

    @traced("task.complete")
    async def complete_task(
        self, task_id: str, actor: Actor, comment: str | None = None
    ) -> TaskResult:
        """Complete an in-progress task, or submit it for review when approval is required.

        An approval-required task is routed first: the automatic channel
        completes it on behalf of the agent actor, the human channel moves it
        to reviewing.
        """
        task = await self.get_task(task_id)
        require_status(task.id, task.status, "complete", TaskStatus.IN_PROGRESS)
        if not task.requires_approval:
            return await self._finish(task, actor, TaskAction.COMPLETE, comment=comment)

        decision = await self._route(task)
        add_span_attributes(routing_channel=decision.channel.value)
        if decision.channel is RoutingChannel.AUTOMATIC:
            logger.info(
                "Task %s auto-approved by routing rule %s", task.id, decision.rule_id
            )
            return await self._finish(
                task,
                Actor.agent(),
                TaskAction.APPROVE,
                payload={
                    "routing_rule_id": decision.rule_id,
                    "routing_rule_name": decision.rule_name,
                    "routing_reason": decision.reason,
                },
                comment=comment,
            )
        if decision.channel is not RoutingChannel.HUMAN:
            raise ValueError(f"unhandled routing channel: {decision.channel!r}")
        updated = await self._write(task, TaskStatus.REVIEWING)
        await self._log(task, updated, TaskAction.SUBMIT_REVIEW, actor, comment=comment)
        self._side_effects.publish_task_update(updated, "review_submitted")
        return updated

    @traced("task.submit_review")
    async def submit_review(
        self,
        task_id: str,
        outcome_code: str,
        actor: Actor,
        comment: str | None = None,
    ) -> TaskResult:
        """Apply a review outcome to a reviewing task.

        pass completes the task; reject sends it back to in_progress;
        fail_rollback rejects it and rolls back the configured target task.
        A failing rollback is logged and does not undo the rejection.

        Raises:
            InvalidTransitionException: Task is not reviewing.
            GuardViolationException: outcome_code is neither configured nor built in.
        """
        task = await self.get_task(task_id)
        require_status(task.id, task.status, "submit review for", TaskStatus.REVIEWING)
        outcome_type, outcome = await self._resolve_outcome(task, outcome_code)
        payload = {"outcome_code": outcome_code}

        if outcome_type is OutcomeType.PASS:
            return await self._finish(task, actor, TaskAction.APPROVE, payload=payload, comment=comment)

        if outcome_type is OutcomeType.REJECT:
            updated = await self._write(task, TaskStatus.IN_PROGRESS)
            await self._log(task, updated, TaskAction.REJECT, actor, payload=payload, comment=comment)
            self._side_effects.publish_task_update(updated, "review_rejected")
            return updated

        if outcome_type is OutcomeType.FAIL_ROLLBACK:
            updated = await self._write(task, TaskStatus.REJECTED)
            await self._log(task, updated, TaskAction.REJECT, actor, payload=payload, comment=comment)
            self._side_effects.publish_task_update(updated, "review_failed")
            target_code = outcome.rollback_to_task_code if outcome else None
            if target_code:
                try:
                    async with self._uow.savepoint():
                        await self._cascader.rollback(
                            updated, target_code, outcome.rollback_cascade, actor, comment
                        )
                except PlmException:
                    logger.exception(
                        "Rollback to %s after failed review of task %s did not apply",
                        target_code,
                        task.id,
                    )
            return updated

        raise ValueError(f"unhandled outcome type: {outcome_type!r}")

    @traced("task.rollback")
    async def rollback_task(
        self,
        task_id: str,
        target_code: str,
        cascade: bool,
        actor: Actor,
        comment: str | None = None,
    ) -> RollbackResult:
        """Roll back target_code in task's project (see RollbackCascader)."""
        task = await self.get_task(task_id)
        return await self._cascader.rollback(task, target_code, cascade, actor, comment)

    @traced("task.cancel")
    async def cancel_task(
        self, task_id: str, actor: Actor, comment: str | None = None
    ) -> TaskResult:
        task = await self.get_task(task_id)
        require_status(task.id, task.status, "cancel", *CANCELLABLE_STATUSES)
        updated = await self._write(task, TaskStatus.CANCELLED)
        await self._log(task, updated, TaskAction.CANCEL, actor, comment=comment)
        self._side_effects.publish_task_update(updated, "cancelled")
        return updated

    @traced("task.assign_phase_roles")
    async def assign_phase_roles(
        self,
        project_id: str,
        phase_id: str,
        assignments: list[RoleAssignmentInput],
        actor: Actor,
    ) -> PhaseRoleAssignmentOutcome:
        """Store phase role assignments and assign matching unassigned tasks.

        Per-task assignment failures are logged and reported in failed_task_ids.
        """
        if await self._project_repo.get_by_id(project_id) is None:
            raise ResourceNotFoundException("project", project_id)
        phase = await self._project_repo.get_phase(phase_id)
        if phase is None or phase.project_id != project_id:
            raise ResourceNotFoundException("phase", phase_id)

        stored = []
        assigned: list[str] = []
        failed: list[str] = []
        for assignment in assignments:
            stored.append(
                await self._project_repo.upsert_role_assignment(
                    project_id,
                    phase_id,
                    assignment.role_code,
                    assignment.user_id,
                    assignment.user_external_ref,
                )
            )
            tasks = await self._task_repo.list_unassigned_for_role(
                project_id, phase_id, assignment.role_code
            )
            for task in tasks:
                try:
                    async with self._uow.savepoint():
                        await self.assign_task(
                            task.id,
                            assignment.user_id,
                            actor,
                            assignment.user_external_ref,
                        )
                except PlmException:
                    logger.exception(
                        "Auto-assign of task %s to role %s failed", task.id, assignment.role_code
                    )
                    failed.append(task.id)
                else:
                    assigned.append(task.id)
        return PhaseRoleAssignmentOutcome(
            assignments=stored, assigned_task_ids=assigned, failed_task_ids=failed
        )

    async def get_task_history(self, task_id: str) -> list[TaskActionLogResult]:
        """Action log for a task, newest first."""
        task = await self.get_task(task_id)
        return await self._log_repo.list_for_task(task.id)

    # ---- Approval callbacks ----

    async def confirm_after_approval(
        self, task_id: str, actor: Actor, approval_id: str
    ) -> TaskResult | None:
        """Final approval: reviewing -> confirmed, then chain activation.

        A task that already left reviewing is left alone (returns None).
        """
        task = await self._task_repo.get_by_id(task_id)
        if task is None or task.status is not TaskStatus.REVIEWING:
            logger.warning(
                "Approval %s approved but task %s is not reviewing; leaving it",
                approval_id,
                task_id,
            )
            return None
        return await self._finish(
            task,
            actor,
            TaskAction.CONFIRM,
            payload={"approval_id": approval_id},
            target=TaskStatus.CONFIRMED,
        )

    async def return_for_rework(
        self, task_id: str, actor: Actor, approval_id: str, comment: str | None = None
    ) -> TaskResult | None:
        """Approval rejected: reviewing -> in_progress (no rollback)."""
        task = await self._task_repo.get_by_id(task_id)
        if task is None or task.status is not TaskStatus.REVIEWING:
            logger.warning(
                "Approval %s rejected but task %s is not reviewing; leaving it",
                approval_id,
                task_id,
            )
            return None
        updated = await self._write(task, TaskStatus.IN_PROGRESS)
        await self._log(
            task,
            updated,
            TaskAction.REJECT,
            actor,
            payload={"approval_id": approval_id},
            comment=comment,
        )
        self._side_effects.publish_task_update(updated, "approval_rejected")
        return updated

    # ---- Internals ----

    async def _finish(
        self,
        task: TaskResult,
        actor: Actor,
        action: TaskAction,
        *,
        payload: dict[str, Any] | None = None,
        comment: str | None = None,
        target: TaskStatus = TaskStatus.COMPLETED,
    ) -> TaskResult:
        """Write a done status with completion fields and run completion side effects."""
        updated = await self._write(
            task, target, {"progress": 100, "completed_at": utc_now()}
        )
        await self._log(task, updated, action, actor, payload=payload, comment=comment)
        self._side_effects.complete_external_task(updated)
        self._side_effects.publish_task_update(updated, target.value)
        await self._resolver.check_and_start_dependent_tasks(updated)
        return updated

    async def _write(
        self,
        task: TaskResult,
        new_status: TaskStatus,
        changes: dict[str, Any] | None = None,
    ) -> TaskResult:
        updated = await self._task_repo.transition(task, new_status, changes)
        if updated is None:
            raise ConcurrencyConflictException("task", task.id)
        return updated

    async def _log(
        self,
        before: TaskResult,
        after: TaskResult,
        action: TaskAction,
        actor: Actor,
        *,
        payload: dict[str, Any] | None = None,
        comment: str | None = None,
    ) -> None:
        await self._log_repo.append(
            after,
            action,
            actor,
            from_status=before.status,
            to_status=after.status,
            payload=payload,
            comment=comment,
        )

    async def _route(self, task: TaskResult) -> RoutingDecision:
        if self._routing_policy is None:
            return RoutingDecision.human("no routing policy configured")
        context = {
            "project_id": task.project_id,
            "task_id": task.id,
            "task_code": task.code,
            "task_type": task.task_type.value,
            "approval_type": task.approval_type,
        }
        try:
            return await self._routing_policy.evaluate(
                ROUTING_DOMAIN, ROUTING_EVENT_TASK_COMPLETE, context
            )
        except Exception:
            logger.exception("Routing policy failed for task %s; falling back to human review", task.id)
            return RoutingDecision.human("routing policy error")

    async def _resolve_outcome(
        self, task: TaskResult, outcome_code: str
    ) -> tuple[OutcomeType, TemplateOutcomeSpec | None]:
        project = await self._project_repo.get_by_id(task.project_id)
        if project is not None and project.template_id:
            outcome = await self._template_repo.get_outcome(
                project.template_id, task.code, outcome_code
            )
            if outcome is not None:
                return outcome.outcome_type, outcome
        builtin = _BUILTIN_OUTCOMES.get(outcome_code.lower())
        if builtin is None:
            raise GuardViolationException(
                f"unknown review outcome '{outcome_code}' for task {task.code}",
                details={"task_id": task.id, "outcome_code": outcome_code},
            )
        return builtin, None
