"""Request-scoped buffer of outbound side effects.

Workflow operations describe what should happen outside the store (create
or complete an external task, notify users, fire the procurement hook,
publish live updates) by calling methods here. Each call buffers a named
job; flush() hands the buffer to the outbox once the request transaction
has committed, and discard() drops it when the transaction rolls back.
"""

from __future__ import annotations

import logging
from typing import Any

from plm.application.dtos.approval import ApprovalRequestResult, ApprovalReviewerResult
from plm.application.dtos.task import TaskResult
from plm.application.interfaces.services import (
    IExternalTaskIdStore,
    IExternalTaskTracker,
    INotificationSink,
    IOutbox,
    IProcurementHook,
    ITaskEventPublisher,
    OutboxJob,
)

logger = logging.getLogger(__name__)


class TaskSideEffects:
    """Buffers side-effect jobs for one unit of work and flushes them to the outbox."""

    def __init__(
        self,
        outbox: IOutbox,
        *,
        tracker: IExternalTaskTracker | None = None,
        external_id_store: IExternalTaskIdStore | None = None,
        notifier: INotificationSink | None = None,
        procurement_hook: IProcurementHook | None = None,
        publisher: ITaskEventPublisher | None = None,
    ) -> None:
        self._outbox = outbox
        self._tracker = tracker
        self._external_id_store = external_id_store
        self._notifier = notifier
        self._procurement_hook = procurement_hook
        self._publisher = publisher
        self._pending: list[tuple[str, OutboxJob]] = []

    @property
    def pending_names(self) -> list[str]:
        """Names of buffered jobs, in dispatch order."""
        return [name for name, _ in self._pending]

    def dispatch(self, name: str, job: OutboxJob) -> None:
        self._pending.append((name, job))

    def flush(self) -> int:
        """Enqueue every buffered job; return how many the outbox accepted."""
        accepted = 0
        pending, self._pending = self._pending, []
        for name, job in pending:
            if self._outbox.enqueue(name, job):
                accepted += 1
        if pending:
            logger.debug("Flushed %d/%d side effects to outbox", accepted, len(pending))
        return accepted

    def discard(self) -> None:
        if self._pending:
            logger.info("Discarding %d side effects (transaction rolled back)", len(self._pending))
        self._pending = []

    # ---- External task tracker ----

    def create_external_task(self, task: TaskResult) -> None:
        tracker, store = self._tracker, self._external_id_store
        if tracker is None or store is None:
            return

        created: list[str] = []

        # Retries reuse the id from the first successful create.
        async def job() -> None:
            if not created:
                created.append(
                    await tracker.create_task(
                        task.title, task.description, task.assignee_external_ref
                    )
                )
            await store.save_external_task_id(task.id, created[0])

        self.dispatch(f"tracker.create:{task.id}", job)

    def complete_external_task(self, task: TaskResult) -> None:
        tracker, external_id = self._tracker, task.external_task_id
        if tracker is None or not external_id:
            return

        async def job() -> None:
            await tracker.complete_task(external_id)

        self.dispatch(f"tracker.complete:{task.id}", job)

    # ---- Notifications ----

    def notify_assignment(self, task: TaskResult) -> None:
        recipient = task.assignee_external_ref or task.assignee_id
        if not recipient:
            return
        self._notify(
            recipient,
            "task_assigned",
            {
                "task_id": task.id,
                "task_code": task.code,
                "title": task.title,
                "project_id": task.project_id,
                "planned_end": task.planned_end.isoformat() if task.planned_end else None,
            },
        )

    def notify_reviewers(
        self, request: ApprovalRequestResult, reviewers: list[ApprovalReviewerResult]
    ) -> None:
        for reviewer in reviewers:
            self._notify(
                reviewer.user_id,
                "approval_requested",
                {
                    "approval_id": request.id,
                    "title": request.title,
                    "node_name": reviewer.node_name,
                    "requested_by": request.requested_by,
                },
            )

    def notify_approval_result(self, request: ApprovalRequestResult) -> None:
        self._notify(
            request.requested_by,
            "approval_result",
            {
                "approval_id": request.id,
                "title": request.title,
                "status": request.status.value,
                "comment": request.result_comment,
            },
        )

    def _notify(self, recipient: str, template: str, payload: dict[str, Any]) -> None:
        notifier = self._notifier
        if notifier is None:
            return

        async def job() -> None:
            await notifier.notify(recipient, template, payload)

        self.dispatch(f"notify.{template}:{recipient}", job)

    # ---- Procurement control and live updates ----

    def task_started(self, task: TaskResult) -> None:
        hook = self._procurement_hook
        if hook is None:
            return

        async def job() -> None:
            await hook.on_task_started(task)

        self.dispatch(f"procurement.task_started:{task.id}", job)

    def publish_task_update(
        self, task: TaskResult, action: str, data: dict[str, Any] | None = None
    ) -> None:
        publisher = self._publisher
        if publisher is None:
            return
        body = {"status": task.status.value, "progress": task.progress, **(data or {})}

        async def job() -> None:
            await publisher.publish_task_update(task.project_id, task.id, action, body)

        self.dispatch(f"publish.{action}:{task.id}", job)
