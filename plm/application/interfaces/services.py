"""Service interfaces (ports) for external collaborators.

Protocols define contracts for the outbound systems the engine talks to
(task tracker, notification sink, routing policy, procurement control,
live-update publisher) and for the outbox that dispatches to them.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from typing import Any, Protocol

from plm.application.dtos.approval import RoutingDecision
from plm.application.dtos.task import TaskResult

OutboxJob = Callable[[], Awaitable[None]]


# External task tracker interface
class IExternalTaskTracker(Protocol):
    """Protocol for mirroring tasks into an external task tracker."""

    async def create_task(
        self, summary: str, description: str | None, assignee_ref: str | None
    ) -> str:
        """Create the external record; return its external id."""
        ...

    async def complete_task(self, external_id: str) -> None: ...


# Notification sink interface
class INotificationSink(Protocol):
    """Protocol for best-effort user notifications (chat cards, mail)."""

    async def notify(self, user_ref: str, template: str, payload: dict[str, Any]) -> None: ...


# Routing policy interface
class IRoutingPolicy(Protocol):
    """Protocol for deciding whether an approval-required completion needs a human."""

    async def evaluate(
        self, domain: str, event_kind: str, context: dict[str, Any]
    ) -> RoutingDecision: ...


# Procurement control hook interface
class IProcurementHook(Protocol):
    """Protocol called when a task starts (procurement gating lives elsewhere)."""

    async def on_task_started(self, task: TaskResult) -> None: ...


# Task event publisher interface
class ITaskEventPublisher(Protocol):
    """Protocol for pushing task_update events to live subscribers."""

    async def publish_task_update(
        self,
        project_id: str,
        task_id: str,
        action: str,
        data: dict[str, Any] | None = None,
    ) -> bool:
        """Publish; return False when the transport is unavailable."""
        ...


# External task id store interface
class IExternalTaskIdStore(Protocol):
    """Protocol for persisting the tracker id from an outbox job (own transaction)."""

    async def save_external_task_id(self, task_id: str, external_task_id: str) -> None: ...


# Outbox interface
class IOutbox(Protocol):
    """Protocol for queueing outbound side effects with retry."""

    def enqueue(self, name: str, job: OutboxJob) -> bool:
        """Queue job; return False if it was refused (queue full or stopped)."""
        ...
