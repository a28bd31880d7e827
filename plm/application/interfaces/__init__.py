"""Ports: repository and external-service protocols."""

from plm.application.interfaces.repositories import (
    IApprovalRepository,
    IProjectRepository,
    ITaskActionLogRepository,
    ITaskDependencyRepository,
    ITaskRepository,
    ITemplateRepository,
    IUnitOfWork,
)
from plm.application.interfaces.services import (
    IExternalTaskIdStore,
    IExternalTaskTracker,
    INotificationSink,
    IOutbox,
    IProcurementHook,
    IRoutingPolicy,
    ITaskEventPublisher,
    OutboxJob,
)

__all__ = [
    "IApprovalRepository",
    "IExternalTaskIdStore",
    "IExternalTaskTracker",
    "INotificationSink",
    "IOutbox",
    "IProcurementHook",
    "IProjectRepository",
    "IRoutingPolicy",
    "ITaskActionLogRepository",
    "ITaskDependencyRepository",
    "ITaskEventPublisher",
    "ITaskRepository",
    "ITemplateRepository",
    "IUnitOfWork",
    "OutboxJob",
]
