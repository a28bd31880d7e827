"""Infrastructure services: tracker, notification, routing and procurement adapters."""

from plm.infrastructure.services.notification_sink import LogOnlyNotificationSink
from plm.infrastructure.services.procurement_hook import LogOnlyProcurementHook
from plm.infrastructure.services.routing_policy import SettingsRoutingPolicy
from plm.infrastructure.services.task_tracker import (
    HttpTaskTracker,
    LogOnlyTaskTracker,
    TaskTrackerError,
)

__all__ = [
    "HttpTaskTracker",
    "LogOnlyNotificationSink",
    "LogOnlyProcurementHook",
    "LogOnlyTaskTracker",
    "SettingsRoutingPolicy",
    "TaskTrackerError",
]
