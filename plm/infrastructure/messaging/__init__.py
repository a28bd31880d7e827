"""Messaging: in-process outbox and Redis pub/sub for live task updates."""

from plm.infrastructure.messaging.outbox import InProcessOutbox, OutboxStats
from plm.infrastructure.messaging.redis_pubsub import TaskEventPublisher, TaskUpdateEvent

__all__ = [
    "InProcessOutbox",
    "OutboxStats",
    "TaskEventPublisher",
    "TaskUpdateEvent",
]
