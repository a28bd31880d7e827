"""Redis Pub/Sub for live task updates.

Publishes task_update events on a per-project channel so dashboards can
follow a project's tasks. The publisher is built in the application
lifespan and injected; with Redis disabled or unreachable publishing is
a logged no-op.
"""

from __future__ import annotations

import json
import logging
from dataclasses import asdict, dataclass, field
from typing import Any

import redis.asyncio as redis

from plm.core.config import Settings, get_settings
from plm.shared.utils.datetime import utc_now

logger = logging.getLogger(__name__)

TASK_UPDATE_TYPE = "task_update"


@dataclass
class TaskUpdateEvent:
    """Task update payload for Redis."""

    project_id: str
    task_id: str
    action: str
    timestamp: str
    data: dict[str, Any] = field(default_factory=dict)
    type: str = TASK_UPDATE_TYPE

    def to_dict(self) -> dict[str, Any]:
        """Serialize for JSON publish."""
        return asdict(self)


class _RedisPubSubBase:
    """Shared Redis connection and channel logic for task update pub/sub."""

    def __init__(
        self,
        redis_client: redis.Redis | None = None,
        settings: Settings | None = None,
    ) -> None:
        """Initialize. Pass redis_client for DI/testing."""
        self.redis = redis_client
        self.settings = settings or get_settings()
        self._connected = redis_client is not None

    async def connect(self) -> None:
        """Establish Redis connection. Call on app startup."""
        if self._connected:
            return
        if self.redis is None:
            try:
                self.redis = redis.Redis(
                    host=self.settings.redis_host,
                    port=self.settings.redis_port,
                    db=self.settings.redis_db,
                    password=self.settings.redis_password.get_secret_value() if self.settings.redis_password else None,
                    decode_responses=True,
                    socket_connect_timeout=5,
                )
                await self.redis.ping()
                self._connected = True
                logger.info("Redis pub/sub connected")
            except (redis.ConnectionError, redis.TimeoutError) as e:
                logger.warning("Redis pub/sub connection failed: %s", e)
                self._connected = False
                self.redis = None

    async def disconnect(self) -> None:
        """Close Redis connection. Call on app shutdown."""
        if self.redis:
            await self.redis.aclose()
            self._connected = False
            logger.info("Redis pub/sub disconnected")

    def is_available(self) -> bool:
        """Return True if Redis is connected."""
        return self._connected and self.redis is not None

    def _get_channel(self, project_id: str) -> str:
        """Channel name for project."""
        return f"{self.settings.task_update_channel_prefix}:{project_id}"


class TaskEventPublisher(_RedisPubSubBase):
    """Publishes task_update events to the project's channel. Implements ITaskEventPublisher."""

    async def publish(self, event: TaskUpdateEvent) -> bool:
        """Publish an event.

        Returns:
            True if published, False if Redis unavailable or the publish failed.
        """
        if not self.is_available() or self.redis is None:
            logger.debug("Redis not available, skipping publish")
            return False
        try:
            channel = self._get_channel(event.project_id)
            await self.redis.publish(channel, json.dumps(event.to_dict(), default=str))
            logger.debug("Published task update to %s: %s", channel, event.action)
        except Exception:
            logger.exception("Failed to publish task update")
            return False
        else:
            return True

    async def publish_task_update(
        self,
        project_id: str,
        task_id: str,
        action: str,
        data: dict[str, Any] | None = None,
    ) -> bool:
        event = TaskUpdateEvent(
            project_id=project_id,
            task_id=task_id,
            action=action,
            timestamp=utc_now().isoformat(),
            data=data or {},
        )
        return await self.publish(event)
