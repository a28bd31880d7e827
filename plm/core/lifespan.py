"""Application lifespan: startup and shutdown.

Single place for startup/shutdown wiring: outbox workers, shared HTTP
client, task tracker and other outbound adapters, Redis publisher, DB
engine dispose. Everything built here is stored on app.state and
injected through plm.api.v1.dependencies.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

import httpx
from fastapi import FastAPI

from plm.core.config import get_settings
from plm.infrastructure.messaging.outbox import InProcessOutbox
from plm.infrastructure.messaging.redis_pubsub import TaskEventPublisher
from plm.infrastructure.persistence.database import dispose_engine
from plm.infrastructure.persistence.repositories.external_id_store import (
    SqlExternalTaskIdStore,
)
from plm.infrastructure.services import (
    HttpTaskTracker,
    LogOnlyNotificationSink,
    LogOnlyProcurementHook,
    LogOnlyTaskTracker,
    SettingsRoutingPolicy,
)
from plm.shared.telemetry.logging import setup_logging

logger = logging.getLogger(__name__)


@asynccontextmanager
async def create_lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Run startup then yield; on exit run shutdown.

    Startup order: logging, shared HTTP client, outbound adapters,
    Redis publisher (if enabled), outbox workers. Shutdown order: outbox
    drain and stop, publisher disconnect, HTTP client close, SQL engine
    dispose.
    """
    settings = get_settings()
    setup_logging()

    # ---- Startup ----
    app.state.http_client = httpx.AsyncClient(timeout=settings.tracker_timeout_seconds)
    if settings.tracker_base_url:
        app.state.task_tracker = HttpTaskTracker.from_settings(settings, app.state.http_client)
    else:
        logger.info("TRACKER_BASE_URL not set; using log-only task tracker")
        app.state.task_tracker = LogOnlyTaskTracker()
    app.state.external_id_store = SqlExternalTaskIdStore()
    app.state.notifier = LogOnlyNotificationSink()
    app.state.procurement_hook = LogOnlyProcurementHook()
    app.state.routing_policy = SettingsRoutingPolicy.from_settings(settings)

    if settings.redis_enabled:
        publisher = TaskEventPublisher(settings=settings)
        await publisher.connect()
        app.state.task_publisher = publisher
    else:
        app.state.task_publisher = None

    outbox = InProcessOutbox.from_settings(settings)
    outbox.start()
    app.state.outbox = outbox

    yield

    # ---- Shutdown ----
    drained = await outbox.stop(settings.outbox_drain_timeout_seconds)
    if not drained:
        logger.warning("Outbox stopped before all side effects finished")

    if getattr(app.state, "task_publisher", None) is not None:
        await app.state.task_publisher.disconnect()
        app.state.task_publisher = None

    if getattr(app.state, "http_client", None) is not None:
        await app.state.http_client.aclose()
        app.state.http_client = None
        logger.info("HTTP client closed")

    await dispose_engine()
    logger.info("Database engine disposed")
