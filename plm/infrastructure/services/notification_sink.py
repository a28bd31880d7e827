"""Notification sink: log-only sender for task and approval notifications."""

from __future__ import annotations

import logging
from typing import Any

from plm.shared.telemetry.logging import get_logger
from plm.shared.utils.datetime import utc_now

logger = get_logger(__name__)


class LogOnlyNotificationSink:
    """INotificationSink implementation that logs instead of sending.

    Use when no chat or mail channel is configured. Production can swap in a
    card-sending implementation behind the same protocol.
    """

    async def notify(self, user_ref: str, template: str, payload: dict[str, Any]) -> None:
        if not user_ref:
            logger.info("Notify: no recipient, skipping %s", template)
            return
        logger.info("Notify: would send %s to %s", template, user_ref)
        if logger.isEnabledFor(logging.DEBUG):
            logger.debug("Notify payload: %s (at %s)", payload, utc_now().isoformat())
