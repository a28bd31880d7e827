"""Settings-driven routing policy for approval-required task completion."""

from __future__ import annotations

from typing import Any

from plm.application.dtos.approval import RoutingDecision
from plm.core.config import Settings
from plm.domain.enums import RoutingChannel
from plm.shared.telemetry.logging import get_logger

logger = get_logger(__name__)

RULE_TASK_TYPE = "auto-approve-task-type"
RULE_APPROVAL_TYPE = "auto-approve-approval-type"


class SettingsRoutingPolicy:
    """IRoutingPolicy: a task whose task_type or approval_type is listed auto-approves.

    Everything else goes to a human.
    """

    def __init__(
        self,
        auto_approve_task_types: frozenset[str] = frozenset(),
        auto_approve_approval_types: frozenset[str] = frozenset(),
    ) -> None:
        self._task_types = auto_approve_task_types
        self._approval_types = auto_approve_approval_types

    @classmethod
    def from_settings(cls, settings: Settings) -> SettingsRoutingPolicy:
        return cls(settings.auto_approve_task_types, settings.auto_approve_approval_types)

    async def evaluate(
        self, domain: str, event_kind: str, context: dict[str, Any]
    ) -> RoutingDecision:
        task_type = context.get("task_type")
        approval_type = context.get("approval_type")
        if task_type and task_type in self._task_types:
            decision = RoutingDecision(
                channel=RoutingChannel.AUTOMATIC,
                rule_id=RULE_TASK_TYPE,
                rule_name=f"auto-approve task_type={task_type}",
                reason="task type is configured for automatic approval",
            )
        elif approval_type and approval_type in self._approval_types:
            decision = RoutingDecision(
                channel=RoutingChannel.AUTOMATIC,
                rule_id=RULE_APPROVAL_TYPE,
                rule_name=f"auto-approve approval_type={approval_type}",
                reason="approval type is configured for automatic approval",
            )
        else:
            decision = RoutingDecision.human("no automatic rule matched")
        logger.debug(
            "Routing %s/%s for %s -> %s",
            domain,
            event_kind,
            context.get("task_id"),
            decision.channel.value,
        )
        return decision
