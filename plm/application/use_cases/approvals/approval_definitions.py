"""Approval definitions: authoring, publishing and reading approval flows.

Requests copy the definition's flow when they are submitted, so editing a
definition only affects requests submitted afterwards.
"""

from __future__ import annotations

from typing import Any

from plm.application.dtos.approval import ApprovalDefinitionResult
from plm.application.interfaces.repositories import IApprovalRepository
from plm.domain.entities.approval_flow import parse_flow_schema
from plm.domain.enums import ApprovalDefinitionStatus
from plm.domain.exceptions import (
    GuardViolationException,
    ResourceNotFoundException,
    ValidationException,
)


def _validate_flow(flow_schema: dict[str, Any]) -> None:
    flow = parse_flow_schema(flow_schema)
    if flow.first_approve_node(0) is None:
        raise ValidationException("flow must contain an approve node", field="flow_schema")


class ApprovalDefinitionService:
    """Creates draft definitions (flow validated up front), edits and publishes them."""

    def __init__(self, approval_repo: IApprovalRepository) -> None:
        self._approval_repo = approval_repo

    async def create_definition(
        self, code: str, name: str, flow_schema: dict[str, Any]
    ) -> ApprovalDefinitionResult:
        """Create a draft definition.

        Raises:
            ValidationException: flow_schema is malformed or has no approve node.
        """
        _validate_flow(flow_schema)
        return await self._approval_repo.create_definition(code, name, flow_schema)

    async def get_definition(self, definition_id: str) -> ApprovalDefinitionResult:
        definition = await self._approval_repo.get_definition(definition_id)
        if definition is None:
            raise ResourceNotFoundException("approval_definition", definition_id)
        return definition

    async def list_definitions(
        self, status: ApprovalDefinitionStatus | None = None
    ) -> list[ApprovalDefinitionResult]:
        return await self._approval_repo.list_definitions(status)

    async def update_definition(
        self,
        definition_id: str,
        *,
        name: str | None = None,
        flow_schema: dict[str, Any] | None = None,
    ) -> ApprovalDefinitionResult:
        """Change name and/or flow. Published definitions may be edited too.

        Raises:
            ResourceNotFoundException: Unknown definition.
            ValidationException: New flow_schema is malformed or has no approve node.
        """
        if flow_schema is not None:
            _validate_flow(flow_schema)
        updated = await self._approval_repo.update_definition(
            definition_id, name=name, flow_schema=flow_schema
        )
        if updated is None:
            raise ResourceNotFoundException("approval_definition", definition_id)
        return updated

    async def publish_definition(self, definition_id: str) -> ApprovalDefinitionResult:
        return await self._move(
            definition_id, ApprovalDefinitionStatus.DRAFT, ApprovalDefinitionStatus.PUBLISHED
        )

    async def unpublish_definition(self, definition_id: str) -> ApprovalDefinitionResult:
        """Back to draft; requests already submitted keep running."""
        return await self._move(
            definition_id, ApprovalDefinitionStatus.PUBLISHED, ApprovalDefinitionStatus.DRAFT
        )

    async def _move(
        self,
        definition_id: str,
        expected: ApprovalDefinitionStatus,
        target: ApprovalDefinitionStatus,
    ) -> ApprovalDefinitionResult:
        definition = await self.get_definition(definition_id)
        if definition.status is not expected:
            raise GuardViolationException(
                f"approval definition {definition.code} is already {definition.status.value}",
                details={"definition_id": definition_id},
            )
        updated = await self._approval_repo.set_definition_status(definition_id, target)
        if updated is None:
            raise ResourceNotFoundException("approval_definition", definition_id)
        return updated
