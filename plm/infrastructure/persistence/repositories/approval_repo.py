"""Approval definition, request and reviewer repository. Returns application DTOs.

Decisions are conditional UPDATEs: claim_request bumps the request
version (and holds its row lock until commit), decide_reviewer only
touches pending reviewers, advance_node only moves forward and
finish_request only leaves pending.
"""

from __future__ import annotations

from typing import Any

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from plm.application.dtos.approval import (
    ApprovalDefinitionResult,
    ApprovalRequestResult,
    ApprovalReviewerResult,
    ReviewerCreate,
)
from plm.domain.enums import ApprovalDefinitionStatus, ApprovalStatus, ReviewerStatus
from plm.infrastructure.persistence.models.approval import (
    ApprovalDefinition,
    ApprovalRequest,
    ApprovalReviewer,
)
from plm.infrastructure.persistence.repositories.base import BaseRepository
from plm.shared.utils import utc_now


def _definition_to_result(d: ApprovalDefinition) -> ApprovalDefinitionResult:
    return ApprovalDefinitionResult(
        id=d.id,
        code=d.code,
        name=d.name,
        flow_schema=d.flow_schema,
        status=ApprovalDefinitionStatus(d.status),
        created_at=d.created_at,
        updated_at=d.updated_at,
    )


def _reviewer_to_result(r: ApprovalReviewer) -> ApprovalReviewerResult:
    return ApprovalReviewerResult(
        id=r.id,
        approval_id=r.approval_id,
        user_id=r.user_id,
        node_index=r.node_index,
        node_name=r.node_name,
        sequence=r.sequence,
        status=ReviewerStatus(r.status),
        comment=r.comment,
        decided_at=r.decided_at,
    )


def _request_to_result(
    r: ApprovalRequest, reviewers: list[ApprovalReviewer]
) -> ApprovalRequestResult:
    return ApprovalRequestResult(
        id=r.id,
        title=r.title,
        status=ApprovalStatus(r.status),
        requested_by=r.requested_by,
        current_node=r.current_node,
        flow_snapshot=r.flow_snapshot,
        version=r.version,
        project_id=r.project_id,
        task_id=r.task_id,
        definition_id=r.definition_id,
        description=r.description,
        form_data=r.form_data or {},
        selected_approvers=r.selected_approvers or {},
        result_comment=r.result_comment,
        reviewers=[_reviewer_to_result(x) for x in reviewers],
        created_at=r.created_at,
        updated_at=r.updated_at,
    )


class ApprovalRepository(BaseRepository[ApprovalRequest]):
    """Approval repository. Implements IApprovalRepository."""

    def __init__(self, db: AsyncSession) -> None:
        super().__init__(db, ApprovalRequest)

    # ---- Definitions ----

    async def create_definition(
        self, code: str, name: str, flow_schema: dict[str, Any]
    ) -> ApprovalDefinitionResult:
        row = ApprovalDefinition(code=code, name=name, flow_schema=flow_schema)
        self.db.add(row)
        await self.db.flush()
        await self.db.refresh(row)
        return _definition_to_result(row)

    async def get_definition(self, definition_id: str) -> ApprovalDefinitionResult | None:
        result = await self.db.execute(
            select(ApprovalDefinition).where(ApprovalDefinition.id == definition_id)
        )
        row = result.scalar_one_or_none()
        return _definition_to_result(row) if row else None

    async def list_definitions(
        self, status: ApprovalDefinitionStatus | None = None
    ) -> list[ApprovalDefinitionResult]:
        query = select(ApprovalDefinition).order_by(ApprovalDefinition.created_at.asc())
        if status is not None:
            query = query.where(ApprovalDefinition.status == status.value)
        result = await self.db.execute(query)
        return [_definition_to_result(row) for row in result.scalars().all()]

    async def update_definition(
        self,
        definition_id: str,
        *,
        name: str | None = None,
        flow_schema: dict[str, Any] | None = None,
    ) -> ApprovalDefinitionResult | None:
        result = await self.db.execute(
            select(ApprovalDefinition).where(ApprovalDefinition.id == definition_id)
        )
        row = result.scalar_one_or_none()
        if row is None:
            return None
        if name is not None:
            row.name = name
        if flow_schema is not None:
            row.flow_schema = flow_schema
        await self.db.flush()
        await self.db.refresh(row)
        return _definition_to_result(row)

    async def set_definition_status(
        self, definition_id: str, status: ApprovalDefinitionStatus
    ) -> ApprovalDefinitionResult | None:
        result = await self.db.execute(
            select(ApprovalDefinition).where(ApprovalDefinition.id == definition_id)
        )
        row = result.scalar_one_or_none()
        if row is None:
            return None
        row.status = status.value
        await self.db.flush()
        await self.db.refresh(row)
        return _definition_to_result(row)

    # ---- Requests ----

    async def create_request(
        self,
        *,
        title: str,
        requested_by: str,
        current_node: int,
        flow_snapshot: dict[str, Any],
        selected_approvers: dict[str, list[str]],
        definition_id: str | None = None,
        project_id: str | None = None,
        task_id: str | None = None,
        description: str | None = None,
        form_data: dict[str, Any] | None = None,
    ) -> ApprovalRequestResult:
        row = await self.add(
            ApprovalRequest(
                title=title,
                requested_by=requested_by,
                current_node=current_node,
                flow_snapshot=flow_snapshot,
                selected_approvers=selected_approvers,
                definition_id=definition_id,
                project_id=project_id,
                task_id=task_id,
                description=description,
                form_data=form_data or {},
                status=ApprovalStatus.PENDING.value,
            )
        )
        return _request_to_result(row, [])

    async def get_request(self, approval_id: str) -> ApprovalRequestResult | None:
        row = await self.reload(approval_id)
        if row is None:
            return None
        return _request_to_result(row, await self._reviewers(approval_id))

    async def list_requests(
        self, status: ApprovalStatus | None = None, skip: int = 0, limit: int = 100
    ) -> list[ApprovalRequestResult]:
        stmt = select(ApprovalRequest)
        if status is not None:
            stmt = stmt.where(ApprovalRequest.status == status.value)
        stmt = stmt.order_by(ApprovalRequest.created_at.desc()).offset(skip).limit(limit)
        result = await self.db.execute(stmt.execution_options(populate_existing=True))
        return [
            _request_to_result(r, await self._reviewers(r.id)) for r in result.scalars().all()
        ]

    async def list_pending_for_user(self, user_id: str) -> list[ApprovalRequestResult]:
        stmt = (
            select(ApprovalRequest)
            .join(ApprovalReviewer, ApprovalReviewer.approval_id == ApprovalRequest.id)
            .where(
                ApprovalRequest.status == ApprovalStatus.PENDING.value,
                ApprovalReviewer.user_id == user_id,
                ApprovalReviewer.status == ReviewerStatus.PENDING.value,
                ApprovalReviewer.node_index == ApprovalRequest.current_node,
            )
            .distinct()
            .order_by(ApprovalRequest.created_at)
            .execution_options(populate_existing=True)
        )
        result = await self.db.execute(stmt)
        return [
            _request_to_result(r, await self._reviewers(r.id)) for r in result.scalars().all()
        ]

    # ---- Reviewers and decisions ----

    async def add_reviewers(
        self, approval_id: str, reviewers: list[ReviewerCreate]
    ) -> list[ApprovalReviewerResult]:
        rows = [
            ApprovalReviewer(
                approval_id=approval_id,
                user_id=r.user_id,
                node_index=r.node_index,
                node_name=r.node_name,
                sequence=r.sequence,
                status=ReviewerStatus.PENDING.value,
            )
            for r in reviewers
        ]
        self.db.add_all(rows)
        await self.db.flush()
        return [_reviewer_to_result(r) for r in rows]

    async def decide_reviewer(
        self, reviewer_id: str, status: ReviewerStatus, comment: str | None
    ) -> bool:
        stmt = (
            update(ApprovalReviewer)
            .where(
                ApprovalReviewer.id == reviewer_id,
                ApprovalReviewer.status == ReviewerStatus.PENDING.value,
            )
            .values(status=status.value, comment=comment, decided_at=utc_now())
            .execution_options(synchronize_session=False)
        )
        result = await self.db.execute(stmt)
        return result.rowcount == 1

    async def claim_request(self, approval_id: str, expected_version: int) -> bool:
        stmt = (
            update(ApprovalRequest)
            .where(
                ApprovalRequest.id == approval_id,
                ApprovalRequest.status == ApprovalStatus.PENDING.value,
                ApprovalRequest.version == expected_version,
            )
            .values(version=ApprovalRequest.version + 1, updated_at=utc_now())
            .execution_options(synchronize_session=False)
        )
        result = await self.db.execute(stmt)
        return result.rowcount == 1

    async def advance_node(self, approval_id: str, new_node: int) -> bool:
        stmt = (
            update(ApprovalRequest)
            .where(
                ApprovalRequest.id == approval_id,
                ApprovalRequest.status == ApprovalStatus.PENDING.value,
                ApprovalRequest.current_node < new_node,
            )
            .values(current_node=new_node, updated_at=utc_now())
            .execution_options(synchronize_session=False)
        )
        result = await self.db.execute(stmt)
        return result.rowcount == 1

    async def finish_request(
        self,
        approval_id: str,
        status: ApprovalStatus,
        result_comment: str | None,
    ) -> bool:
        stmt = (
            update(ApprovalRequest)
            .where(
                ApprovalRequest.id == approval_id,
                ApprovalRequest.status == ApprovalStatus.PENDING.value,
            )
            .values(status=status.value, result_comment=result_comment, updated_at=utc_now())
            .execution_options(synchronize_session=False)
        )
        result = await self.db.execute(stmt)
        return result.rowcount == 1

    async def _reviewers(self, approval_id: str) -> list[ApprovalReviewer]:
        result = await self.db.execute(
            select(ApprovalReviewer)
            .where(ApprovalReviewer.approval_id == approval_id)
            .order_by(ApprovalReviewer.node_index, ApprovalReviewer.sequence)
            .execution_options(populate_existing=True)
        )
        return list(result.scalars().all())
