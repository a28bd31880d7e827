"""Approval API: definitions (create, edit, publish, read) and requests (submit, decide, read)."""

from typing import Annotated

from fastapi import APIRouter, Depends, Query

from plm.api.v1.dependencies import (
    get_approval_definition_reader,
    get_approval_definition_service,
    get_approval_reader,
    get_approval_router,
    get_operator,
)
from plm.application.dtos.approval import ApprovalSubmission
from plm.application.dtos.task import Actor
from plm.application.use_cases.approvals import ApprovalDefinitionService, ApprovalRouter
from plm.domain.enums import ApprovalDefinitionStatus, ApprovalStatus
from plm.schemas.approval import (
    ApprovalCreateRequest,
    ApprovalDecisionRequest,
    ApprovalDefinitionCreateRequest,
    ApprovalDefinitionResponse,
    ApprovalDefinitionUpdateRequest,
    ApprovalRequestResponse,
)

definitions_router = APIRouter()
router = APIRouter()


@definitions_router.post("", response_model=ApprovalDefinitionResponse, status_code=201)
async def create_approval_definition(
    body: ApprovalDefinitionCreateRequest,
    _actor: Annotated[Actor, Depends(get_operator)],
    service: Annotated[ApprovalDefinitionService, Depends(get_approval_definition_service)],
):
    """Create a draft definition; the flow schema is validated up front."""
    definition = await service.create_definition(body.code, body.name, body.flow_schema)
    return ApprovalDefinitionResponse.model_validate(definition)


@definitions_router.get("", response_model=list[ApprovalDefinitionResponse])
async def list_approval_definitions(
    service: Annotated[ApprovalDefinitionService, Depends(get_approval_definition_reader)],
    status: ApprovalDefinitionStatus | None = None,
):
    """List definitions, oldest first, optionally filtered by status."""
    definitions = await service.list_definitions(status)
    return [ApprovalDefinitionResponse.model_validate(d) for d in definitions]


@definitions_router.get("/{definition_id}", response_model=ApprovalDefinitionResponse)
async def get_approval_definition(
    definition_id: str,
    service: Annotated[ApprovalDefinitionService, Depends(get_approval_definition_reader)],
):
    return ApprovalDefinitionResponse.model_validate(await service.get_definition(definition_id))


@definitions_router.patch("/{definition_id}", response_model=ApprovalDefinitionResponse)
async def update_approval_definition(
    definition_id: str,
    body: ApprovalDefinitionUpdateRequest,
    _actor: Annotated[Actor, Depends(get_operator)],
    service: Annotated[ApprovalDefinitionService, Depends(get_approval_definition_service)],
):
    """Edit name or flow. Requests already submitted keep their flow snapshot."""
    definition = await service.update_definition(
        definition_id, name=body.name, flow_schema=body.flow_schema
    )
    return ApprovalDefinitionResponse.model_validate(definition)


@definitions_router.post("/{definition_id}/publish", response_model=ApprovalDefinitionResponse)
async def publish_approval_definition(
    definition_id: str,
    _actor: Annotated[Actor, Depends(get_operator)],
    service: Annotated[ApprovalDefinitionService, Depends(get_approval_definition_service)],
):
    """Publish a draft definition so requests can be submitted against it."""
    definition = await service.publish_definition(definition_id)
    return ApprovalDefinitionResponse.model_validate(definition)


@definitions_router.post("/{definition_id}/unpublish", response_model=ApprovalDefinitionResponse)
async def unpublish_approval_definition(
    definition_id: str,
    _actor: Annotated[Actor, Depends(get_operator)],
    service: Annotated[ApprovalDefinitionService, Depends(get_approval_definition_service)],
):
    """Move a published definition back to draft; no new requests until republished."""
    definition = await service.unpublish_definition(definition_id)
    return ApprovalDefinitionResponse.model_validate(definition)


@router.post("", response_model=ApprovalRequestResponse, status_code=201)
async def submit_approval(
    body: ApprovalCreateRequest,
    actor: Annotated[Actor, Depends(get_operator)],
    approval_router: Annotated[ApprovalRouter, Depends(get_approval_router)],
):
    """Submit an approval request; task_id links it to a reviewing task."""
    submission = ApprovalSubmission(
        **body.model_dump(exclude={"task_id", "project_id"})
    )
    request = await approval_router.submit(
        submission, actor, task_id=body.task_id, project_id=body.project_id
    )
    return ApprovalRequestResponse.model_validate(request)


@router.get("", response_model=list[ApprovalRequestResponse])
async def list_approvals(
    approval_router: Annotated[ApprovalRouter, Depends(get_approval_reader)],
    status: ApprovalStatus | None = None,
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=1000),
):
    """List approval requests, newest first, optionally filtered by status."""
    requests = await approval_router.list_approvals(status, skip, limit)
    return [ApprovalRequestResponse.model_validate(r) for r in requests]


@router.get("/pending", response_model=list[ApprovalRequestResponse])
async def list_my_pending_approvals(
    actor: Annotated[Actor, Depends(get_operator)],
    approval_router: Annotated[ApprovalRouter, Depends(get_approval_reader)],
):
    """Requests waiting on the operator at their current node."""
    requests = await approval_router.list_my_pending(actor.id)
    return [ApprovalRequestResponse.model_validate(r) for r in requests]


@router.get("/{approval_id}", response_model=ApprovalRequestResponse)
async def get_approval(
    approval_id: str,
    approval_router: Annotated[ApprovalRouter, Depends(get_approval_reader)],
):
    """Get an approval request with its reviewers."""
    return ApprovalRequestResponse.model_validate(
        await approval_router.get_approval(approval_id)
    )


@router.post("/{approval_id}/approve", response_model=ApprovalRequestResponse)
async def approve(
    approval_id: str,
    actor: Annotated[Actor, Depends(get_operator)],
    approval_router: Annotated[ApprovalRouter, Depends(get_approval_router)],
    body: ApprovalDecisionRequest | None = None,
):
    """Approve at the current node; the request advances once the node is resolved."""
    request = await approval_router.approve(
        approval_id, actor, body.comment if body else None
    )
    return ApprovalRequestResponse.model_validate(request)


@router.post("/{approval_id}/reject", response_model=ApprovalRequestResponse)
async def reject(
    approval_id: str,
    actor: Annotated[Actor, Depends(get_operator)],
    approval_router: Annotated[ApprovalRouter, Depends(get_approval_router)],
    body: ApprovalDecisionRequest | None = None,
):
    """Reject the request; a linked task returns to in_progress."""
    request = await approval_router.reject(
        approval_id, actor, body.comment if body else None
    )
    return ApprovalRequestResponse.model_validate(request)
