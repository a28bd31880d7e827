"""Project template API."""

from typing import Annotated

from fastapi import APIRouter, Depends

from plm.api.v1.dependencies import (
    get_operator,
    get_template_service,
    get_template_service_for_write,
)
from plm.application.dtos.task import Actor
from plm.application.use_cases.projects import TemplateService
from plm.schemas.template import TemplateCreateRequest, TemplateResponse

router = APIRouter()


@router.post("", response_model=TemplateResponse, status_code=201)
async def create_template(
    body: TemplateCreateRequest,
    _actor: Annotated[Actor, Depends(get_operator)],
    service: Annotated[TemplateService, Depends(get_template_service_for_write)],
):
    """Create a template; rejects unknown codes and dependency cycles."""
    template = await service.create_template(body.to_dto())
    return TemplateResponse.model_validate(template)


@router.get("/{template_id}", response_model=TemplateResponse)
async def get_template(
    template_id: str,
    service: Annotated[TemplateService, Depends(get_template_service)],
):
    """Get a template with tasks, dependencies and outcomes."""
    return TemplateResponse.model_validate(await service.get_template(template_id))
