"""Health check endpoints for liveness and readiness."""

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from plm.core.config import get_settings
from plm.domain.exceptions import SqlNotConfiguredException
from plm.infrastructure.persistence.database import get_session_factory
from plm.schemas.health import (
    HealthResponse,
    ReadinessErrorResponse,
    ReadinessResponse,
)
from plm.shared.telemetry.logging import get_logger

logger = get_logger(__name__)

router = APIRouter()


@router.get("", response_model=HealthResponse)
def health_check() -> HealthResponse:
    """Return ok status for liveness."""
    return HealthResponse(version=get_settings().app_version)


@router.get(
    "/ready",
    response_model=ReadinessResponse,
    responses={503: {"description": "Database unreachable", "model": ReadinessErrorResponse}},
)
async def readiness_check(request: Request) -> ReadinessResponse | JSONResponse:
    """Return 200 when the database answers SELECT 1; 503 otherwise."""
    try:
        async with get_session_factory()() as session:
            await session.execute(text("SELECT 1"))
    except (SqlNotConfiguredException, SQLAlchemyError, OSError) as exc:
        logger.warning("Readiness check failed: %s", exc)
        return JSONResponse(
            status_code=503,
            content=ReadinessErrorResponse(message=str(exc)).model_dump(),
        )
    outbox = getattr(request.app.state, "outbox", None)
    return ReadinessResponse(outbox_pending=outbox.pending if outbox is not None else 0)
