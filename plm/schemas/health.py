"""Health check API schemas."""

from pydantic import BaseModel, Field


class HealthResponse(BaseModel):
    """Response for GET /health (liveness)."""

    status: str = Field(default="ok", description="Service status")
    version: str | None = None


class ReadinessResponse(BaseModel):
    """Response for GET /health/ready when the database answers."""

    status: str = Field(default="ok", description="Readiness status")
    outbox_pending: int = 0


class ReadinessErrorResponse(BaseModel):
    """Response for GET /health/ready when the database check fails (503)."""

    status: str = Field(default="not_ready", description="Readiness status")
    message: str = Field(..., description="Reason (e.g. database unreachable)")
