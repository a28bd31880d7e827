"""API v1 router: mounts every endpoint module under its prefix."""

from fastapi import APIRouter

from plm.api.v1.endpoints import approvals, health, projects, tasks, templates

api_router = APIRouter()

api_router.include_router(health.router, prefix="/health", tags=["health"])
api_router.include_router(templates.router, prefix="/templates", tags=["templates"])
api_router.include_router(projects.router, prefix="/projects", tags=["projects"])
api_router.include_router(tasks.router, prefix="/tasks", tags=["tasks"])
api_router.include_router(
    approvals.definitions_router,
    prefix="/approval-definitions",
    tags=["approvals"],
)
api_router.include_router(approvals.router, prefix="/approvals", tags=["approvals"])
