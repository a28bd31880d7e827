"""Presentation-layer dependency injection (composition root).

Provides FastAPI Depends() for DB sessions, the operator actor and the
application services. Write dependencies share the request's
transactional session (FastAPI caches Depends per request), so a task
workflow and an approval router used by the same route commit together.
"""

from plm.api.v1.dependencies.approval import (
    get_approval_definition_reader,
    get_approval_definition_service,
    get_approval_reader,
    get_approval_router,
)
from plm.api.v1.dependencies.common import get_operator, get_side_effects
from plm.api.v1.dependencies.project import (
    get_instantiate_project_use_case,
    get_project_repo,
    get_template_service,
    get_template_service_for_write,
)
from plm.api.v1.dependencies.task import (
    build_task_workflow,
    get_task_reader,
    get_task_repo,
    get_task_workflow,
)

__all__ = [
    "build_task_workflow",
    "get_approval_definition_reader",
    "get_approval_definition_service",
    "get_approval_reader",
    "get_approval_router",
    "get_instantiate_project_use_case",
    "get_operator",
    "get_project_repo",
    "get_side_effects",
    "get_task_reader",
    "get_task_repo",
    "get_template_service",
    "get_template_service_for_write",
]
