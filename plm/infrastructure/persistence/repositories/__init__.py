"""Repository implementations: SQLAlchemy async, returning application DTOs."""

from plm.infrastructure.persistence.repositories.approval_repo import ApprovalRepository
from plm.infrastructure.persistence.repositories.base import BaseRepository
from plm.infrastructure.persistence.repositories.external_id_store import (
    SqlExternalTaskIdStore,
)
from plm.infrastructure.persistence.repositories.project_repo import ProjectRepository
from plm.infrastructure.persistence.repositories.task_repo import (
    TaskActionLogRepository,
    TaskDependencyRepository,
    TaskRepository,
)
from plm.infrastructure.persistence.repositories.template_repo import TemplateRepository

__all__ = [
    "ApprovalRepository",
    "BaseRepository",
    "ProjectRepository",
    "SqlExternalTaskIdStore",
    "TaskActionLogRepository",
    "TaskDependencyRepository",
    "TaskRepository",
    "TemplateRepository",
]
