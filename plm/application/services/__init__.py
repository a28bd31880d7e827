"""Application services: scheduling, dependency activation, rollback and side effects."""

from plm.application.services.calendar_calculator import (
    CalendarCalculator,
    TaskDates,
    add_work_days,
)
from plm.application.services.dependency_resolver import DependencyResolver
from plm.application.services.rollback_cascader import RollbackCascader, RollbackResult
from plm.application.services.side_effects import TaskSideEffects

__all__ = [
    "CalendarCalculator",
    "DependencyResolver",
    "RollbackCascader",
    "RollbackResult",
    "TaskDates",
    "TaskSideEffects",
    "add_work_days",
]
