"""Calendar calculator: planned start/end per template task.

Dates are derived from the template's dependency graph once, when a
project is instantiated. Each task's start is the latest of the project
start and every dependency edge's candidate date; its end is the start
stepped forward by the task's estimated days.
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass
from datetime import date, timedelta

from plm.application.dtos.template import TemplateDependencySpec, TemplateTaskSpec
from plm.domain.enums import DependencyType
from plm.domain.exceptions import ValidationException

_SATURDAY = 5


def add_work_days(start: date, days: int, skip_weekends: bool) -> date:
    """Advance start by days, one calendar day at a time.

    With skip_weekends, Saturdays and Sundays are stepped over and do not
    count toward days. days <= 0 returns start unchanged.
    """
    if days <= 0:
        return start
    current = start
    for _ in range(days):
        current += timedelta(days=1)
        if skip_weekends:
            while current.weekday() >= _SATURDAY:
                current += timedelta(days=1)
    return current


@dataclass(frozen=True)
class TaskDates:
    start: date
    end: date


class CalendarCalculator:
    """Computes TaskDates for every template task code (memoized, cycle-checked)."""

    def __init__(
        self,
        tasks: list[TemplateTaskSpec],
        dependencies: list[TemplateDependencySpec],
        project_start: date,
        skip_weekends: bool,
    ) -> None:
        self._tasks = {t.task_code: t for t in tasks}
        self._project_start = project_start
        self._skip_weekends = skip_weekends
        self._incoming: dict[str, list[TemplateDependencySpec]] = defaultdict(list)
        for dep in dependencies:
            self._incoming[dep.task_code].append(dep)
        self._dates: dict[str, TaskDates] = {}
        self._visiting: set[str] = set()

    def calculate(self) -> dict[str, TaskDates]:
        """Return dates for every task code in the template."""
        for code in self._tasks:
            self.dates_for(code)
        return dict(self._dates)

    def dates_for(self, code: str) -> TaskDates:
        """Return (and memoize) start and end for one task code.

        Raises:
            ValidationException: If code is unknown or sits on a dependency cycle.
        """
        cached = self._dates.get(code)
        if cached is not None:
            return cached
        task = self._tasks.get(code)
        if task is None:
            raise ValidationException(f"unknown template task code: {code}", field="task_code")
        if code in self._visiting:
            raise ValidationException(
                f"dependency cycle through template task {code}", field="dependencies"
            )
        self._visiting.add(code)
        try:
            start = self.calculate_start(code)
        finally:
            self._visiting.discard(code)
        dates = TaskDates(
            start=start,
            end=add_work_days(start, task.estimated_days, self._skip_weekends),
        )
        self._dates[code] = dates
        return dates

    def calculate_start(self, code: str) -> date:
        """Latest of the project start and each incoming edge's candidate date."""
        start = self._project_start
        for dep in self._incoming.get(code, []):
            if dep.depends_on_task_code not in self._tasks:
                continue
            predecessor = self.dates_for(dep.depends_on_task_code)
            candidate = self._edge_candidate(dep, predecessor)
            if candidate > start:
                start = candidate
        return start

    def _edge_candidate(self, dep: TemplateDependencySpec, predecessor: TaskDates) -> date:
        # FF and SF have no calendar rule of their own and schedule like FS.
        if dep.dependency_type is DependencyType.SS:
            reference = predecessor.start
        elif dep.dependency_type in (DependencyType.FS, DependencyType.FF, DependencyType.SF):
            reference = predecessor.end
        else:
            raise ValueError(f"unhandled dependency type: {dep.dependency_type!r}")
        return add_work_days(reference, dep.lag_days, self._skip_weekends)
