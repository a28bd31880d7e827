"""Task lifecycle rules.

The transition table is the single authority on which status edges exist.
Repositories refuse to write an edge that is not listed here, and the
state machine checks operation preconditions against it before any write.
"""

from plm.domain.enums import DependencyType, TaskStatus
from plm.domain.exceptions import InvalidTransitionException

ALLOWED_TRANSITIONS: dict[TaskStatus, frozenset[TaskStatus]] = {
    TaskStatus.UNASSIGNED: frozenset(
        {TaskStatus.PENDING, TaskStatus.IN_PROGRESS, TaskStatus.CANCELLED}
    ),
    TaskStatus.PENDING: frozenset(
        {TaskStatus.PENDING, TaskStatus.IN_PROGRESS, TaskStatus.CANCELLED}
    ),
    TaskStatus.IN_PROGRESS: frozenset(
        {
            TaskStatus.COMPLETED,
            TaskStatus.REVIEWING,
            TaskStatus.PENDING,
            TaskStatus.IN_PROGRESS,
            TaskStatus.CANCELLED,
        }
    ),
    TaskStatus.REVIEWING: frozenset(
        {
            TaskStatus.COMPLETED,
            TaskStatus.CONFIRMED,
            TaskStatus.REJECTED,
            TaskStatus.IN_PROGRESS,
            TaskStatus.PENDING,
        }
    ),
    TaskStatus.COMPLETED: frozenset({TaskStatus.IN_PROGRESS, TaskStatus.PENDING}),
    TaskStatus.CONFIRMED: frozenset({TaskStatus.IN_PROGRESS, TaskStatus.PENDING}),
    TaskStatus.REJECTED: frozenset({TaskStatus.IN_PROGRESS}),
    TaskStatus.CANCELLED: frozenset(),
}

# Statuses a cascade rollback resets to pending.
CASCADE_RESET_STATUSES: frozenset[TaskStatus] = frozenset(
    {
        TaskStatus.COMPLETED,
        TaskStatus.CONFIRMED,
        TaskStatus.IN_PROGRESS,
        TaskStatus.REVIEWING,
    }
)

ASSIGNABLE_STATUSES = (TaskStatus.UNASSIGNED, TaskStatus.PENDING)
CANCELLABLE_STATUSES = (
    TaskStatus.UNASSIGNED,
    TaskStatus.PENDING,
    TaskStatus.IN_PROGRESS,
)


def can_transition(from_status: TaskStatus, to_status: TaskStatus) -> bool:
    """Return True if from_status -> to_status is an edge of the lifecycle."""
    return to_status in ALLOWED_TRANSITIONS[from_status]


def require_status(
    task_id: str,
    current: TaskStatus,
    operation: str,
    *allowed: TaskStatus,
) -> None:
    """Raise InvalidTransitionException unless current is one of allowed."""
    if current not in allowed:
        raise InvalidTransitionException(
            task_id, current.value, operation, [s.value for s in allowed]
        )


def require_edge(task_id: str, current: TaskStatus, target: TaskStatus, operation: str) -> None:
    """Raise InvalidTransitionException when current -> target is not in the table."""
    if not can_transition(current, target):
        raise InvalidTransitionException(
            task_id,
            current.value,
            operation,
            sorted(s.value for s in ALLOWED_TRANSITIONS[current]),
        )


def dependency_clears(dependency_type: DependencyType, predecessor: TaskStatus) -> bool:
    """Return True if a predecessor in this status clears the dependent for start.

    Every edge type waits for the predecessor to be done; the type only
    shapes planned dates.
    """
    if dependency_type in (
        DependencyType.FS,
        DependencyType.SS,
        DependencyType.FF,
        DependencyType.SF,
    ):
        return predecessor.is_done
    raise ValueError(f"unhandled dependency type: {dependency_type!r}")
