import pytest

from plm.domain.entities.task import (
    ALLOWED_TRANSITIONS,
    CASCADE_RESET_STATUSES,
    can_transition,
    dependency_clears,
    require_edge,
    require_status,
)
from plm.domain.enums import DependencyType, ProjectPhase, TaskStatus
from plm.domain.exceptions import (
    DependencyNotSatisfiedException,
    GuardViolationException,
    InvalidTransitionException,
    ResourceNotFoundException,
    ValidationException,
)


def test_every_status_has_a_transition_row():
    assert set(ALLOWED_TRANSITIONS) == set(TaskStatus)


def test_cancelled_is_terminal():
    assert ALLOWED_TRANSITIONS[TaskStatus.CANCELLED] == frozenset()


@pytest.mark.parametrize(
    ("source", "target", "allowed"),
    [
        (TaskStatus.UNASSIGNED, TaskStatus.PENDING, True),
        (TaskStatus.UNASSIGNED, TaskStatus.IN_PROGRESS, True),
        (TaskStatus.PENDING, TaskStatus.IN_PROGRESS, True),
        (TaskStatus.IN_PROGRESS, TaskStatus.REVIEWING, True),
        (TaskStatus.REVIEWING, TaskStatus.CONFIRMED, True),
        (TaskStatus.REVIEWING, TaskStatus.CANCELLED, False),
        (TaskStatus.COMPLETED, TaskStatus.REVIEWING, False),
        (TaskStatus.REJECTED, TaskStatus.IN_PROGRESS, True),
        (TaskStatus.REJECTED, TaskStatus.PENDING, False),
    ],
)
def test_can_transition(source, target, allowed):
    assert can_transition(source, target) is allowed


def test_every_cascade_reset_status_can_reach_pending():
    for status in CASCADE_RESET_STATUSES:
        assert can_transition(status, TaskStatus.PENDING)


def test_require_edge_reports_allowed_targets():
    with pytest.raises(InvalidTransitionException) as exc_info:
        require_edge("t1", TaskStatus.REJECTED, TaskStatus.PENDING, "rollback")

    assert exc_info.value.details["allowed"] == ["in_progress"]
    assert isinstance(exc_info.value, GuardViolationException)


def test_require_status_message():
    with pytest.raises(InvalidTransitionException) as exc_info:
        require_status("t1", TaskStatus.COMPLETED, "start", TaskStatus.PENDING)

    assert str(exc_info.value) == (
        "cannot start task t1 in status completed (expected one of: pending)"
    )


@pytest.mark.parametrize(
    ("dependency_type", "predecessor", "clears"),
    [
        (DependencyType.FS, TaskStatus.COMPLETED, True),
        (DependencyType.FS, TaskStatus.CONFIRMED, True),
        (DependencyType.FS, TaskStatus.REVIEWING, False),
        (DependencyType.FF, TaskStatus.IN_PROGRESS, False),
        (DependencyType.SF, TaskStatus.COMPLETED, True),
        (DependencyType.SS, TaskStatus.IN_PROGRESS, False),
        (DependencyType.SS, TaskStatus.REJECTED, False),
        (DependencyType.SS, TaskStatus.CONFIRMED, True),
        (DependencyType.SS, TaskStatus.PENDING, False),
        (DependencyType.SS, TaskStatus.CANCELLED, False),
    ],
)
def test_dependency_clears(dependency_type, predecessor, clears):
    assert dependency_clears(dependency_type, predecessor) is clears


def test_exception_bodies():
    assert ValidationException("bad", field="tasks").to_dict() == {
        "error": "VALIDATION_ERROR",
        "message": "bad",
        "details": {"field": "tasks"},
    }
    assert ResourceNotFoundException("task", "t9").to_dict()["details"] == {
        "resource_type": "task",
        "resource_id": "t9",
    }
    blocked = DependencyNotSatisfiedException("t2", "t1", "Design", "pending", "FS")
    assert blocked.error_code == "DEPENDENCY_NOT_SATISFIED"
    assert "[Design]" in blocked.message


def test_phase_display_names():
    assert [p.display_name for p in ProjectPhase] == ["Concept", "EVT", "DVT", "PVT", "MP"]
