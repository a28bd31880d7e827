"""Dependency clearance on start and chain activation after finish."""

from dataclasses import replace

import pytest

from plm.application.dtos.task import Actor
from plm.domain.enums import DependencyType, TaskAction, TaskStatus
from plm.domain.exceptions import DependencyNotSatisfiedException
from plm.shared.enums import ActorType

from tests.fakes import Harness

OPERATOR = Actor(id="u-operator")


@pytest.fixture
async def project_id(harness: Harness) -> str:
    return (await harness.project()).id


async def test_start_blocked_by_unfinished_fs_predecessor(harness, project_id):
    a = await harness.task(project_id, "A", status=TaskStatus.IN_PROGRESS)
    b = await harness.task(project_id, "B", sequence=2)
    await harness.depend(b, a)

    with pytest.raises(DependencyNotSatisfiedException) as exc_info:
        await harness.workflow.start_task(b.id, OPERATOR)

    assert exc_info.value.details["predecessor_id"] == a.id
    assert harness.get(b).status is TaskStatus.PENDING
    assert harness.get(b).version == b.version


@pytest.mark.parametrize("status", [TaskStatus.IN_PROGRESS, TaskStatus.REVIEWING])
async def test_ss_predecessor_must_be_done_before_start(harness, project_id, status):
    a = await harness.task(project_id, "A", status=status)
    b = await harness.task(project_id, "B", sequence=2)
    await harness.depend(b, a, DependencyType.SS)

    with pytest.raises(DependencyNotSatisfiedException):
        await harness.workflow.start_task(b.id, OPERATOR)


async def test_completing_predecessor_starts_dependent(harness, project_id):
    a = await harness.task(project_id, "A", status=TaskStatus.IN_PROGRESS)
    b = await harness.task(project_id, "B", sequence=2)
    await harness.depend(b, a)

    await harness.workflow.complete_task(a.id, OPERATOR)

    b_now = harness.get(b)
    assert b_now.status is TaskStatus.IN_PROGRESS
    auto_start = [r for r in harness.store.logs if r.task_id == b.id][-1]
    assert auto_start.action is TaskAction.START
    assert auto_start.actor_type is ActorType.SYSTEM
    assert auto_start.payload == {"auto_started": True, "completed_dep_task": a.id}
    assert f"procurement.task_started:{b.id}" in harness.side_effects.pending_names


async def test_dependent_with_other_open_dependency_stays_pending(harness, project_id):
    a = await harness.task(project_id, "A", status=TaskStatus.IN_PROGRESS)
    c = await harness.task(project_id, "C", status=TaskStatus.IN_PROGRESS, sequence=2)
    b = await harness.task(project_id, "B", sequence=3)
    await harness.depend(b, a)
    await harness.depend(b, c)

    await harness.workflow.complete_task(a.id, OPERATOR)

    assert harness.get(b).status is TaskStatus.PENDING


async def test_ss_predecessor_confirmed_clears_start(harness, project_id):
    a = await harness.task(project_id, "A", status=TaskStatus.CONFIRMED)
    b = await harness.task(project_id, "B", sequence=2)
    await harness.depend(b, a, DependencyType.SS)

    started = await harness.workflow.start_task(b.id, OPERATOR)

    assert started.status is TaskStatus.IN_PROGRESS
    assert started.actual_start is not None


async def test_activation_is_one_hop(harness, project_id):
    a = await harness.task(project_id, "A", status=TaskStatus.IN_PROGRESS)
    b = await harness.task(project_id, "B", sequence=2)
    c = await harness.task(project_id, "C", sequence=3)
    await harness.depend(b, a)
    await harness.depend(c, b, DependencyType.SS)

    await harness.workflow.complete_task(a.id, OPERATOR)

    assert harness.get(b).status is TaskStatus.IN_PROGRESS
    assert harness.get(c).status is TaskStatus.PENDING


async def test_start_does_not_activate_dependents(harness, project_id):
    a = await harness.task(project_id, "A")
    fs = await harness.task(project_id, "FS", sequence=2)
    ss = await harness.task(project_id, "SS", sequence=3)
    await harness.depend(fs, a)
    await harness.depend(ss, a, DependencyType.SS)

    await harness.workflow.start_task(a.id, OPERATOR)

    assert harness.get(ss).status is TaskStatus.PENDING
    assert harness.get(fs).status is TaskStatus.PENDING


async def test_completion_activates_ss_dependents(harness, project_id):
    a = await harness.task(project_id, "A", status=TaskStatus.IN_PROGRESS)
    ss = await harness.task(project_id, "SS", sequence=2)
    await harness.depend(ss, a, DependencyType.SS)

    await harness.workflow.complete_task(a.id, OPERATOR)

    assert harness.get(ss).status is TaskStatus.IN_PROGRESS


async def test_failing_dependent_does_not_stop_the_others(harness, project_id):
    a = await harness.task(project_id, "A", status=TaskStatus.COMPLETED)
    b1 = await harness.task(project_id, "B1", sequence=2)
    b2 = await harness.task(project_id, "B2", sequence=3)
    await harness.depend(b1, a)
    await harness.depend(b2, a)
    harness.task_repo.fail_transition_for.add(b1.id)

    activated = await harness.resolver.check_and_start_dependent_tasks(harness.get(a))

    assert activated == [b2.id]
    assert harness.get(b1).status is TaskStatus.PENDING
    assert harness.get(b2).status is TaskStatus.IN_PROGRESS
    assert harness.uow.rolled_back == 1


async def test_lost_race_skips_dependent(harness, project_id):
    a = await harness.task(project_id, "A", status=TaskStatus.COMPLETED)
    b = await harness.task(project_id, "B", sequence=2)
    await harness.depend(b, a)

    def concurrent_writer(task_id: str) -> None:
        current = harness.store.tasks[task_id]
        harness.store.tasks[task_id] = replace(current, version=current.version + 1)

    harness.task_repo.before_transition = concurrent_writer

    activated = await harness.resolver.check_and_start_dependent_tasks(harness.get(a))

    assert activated == []
    assert harness.get(b).status is TaskStatus.PENDING
    assert TaskAction.START not in harness.log_actions(b)
