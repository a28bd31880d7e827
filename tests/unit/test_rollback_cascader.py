"""Rollback: target back to in_progress, sequence-based cascade inside its phase."""

from dataclasses import replace

import pytest

from plm.application.dtos.task import Actor
from plm.application.dtos.template import TemplateCreate, TemplateOutcomeSpec, TemplateTaskSpec
from plm.domain.enums import OutcomeType, ProjectPhase, TaskAction, TaskStatus
from plm.domain.exceptions import InvalidTransitionException, ResourceNotFoundException

OPERATOR = Actor(id="u-operator")


async def _failure_template(harness, *, cascade: bool = True, rollback_to: str = "W"):
    return await harness.template_repo.create(
        TemplateCreate(
            code="NPI",
            name="NPI",
            tasks=[
                TemplateTaskSpec(task_code=code, name=code, phase="evt")
                for code in ("W", "Y", "X")
            ],
            outcomes=[
                TemplateOutcomeSpec(
                    task_code="X",
                    outcome_code="fail",
                    name="Failed test",
                    outcome_type=OutcomeType.FAIL_ROLLBACK,
                    rollback_to_task_code=rollback_to,
                    rollback_cascade=cascade,
                )
            ],
        )
    )


async def test_review_failure_rolls_back_and_cascades(harness):
    template = await _failure_template(harness)
    project = await harness.project(template_id=template.id)
    phase = await harness.phase(project.id)
    w = await harness.task(
        project.id, "W", status=TaskStatus.COMPLETED, sequence=3, phase_id=phase.id, progress=100
    )
    y = await harness.task(
        project.id, "Y", status=TaskStatus.IN_PROGRESS, sequence=4, phase_id=phase.id, progress=40
    )
    x = await harness.task(
        project.id, "X", status=TaskStatus.REVIEWING, sequence=5, phase_id=phase.id
    )

    result = await harness.workflow.submit_review(x.id, "fail", OPERATOR, "drop test failed")

    assert result.status is TaskStatus.REJECTED
    assert harness.get(w).status is TaskStatus.IN_PROGRESS
    assert harness.get(w).progress == 0
    assert harness.get(w).completed_at is None
    assert harness.get(y).status is TaskStatus.PENDING
    assert harness.get(y).progress == 0
    assert harness.get(x).status is TaskStatus.REJECTED
    assert harness.log_actions(w) == [TaskAction.ROLLBACK]
    assert harness.log_actions(y) == [TaskAction.ROLLBACK]
    assert harness.log_actions(x) == [TaskAction.REJECT]


async def test_cascade_stays_inside_the_phase(harness):
    project = await harness.project()
    evt = await harness.phase(project.id, ProjectPhase.EVT)
    dvt = await harness.phase(project.id, ProjectPhase.DVT)
    trigger = await harness.task(project.id, "T", status=TaskStatus.REJECTED, sequence=9)
    w = await harness.task(
        project.id, "W", status=TaskStatus.COMPLETED, sequence=3, phase_id=evt.id
    )
    earlier = await harness.task(
        project.id, "E", status=TaskStatus.COMPLETED, sequence=2, phase_id=evt.id
    )
    later = await harness.task(
        project.id, "L", status=TaskStatus.CONFIRMED, sequence=6, phase_id=evt.id
    )
    untouched_status = await harness.task(
        project.id, "U", status=TaskStatus.UNASSIGNED, assignee_id=None, sequence=7, phase_id=evt.id
    )
    other_phase = await harness.task(
        project.id, "O", status=TaskStatus.COMPLETED, sequence=8, phase_id=dvt.id
    )

    result = await harness.cascader.rollback(trigger, "W", True, OPERATOR)

    assert result.target.id == w.id
    assert result.reset_task_ids == [later.id]
    assert result.failed_task_ids == []
    assert harness.get(earlier).status is TaskStatus.COMPLETED
    assert harness.get(later).status is TaskStatus.PENDING
    assert harness.get(untouched_status).status is TaskStatus.UNASSIGNED
    assert harness.get(other_phase).status is TaskStatus.COMPLETED
    rollback_log = [r for r in harness.store.logs if r.task_id == w.id][0]
    assert rollback_log.payload == {"triggered_by_task": trigger.id, "cascade": True}


async def test_without_cascade_only_the_target_moves(harness):
    project = await harness.project()
    phase = await harness.phase(project.id)
    trigger = await harness.task(project.id, "T", status=TaskStatus.REJECTED, sequence=9)
    w = await harness.task(
        project.id, "W", status=TaskStatus.COMPLETED, sequence=3, phase_id=phase.id
    )
    y = await harness.task(
        project.id, "Y", status=TaskStatus.IN_PROGRESS, sequence=4, phase_id=phase.id
    )

    result = await harness.cascader.rollback(trigger, "W", False, OPERATOR)

    assert result.reset_task_ids == []
    assert harness.get(w).status is TaskStatus.IN_PROGRESS
    assert harness.get(y).status is TaskStatus.IN_PROGRESS


async def test_failed_reset_is_isolated(harness):
    project = await harness.project()
    phase = await harness.phase(project.id)
    trigger = await harness.task(project.id, "T", status=TaskStatus.REJECTED, sequence=9)
    await harness.task(project.id, "W", status=TaskStatus.COMPLETED, sequence=3, phase_id=phase.id)
    broken = await harness.task(
        project.id, "B", status=TaskStatus.COMPLETED, sequence=4, phase_id=phase.id
    )
    fine = await harness.task(
        project.id, "F", status=TaskStatus.REVIEWING, sequence=5, phase_id=phase.id
    )
    harness.task_repo.fail_transition_for.add(broken.id)

    result = await harness.cascader.rollback(trigger, "W", True, OPERATOR)

    assert result.failed_task_ids == [broken.id]
    assert result.reset_task_ids == [fine.id]
    assert harness.get(broken).status is TaskStatus.COMPLETED
    assert harness.get(fine).status is TaskStatus.PENDING
    assert harness.uow.rolled_back == 1


async def test_cascade_skips_task_changed_concurrently(harness):
    project = await harness.project()
    phase = await harness.phase(project.id)
    trigger = await harness.task(project.id, "T", status=TaskStatus.REJECTED, sequence=9)
    await harness.task(project.id, "W", status=TaskStatus.COMPLETED, sequence=3, phase_id=phase.id)
    raced = await harness.task(
        project.id, "R", status=TaskStatus.IN_PROGRESS, sequence=4, phase_id=phase.id
    )

    def concurrent_writer(task_id: str) -> None:
        if task_id == raced.id:
            current = harness.store.tasks[task_id]
            harness.store.tasks[task_id] = replace(current, version=current.version + 1)

    harness.task_repo.before_transition = concurrent_writer

    result = await harness.cascader.rollback(trigger, "W", True, OPERATOR)

    assert result.reset_task_ids == []
    assert result.failed_task_ids == []
    assert harness.get(raced).status is TaskStatus.IN_PROGRESS


async def test_cancelled_target_is_rejected(harness):
    project = await harness.project()
    trigger = await harness.task(project.id, "T", status=TaskStatus.REJECTED, sequence=9)
    target = await harness.task(project.id, "W", status=TaskStatus.CANCELLED, sequence=3)

    with pytest.raises(InvalidTransitionException):
        await harness.cascader.rollback(trigger, "W", True, OPERATOR)
    assert harness.get(target).status is TaskStatus.CANCELLED


@pytest.mark.parametrize("status", [TaskStatus.UNASSIGNED, TaskStatus.PENDING])
async def test_not_yet_started_target_is_reopened(harness, status):
    project = await harness.project()
    trigger = await harness.task(project.id, "T", status=TaskStatus.REJECTED, sequence=9)
    target = await harness.task(
        project.id, "W", status=status, sequence=3, assignee_id=None, progress=10
    )

    result = await harness.cascader.rollback(trigger, "W", False, OPERATOR)

    assert result.target.status is TaskStatus.IN_PROGRESS
    assert harness.get(target).progress == 0
    assert harness.log_actions(target)[-1] is TaskAction.ROLLBACK


async def test_unknown_target_code(harness):
    project = await harness.project()
    trigger = await harness.task(project.id, "T", status=TaskStatus.IN_PROGRESS)

    with pytest.raises(ResourceNotFoundException):
        await harness.workflow.rollback_task(trigger.id, "NOPE", True, OPERATOR)


async def test_failed_rollback_after_review_keeps_the_rejection(harness):
    template = await _failure_template(harness, rollback_to="W")
    project = await harness.project(template_id=template.id)
    w = await harness.task(project.id, "W", status=TaskStatus.CANCELLED, sequence=3)
    x = await harness.task(project.id, "X", status=TaskStatus.REVIEWING, sequence=5)

    result = await harness.workflow.submit_review(x.id, "fail", OPERATOR)

    assert result.status is TaskStatus.REJECTED
    assert harness.get(x).status is TaskStatus.REJECTED
    assert harness.get(w).status is TaskStatus.CANCELLED
    assert harness.uow.rolled_back == 1
