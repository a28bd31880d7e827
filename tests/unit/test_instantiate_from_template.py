"""Template validation and project instantiation."""

from datetime import date

import pytest

from plm.application.dtos.template import (
    TemplateCreate,
    TemplateDependencySpec,
    TemplateOutcomeSpec,
    TemplateTaskSpec,
)
from plm.domain.enums import DependencyType, OutcomeType, ProjectPhase, TaskStatus, TaskType
from plm.domain.exceptions import ResourceNotFoundException, ValidationException

TASKS = [
    TemplateTaskSpec(
        task_code="S",
        name="Drop test",
        phase="evt",
        task_type=TaskType.SUBTASK,
        parent_task_code="A",
    ),
    TemplateTaskSpec(
        task_code="B",
        name="Build",
        phase="EVT",
        estimated_days=2,
        sort_order=1,
    ),
    TemplateTaskSpec(
        task_code="A",
        name="Design review",
        phase="evt",
        estimated_days=3,
        default_assignee_role="pm",
        is_critical=True,
        requires_approval=True,
        approval_type="design_review",
    ),
    TemplateTaskSpec(
        task_code="M1", name="Kickoff", phase="concept", task_type=TaskType.MILESTONE
    ),
]
DEPENDENCIES = [
    TemplateDependencySpec(task_code="B", depends_on_task_code="A", lag_days=1),
    TemplateDependencySpec(
        task_code="S", depends_on_task_code="A", dependency_type=DependencyType.SS
    ),
]


@pytest.fixture
async def template(harness):
    return await harness.templates.create_template(
        TemplateCreate(code="NPI", name="NPI", tasks=TASKS, dependencies=DEPENDENCIES)
    )


async def test_instantiation_creates_phases_tasks_and_edges(harness, template):
    result = await harness.instantiate.execute(
        template.id,
        "Widget v2",
        date(2024, 1, 1),
        skip_weekends=False,
        role_assignments={"pm": "u-pm"},
        project_code="WV2",
        created_by="u-operator",
    )

    assert result.project.template_id == template.id
    assert result.project.code == "WV2"
    assert [p.phase for p in result.phases] == list(ProjectPhase)
    assert [p.sequence for p in result.phases] == [1, 2, 3, 4, 5]
    assert result.task_count == 4
    assert result.dependency_count == 2

    tasks = {
        t.code: t for t in await harness.task_repo.list_by_project(result.project.id)
    }
    assert [t.code for t in sorted(tasks.values(), key=lambda t: t.sequence)] == [
        "M1",
        "A",
        "B",
        "S",
    ]
    phase_ids = {p.phase: p.id for p in result.phases}
    assert tasks["M1"].phase_id == phase_ids[ProjectPhase.CONCEPT]
    assert tasks["B"].phase_id == phase_ids[ProjectPhase.EVT]
    assert tasks["S"].parent_task_id == tasks["A"].id

    a = tasks["A"]
    assert (a.status, a.assignee_id, a.priority) == (TaskStatus.PENDING, "u-pm", "high")
    assert a.requires_approval is True
    assert a.approval_type == "design_review"
    assert (a.planned_start, a.planned_end) == (date(2024, 1, 1), date(2024, 1, 4))
    b = tasks["B"]
    assert (b.status, b.assignee_id, b.priority) == (TaskStatus.UNASSIGNED, None, "medium")
    assert (b.planned_start, b.planned_end) == (date(2024, 1, 5), date(2024, 1, 7))
    assert tasks["S"].planned_start == date(2024, 1, 1)

    edges = await harness.dependency_repo.list_for_task(b.id)
    assert [(e.depends_on_task_id, e.dependency_type, e.lag_days) for e in edges] == [
        (a.id, DependencyType.FS, 1)
    ]


async def test_weekend_skipping_uses_work_days(harness, template):
    result = await harness.instantiate.execute(
        template.id, "Widget", date(2024, 1, 1), skip_weekends=True
    )

    tasks = {t.code: t for t in await harness.task_repo.list_by_project(result.project.id)}
    assert tasks["B"].planned_start == date(2024, 1, 5)
    assert tasks["B"].planned_end == date(2024, 1, 9)
    assert result.project.skip_weekends is True


async def test_dependency_with_unknown_code_is_skipped(harness):
    stored = await harness.template_repo.create(
        TemplateCreate(
            code="T",
            name="T",
            tasks=[TemplateTaskSpec(task_code="A", name="A", phase="evt")],
            dependencies=[TemplateDependencySpec(task_code="A", depends_on_task_code="GHOST")],
        )
    )

    result = await harness.instantiate.execute(
        stored.id, "P", date(2024, 1, 1), skip_weekends=False
    )

    assert result.task_count == 1
    assert result.dependency_count == 0


async def test_cyclic_template_writes_nothing(harness):
    stored = await harness.template_repo.create(
        TemplateCreate(
            code="T",
            name="T",
            tasks=[
                TemplateTaskSpec(task_code="A", name="A", phase="evt"),
                TemplateTaskSpec(task_code="B", name="B", phase="evt"),
            ],
            dependencies=[
                TemplateDependencySpec(task_code="A", depends_on_task_code="B"),
                TemplateDependencySpec(task_code="B", depends_on_task_code="A"),
            ],
        )
    )

    with pytest.raises(ValidationException):
        await harness.instantiate.execute(stored.id, "P", date(2024, 1, 1), skip_weekends=False)
    assert harness.store.projects == {}
    assert harness.store.tasks == {}


async def test_unknown_template(harness):
    with pytest.raises(ResourceNotFoundException):
        await harness.instantiate.execute(
            "tmpl-missing", "P", date(2024, 1, 1), skip_weekends=True
        )


def _template(tasks, dependencies=(), outcomes=()) -> TemplateCreate:
    return TemplateCreate(
        code="T",
        name="T",
        tasks=list(tasks),
        dependencies=list(dependencies),
        outcomes=list(outcomes),
    )


A = TemplateTaskSpec(task_code="A", name="A", phase="evt")
B = TemplateTaskSpec(task_code="B", name="B", phase="dvt")


@pytest.mark.parametrize(
    "candidate",
    [
        _template([A, A]),
        _template([TemplateTaskSpec(task_code="A", name="A", phase="beta")]),
        _template([TemplateTaskSpec(task_code="A", name="A", phase="evt", estimated_days=0)]),
        _template([TemplateTaskSpec(task_code="A", name="A", phase="evt", parent_task_code="Z")]),
        _template([A], [TemplateDependencySpec(task_code="A", depends_on_task_code="Z")]),
        _template([A], [TemplateDependencySpec(task_code="A", depends_on_task_code="A")]),
        _template(
            [A, B],
            [
                TemplateDependencySpec(task_code="A", depends_on_task_code="B"),
                TemplateDependencySpec(task_code="B", depends_on_task_code="A"),
            ],
        ),
        _template(
            [A],
            outcomes=[
                TemplateOutcomeSpec(
                    task_code="Z", outcome_code="pass", name="Pass", outcome_type=OutcomeType.PASS
                )
            ],
        ),
        _template(
            [A],
            outcomes=[
                TemplateOutcomeSpec(
                    task_code="A",
                    outcome_code="fail",
                    name="Fail",
                    outcome_type=OutcomeType.FAIL_ROLLBACK,
                )
            ],
        ),
    ],
    ids=[
        "duplicate-code",
        "unknown-phase",
        "zero-days",
        "unknown-parent",
        "unknown-dependency",
        "self-dependency",
        "cycle",
        "unknown-outcome-task",
        "rollback-without-target",
    ],
)
async def test_invalid_templates_are_rejected(harness, candidate):
    with pytest.raises(ValidationException):
        await harness.templates.create_template(candidate)
    assert harness.store.templates == {}


async def test_get_template(harness, template):
    assert (await harness.templates.get_template(template.id)).code == "NPI"
    with pytest.raises(ResourceNotFoundException):
        await harness.templates.get_template("tmpl-missing")
