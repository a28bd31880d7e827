"""In-memory fakes for the repository and port protocols.

Repositories share one InMemoryStore so a workflow, its resolver and its
cascader see the same rows. FakeUnitOfWork.savepoint() snapshots the
store and restores it when the block raises, matching SAVEPOINT rollback.
"""

from __future__ import annotations

import copy
import itertools
from collections.abc import Callable
from contextlib import asynccontextmanager
from dataclasses import dataclass, field, replace
from datetime import date, timedelta
from typing import Any

from plm.application.dtos.approval import (
    ApprovalDefinitionResult,
    ApprovalRequestResult,
    ApprovalReviewerResult,
    ReviewerCreate,
)
from plm.application.dtos.project import PhaseResult, ProjectResult, RoleAssignmentResult
from plm.application.dtos.task import (
    Actor,
    TaskActionLogResult,
    TaskCreate,
    TaskDependencyResult,
    TaskResult,
)
from plm.application.dtos.template import TemplateCreate, TemplateOutcomeSpec, TemplateResult
from plm.application.interfaces.services import OutboxJob
from plm.application.services import DependencyResolver, RollbackCascader, TaskSideEffects
from plm.application.use_cases import (
    ApprovalDefinitionService,
    ApprovalRouter,
    InstantiateProjectFromTemplateUseCase,
    TaskWorkflowService,
    TemplateService,
)
from plm.domain.entities.task import require_edge
from plm.domain.enums import (
    ApprovalDefinitionStatus,
    ApprovalStatus,
    DependencyType,
    ProjectPhase,
    ReviewerStatus,
    TaskAction,
    TaskStatus,
    TaskType,
)
from plm.shared.utils.datetime import utc_now

_ids = itertools.count(1)


def _new_id(prefix: str) -> str:
    return f"{prefix}-{next(_ids)}"


class InMemoryStore:
    """All rows the fakes read and write."""

    def __init__(self) -> None:
        self.tasks: dict[str, TaskResult] = {}
        self.dependencies: dict[str, TaskDependencyResult] = {}
        self.logs: list[TaskActionLogResult] = []
        self.projects: dict[str, ProjectResult] = {}
        self.phases: dict[str, PhaseResult] = {}
        self.role_assignments: dict[tuple[str, str, str], RoleAssignmentResult] = {}
        self.templates: dict[str, TemplateResult] = {}
        self.definitions: dict[str, ApprovalDefinitionResult] = {}
        self.requests: dict[str, ApprovalRequestResult] = {}
        self.reviewers: dict[str, ApprovalReviewerResult] = {}

    def snapshot(self) -> dict[str, Any]:
        return {name: copy.copy(value) for name, value in vars(self).items()}

    def restore(self, snapshot: dict[str, Any]) -> None:
        for name, value in snapshot.items():
            setattr(self, name, value)


class FakeUnitOfWork:
    def __init__(self, store: InMemoryStore) -> None:
        self.store = store
        self.savepoints = 0
        self.rolled_back = 0

    @asynccontextmanager
    async def savepoint(self):
        snapshot = self.store.snapshot()
        self.savepoints += 1
        try:
            yield
        except BaseException:
            self.store.restore(snapshot)
            self.rolled_back += 1
            raise


class FakeTaskRepository:
    def __init__(self, store: InMemoryStore) -> None:
        self.store = store
        # Called with the task id before the compare-and-swap; lets a test
        # simulate a concurrent writer.
        self.before_transition: Callable[[str], None] | None = None
        self.fail_transition_for: set[str] = set()

    async def get_by_id(self, task_id: str) -> TaskResult | None:
        return self.store.tasks.get(task_id)

    async def get_by_project_and_code(self, project_id: str, code: str) -> TaskResult | None:
        for task in self.store.tasks.values():
            if task.project_id == project_id and task.code == code:
                return task
        return None

    async def list_by_project(self, project_id: str) -> list[TaskResult]:
        return sorted(
            (t for t in self.store.tasks.values() if t.project_id == project_id),
            key=lambda t: t.sequence,
        )

    async def list_by_phase(self, project_id: str, phase_id: str) -> list[TaskResult]:
        return [t for t in await self.list_by_project(project_id) if t.phase_id == phase_id]

    async def list_unassigned_for_role(
        self, project_id: str, phase_id: str, role_code: str
    ) -> list[TaskResult]:
        return [
            t
            for t in await self.list_by_phase(project_id, phase_id)
            if t.default_assignee_role == role_code
            and t.status is TaskStatus.UNASSIGNED
            and t.assignee_id is None
        ]

    async def create(self, task: TaskCreate) -> TaskResult:
        created = TaskResult(
            id=_new_id("task"),
            project_id=task.project_id,
            phase_id=task.phase_id,
            parent_task_id=task.parent_task_id,
            code=task.code,
            title=task.title,
            description=task.description,
            task_type=task.task_type,
            status=task.status,
            priority=task.priority,
            assignee_id=task.assignee_id,
            assignee_external_ref=task.assignee_external_ref,
            default_assignee_role=task.default_assignee_role,
            requires_approval=task.requires_approval,
            approval_type=task.approval_type,
            auto_create_external_task=task.auto_create_external_task,
            external_task_id=None,
            planned_start=task.planned_start,
            planned_end=task.planned_end,
            actual_start=None,
            completed_at=None,
            progress=0,
            sequence=task.sequence,
            version=1,
            created_by=task.created_by,
            created_at=utc_now(),
        )
        self.store.tasks[created.id] = created
        return created

    async def transition(
        self,
        task: TaskResult,
        new_status: TaskStatus,
        changes: dict[str, Any] | None = None,
    ) -> TaskResult | None:
        require_edge(task.id, task.status, new_status, "transition")
        if task.id in self.fail_transition_for:
            raise RuntimeError(f"write failed for {task.id}")
        if self.before_transition is not None:
            self.before_transition(task.id)
        current = self.store.tasks.get(task.id)
        if current is None or current.status is not task.status or current.version != task.version:
            return None
        updated = replace(
            current,
            status=new_status,
            version=current.version + 1,
            updated_at=utc_now(),
            **(changes or {}),
        )
        self.store.tasks[task.id] = updated
        return updated

    async def set_external_task_id(self, task_id: str, external_task_id: str) -> None:
        task = self.store.tasks[task_id]
        self.store.tasks[task_id] = replace(task, external_task_id=external_task_id)


class FakeTaskDependencyRepository:
    def __init__(self, store: InMemoryStore) -> None:
        self.store = store

    async def list_for_task(self, task_id: str) -> list[TaskDependencyResult]:
        return [d for d in self.store.dependencies.values() if d.task_id == task_id]

    async def list_dependents(self, depends_on_task_id: str) -> list[TaskDependencyResult]:
        return [
            d for d in self.store.dependencies.values() if d.depends_on_task_id == depends_on_task_id
        ]

    async def create(
        self,
        task_id: str,
        depends_on_task_id: str,
        dependency_type: DependencyType,
        lag_days: int,
    ) -> TaskDependencyResult:
        edge = TaskDependencyResult(
            id=_new_id("dep"),
            task_id=task_id,
            depends_on_task_id=depends_on_task_id,
            dependency_type=dependency_type,
            lag_days=lag_days,
        )
        self.store.dependencies[edge.id] = edge
        return edge


class FakeTaskActionLogRepository:
    def __init__(self, store: InMemoryStore) -> None:
        self.store = store

    async def append(
        self,
        task: TaskResult,
        action: TaskAction,
        actor: Actor,
        *,
        from_status: TaskStatus | None,
        to_status: TaskStatus | None,
        payload: dict[str, Any] | None = None,
        comment: str | None = None,
    ) -> TaskActionLogResult:
        row = TaskActionLogResult(
            id=_new_id("log"),
            task_id=task.id,
            project_id=task.project_id,
            action=action,
            from_status=from_status.value if from_status else None,
            to_status=to_status.value if to_status else None,
            actor_id=actor.id,
            actor_type=actor.type,
            payload=payload or {},
            comment=comment,
            created_at=utc_now(),
        )
        self.store.logs.append(row)
        return row

    async def list_for_task(self, task_id: str) -> list[TaskActionLogResult]:
        return [r for r in reversed(self.store.logs) if r.task_id == task_id]


class FakeProjectRepository:
    def __init__(self, store: InMemoryStore) -> None:
        self.store = store

    async def create_project(
        self,
        name: str,
        start_date: date,
        *,
        skip_weekends: bool,
        code: str | None = None,
        template_id: str | None = None,
        created_by: str | None = None,
    ) -> ProjectResult:
        project = ProjectResult(
            id=_new_id("proj"),
            name=name,
            code=code,
            template_id=template_id,
            start_date=start_date,
            skip_weekends=skip_weekends,
            status="active",
            created_by=created_by,
        )
        self.store.projects[project.id] = project
        return project

    async def get_by_id(self, project_id: str) -> ProjectResult | None:
        return self.store.projects.get(project_id)

    async def create_phase(
        self, project_id: str, phase: ProjectPhase, name: str, sequence: int
    ) -> PhaseResult:
        row = PhaseResult(
            id=_new_id("phase"), project_id=project_id, phase=phase, name=name, sequence=sequence
        )
        self.store.phases[row.id] = row
        return row

    async def list_phases(self, project_id: str) -> list[PhaseResult]:
        return sorted(
            (p for p in self.store.phases.values() if p.project_id == project_id),
            key=lambda p: p.sequence,
        )

    async def get_phase(self, phase_id: str) -> PhaseResult | None:
        return self.store.phases.get(phase_id)

    async def upsert_role_assignment(
        self,
        project_id: str,
        phase_id: str,
        role_code: str,
        user_id: str,
        user_external_ref: str | None,
    ) -> RoleAssignmentResult:
        key = (project_id, phase_id, role_code)
        existing = self.store.role_assignments.get(key)
        row = RoleAssignmentResult(
            id=existing.id if existing else _new_id("role"),
            project_id=project_id,
            phase_id=phase_id,
            role_code=role_code,
            user_id=user_id,
            user_external_ref=user_external_ref,
        )
        self.store.role_assignments[key] = row
        return row


class FakeTemplateRepository:
    def __init__(self, store: InMemoryStore) -> None:
        self.store = store

    async def create(self, template: TemplateCreate) -> TemplateResult:
        result = TemplateResult(
            id=_new_id("tmpl"),
            code=template.code,
            name=template.name,
            description=template.description,
            tasks=[replace(t, phase=t.phase.strip().lower()) for t in template.tasks],
            dependencies=list(template.dependencies),
            outcomes=list(template.outcomes),
        )
        self.store.templates[result.id] = result
        return result

    async def get_by_id(self, template_id: str) -> TemplateResult | None:
        return self.store.templates.get(template_id)

    async def get_outcome(
        self, template_id: str, task_code: str, outcome_code: str
    ) -> TemplateOutcomeSpec | None:
        template = self.store.templates.get(template_id)
        if template is None:
            return None
        for outcome in template.outcomes:
            if outcome.task_code == task_code and outcome.outcome_code == outcome_code:
                return outcome
        return None


class FakeApprovalRepository:
    def __init__(self, store: InMemoryStore) -> None:
        self.store = store

    async def create_definition(
        self, code: str, name: str, flow_schema: dict[str, Any]
    ) -> ApprovalDefinitionResult:
        row = ApprovalDefinitionResult(
            id=_new_id("def"),
            code=code,
            name=name,
            flow_schema=flow_schema,
            status=ApprovalDefinitionStatus.DRAFT,
        )
        self.store.definitions[row.id] = row
        return row

    async def get_definition(self, definition_id: str) -> ApprovalDefinitionResult | None:
        return self.store.definitions.get(definition_id)

    async def list_definitions(
        self, status: ApprovalDefinitionStatus | None = None
    ) -> list[ApprovalDefinitionResult]:
        return [
            d for d in self.store.definitions.values() if status is None or d.status is status
        ]

    async def update_definition(
        self,
        definition_id: str,
        *,
        name: str | None = None,
        flow_schema: dict[str, Any] | None = None,
    ) -> ApprovalDefinitionResult | None:
        row = self.store.definitions.get(definition_id)
        if row is None:
            return None
        row = replace(
            row,
            name=row.name if name is None else name,
            flow_schema=row.flow_schema if flow_schema is None else flow_schema,
        )
        self.store.definitions[definition_id] = row
        return row

    async def set_definition_status(
        self, definition_id: str, status: ApprovalDefinitionStatus
    ) -> ApprovalDefinitionResult | None:
        row = self.store.definitions.get(definition_id)
        if row is None:
            return None
        row = replace(row, status=status)
        self.store.definitions[definition_id] = row
        return row

    async def create_request(
        self,
        *,
        title: str,
        requested_by: str,
        current_node: int,
        flow_snapshot: dict[str, Any],
        selected_approvers: dict[str, list[str]],
        definition_id: str | None = None,
        project_id: str | None = None,
        task_id: str | None = None,
        description: str | None = None,
        form_data: dict[str, Any] | None = None,
    ) -> ApprovalRequestResult:
        row = ApprovalRequestResult(
            id=_new_id("appr"),
            title=title,
            status=ApprovalStatus.PENDING,
            requested_by=requested_by,
            current_node=current_node,
            flow_snapshot=flow_snapshot,
            version=1,
            project_id=project_id,
            task_id=task_id,
            definition_id=definition_id,
            description=description,
            form_data=form_data or {},
            selected_approvers=selected_approvers,
            created_at=utc_now(),
        )
        self.store.requests[row.id] = row
        return row

    async def get_request(self, approval_id: str) -> ApprovalRequestResult | None:
        row = self.store.requests.get(approval_id)
        if row is None:
            return None
        return replace(row, reviewers=self._reviewers(approval_id))

    async def list_requests(
        self, status: ApprovalStatus | None = None, skip: int = 0, limit: int = 100
    ) -> list[ApprovalRequestResult]:
        rows = [r for r in self.store.requests.values() if status is None or r.status is status]
        rows.reverse()
        return [await self.get_request(r.id) for r in rows[skip : skip + limit]]

    async def list_pending_for_user(self, user_id: str) -> list[ApprovalRequestResult]:
        found = []
        for row in self.store.requests.values():
            if row.status is not ApprovalStatus.PENDING:
                continue
            if any(
                r.user_id == user_id
                and r.status is ReviewerStatus.PENDING
                and r.node_index == row.current_node
                for r in self._reviewers(row.id)
            ):
                found.append(await self.get_request(row.id))
        return found

    async def add_reviewers(
        self, approval_id: str, reviewers: list[ReviewerCreate]
    ) -> list[ApprovalReviewerResult]:
        rows = [
            ApprovalReviewerResult(
                id=_new_id("rev"),
                approval_id=approval_id,
                user_id=r.user_id,
                node_index=r.node_index,
                node_name=r.node_name,
                sequence=r.sequence,
                status=ReviewerStatus.PENDING,
            )
            for r in reviewers
        ]
        for row in rows:
            self.store.reviewers[row.id] = row
        return rows

    async def decide_reviewer(
        self, reviewer_id: str, status: ReviewerStatus, comment: str | None
    ) -> bool:
        row = self.store.reviewers.get(reviewer_id)
        if row is None or row.status is not ReviewerStatus.PENDING:
            return False
        self.store.reviewers[reviewer_id] = replace(
            row, status=status, comment=comment, decided_at=utc_now()
        )
        return True

    async def claim_request(self, approval_id: str, expected_version: int) -> bool:
        row = self.store.requests.get(approval_id)
        if row is None or row.status is not ApprovalStatus.PENDING or row.version != expected_version:
            return False
        self.store.requests[approval_id] = replace(row, version=row.version + 1)
        return True

    async def advance_node(self, approval_id: str, new_node: int) -> bool:
        row = self.store.requests.get(approval_id)
        if row is None or row.status is not ApprovalStatus.PENDING or row.current_node >= new_node:
            return False
        self.store.requests[approval_id] = replace(row, current_node=new_node)
        return True

    async def finish_request(
        self, approval_id: str, status: ApprovalStatus, result_comment: str | None
    ) -> bool:
        row = self.store.requests.get(approval_id)
        if row is None or row.status is not ApprovalStatus.PENDING:
            return False
        self.store.requests[approval_id] = replace(
            row, status=status, result_comment=result_comment
        )
        return True

    def _reviewers(self, approval_id: str) -> list[ApprovalReviewerResult]:
        return sorted(
            (r for r in self.store.reviewers.values() if r.approval_id == approval_id),
            key=lambda r: (r.node_index, r.sequence),
        )


class RecordingOutbox:
    """IOutbox that keeps jobs until run_all() awaits them."""

    def __init__(self, accept: bool = True) -> None:
        self.accept = accept
        self.jobs: list[tuple[str, OutboxJob]] = []

    def enqueue(self, name: str, job: OutboxJob) -> bool:
        if not self.accept:
            return False
        self.jobs.append((name, job))
        return True

    @property
    def names(self) -> list[str]:
        return [name for name, _ in self.jobs]

    async def run_all(self) -> None:
        jobs, self.jobs = self.jobs, []
        for _, job in jobs:
            await job()


class RecordingTracker:
    def __init__(self) -> None:
        self.created: list[tuple[str, str | None]] = []
        self.completed: list[str] = []

    async def create_task(
        self, summary: str, description: str | None, assignee_ref: str | None
    ) -> str:
        self.created.append((summary, assignee_ref))
        return f"ext-{len(self.created)}"

    async def complete_task(self, external_id: str) -> None:
        self.completed.append(external_id)


class RecordingNotifier:
    def __init__(self) -> None:
        self.sent: list[tuple[str, str, dict[str, Any]]] = []

    async def notify(self, user_ref: str, template: str, payload: dict[str, Any]) -> None:
        self.sent.append((user_ref, template, payload))


class RecordingPublisher:
    def __init__(self) -> None:
        self.events: list[tuple[str, str, str, dict[str, Any]]] = []

    async def publish_task_update(
        self,
        project_id: str,
        task_id: str,
        action: str,
        data: dict[str, Any] | None = None,
    ) -> bool:
        self.events.append((project_id, task_id, action, data or {}))
        return True


class RecordingProcurementHook:
    def __init__(self) -> None:
        self.started: list[str] = []

    async def on_task_started(self, task: TaskResult) -> None:
        self.started.append(task.id)


class StoreExternalIdStore:
    def __init__(self, task_repo: FakeTaskRepository) -> None:
        self.task_repo = task_repo

    async def save_external_task_id(self, task_id: str, external_task_id: str) -> None:
        await self.task_repo.set_external_task_id(task_id, external_task_id)


@dataclass
class Harness:
    """Every engine service wired onto one in-memory store."""

    store: InMemoryStore = field(default_factory=InMemoryStore)
    routing_policy: Any = None

    def __post_init__(self) -> None:
        store = self.store
        self.task_repo = FakeTaskRepository(store)
        self.dependency_repo = FakeTaskDependencyRepository(store)
        self.log_repo = FakeTaskActionLogRepository(store)
        self.project_repo = FakeProjectRepository(store)
        self.template_repo = FakeTemplateRepository(store)
        self.approval_repo = FakeApprovalRepository(store)
        self.uow = FakeUnitOfWork(store)
        self.outbox = RecordingOutbox()
        self.tracker = RecordingTracker()
        self.notifier = RecordingNotifier()
        self.publisher = RecordingPublisher()
        self.procurement = RecordingProcurementHook()
        self.side_effects = TaskSideEffects(
            self.outbox,
            tracker=self.tracker,
            external_id_store=StoreExternalIdStore(self.task_repo),
            notifier=self.notifier,
            procurement_hook=self.procurement,
            publisher=self.publisher,
        )
        self.resolver = DependencyResolver(
            self.task_repo, self.dependency_repo, self.log_repo, self.uow, self.side_effects
        )
        self.cascader = RollbackCascader(self.task_repo, self.log_repo, self.uow, self.side_effects)
        self.workflow = TaskWorkflowService(
            task_repo=self.task_repo,
            log_repo=self.log_repo,
            project_repo=self.project_repo,
            template_repo=self.template_repo,
            resolver=self.resolver,
            cascader=self.cascader,
            side_effects=self.side_effects,
            uow=self.uow,
            routing_policy=self.routing_policy,
        )
        self.approvals = ApprovalRouter(
            self.approval_repo, self.task_repo, self.workflow, self.side_effects
        )
        self.definitions = ApprovalDefinitionService(self.approval_repo)
        self.templates = TemplateService(self.template_repo)
        self.instantiate = InstantiateProjectFromTemplateUseCase(
            self.project_repo, self.template_repo, self.task_repo, self.dependency_repo
        )

    async def project(self, template_id: str | None = None) -> ProjectResult:
        return await self.project_repo.create_project(
            "Widget", date(2024, 1, 1), skip_weekends=True, template_id=template_id
        )

    async def phase(self, project_id: str, phase: ProjectPhase = ProjectPhase.EVT) -> PhaseResult:
        return await self.project_repo.create_phase(project_id, phase, phase.display_name, 2)

    async def task(
        self,
        project_id: str,
        code: str,
        *,
        status: TaskStatus = TaskStatus.PENDING,
        sequence: int = 1,
        phase_id: str | None = None,
        requires_approval: bool = False,
        approval_type: str | None = None,
        auto_create_external_task: bool = False,
        assignee_id: str | None = "u-owner",
        default_assignee_role: str | None = None,
        progress: int = 0,
    ) -> TaskResult:
        created = await self.task_repo.create(
            TaskCreate(
                project_id=project_id,
                code=code,
                title=f"Task {code}",
                task_type=TaskType.TASK,
                status=status,
                sequence=sequence,
                phase_id=phase_id,
                assignee_id=assignee_id,
                default_assignee_role=default_assignee_role,
                requires_approval=requires_approval,
                approval_type=approval_type,
                auto_create_external_task=auto_create_external_task,
                planned_start=date(2024, 1, 1),
                planned_end=date(2024, 1, 1) + timedelta(days=2),
            )
        )
        if progress:
            created = replace(created, progress=progress)
            self.store.tasks[created.id] = created
        return created

    async def depend(
        self,
        task: TaskResult,
        on: TaskResult,
        dependency_type: DependencyType = DependencyType.FS,
    ) -> TaskDependencyResult:
        return await self.dependency_repo.create(task.id, on.id, dependency_type, 0)

    def get(self, task: TaskResult) -> TaskResult:
        return self.store.tasks[task.id]

    def log_actions(self, task: TaskResult) -> list[TaskAction]:
        return [r.action for r in self.store.logs if r.task_id == task.id]
