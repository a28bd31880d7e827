"""create plm workflow schema

Revision ID: a1c4e7f20b93
Revises:
Create Date: 2026-10-18 09:12:41.306514

"""

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = "a1c4e7f20b93"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

TASK_STATUSES = (
    "unassigned",
    "pending",
    "in_progress",
    "reviewing",
    "completed",
    "rejected",
    "confirmed",
    "cancelled",
)
TASK_TYPES = ("milestone", "task", "subtask")
TASK_ACTIONS = (
    "create",
    "assign",
    "start",
    "complete",
    "submit_review",
    "approve",
    "reject",
    "confirm",
    "rollback",
    "cancel",
)
DEPENDENCY_TYPES = ("FS", "SS", "FF", "SF")
PHASES = ("concept", "evt", "dvt", "pvt", "mp")
OUTCOME_TYPES = ("pass", "fail_rollback", "reject")
ACTOR_TYPES = ("user", "system", "agent")


def _in(column: str, values: Sequence[str]) -> str:
    return "{} IN ({})".format(column, ", ".join(f"'{v}'" for v in values))


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
    ]


def upgrade() -> None:
    """Upgrade schema - templates, projects, tasks, action log and approvals."""
    op.create_table(
        "project_template",
        sa.Column("id", sa.String(), nullable=False),
        sa.Column("code", sa.String(64), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("code"),
    )
    op.create_table(
        "template_task",
        sa.Column("id", sa.String(), nullable=False),
        sa.Column("template_id", sa.String(), nullable=False),
        sa.Column("task_code", sa.String(64), nullable=False),
        sa.Column("name", sa.String(500), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("phase", sa.String(16), nullable=False),
        sa.Column("parent_task_code", sa.String(64), nullable=True),
        sa.Column("task_type", sa.String(16), nullable=False),
        sa.Column("default_assignee_role", sa.String(64), nullable=True),
        sa.Column("estimated_days", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("is_critical", sa.Boolean(), nullable=False, server_default="false"),
        sa.Column("requires_approval", sa.Boolean(), nullable=False, server_default="false"),
        sa.Column("approval_type", sa.String(64), nullable=True),
        sa.Column(
            "auto_create_external_task", sa.Boolean(), nullable=False, server_default="false"
        ),
        sa.Column("sort_order", sa.Integer(), nullable=False, server_default="0"),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["template_id"], ["project_template.id"], ondelete="CASCADE"),
        sa.UniqueConstraint("template_id", "task_code", name="uq_template_task_code"),
        sa.CheckConstraint(_in("task_type", TASK_TYPES), name="template_task_type_check"),
    )
    op.create_index("ix_template_task_template_id", "template_task", ["template_id"])
    op.create_table(
        "template_task_dependency",
        sa.Column("id", sa.String(), nullable=False),
        sa.Column("template_id", sa.String(), nullable=False),
        sa.Column("task_code", sa.String(64), nullable=False),
        sa.Column("depends_on_task_code", sa.String(64), nullable=False),
        sa.Column("dependency_type", sa.String(2), nullable=False),
        sa.Column("lag_days", sa.Integer(), nullable=False, server_default="0"),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["template_id"], ["project_template.id"], ondelete="CASCADE"),
        sa.CheckConstraint(
            _in("dependency_type", DEPENDENCY_TYPES),
            name="template_task_dependency_type_check",
        ),
    )
    op.create_index(
        "ix_template_task_dependency_template_id", "template_task_dependency", ["template_id"]
    )
    op.create_table(
        "template_task_outcome",
        sa.Column("id", sa.String(), nullable=False),
        sa.Column("template_id", sa.String(), nullable=False),
        sa.Column("task_code", sa.String(64), nullable=False),
        sa.Column("outcome_code", sa.String(64), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("outcome_type", sa.String(16), nullable=False),
        sa.Column("rollback_to_task_code", sa.String(64), nullable=True),
        sa.Column("rollback_cascade", sa.Boolean(), nullable=False, server_default="false"),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["template_id"], ["project_template.id"], ondelete="CASCADE"),
        sa.UniqueConstraint(
            "template_id", "task_code", "outcome_code", name="uq_template_task_outcome"
        ),
        sa.CheckConstraint(
            _in("outcome_type", OUTCOME_TYPES), name="template_task_outcome_type_check"
        ),
    )
    op.create_index(
        "ix_template_task_outcome_template_id", "template_task_outcome", ["template_id"]
    )

    op.create_table(
        "project",
        sa.Column("id", sa.String(), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("code", sa.String(64), nullable=True),
        sa.Column("template_id", sa.String(), nullable=True),
        sa.Column("start_date", sa.Date(), nullable=False),
        sa.Column("skip_weekends", sa.Boolean(), nullable=False, server_default="true"),
        sa.Column("status", sa.String(32), nullable=False, server_default="active"),
        sa.Column("created_by", sa.String(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["template_id"], ["project_template.id"], ondelete="SET NULL"),
    )
    op.create_index("ix_project_code", "project", ["code"])
    op.create_table(
        "project_phase",
        sa.Column("id", sa.String(), nullable=False),
        sa.Column("project_id", sa.String(), nullable=False),
        sa.Column("phase", sa.String(16), nullable=False),
        sa.Column("name", sa.String(64), nullable=False),
        sa.Column("sequence", sa.Integer(), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["project_id"], ["project.id"], ondelete="CASCADE"),
        sa.UniqueConstraint("project_id", "phase", name="uq_project_phase"),
        sa.CheckConstraint(_in("phase", PHASES), name="project_phase_phase_check"),
    )
    op.create_index("ix_project_phase_project_id", "project_phase", ["project_id"])
    op.create_table(
        "project_role_assignment",
        sa.Column("id", sa.String(), nullable=False),
        sa.Column("project_id", sa.String(), nullable=False),
        sa.Column("phase_id", sa.String(), nullable=False),
        sa.Column("role_code", sa.String(64), nullable=False),
        sa.Column("user_id", sa.String(), nullable=False),
        sa.Column("user_external_ref", sa.String(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["project_id"], ["project.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["phase_id"], ["project_phase.id"], ondelete="CASCADE"),
        sa.UniqueConstraint(
            "project_id", "phase_id", "role_code", name="uq_project_role_assignment"
        ),
    )
    op.create_index(
        "ix_project_role_assignment_phase",
        "project_role_assignment",
        ["project_id", "phase_id"],
    )

    op.create_table(
        "task",
        sa.Column("id", sa.String(), nullable=False),
        sa.Column("project_id", sa.String(), nullable=False),
        sa.Column("phase_id", sa.String(), nullable=True),
        sa.Column("parent_task_id", sa.String(), nullable=True),
        sa.Column("code", sa.String(64), nullable=False),
        sa.Column("title", sa.String(500), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("task_type", sa.String(16), nullable=False),
        sa.Column("status", sa.String(32), nullable=False, server_default="unassigned"),
        sa.Column("priority", sa.String(16), nullable=False, server_default="medium"),
        sa.Column("assignee_id", sa.String(), nullable=True),
        sa.Column("assignee_external_ref", sa.String(), nullable=True),
        sa.Column("default_assignee_role", sa.String(64), nullable=True),
        sa.Column("requires_approval", sa.Boolean(), nullable=False, server_default="false"),
        sa.Column("approval_type", sa.String(64), nullable=True),
        sa.Column(
            "auto_create_external_task", sa.Boolean(), nullable=False, server_default="false"
        ),
        sa.Column("external_task_id", sa.String(), nullable=True),
        sa.Column("planned_start", sa.Date(), nullable=True),
        sa.Column("planned_end", sa.Date(), nullable=True),
        sa.Column("actual_start", sa.DateTime(timezone=True), nullable=True),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("progress", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("sequence", sa.Integer(), nullable=False),
        sa.Column("version", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("created_by", sa.String(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["project_id"], ["project.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["phase_id"], ["project_phase.id"], ondelete="SET NULL"),
        sa.ForeignKeyConstraint(["parent_task_id"], ["task.id"], ondelete="SET NULL"),
        sa.UniqueConstraint("project_id", "code", name="uq_task_project_code"),
        sa.CheckConstraint(_in("status", TASK_STATUSES), name="task_status_check"),
        sa.CheckConstraint(_in("task_type", TASK_TYPES), name="task_type_check"),
        sa.CheckConstraint("progress BETWEEN 0 AND 100", name="task_progress_check"),
    )
    op.create_index("ix_task_project_id", "task", ["project_id"])
    op.create_index("ix_task_assignee_id", "task", ["assignee_id"])
    op.create_index("ix_task_phase_sequence", "task", ["project_id", "phase_id", "sequence"])
    op.create_table(
        "task_dependency",
        sa.Column("id", sa.String(), nullable=False),
        sa.Column("task_id", sa.String(), nullable=False),
        sa.Column("depends_on_task_id", sa.String(), nullable=False),
        sa.Column("dependency_type", sa.String(2), nullable=False),
        sa.Column("lag_days", sa.Integer(), nullable=False, server_default="0"),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["task_id"], ["task.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["depends_on_task_id"], ["task.id"], ondelete="CASCADE"),
        sa.UniqueConstraint("task_id", "depends_on_task_id", name="uq_task_dependency_pair"),
        sa.CheckConstraint(
            _in("dependency_type", DEPENDENCY_TYPES), name="task_dependency_type_check"
        ),
    )
    op.create_index("ix_task_dependency_task_id", "task_dependency", ["task_id"])
    op.create_index(
        "ix_task_dependency_depends_on_task_id", "task_dependency", ["depends_on_task_id"]
    )
    op.create_table(
        "task_action_log",
        sa.Column("id", sa.String(), nullable=False),
        sa.Column("task_id", sa.String(), nullable=False),
        sa.Column("project_id", sa.String(), nullable=False),
        sa.Column("action", sa.String(32), nullable=False),
        sa.Column("from_status", sa.String(32), nullable=True),
        sa.Column("to_status", sa.String(32), nullable=True),
        sa.Column("actor_id", sa.String(), nullable=False),
        sa.Column("actor_type", sa.String(16), nullable=False),
        sa.Column("payload", sa.JSON(), nullable=True),
        sa.Column("comment", sa.Text(), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.Column("seq", sa.BigInteger(), sa.Identity(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["task_id"], ["task.id"], ondelete="CASCADE"),
        sa.CheckConstraint(_in("action", TASK_ACTIONS), name="task_action_log_action_check"),
        sa.CheckConstraint(
            _in("actor_type", ACTOR_TYPES), name="task_action_log_actor_type_check"
        ),
    )
    op.create_index("ix_task_action_log_project_id", "task_action_log", ["project_id"])
    op.create_index("ix_task_action_log_task_seq", "task_action_log", ["task_id", "seq"])

    op.create_table(
        "approval_definition",
        sa.Column("id", sa.String(), nullable=False),
        sa.Column("code", sa.String(64), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("flow_schema", sa.JSON(), nullable=False),
        sa.Column("status", sa.String(16), nullable=False, server_default="draft"),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("code"),
        sa.CheckConstraint(
            _in("status", ("draft", "published")), name="approval_definition_status_check"
        ),
    )
    op.create_table(
        "approval_request",
        sa.Column("id", sa.String(), nullable=False),
        sa.Column("project_id", sa.String(), nullable=True),
        sa.Column("task_id", sa.String(), nullable=True),
        sa.Column("definition_id", sa.String(), nullable=True),
        sa.Column("title", sa.String(500), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("form_data", sa.JSON(), nullable=True),
        sa.Column("status", sa.String(16), nullable=False, server_default="pending"),
        sa.Column("result_comment", sa.Text(), nullable=True),
        sa.Column("requested_by", sa.String(), nullable=False),
        sa.Column("current_node", sa.Integer(), nullable=False),
        sa.Column("flow_snapshot", sa.JSON(), nullable=False),
        sa.Column("selected_approvers", sa.JSON(), nullable=True),
        sa.Column("version", sa.Integer(), nullable=False, server_default="1"),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["project_id"], ["project.id"], ondelete="SET NULL"),
        sa.ForeignKeyConstraint(["task_id"], ["task.id"], ondelete="SET NULL"),
        sa.ForeignKeyConstraint(
            ["definition_id"], ["approval_definition.id"], ondelete="SET NULL"
        ),
        sa.CheckConstraint(
            _in("status", ("pending", "approved", "rejected", "canceled")),
            name="approval_request_status_check",
        ),
    )
    op.create_index("ix_approval_request_project_id", "approval_request", ["project_id"])
    op.create_index("ix_approval_request_task_id", "approval_request", ["task_id"])
    op.create_index("ix_approval_request_status", "approval_request", ["status"])
    op.create_index("ix_approval_request_requested_by", "approval_request", ["requested_by"])
    op.create_table(
        "approval_reviewer",
        sa.Column("id", sa.String(), nullable=False),
        sa.Column("approval_id", sa.String(), nullable=False),
        sa.Column("user_id", sa.String(), nullable=False),
        sa.Column("node_index", sa.Integer(), nullable=False),
        sa.Column("node_name", sa.String(255), nullable=False),
        sa.Column("sequence", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("status", sa.String(16), nullable=False, server_default="pending"),
        sa.Column("comment", sa.Text(), nullable=True),
        sa.Column("decided_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["approval_id"], ["approval_request.id"], ondelete="CASCADE"),
        sa.CheckConstraint(
            _in("status", ("pending", "approved", "rejected")),
            name="approval_reviewer_status_check",
        ),
    )
    op.create_index(
        "ix_approval_reviewer_approval_node", "approval_reviewer", ["approval_id", "node_index"]
    )
    op.create_index(
        "ix_approval_reviewer_user_status", "approval_reviewer", ["user_id", "status"]
    )


def downgrade() -> None:
    """Downgrade schema - drop all workflow tables."""
    for table in (
        "approval_reviewer",
        "approval_request",
        "approval_definition",
        "task_action_log",
        "task_dependency",
        "task",
        "project_role_assignment",
        "project_phase",
        "project",
        "template_task_outcome",
        "template_task_dependency",
        "template_task",
        "project_template",
    ):
        op.drop_table(table)
