"""Domain enumerations for the PLM workflow engine.

Every variant set the engine dispatches on is a closed enum. Code that
branches on one of these matches every member explicitly and raises on
anything else, so adding a member forces a decision at each call site.
"""

from enum import Enum

from plm.shared.enums import _ValuesMixin


class TaskStatus(_ValuesMixin, str, Enum):
    """Task lifecycle status. Allowed edges live in plm.domain.entities.task."""

    UNASSIGNED = "unassigned"
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    REVIEWING = "reviewing"
    COMPLETED = "completed"
    REJECTED = "rejected"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"

    @property
    def is_done(self) -> bool:
        """Finished work: completed directly or confirmed by an approval."""
        return self in (TaskStatus.COMPLETED, TaskStatus.CONFIRMED)


class TaskAction(_ValuesMixin, str, Enum):
    """Action recorded in the task action log."""

    CREATE = "create"
    ASSIGN = "assign"
    START = "start"
    COMPLETE = "complete"
    SUBMIT_REVIEW = "submit_review"
    APPROVE = "approve"
    REJECT = "reject"
    CONFIRM = "confirm"
    ROLLBACK = "rollback"
    CANCEL = "cancel"


class TaskType(_ValuesMixin, str, Enum):
    """Task hierarchy level; instantiation creates them in this order."""

    MILESTONE = "milestone"
    TASK = "task"
    SUBTASK = "subtask"


class DependencyType(_ValuesMixin, str, Enum):
    """Dependency edge type (finish/start to finish/start)."""

    FS = "FS"
    SS = "SS"
    FF = "FF"
    SF = "SF"


class ProjectPhase(_ValuesMixin, str, Enum):
    """Hardware development phases created for every instantiated project."""

    CONCEPT = "concept"
    EVT = "evt"
    DVT = "dvt"
    PVT = "pvt"
    MP = "mp"

    @property
    def display_name(self) -> str:
        return "Concept" if self is ProjectPhase.CONCEPT else self.value.upper()


class ApprovalStatus(_ValuesMixin, str, Enum):
    """Approval request status."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    CANCELED = "canceled"


class ReviewerStatus(_ValuesMixin, str, Enum):
    """Single reviewer decision."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class ApprovalDefinitionStatus(_ValuesMixin, str, Enum):
    """Approval definition lifecycle; only published definitions accept submissions."""

    DRAFT = "draft"
    PUBLISHED = "published"


class FlowNodeType(_ValuesMixin, str, Enum):
    """Node kind in an approval flow."""

    SUBMIT = "submit"
    APPROVE = "approve"
    END = "end"


class ApproverType(_ValuesMixin, str, Enum):
    """How an approve node's reviewer set is resolved."""

    DESIGNATED = "designated"
    SELF_SELECT = "self_select"
    SUBMITTER = "submitter"
    SUPERVISOR = "supervisor"
    DEPT_LEADER = "dept_leader"
    ROLE = "role"


class MultiApprovePolicy(_ValuesMixin, str, Enum):
    """How many reviewers at a node must approve. Only ALL is supported."""

    ALL = "all"
    ANY = "any"


class OutcomeType(_ValuesMixin, str, Enum):
    """What a review outcome does to the reviewed task."""

    PASS = "pass"
    FAIL_ROLLBACK = "fail_rollback"
    REJECT = "reject"


class RoutingChannel(_ValuesMixin, str, Enum):
    """Routing policy verdict for a completion that requires approval."""

    HUMAN = "human"
    AUTOMATIC = "automatic"
