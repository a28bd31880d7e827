"""Shared enumerations for the PLM engine.

Cross-cutting enums used by application and infrastructure (actor type,
outbox job state). Workflow-specific enums (task status, approver type,
...) live in plm.domain.enums.
"""

from enum import Enum


class _ValuesMixin:
    """Mixin that adds a values() classmethod to str Enums."""

    @classmethod
    def values(cls) -> list[str]:
        """Return all valid values as strings."""
        return [member.value for member in cls]


class ActorType(_ValuesMixin, str, Enum):
    """Who performed a task action (recorded on every action log row)."""

    USER = "user"
    SYSTEM = "system"
    AGENT = "agent"


class OutboxJobOutcome(_ValuesMixin, str, Enum):
    """Terminal outcome of an outbox job, reported to the job's log line."""

    SUCCEEDED = "succeeded"
    EXHAUSTED = "exhausted"
    REFUSED = "refused"
