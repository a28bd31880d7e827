"""Domain entities and lifecycle rules."""

from plm.domain.entities.approval_flow import FlowNode, FlowSchema, parse_flow_schema
from plm.domain.entities.task import (
    ALLOWED_TRANSITIONS,
    CASCADE_RESET_STATUSES,
    can_transition,
    dependency_clears,
)

__all__ = [
    "ALLOWED_TRANSITIONS",
    "CASCADE_RESET_STATUSES",
    "FlowNode",
    "FlowSchema",
    "can_transition",
    "dependency_clears",
    "parse_flow_schema",
]
