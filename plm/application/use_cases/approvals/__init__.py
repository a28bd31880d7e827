"""Approval use cases."""

from plm.application.use_cases.approvals.approval_definitions import ApprovalDefinitionService
from plm.application.use_cases.approvals.approval_router import ApprovalRouter, resolve_approvers

__all__ = ["ApprovalDefinitionService", "ApprovalRouter", "resolve_approvers"]
