"""Domain exceptions for the PLM workflow engine.

Business rule violations raised by the domain and application layers.
Independent of infrastructure; the presentation layer maps error_code to
an HTTP status in plm.core.exception_handlers.
"""

from typing import Any


class PlmException(Exception):
    """Base exception for all engine errors.

    Attributes:
        message: Human-readable error description.
        error_code: Machine-readable error code.
        details: Additional error context (e.g. task_id, status).
    """

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize the exception.

        Args:
            message: Human-readable error description.
            error_code: Optional machine-readable code; defaults to class name.
            details: Optional dict of extra context.
        """
        self.message = message
        self.error_code = error_code or self.__class__.__name__
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        """Serialize for an error response body."""
        return {
            "error": self.error_code,
            "message": self.message,
            "details": self.details,
        }


class ValidationException(PlmException):
    """Raised when input validation fails (e.g. malformed flow schema, dependency cycle)."""

    def __init__(self, message: str, field: str | None = None) -> None:
        """Initialize with message and optional field name.

        Args:
            message: Description of the validation failure.
            field: Optional field or attribute that failed validation.
        """
        details = {"field": field} if field else {}
        super().__init__(message, "VALIDATION_ERROR", details)


class ResourceNotFoundException(PlmException):
    """Raised when a task, project, template or approval lookup fails."""

    def __init__(self, resource_type: str, resource_id: str) -> None:
        """Initialize with resource type and id.

        Args:
            resource_type: Type of resource (e.g. 'task', 'template').
            resource_id: The ID (or code) that was not found.
        """
        super().__init__(
            f"{resource_type} not found: {resource_id}",
            "RESOURCE_NOT_FOUND",
            {"resource_type": resource_type, "resource_id": resource_id},
        )


class GuardViolationException(PlmException):
    """Raised when an operation's precondition does not hold. Nothing is written."""

    def __init__(
        self,
        message: str,
        error_code: str = "GUARD_VIOLATION",
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, error_code, details)


class InvalidTransitionException(GuardViolationException):
    """Raised when a task is not in a status the operation accepts."""

    def __init__(
        self,
        task_id: str,
        current_status: str,
        operation: str,
        allowed: list[str] | None = None,
    ) -> None:
        """Initialize with task, its status and the attempted operation.

        Args:
            task_id: Task being transitioned.
            current_status: Status the task is in.
            operation: Operation attempted (e.g. 'start').
            allowed: Statuses the operation accepts.
        """
        expected = f" (expected one of: {', '.join(allowed)})" if allowed else ""
        super().__init__(
            f"cannot {operation} task {task_id} in status {current_status}{expected}",
            "INVALID_TRANSITION",
            {
                "task_id": task_id,
                "status": current_status,
                "operation": operation,
                "allowed": allowed or [],
            },
        )


class DependencyNotSatisfiedException(GuardViolationException):
    """Raised when a predecessor task does not clear the task for start."""

    def __init__(
        self,
        task_id: str,
        predecessor_id: str,
        predecessor_title: str,
        predecessor_status: str,
        dependency_type: str,
    ) -> None:
        super().__init__(
            f"predecessor [{predecessor_title}] not cleared ({predecessor_status}, {dependency_type})",
            "DEPENDENCY_NOT_SATISFIED",
            {
                "task_id": task_id,
                "predecessor_id": predecessor_id,
                "predecessor_status": predecessor_status,
                "dependency_type": dependency_type,
            },
        )


class ApproverResolutionException(GuardViolationException):
    """Raised when an approve node's reviewer set cannot be resolved."""

    def __init__(self, node_index: int, approver_type: str, reason: str) -> None:
        super().__init__(
            f"approval node {node_index} ({approver_type}): {reason}",
            "APPROVER_RESOLUTION_FAILED",
            {"node_index": node_index, "approver_type": approver_type},
        )


class ConcurrencyConflictException(PlmException):
    """Raised when a concurrent request won the compare-and-swap on a row (optimistic lock)."""

    def __init__(self, resource_type: str, resource_id: str) -> None:
        super().__init__(
            f"{resource_type} {resource_id} was modified by another request; retry.",
            "CONCURRENCY_CONFLICT",
            {"resource_type": resource_type, "resource_id": resource_id},
        )


class SqlNotConfiguredException(PlmException):
    """Raised when the relational store is not configured."""

    def __init__(self) -> None:
        super().__init__(
            "Database not configured. Set DATABASE_URL.",
            error_code="SERVICE_UNAVAILABLE",
        )
