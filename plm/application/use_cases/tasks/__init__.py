"""Task lifecycle use cases."""

from plm.application.use_cases.tasks.task_workflow import TaskWorkflowService

__all__ = ["TaskWorkflowService"]
