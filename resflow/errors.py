"""Exception hierarchy raised by the workflow engine."""

from __future__ import annotations

from typing import Iterable, Optional


class ResflowError(Exception):
    """Base class for all engine errors."""


class UnknownTemplateError(ResflowError):
    """No template is registered for the requested workflow type."""

    def __init__(self, workflow_type: str) -> None:
        super().__init__(f"Unknown workflow type: {workflow_type!r}")
        self.workflow_type = workflow_type


class NotFoundError(ResflowError, LookupError):
    """Unknown workflow or step identifier."""


class InvalidStepStateError(ResflowError):
    """The targeted step is not currently actionable."""

    def __init__(
        self, message: str, workflow_id: Optional[str] = None, step_id: Optional[str] = None
    ) -> None:
        super().__init__(message)
        self.workflow_id = workflow_id
        self.step_id = step_id


class StepValidationError(InvalidStepStateError):
    """A manual step payload is missing required fields."""

    def __init__(
        self, workflow_id: str, step_id: str, missing_fields: Iterable[str]
    ) -> None:
        self.missing_fields = list(missing_fields)
        super().__init__(
            f"Step {step_id} is missing required fields: {', '.join(self.missing_fields)}",
            workflow_id=workflow_id,
            step_id=step_id,
        )


class WorkflowTerminatedError(ResflowError):
    """The workflow already reached a terminal status."""

    def __init__(self, workflow_id: str, status: str) -> None:
        super().__init__(f"Workflow {workflow_id} is {status}; no further transitions")
        self.workflow_id = workflow_id
        self.status = status


class StepExecutionError(ResflowError):
    """Raised by step actions to fail the step they run for."""
