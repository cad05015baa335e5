"""Exceptions raised by the workflow engine."""

from __future__ import annotations

from typing import Any, Optional


class MastraError(Exception):
    """Base class for all Mastra errors."""


class WorkflowError(MastraError):
    """Raised for workflow level failures."""


class WorkflowDefinitionError(WorkflowError):
    """The fluent builder was used in a way that cannot produce a valid graph."""


class SchemaValidationError(WorkflowError):
    """Trigger or event data does not match its declared schema."""

    def __init__(self, message: str, errors: Optional[list[dict[str, Any]]] = None):
        super().__init__(message)
        self.errors = errors or []


class StepNotFoundError(WorkflowError):
    """A step id does not exist in the workflow."""


class StepNotSuspendedError(WorkflowError):
    """``resume`` targeted a step that is not currently suspended."""


class EventNotFoundError(WorkflowError):
    """An event name was not declared on the workflow."""


class SnapshotNotFoundError(WorkflowError):
    """No persisted snapshot exists for a run."""


class IllegalTransitionError(WorkflowError):
    """A step state change is not allowed by the transition table."""


class WorkflowNotFoundError(MastraError):
    """No workflow is registered under the requested name."""
