"""Graph based workflows: steps, conditions, runs and snapshots."""

from .agent_step import agent_step
from .errors import (
    EventNotFoundError,
    IllegalTransitionError,
    MastraError,
    SchemaValidationError,
    SnapshotNotFoundError,
    StepNotFoundError,
    StepNotSuspendedError,
    WorkflowDefinitionError,
    WorkflowError,
    WorkflowNotFoundError,
)
from .instance import WorkflowInstance
from .models import (
    ActivePath,
    StepFailure,
    StepSkipped,
    StepSuccess,
    StepSuspended,
    StepWaiting,
    WhenConditionReturnValue,
    WorkflowContext,
    WorkflowResumeResult,
    WorkflowRunResult,
    WorkflowRunState,
)
from .settings import WorkflowSettings
from .step import RetryConfig, Step, StepExecutionContext
from .workflow import Workflow

__all__ = [
    "ActivePath",
    "EventNotFoundError",
    "IllegalTransitionError",
    "MastraError",
    "RetryConfig",
    "SchemaValidationError",
    "SnapshotNotFoundError",
    "Step",
    "StepExecutionContext",
    "StepFailure",
    "StepNotFoundError",
    "StepNotSuspendedError",
    "StepSkipped",
    "StepSuccess",
    "StepSuspended",
    "StepWaiting",
    "WhenConditionReturnValue",
    "Workflow",
    "WorkflowContext",
    "WorkflowDefinitionError",
    "WorkflowError",
    "WorkflowInstance",
    "WorkflowNotFoundError",
    "WorkflowResumeResult",
    "WorkflowRunResult",
    "WorkflowRunState",
    "WorkflowSettings",
    "agent_step",
]
