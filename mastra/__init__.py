"""Mastra: graph based, suspendable workflows for Python."""

from .config import MastraConfig, load_config
from .mastra import Mastra
from .storage import get_snapshot_store
from .telemetry import LoggingTelemetry, Telemetry
from .workflows import (
    RetryConfig,
    Step,
    StepExecutionContext,
    WhenConditionReturnValue,
    Workflow,
    WorkflowContext,
    WorkflowInstance,
    WorkflowRunState,
    agent_step,
)

__version__ = "0.1.0"
__all__ = [
    "LoggingTelemetry",
    "Mastra",
    "MastraConfig",
    "RetryConfig",
    "Step",
    "StepExecutionContext",
    "Telemetry",
    "WhenConditionReturnValue",
    "Workflow",
    "WorkflowContext",
    "WorkflowInstance",
    "WorkflowRunState",
    "agent_step",
    "get_snapshot_store",
    "load_config",
]
