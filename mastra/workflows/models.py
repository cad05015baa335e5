"""Core data contracts for workflow runs and their snapshots."""

from __future__ import annotations

import time
from enum import Enum
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

TRIGGER = "trigger"


class WhenConditionReturnValue(str, Enum):
    """Control values a ``when`` function may return instead of a bool."""

    CONTINUE = "continue"
    CONTINUE_FAILED = "continue_failed"
    ABORT = "abort"
    LIMBO = "limbo"


class ContractModel(BaseModel):
    """Base model serialized with the camelCase keys of the snapshot format."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class StepSuccess(ContractModel):
    status: Literal["success"] = "success"
    output: Any = None


class StepFailure(ContractModel):
    status: Literal["failed"] = "failed"
    error: str


class StepSuspended(ContractModel):
    status: Literal["suspended"] = "suspended"
    suspend_payload: Any = None


class StepWaiting(ContractModel):
    status: Literal["waiting"] = "waiting"


class StepSkipped(ContractModel):
    status: Literal["skipped"] = "skipped"


StepResult = Annotated[
    Union[StepSuccess, StepFailure, StepSuspended, StepWaiting, StepSkipped],
    Field(discriminator="status"),
]

TERMINAL_RESULT_STATUSES = frozenset({"success", "failed", "skipped"})


class WorkflowContext(BaseModel):
    """Mutable per-run state shared with conditions and step handlers.

    Handlers and conditions always receive a copy, so writes made by user
    code never reach the run itself.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    steps: Dict[str, StepResult] = Field(default_factory=dict)
    trigger_data: Dict[str, Any] = Field(default_factory=dict)
    input_data: Dict[str, Any] = Field(default_factory=dict)
    attempts: Dict[str, int] = Field(default_factory=dict)
    mastra: Optional[Any] = Field(default=None, exclude=True)

    def get_step_result(self, step: Any) -> Any:
        """Return the output of a successful step, or the trigger data.

        ``step`` may be a step id, ``"trigger"`` or any object with an ``id``.
        Returns ``None`` when the step has not succeeded.
        """
        step_id = step if isinstance(step, str) else step.id
        if step_id == TRIGGER:
            return self.trigger_data
        result = self.steps.get(step_id)
        if isinstance(result, StepSuccess):
            return result.output
        return None


class SnapshotContext(ContractModel):
    """Externally representable part of a :class:`WorkflowContext`."""

    steps: Dict[str, StepResult] = Field(default_factory=dict)
    trigger_data: Dict[str, Any] = Field(default_factory=dict)
    attempts: Dict[str, int] = Field(default_factory=dict)


class ActivePath(ContractModel):
    step_path: List[str]
    step_id: str
    status: str


class WorkflowRunState(ContractModel):
    """Serializable snapshot of a run, persisted after every transition."""

    value: Dict[str, str] = Field(default_factory=dict)
    context: SnapshotContext = Field(default_factory=SnapshotContext)
    active_paths: List[ActivePath] = Field(default_factory=list)
    run_id: str
    timestamp: int = Field(default_factory=lambda: int(time.time() * 1000))
    child_states: Optional[Dict[str, "WorkflowRunState"]] = None
    suspended_steps: Optional[Dict[str, str]] = None

    def to_json(self) -> str:
        """Serialize the snapshot using the durable camelCase layout."""
        return self.model_dump_json(by_alias=True)

    @classmethod
    def from_json(cls, data: str | bytes) -> "WorkflowRunState":
        """Deserialize a snapshot produced by :meth:`to_json`."""
        return cls.model_validate_json(data)


class WorkflowRunResult(ContractModel):
    """Outcome returned by ``start`` once no step can make progress."""

    trigger_data: Dict[str, Any] = Field(default_factory=dict)
    results: Dict[str, StepResult] = Field(default_factory=dict)
    run_id: str
    active_paths: List[ActivePath] = Field(default_factory=list)


class WorkflowResumeResult(WorkflowRunResult):
    """Outcome returned by ``resume``."""
