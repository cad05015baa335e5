"""Per-step state machine used by :class:`~mastra.workflows.instance.WorkflowInstance`."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from .errors import IllegalTransitionError


class StepState(str, Enum):
    PENDING = "pending"
    WAITING = "waiting"
    EXECUTING = "executing"
    SUSPENDED = "suspended"
    COMPLETED = "completed"
    FAILED = "failed"
    SKIPPED = "skipped"


TERMINAL_STATES = frozenset({StepState.COMPLETED, StepState.FAILED, StepState.SKIPPED})
ACTIVE_STATES = frozenset({StepState.PENDING, StepState.WAITING, StepState.EXECUTING})

# Terminal states may go back to pending: loops re-enter steps that already ran.
ALLOWED_TRANSITIONS: dict[StepState, set[StepState]] = {
    StepState.PENDING: {
        StepState.EXECUTING,
        StepState.WAITING,
        StepState.SUSPENDED,
        StepState.COMPLETED,
        StepState.FAILED,
        StepState.SKIPPED,
    },
    StepState.WAITING: {StepState.PENDING},
    StepState.EXECUTING: {
        StepState.COMPLETED,
        StepState.FAILED,
        StepState.SUSPENDED,
        StepState.PENDING,
    },
    StepState.SUSPENDED: {StepState.PENDING},
    StepState.COMPLETED: {StepState.PENDING},
    StepState.FAILED: {StepState.PENDING},
    StepState.SKIPPED: {StepState.PENDING},
}


def validate_transition(
    step_id: str, current: Optional[StepState], target: StepState
) -> None:
    """Raise :class:`IllegalTransitionError` if ``current -> target`` is not allowed.

    A step without a state may only enter ``pending``.
    """
    if current is None:
        if target is not StepState.PENDING:
            raise IllegalTransitionError(
                f"Step {step_id} must start in pending, not {target.value}"
            )
        return
    if target not in ALLOWED_TRANSITIONS[current]:
        raise IllegalTransitionError(
            f"Step {step_id} cannot move from {current.value} to {target.value}"
        )


class DependencyCheck(str, Enum):
    CONDITIONS_MET = "CONDITIONS_MET"
    CONDITIONS_SKIPPED = "CONDITIONS_SKIPPED"
    CONDITIONS_SKIP_TO_COMPLETED = "CONDITIONS_SKIP_TO_COMPLETED"
    CONDITION_FAILED = "CONDITION_FAILED"
    SUSPENDED = "SUSPENDED"
    WAITING = "WAITING"
    CONDITIONS_LIMBO = "CONDITIONS_LIMBO"


@dataclass(frozen=True)
class DependencyCheckOutput:
    type: DependencyCheck
    error: Optional[str] = None
    blocked_on: Optional[str] = None


class StepOutcome(str, Enum):
    """How a single drive of a step ended, as seen by its chain."""

    SUCCESS = "success"
    FAILED = "failed"
    SKIPPED = "skipped"
    SKIP_TO_COMPLETED = "skip_to_completed"
    SUSPENDED = "suspended"
    LIMBO = "limbo"
