"""Engine tunables shared by workflows and the configuration file."""

from __future__ import annotations

from pydantic import BaseModel, Field

from .step import RetryConfig

DEFAULT_CHECK_INTERVAL = 0.1
DEFAULT_MAX_WAIT_CHECKS = 600


class WorkflowSettings(BaseModel):
    """How long conditions wait on running steps and the default retry policy."""

    check_interval: float = DEFAULT_CHECK_INTERVAL
    max_wait_checks: int = DEFAULT_MAX_WAIT_CHECKS
    retry: RetryConfig = Field(default_factory=RetryConfig)
