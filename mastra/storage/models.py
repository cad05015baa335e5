"""Data models for persisted workflow snapshots."""

from __future__ import annotations

from datetime import datetime, timezone

from pydantic import BaseModel, Field

from ..workflows.models import WorkflowRunState


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SnapshotRecord(BaseModel):
    """The latest snapshot stored for one run of a workflow."""

    workflow_name: str
    run_id: str
    snapshot: WorkflowRunState
    updated_at: datetime = Field(default_factory=utcnow)
