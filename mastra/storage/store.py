"""Snapshot store abstraction."""

from __future__ import annotations

from typing import Protocol

from ..workflows.models import WorkflowRunState
from .models import SnapshotRecord


class SnapshotStore(Protocol):
    """Protocol for workflow snapshot persistence backends.

    Saving is an upsert keyed by ``(workflow_name, run_id)``: the last write
    wins.
    """

    async def save_workflow_snapshot(
        self, workflow_name: str, run_id: str, snapshot: WorkflowRunState
    ) -> None:
        """Persist the latest snapshot of a run."""

    async def load_workflow_snapshot(
        self, workflow_name: str, run_id: str
    ) -> WorkflowRunState | None:
        """Return the stored snapshot, or ``None`` when the run is unknown."""

    async def list_workflow_snapshots(
        self, workflow_name: str | None = None
    ) -> list[SnapshotRecord]:
        """Return stored snapshots, optionally for a single workflow."""
