"""In-memory snapshot store."""

from __future__ import annotations

from typing import Dict, Tuple

from ..workflows.models import WorkflowRunState
from .models import SnapshotRecord, utcnow
from .store import SnapshotStore


class InMemorySnapshotStore(SnapshotStore):
    """Keep snapshots in local memory.

    Useful for tests or when no database is configured. Data is not
    persisted across process restarts. Snapshots are copied on the way in
    and out so callers never share state with the store.
    """

    def __init__(self) -> None:
        self._records: Dict[Tuple[str, str], SnapshotRecord] = {}

    async def save_workflow_snapshot(
        self, workflow_name: str, run_id: str, snapshot: WorkflowRunState
    ) -> None:
        self._records[(workflow_name, run_id)] = SnapshotRecord(
            workflow_name=workflow_name,
            run_id=run_id,
            snapshot=snapshot.model_copy(deep=True),
            updated_at=utcnow(),
        )

    async def load_workflow_snapshot(
        self, workflow_name: str, run_id: str
    ) -> WorkflowRunState | None:
        record = self._records.get((workflow_name, run_id))
        if record is None:
            return None
        return record.snapshot.model_copy(deep=True)

    async def list_workflow_snapshots(
        self, workflow_name: str | None = None
    ) -> list[SnapshotRecord]:
        return [
            record.model_copy(deep=True)
            for (name, _), record in self._records.items()
            if workflow_name is None or name == workflow_name
        ]
