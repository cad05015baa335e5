"""SQLite snapshot store."""

from __future__ import annotations

import asyncio
import sqlite3
from datetime import datetime
from pathlib import Path
from typing import Any

from ..workflows.models import WorkflowRunState
from .models import SnapshotRecord, utcnow
from .store import SnapshotStore


class SQLiteSnapshotStore(SnapshotStore):
    """Persist workflow snapshots using SQLite."""

    def __init__(self, db_path: str | Path):
        self.db_path = str(db_path)
        self._conn = sqlite3.connect(self.db_path, check_same_thread=False)
        self._conn.row_factory = sqlite3.Row
        self._ensure_schema()

    # ------------------------------------------------------------------
    # Schema management
    def _ensure_schema(self) -> None:
        cur = self._conn.cursor()
        cur.execute(
            """
            CREATE TABLE IF NOT EXISTS workflow_snapshots (
                workflow_name TEXT NOT NULL,
                run_id TEXT NOT NULL,
                snapshot TEXT NOT NULL,
                updated_at TEXT NOT NULL,
                PRIMARY KEY (workflow_name, run_id)
            )
            """
        )
        self._conn.commit()

    # ------------------------------------------------------------------
    # Helper methods
    def _execute(self, query: str, *params: Any) -> None:
        cur = self._conn.cursor()
        cur.execute(query, params)
        self._conn.commit()

    def _fetchone(self, query: str, *params: Any) -> sqlite3.Row | None:
        cur = self._conn.cursor()
        cur.execute(query, params)
        return cur.fetchone()

    def _fetchall(self, query: str, *params: Any) -> list[sqlite3.Row]:
        cur = self._conn.cursor()
        cur.execute(query, params)
        return cur.fetchall()

    def close(self) -> None:
        self._conn.close()

    # ------------------------------------------------------------------
    # Store API
    async def save_workflow_snapshot(
        self, workflow_name: str, run_id: str, snapshot: WorkflowRunState
    ) -> None:
        await asyncio.to_thread(
            self._execute,
            """
            INSERT INTO workflow_snapshots (workflow_name, run_id, snapshot, updated_at)
            VALUES (?, ?, ?, ?)
            ON CONFLICT (workflow_name, run_id)
            DO UPDATE SET snapshot = excluded.snapshot, updated_at = excluded.updated_at
            """,
            workflow_name,
            run_id,
            snapshot.to_json(),
            utcnow().isoformat(),
        )

    async def load_workflow_snapshot(
        self, workflow_name: str, run_id: str
    ) -> WorkflowRunState | None:
        row = await asyncio.to_thread(
            self._fetchone,
            "SELECT snapshot FROM workflow_snapshots WHERE workflow_name = ? AND run_id = ?",
            workflow_name,
            run_id,
        )
        if not row:
            return None
        return WorkflowRunState.from_json(row["snapshot"])

    async def list_workflow_snapshots(
        self, workflow_name: str | None = None
    ) -> list[SnapshotRecord]:
        if workflow_name is None:
            rows = await asyncio.to_thread(
                self._fetchall,
                "SELECT workflow_name, run_id, snapshot, updated_at FROM workflow_snapshots ORDER BY updated_at",
            )
        else:
            rows = await asyncio.to_thread(
                self._fetchall,
                "SELECT workflow_name, run_id, snapshot, updated_at FROM workflow_snapshots WHERE workflow_name = ? ORDER BY updated_at",
                workflow_name,
            )
        return [
            SnapshotRecord(
                workflow_name=r["workflow_name"],
                run_id=r["run_id"],
                snapshot=WorkflowRunState.from_json(r["snapshot"]),
                updated_at=datetime.fromisoformat(r["updated_at"]),
            )
            for r in rows
        ]
