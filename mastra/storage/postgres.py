"""PostgreSQL snapshot store."""

from __future__ import annotations

import json

import asyncpg

from ..workflows.models import WorkflowRunState
from .models import SnapshotRecord, utcnow
from .store import SnapshotStore


class PostgresSnapshotStore(SnapshotStore):
    """Persist workflow snapshots using PostgreSQL."""

    def __init__(self, dsn: str):
        self._dsn = dsn
        self._initialized = False

    async def _connect(self) -> asyncpg.Connection:
        conn = await asyncpg.connect(self._dsn)
        if not self._initialized:
            await self._ensure_schema(conn)
            self._initialized = True
        return conn

    async def _ensure_schema(self, conn: asyncpg.Connection) -> None:
        await conn.execute(
            """
            CREATE TABLE IF NOT EXISTS workflow_snapshots (
                workflow_name TEXT NOT NULL,
                run_id TEXT NOT NULL,
                snapshot JSONB NOT NULL,
                updated_at TIMESTAMPTZ NOT NULL,
                PRIMARY KEY (workflow_name, run_id)
            )
            """
        )

    @staticmethod
    def _decode(raw: str | dict) -> WorkflowRunState:
        if isinstance(raw, str):
            return WorkflowRunState.from_json(raw)
        return WorkflowRunState.model_validate(raw)

    # ------------------------------------------------------------------
    async def save_workflow_snapshot(
        self, workflow_name: str, run_id: str, snapshot: WorkflowRunState
    ) -> None:
        conn = await self._connect()
        try:
            await conn.execute(
                """
                INSERT INTO workflow_snapshots (workflow_name, run_id, snapshot, updated_at)
                VALUES ($1, $2, $3::jsonb, $4)
                ON CONFLICT (workflow_name, run_id)
                DO UPDATE SET snapshot = EXCLUDED.snapshot, updated_at = EXCLUDED.updated_at
                """,
                workflow_name,
                run_id,
                snapshot.to_json(),
                utcnow(),
            )
        finally:
            await conn.close()

    async def load_workflow_snapshot(
        self, workflow_name: str, run_id: str
    ) -> WorkflowRunState | None:
        conn = await self._connect()
        try:
            row = await conn.fetchrow(
                "SELECT snapshot FROM workflow_snapshots WHERE workflow_name = $1 AND run_id = $2",
                workflow_name,
                run_id,
            )
        finally:
            await conn.close()
        if not row:
            return None
        return self._decode(row["snapshot"])

    async def list_workflow_snapshots(
        self, workflow_name: str | None = None
    ) -> list[SnapshotRecord]:
        conn = await self._connect()
        try:
            if workflow_name is None:
                rows = await conn.fetch(
                    "SELECT workflow_name, run_id, snapshot, updated_at FROM workflow_snapshots ORDER BY updated_at"
                )
            else:
                rows = await conn.fetch(
                    "SELECT workflow_name, run_id, snapshot, updated_at FROM workflow_snapshots WHERE workflow_name = $1 ORDER BY updated_at",
                    workflow_name,
                )
        finally:
            await conn.close()
        return [
            SnapshotRecord(
                workflow_name=r["workflow_name"],
                run_id=r["run_id"],
                snapshot=self._decode(r["snapshot"]),
                updated_at=r["updated_at"],
            )
            for r in rows
        ]
