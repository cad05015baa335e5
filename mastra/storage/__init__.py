"""Snapshot persistence for Mastra workflow runs."""

from __future__ import annotations

import os
from typing import Optional

from ..config import MastraConfig, load_config
from .inmemory import InMemorySnapshotStore
from .models import SnapshotRecord
from .postgres import PostgresSnapshotStore
from .sqlite import SQLiteSnapshotStore
from .store import SnapshotStore

_store_instance: SnapshotStore | None = None


def get_snapshot_store(
    database_url: Optional[str] = None, config: Optional[MastraConfig] = None
) -> SnapshotStore:
    """Factory function to obtain a snapshot store.

    The backend is selected based on ``database_url`` which can be provided
    explicitly, via environment variable ``MASTRA_DATABASE_URL`` or
    ``DATABASE_URL``, or from loaded configuration. When no database is
    configured, an in-memory store is returned.
    """

    global _store_instance
    if _store_instance is not None and database_url is None and config is None:
        return _store_instance

    config = config or load_config()
    database_url = (
        database_url
        or os.getenv("MASTRA_DATABASE_URL")
        or os.getenv("DATABASE_URL")
        or config.storage.url
    )

    if not database_url:
        _store_instance = InMemorySnapshotStore()
        return _store_instance

    if database_url.startswith("sqlite://"):
        path = database_url.replace("sqlite://", "", 1)
        _store_instance = SQLiteSnapshotStore(path)
    elif database_url.startswith("postgres://") or database_url.startswith(
        "postgresql://"
    ):
        _store_instance = PostgresSnapshotStore(database_url)
    else:
        raise ValueError(f"Unsupported database backend: {database_url}")

    return _store_instance


__all__ = [
    "InMemorySnapshotStore",
    "PostgresSnapshotStore",
    "SQLiteSnapshotStore",
    "SnapshotRecord",
    "SnapshotStore",
    "get_snapshot_store",
]
