"""The Mastra container wiring workflows to storage, logging and telemetry."""

from __future__ import annotations

import logging
from typing import Dict, Mapping, Optional

from .config import MastraConfig, load_config
from .storage import SnapshotStore, get_snapshot_store
from .telemetry import Telemetry
from .workflows.errors import WorkflowNotFoundError
from .workflows.workflow import Workflow


class Mastra:
    """Registry of workflows sharing one snapshot store.

    When no storage is given the store is built from configuration, which
    falls back to an in-memory store.
    """

    def __init__(
        self,
        workflows: Optional[Mapping[str, Workflow]] = None,
        storage: Optional[SnapshotStore] = None,
        logger: Optional[logging.Logger] = None,
        telemetry: Optional[Telemetry] = None,
        config: Optional[MastraConfig] = None,
    ) -> None:
        self.config = config or load_config()
        self._logger = logger or logging.getLogger("mastra")
        # Without an explicit config the process wide store is shared.
        self._storage = storage or get_snapshot_store(config=config)
        self._telemetry = telemetry
        self._workflows: Dict[str, Workflow] = {}

        for key, workflow in (workflows or {}).items():
            workflow.register_mastra(self)
            self._workflows[key] = workflow
        self._logger.debug(f"Mastra initialized with workflows {sorted(self._workflows)}")

    def get_workflow(self, name: str) -> Workflow:
        workflow = self._workflows.get(name)
        if workflow is None:
            raise WorkflowNotFoundError(f"Workflow with name {name} not found")
        return workflow

    def get_workflows(self) -> Dict[str, Workflow]:
        return dict(self._workflows)

    def get_storage(self) -> SnapshotStore:
        return self._storage

    def get_logger(self) -> logging.Logger:
        return self._logger

    def get_telemetry(self) -> Optional[Telemetry]:
        return self._telemetry
