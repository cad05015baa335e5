from __future__ import annotations

import os
from typing import Optional

import yaml
from pydantic import BaseModel

from .workflows.settings import WorkflowSettings


class StorageConfig(BaseModel):
    """Where workflow snapshots are persisted.

    ``url`` accepts ``sqlite://<path>`` and ``postgresql://...``. Without a
    URL snapshots are kept in memory.
    """

    url: Optional[str] = None


class LoggingConfig(BaseModel):
    """Logging configuration settings."""

    level: str = "INFO"
    json_output: bool = False


class MastraConfig(BaseModel):
    """Top-level configuration model."""

    storage: StorageConfig = StorageConfig()
    workflows: WorkflowSettings = WorkflowSettings()
    logging: LoggingConfig = LoggingConfig()


def load_config(path: Optional[str] = None) -> MastraConfig:
    """Load configuration from YAML file.

    Args:
        path: Optional path to config file. Falls back to MASTRA_CONFIG env
            variable or 'mastra.yaml' in the current directory.
    """

    config_path = path or os.getenv("MASTRA_CONFIG", "mastra.yaml")
    if os.path.exists(config_path):
        with open(config_path) as f:
            data = yaml.safe_load(f) or {}
        config = MastraConfig(**data)
    else:
        config = MastraConfig()

    env_db_url = os.getenv("MASTRA_DATABASE_URL") or os.getenv("DATABASE_URL")
    if env_db_url:
        config.storage.url = env_db_url
    env_log_level = os.getenv("MASTRA_LOG_LEVEL")
    if env_log_level:
        config.logging.level = env_log_level
    return config
