import logging

import pytest

from mastra import Mastra
from mastra.config import MastraConfig
from mastra.storage import InMemorySnapshotStore
from mastra.telemetry import LoggingTelemetry
from mastra.workflows import Step, Workflow
from mastra.workflows.errors import WorkflowNotFoundError
from mastra.workflows.settings import WorkflowSettings


def test_registers_workflows_with_shared_services():
    store = InMemorySnapshotStore()
    telemetry = LoggingTelemetry()
    logger = logging.getLogger("mastra.test")
    workflow = Workflow("greet").step(Step("hello")).commit()

    mastra = Mastra(
        workflows={"greet": workflow},
        storage=store,
        logger=logger,
        telemetry=telemetry,
        config=MastraConfig(),
    )

    assert mastra.get_workflow("greet") is workflow
    assert workflow.mastra is mastra
    assert mastra.get_storage() is store
    assert mastra.get_logger() is logger
    assert mastra.get_telemetry() is telemetry
    assert list(mastra.get_workflows()) == ["greet"]

    with pytest.raises(WorkflowNotFoundError):
        mastra.get_workflow("missing")


def test_configured_settings_apply_unless_explicit():
    config = MastraConfig(workflows=WorkflowSettings(check_interval=0.01, max_wait_checks=5))
    implicit = Workflow("implicit").step(Step("a")).commit()
    explicit = Workflow(
        "explicit", settings=WorkflowSettings(check_interval=1.0)
    ).step(Step("b")).commit()

    Mastra(
        workflows={"implicit": implicit, "explicit": explicit},
        storage=InMemorySnapshotStore(),
        config=config,
    )

    assert implicit.settings.max_wait_checks == 5
    assert explicit.settings.check_interval == 1.0
