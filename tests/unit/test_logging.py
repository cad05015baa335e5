import json
import logging

from mastra.logging import JsonFormatter, configure_logging


def test_json_formatter_groups_extra_fields():
    record = logging.LogRecord(
        name="mastra.workflows.instance",
        level=logging.INFO,
        pathname=__file__,
        lineno=1,
        msg="Step %s suspended",
        args=("approve",),
        exc_info=None,
    )
    record.workflow = "orders"
    record.run_id = "run-1"
    record.step_id = "approve"

    payload = json.loads(JsonFormatter().format(record))
    assert payload["level"] == "INFO"
    assert payload["logger"] == "mastra.workflows.instance"
    assert payload["message"] == "Step approve suspended"
    assert payload["extra"] == {"workflow": "orders", "run_id": "run-1", "step_id": "approve"}


def test_configure_logging_replaces_root_handlers():
    root = logging.getLogger()
    saved_handlers, saved_level = list(root.handlers), root.level
    try:
        configure_logging("debug", json_output=True)
        assert root.level == logging.DEBUG
        assert len(root.handlers) == 1
        assert isinstance(root.handlers[0].formatter, JsonFormatter)
    finally:
        for handler in list(root.handlers):
            root.removeHandler(handler)
        for handler in saved_handlers:
            root.addHandler(handler)
        root.setLevel(saved_level)
