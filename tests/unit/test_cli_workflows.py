import re
from pathlib import Path

import pytest
from typer.testing import CliRunner

import mastra.storage as storage
from mastra.cli import app

FIXTURE = Path(__file__).resolve().parent.parent / "fixtures" / "cli_workflows.py"
TARGET = f"{FIXTURE}:workflow"


@pytest.fixture(autouse=True)
def sqlite_store(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("MASTRA_CONFIG", raising=False)
    monkeypatch.delenv("DATABASE_URL", raising=False)
    monkeypatch.setenv("MASTRA_DATABASE_URL", f"sqlite://{tmp_path / 'runs.db'}")
    monkeypatch.setattr(storage, "_store_instance", None)


def _run_id(output: str) -> str:
    match = re.search(r"Run (\S+) of cli-approval", output)
    assert match, f"No run id in output: {output}"
    return match.group(1)


def test_list_without_runs():
    runner = CliRunner()
    result = runner.invoke(app, ["workflow", "list"])
    assert result.exit_code == 0, result.output
    assert "No workflow runs found" in result.output


def test_run_show_and_resume():
    runner = CliRunner()

    result = runner.invoke(app, ["workflow", "run", TARGET, "--trigger", '{"order": "A-1"}'])
    assert result.exit_code == 0, result.output
    assert ": suspended" in result.output
    assert "- approve: suspended" in result.output
    run_id = _run_id(result.output)

    result = runner.invoke(app, ["workflow", "list"])
    assert result.exit_code == 0, result.output
    assert f"cli-approval\t{run_id}\tsuspended" in result.output

    result = runner.invoke(app, ["workflow", "show", "cli-approval", run_id])
    assert result.exit_code == 0, result.output
    assert "Suspended: approve" in result.output
    assert 'Trigger: {"order": "A-1"}' in result.output
    assert "- prepare: completed" in result.output

    result = runner.invoke(
        app, ["workflow", "resume", TARGET, run_id, "approve", "--context", '{"approved": true}']
    )
    assert result.exit_code == 0, result.output
    assert f"Run {run_id} of cli-approval: completed" in result.output
    assert "- ship: success" in result.output

    result = runner.invoke(app, ["workflow", "list", "--workflow", "cli-approval"])
    assert f"{run_id}\tcompleted" in result.output


def test_show_missing_run():
    runner = CliRunner()
    result = runner.invoke(app, ["workflow", "show", "cli-approval", "missing"])
    assert result.exit_code == 1
    assert "Run not found" in result.output


def test_invalid_targets_and_options():
    runner = CliRunner()

    result = runner.invoke(app, ["workflow", "run", f"{FIXTURE}:not_a_workflow"])
    assert result.exit_code == 1
    assert "Cannot load workflow" in result.output

    result = runner.invoke(app, ["workflow", "run", TARGET, "--trigger", "[1, 2]"])
    assert result.exit_code == 1
    assert "must be a JSON object" in result.output

    result = runner.invoke(app, ["workflow", "resume", TARGET, "unknown-run", "approve"])
    assert result.exit_code == 1
    assert "No snapshot found" in result.output
