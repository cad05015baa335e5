"""Command line interface for inspecting and driving Mastra workflow runs."""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, Optional

import typer

from mastra.cli_utils.workflow import format_step_lines, load_workflow, run_status
from mastra.config import load_config
from mastra.logging import configure_logging
from mastra.mastra import Mastra
from mastra.storage import get_snapshot_store
from mastra.workflows.errors import MastraError
from mastra.workflows.models import WorkflowRunResult
from mastra.workflows.workflow import Workflow

app = typer.Typer(help="CLI for Mastra workflows")

# Command groups
workflow_app = typer.Typer(help="Commands for managing workflow runs")

app.add_typer(workflow_app, name="workflow")


@app.callback()
def main(
    log_level: Optional[str] = typer.Option(None, help="Override the configured log level"),
) -> None:
    """Mastra CLI entry point."""
    config = load_config()
    # Leave logging alone when the host process already configured it.
    if not logging.getLogger().handlers:
        configure_logging(log_level or config.logging.level, config.logging.json_output)
    elif log_level:
        logging.getLogger().setLevel(log_level.upper())


def _parse_json_option(raw: Optional[str], name: str) -> dict[str, Any]:
    if not raw:
        return {}
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as exc:
        typer.secho(f"Invalid JSON for --{name}: {exc}", fg=typer.colors.RED)
        raise typer.Exit(code=1)
    if not isinstance(data, dict):
        typer.secho(f"--{name} must be a JSON object", fg=typer.colors.RED)
        raise typer.Exit(code=1)
    return data


def _load_or_exit(target: str) -> Workflow:
    try:
        workflow = load_workflow(target)
    except (ImportError, FileNotFoundError, ValueError) as exc:
        typer.secho(f"Cannot load workflow: {exc}", fg=typer.colors.RED)
        raise typer.Exit(code=1)
    if workflow.mastra is None:
        Mastra(workflows={workflow.name: workflow})
    return workflow


def _echo_result(workflow: Workflow, result: WorkflowRunResult) -> None:
    snapshot = asyncio.run(workflow.get_state(result.run_id))
    status = run_status(snapshot) if snapshot is not None else "completed"
    typer.echo(f"Run {result.run_id} of {workflow.name}: {status}")
    for step_id, step_result in result.results.items():
        typer.echo(f"- {step_id}: {step_result.status}")


@workflow_app.command("list")
def workflow_list(
    workflow: Optional[str] = typer.Option(None, help="Only list runs of this workflow"),
) -> None:
    """
    List stored workflow runs with their current status.

    Shows workflow name, run id and a status summary (suspended, running,
    failed, completed) from the configured snapshot store.

    Example:
        mastra workflow list
        mastra workflow list --workflow order-pipeline
        # Output: order-pipeline    3f0c...    suspended
    """
    store = get_snapshot_store()
    records = asyncio.run(store.list_workflow_snapshots(workflow))
    if not records:
        typer.echo("No workflow runs found")
        return
    for record in records:
        typer.echo(f"{record.workflow_name}\t{record.run_id}\t{run_status(record.snapshot)}")


@workflow_app.command("show")
def workflow_show(workflow: str, run_id: str) -> None:
    """
    Show the stored state of a single run.

    Example:
        mastra workflow show order-pipeline 3f0c...
        # Output: Run 3f0c... of order-pipeline: suspended
        #         Suspended: approve
        #         - fetch: completed
        #         - approve: suspended
    """
    store = get_snapshot_store()
    snapshot = asyncio.run(store.load_workflow_snapshot(workflow, run_id))
    if snapshot is None:
        typer.echo("Run not found")
        raise typer.Exit(code=1)

    typer.echo(f"Run {run_id} of {workflow}: {run_status(snapshot)}")
    if snapshot.context.trigger_data:
        typer.echo(f"Trigger: {json.dumps(snapshot.context.trigger_data)}")
    if snapshot.suspended_steps:
        typer.echo(f"Suspended: {', '.join(sorted(snapshot.suspended_steps))}")
    for line in format_step_lines(snapshot):
        typer.echo(line)


@workflow_app.command("run")
def workflow_run(
    target: str,
    trigger: Optional[str] = typer.Option(None, help="Trigger data as a JSON object"),
) -> None:
    """
    Start a new run of the workflow referenced as MODULE:ATTRIBUTE.

    Example:
        mastra workflow run examples/orders.py:workflow --trigger '{"order_id": 7}'
    """
    workflow = _load_or_exit(target)
    trigger_data = _parse_json_option(trigger, "trigger")
    try:
        result = asyncio.run(workflow.create_run().start(trigger_data))
    except MastraError as exc:
        typer.secho(str(exc), fg=typer.colors.RED)
        raise typer.Exit(code=1)
    _echo_result(workflow, result)


@workflow_app.command("resume")
def workflow_resume(
    target: str,
    run_id: str,
    step_id: str,
    context: Optional[str] = typer.Option(None, help="Resume context as a JSON object"),
) -> None:
    """
    Resume a suspended step of a stored run.

    Example:
        mastra workflow resume examples/orders.py:workflow 3f0c... approve --context '{"ok": true}'
    """
    workflow = _load_or_exit(target)
    resume_context = _parse_json_option(context, "context")
    try:
        result = asyncio.run(workflow.create_run(run_id).resume(step_id, resume_context))
    except MastraError as exc:
        typer.secho(str(exc), fg=typer.colors.RED)
        raise typer.Exit(code=1)
    _echo_result(workflow, result)


if __name__ == "__main__":  # pragma: no cover - CLI entry point
    app()
