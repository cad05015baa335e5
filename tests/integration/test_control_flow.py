import pytest
from pydantic import BaseModel

from mastra import Mastra
from mastra.config import MastraConfig
from mastra.storage import InMemorySnapshotStore
from mastra.workflows import (
    EventNotFoundError,
    SchemaValidationError,
    Step,
    StepSkipped,
    StepSuccess,
    StepSuspended,
    Workflow,
)


class Approval(BaseModel):
    approved: bool


def _register(workflow):
    Mastra(
        workflows={workflow.name: workflow},
        storage=InMemorySnapshotStore(),
        config=MastraConfig(),
    )
    return workflow


def _counter():
    calls = []

    def increment(ctx):
        previous = ctx.context.get_step_result("increment") or {"value": 0}
        calls.append(previous["value"])
        return {"value": previous["value"] + 1}

    return Step("increment", increment), calls


@pytest.mark.asyncio
async def test_while_loop_repeats_until_condition_fails():
    increment, calls = _counter()
    done = []
    workflow = _register(
        Workflow("while-loop")
        .step(Step("start"))
        .while_({"ref": {"step": increment, "path": "value"}, "query": {"$lt": 3}}, increment)
        .then(Step("done", lambda ctx: done.append(True) or {"done": True}))
        .commit()
    )

    result = await workflow.create_run().start()
    assert calls == [0, 1, 2]
    assert result.results["increment"] == StepSuccess(output={"value": 3})
    assert result.results["__increment_while_loop_finished"] == StepSuccess(
        output={"success": True}
    )
    assert done == [True]


@pytest.mark.asyncio
async def test_until_loop_with_function_condition():
    increment, calls = _counter()

    def reached_three(context):
        output = context.get_step_result("increment")
        return output is not None and output["value"] >= 3

    workflow = _register(
        Workflow("until-loop").step(Step("start")).until(reached_three, increment).commit()
    )

    result = await workflow.create_run().start()
    assert calls == [0, 1, 2]
    assert result.results["increment"] == StepSuccess(output={"value": 3})
    assert isinstance(result.results["__increment_until_loop_finished"], StepSuccess)


@pytest.mark.asyncio
async def test_until_loop_with_query_condition():
    increment, calls = _counter()
    workflow = _register(
        Workflow("until-query")
        .step(Step("start"))
        .until({"ref": {"step": increment, "path": "value"}, "query": {"$gte": 3}}, increment)
        .commit()
    )

    run = workflow.create_run()
    result = await run.start()
    assert calls == [0, 1, 2]
    assert result.results["increment"] == StepSuccess(output={"value": 3})
    assert result.results["__increment_until_loop_check"] == StepSuccess(
        output={"status": "complete"}
    )
    assert run.get_state().active_paths == []


@pytest.mark.asyncio
@pytest.mark.parametrize("amount,taken", [(10, "big"), (2, "small")])
async def test_if_else_runs_one_branch(amount, taken):
    check = Step("check", lambda ctx: {"amount": ctx.context.trigger_data["amount"]})
    workflow = _register(
        Workflow(f"branches-{taken}")
        .step(check)
        .if_({"ref": {"step": check, "path": "amount"}, "query": {"$gt": 5}})
        .then(Step("big", lambda ctx: {"branch": "big"}))
        .else_()
        .then(Step("small", lambda ctx: {"branch": "small"}))
        .commit()
    )

    result = await workflow.create_run().start({"amount": amount})
    other = "small" if taken == "big" else "big"
    assert result.results[taken] == StepSuccess(output={"branch": taken})
    assert isinstance(result.results[other], StepSkipped)


@pytest.mark.asyncio
async def test_after_event_suspends_until_event_arrives():
    def process(ctx):
        event = ctx.context.get_step_result("__approval_event")["resumed_event"]
        return {"processed": event["approved"]}

    workflow = _register(
        Workflow("events", events={"approval": Approval})
        .step(Step("request", lambda ctx: {"requested": True}))
        .after_event("approval")
        .step(Step("process", process))
        .commit()
    )

    run = workflow.create_run()
    result = await run.start()
    assert isinstance(result.results["__approval_event"], StepSuspended)
    assert "process" not in result.results

    with pytest.raises(SchemaValidationError):
        await run.resume_with_event("approval", {"approved": "maybe"})
    with pytest.raises(EventNotFoundError):
        await run.resume_with_event("refund", {})

    result = await run.resume_with_event("approval", {"approved": True})
    assert result.results["__approval_event"] == StepSuccess(
        output={"executed": True, "resumed_event": {"approved": True}}
    )
    assert result.results["process"] == StepSuccess(output={"processed": True})


@pytest.mark.asyncio
async def test_deprecated_resume_with_event():
    workflow = _register(
        Workflow("legacy-events", events={"approval": Approval})
        .step(Step("request"))
        .after_event("approval")
        .step(Step("process"))
        .commit()
    )

    run = workflow.create_run()
    await run.start()
    with pytest.warns(DeprecationWarning):
        result = await workflow.resume_with_event(run.run_id, "approval", {"approved": False})
    assert isinstance(result.results["process"], StepSuccess)
