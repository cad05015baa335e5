import pytest

from mastra import Mastra
from mastra.config import MastraConfig
from mastra.storage import InMemorySnapshotStore
from mastra.workflows import (
    SnapshotNotFoundError,
    Step,
    StepNotFoundError,
    StepNotSuspendedError,
    StepSuccess,
    StepSuspended,
    Workflow,
    WorkflowRunState,
)


async def approve(ctx):
    if "approved" not in ctx.context.input_data:
        await ctx.suspend({"reason": "needs approval"})
        return None
    return {"approved": ctx.context.input_data["approved"]}


def ship(ctx):
    order = ctx.context.get_step_result("prepare")["order"]
    return {"shipped": order}


def _approval_workflow(name="approval"):
    workflow = (
        Workflow(name)
        .step(Step("prepare", lambda ctx: {"order": ctx.context.trigger_data["order"]}))
        .then(Step("approve", approve))
        .then(Step("ship", ship))
        .commit()
    )
    Mastra(
        workflows={name: workflow},
        storage=InMemorySnapshotStore(),
        config=MastraConfig(),
    )
    return workflow


@pytest.mark.asyncio
async def test_suspended_step_pauses_the_chain():
    workflow = _approval_workflow()
    run = workflow.create_run()

    result = await run.start({"order": "A-1"})
    assert result.results["approve"] == StepSuspended(suspend_payload={"reason": "needs approval"})
    assert "ship" not in result.results

    state = run.get_state()
    assert state.suspended_steps == {"approve": "/prepare/0"}
    assert [path.step_id for path in state.active_paths] == ["approve"]

    stored = await workflow.mastra.get_storage().load_workflow_snapshot("approval", run.run_id)
    assert stored.value["approve"] == "suspended"


@pytest.mark.asyncio
async def test_resume_continues_downstream():
    workflow = _approval_workflow()
    run = workflow.create_run()
    await run.start({"order": "A-2"})

    result = await run.resume("approve", {"approved": True})
    assert result.results["approve"] == StepSuccess(output={"approved": True})
    assert result.results["ship"] == StepSuccess(output={"shipped": "A-2"})
    assert run.get_state().suspended_steps is None


@pytest.mark.asyncio
async def test_resume_errors():
    workflow = _approval_workflow()
    run = workflow.create_run()
    await run.start({"order": "A-3"})

    with pytest.raises(StepNotFoundError):
        await run.resume("missing")
    with pytest.raises(StepNotSuspendedError):
        await run.resume("prepare")
    with pytest.raises(SnapshotNotFoundError):
        await workflow.create_run("never-started").resume("approve")


@pytest.mark.asyncio
async def test_resume_without_mastra_needs_a_live_run():
    workflow = (
        Workflow("detached")
        .step(Step("approve", approve))
        .commit()
    )
    with pytest.raises(SnapshotNotFoundError):
        await workflow.create_run("unknown").resume("approve")

    run = workflow.create_run()
    await run.start()
    result = await run.resume("approve", {"approved": False})
    assert result.results["approve"] == StepSuccess(output={"approved": False})


@pytest.mark.asyncio
async def test_deprecated_workflow_resume():
    workflow = _approval_workflow()
    run = workflow.create_run()
    await run.start({"order": "A-4"})

    with pytest.warns(DeprecationWarning):
        result = await workflow.resume(run.run_id, "approve", {"approved": True})
    assert result.results["ship"] == StepSuccess(output={"shipped": "A-4"})


@pytest.mark.asyncio
async def test_guarded_step_is_redriven_when_dependency_resumes():
    workflow = (
        Workflow("guarded")
        .step(Step("approve", approve))
        .step(Step("report", lambda ctx: {"reported": True}), when={"approve.approved": True})
        .commit()
    )
    Mastra(
        workflows={"guarded": workflow},
        storage=InMemorySnapshotStore(),
        config=MastraConfig(),
    )

    run = workflow.create_run()
    result = await run.start()
    assert isinstance(result.results["report"], StepSuspended)
    assert set(run.get_state().suspended_steps) == {"approve", "report"}

    result = await run.resume("approve", {"approved": True})
    assert result.results["report"] == StepSuccess(output={"reported": True})
    assert run.get_state().suspended_steps is None


@pytest.mark.asyncio
async def test_workflow_state_live_then_stored():
    workflow = _approval_workflow()
    run = workflow.create_run()
    await run.start({"order": "A-5"})

    live = await workflow.get_state(run.run_id)
    assert live.value["approve"] == "suspended"
    assert workflow.get_run(run.run_id) is run

    await run.resume("approve", {"approved": True})
    assert workflow.get_run(run.run_id) is None
    stored = await workflow.get_state(run.run_id)
    assert stored.value["ship"] == "completed"
    assert await workflow.get_state("unknown") is None


@pytest.mark.asyncio
async def test_stored_state_recomputes_active_paths():
    workflow = _approval_workflow("stale")
    store = workflow.mastra.get_storage()
    await store.save_workflow_snapshot(
        "stale",
        "run-1",
        WorkflowRunState(
            value={"prepare": "completed", "approve": "suspended"},
            run_id="run-1",
            timestamp=1,
            suspended_steps={"approve": "/prepare/0"},
        ),
    )

    state = await workflow.get_state("run-1")
    assert [path.step_id for path in state.active_paths] == ["approve"]
    assert state.active_paths[0].status == "suspended"
    assert state.timestamp > 1
