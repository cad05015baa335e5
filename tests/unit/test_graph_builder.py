"""Tests for the fluent workflow builder."""

import pytest
from pydantic import BaseModel

from mastra.workflows import Step, Workflow
from mastra.workflows.errors import (
    EventNotFoundError,
    StepNotFoundError,
    WorkflowDefinitionError,
)


def _ids(nodes):
    return [node.id for node in nodes]


def test_step_and_then_build_a_chain():
    a, b, c = Step("a"), Step("b"), Step("c")
    workflow = Workflow("chain").step(a).then(b).then(c).commit()

    assert _ids(workflow.step_graph.initial) == ["a"]
    assert _ids(workflow.step_graph.successors["a"]) == ["b", "c"]
    assert set(workflow.steps) == {"a", "b", "c"}


def test_parallel_roots_and_after_join():
    a, b, merge = Step("a"), Step("b"), Step("merge")
    workflow = Workflow("join").step(a).step(b).after([a, b]).step(merge).commit()

    assert _ids(workflow.step_graph.initial) == ["a", "b"]
    subscriber = workflow.step_subscriber_graph["a&&b"]
    assert _ids(subscriber.initial) == ["merge"]


def test_then_inside_after_scope_extends_subscriber_chain():
    a, b, c = Step("a"), Step("b"), Step("c")
    workflow = Workflow("nested").step(a).after(a).step(b).then(c).commit()

    subscriber = workflow.step_subscriber_graph["a"]
    assert _ids(subscriber.initial) == ["b"]
    assert _ids(subscriber.successors["b"]) == ["c"]
    assert workflow.step_graph.successors["a"] == []


def test_then_without_step_is_rejected():
    with pytest.raises(WorkflowDefinitionError):
        Workflow("empty").then(Step("a"))


def test_reusing_an_id_for_another_step_is_rejected():
    workflow = Workflow("dupes").step(Step("a"))
    with pytest.raises(WorkflowDefinitionError):
        workflow.then(Step("a"))


def test_after_unknown_step_is_rejected():
    workflow = Workflow("unknown").step(Step("a"))
    with pytest.raises(StepNotFoundError):
        workflow.after("missing")


def test_if_and_else_need_context():
    with pytest.raises(WorkflowDefinitionError):
        Workflow("no-step").if_({"trigger.flag": True})
    with pytest.raises(WorkflowDefinitionError):
        Workflow("no-if").step(Step("a")).else_()


def test_if_else_creates_branch_markers():
    check, big, small = Step("check"), Step("big"), Step("small")
    condition = {"ref": {"step": check, "path": "value"}, "query": {"$gt": 3}}
    workflow = (
        Workflow("branches")
        .step(check)
        .if_(condition)
        .then(big)
        .else_()
        .then(small)
        .commit()
    )

    subscriber = workflow.step_subscriber_graph["check"]
    assert _ids(subscriber.initial) == ["__check_if", "__check_else"]
    assert _ids(subscriber.successors["__check_if"]) == ["big"]
    assert _ids(subscriber.successors["__check_else"]) == ["small"]
    else_node = subscriber.initial[1]
    assert else_node.when == {
        "not": {"ref": {"step": "check", "path": "value"}, "query": {"$gt": 3}}
    }


def test_while_creates_check_and_finished_steps():
    start, increment = Step("start"), Step("increment")
    condition = {"ref": {"step": increment, "path": "value"}, "query": {"$lt": 3}}
    workflow = Workflow("loop").step(start).while_(condition, increment).commit()

    check_id = "__increment_while_loop_check"
    finished_id = "__increment_while_loop_finished"
    assert {check_id, finished_id} <= set(workflow.steps)
    assert _ids(workflow.step_graph.successors["start"]) == [check_id]

    subscriber = workflow.step_subscriber_graph[check_id]
    assert _ids(subscriber.initial) == ["increment", finished_id]
    assert _ids(subscriber.successors["increment"]) == [check_id]

    serialized = workflow.serialized_step_subscriber_graph[check_id]
    fallback_config = serialized["initial"][0]["config"]
    assert fallback_config["loop_type"] == "while"
    assert fallback_config["when"] == {
        "type": "query",
        "query": {"ref": {"step": "increment", "path": "value"}, "query": {"$lt": 3}},
    }


def test_after_event_requires_declared_event():
    class Approval(BaseModel):
        approved: bool

    request = Step("request")
    workflow = Workflow("events", events={"approval": Approval}).step(request)
    with pytest.raises(EventNotFoundError):
        workflow.after_event("refund")

    workflow.after_event("approval").step(Step("process")).commit()
    assert "__approval_event" in workflow.steps
    assert _ids(workflow.step_subscriber_graph["request"].initial) == ["__approval_event"]
    assert _ids(workflow.step_subscriber_graph["__approval_event"].initial) == ["process"]


def test_variables_are_validated_and_serialized():
    fetch, report = Step("fetch"), Step("report")
    with pytest.raises(WorkflowDefinitionError):
        Workflow("bad-vars").step(fetch).then(report, variables={"value": "fetch.value"})

    workflow = (
        Workflow("vars")
        .step(fetch)
        .then(report, variables={"value": {"step": fetch, "path": "value"}})
        .commit()
    )
    serialized = workflow.serialized_step_graph
    assert serialized["initial"][0]["step"]["id"] == "fetch"
    assert serialized["fetch"][0]["config"]["variables"] == {
        "value": {"step": "fetch", "path": "value"}
    }
