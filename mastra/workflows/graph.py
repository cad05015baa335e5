"""Step graph structures and the fluent builder that fills them.

A :class:`StepGraph` holds the root nodes of a workflow (``initial``, run
concurrently) and, per step id, the ordered chain of nodes that runs after
that step succeeds. Subscriber graphs are separate step graphs keyed by a
compound key (step ids joined with ``&&``) and are spawned once every step
in the key has finished.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Mapping, Optional, Sequence, Union

from .conditions import (
    LOOP_COMPLETE,
    LOOP_CONTINUE,
    describe_condition,
    evaluate_loop_condition,
    negate_condition,
    normalize_condition,
    step_ref_id,
)
from .errors import EventNotFoundError, StepNotFoundError, WorkflowDefinitionError
from .models import TRIGGER, StepSuccess, WhenConditionReturnValue, WorkflowContext
from .step import Step, StepExecutionContext

COMPOUND_KEY_SEPARATOR = "&&"


def compound_key(step_ids: Sequence[str]) -> str:
    return COMPOUND_KEY_SEPARATOR.join(step_ids)


def split_compound_key(key: str) -> List[str]:
    return key.split(COMPOUND_KEY_SEPARATOR)


@dataclass(frozen=True)
class VariableReference:
    """Maps a step input field to a path in an upstream output or the trigger."""

    step_id: str
    path: str = ""

    @classmethod
    def parse(cls, raw: Any) -> "VariableReference":
        if isinstance(raw, VariableReference):
            return raw
        if isinstance(raw, dict) and "step" in raw:
            try:
                step_id = step_ref_id(raw["step"])
            except ValueError as exc:
                raise WorkflowDefinitionError(str(exc)) from exc
            return cls(step_id=step_id, path=raw.get("path", "") or "")
        raise WorkflowDefinitionError(
            f"Variables must look like {{'step': ..., 'path': ...}}, got {raw!r}"
        )

    @property
    def is_trigger(self) -> bool:
        return self.step_id == TRIGGER


@dataclass(frozen=True)
class StepNode:
    step: Step
    when: Any = None
    variables: Dict[str, VariableReference] = field(default_factory=dict)
    loop_label: Optional[str] = None
    loop_type: Optional[str] = None
    serialized_when: Any = None

    @property
    def id(self) -> str:
        return self.step.id

    def describe(self) -> Dict[str, Any]:
        return {
            "step": {"id": self.id, "description": self.step.description},
            "config": {
                "when": self.serialized_when,
                "variables": {
                    name: {"step": ref.step_id, "path": ref.path}
                    for name, ref in self.variables.items()
                },
                "loop_label": self.loop_label,
                "loop_type": self.loop_type,
            },
        }


class StepGraph:
    def __init__(self) -> None:
        self.initial: List[StepNode] = []
        self.successors: Dict[str, List[StepNode]] = {}

    def chain(self, step_id: str) -> List[StepNode]:
        return self.successors.get(step_id, [])

    def find_root(self, step_id: str) -> Optional[StepNode]:
        return next((node for node in self.initial if node.id == step_id), None)

    def nodes(self) -> Iterator[StepNode]:
        yield from self.initial
        for chain in self.successors.values():
            yield from chain

    def describe(self) -> Dict[str, List[Dict[str, Any]]]:
        described = {"initial": [node.describe() for node in self.initial]}
        for step_id, chain in self.successors.items():
            described[step_id] = [node.describe() for node in chain]
        return described


@dataclass(frozen=True)
class StepLocation:
    """Where a node sits: graph scope, chain root and index in the chain.

    ``scope`` is empty for the main graph and the compound key otherwise.
    ``index`` is ``-1`` for the root node itself.
    """

    scope: str
    root: str
    index: int = -1

    def __str__(self) -> str:
        return f"{self.scope}/{self.root}/{self.index}"

    @classmethod
    def parse(cls, raw: str) -> "StepLocation":
        try:
            scope, root, index = raw.rsplit("/", 2)
            return cls(scope=scope, root=root, index=int(index))
        except ValueError as exc:
            raise StepNotFoundError(f"Malformed step location {raw!r}") from exc

    def resolve(self, graph: StepGraph) -> StepNode:
        if self.index < 0:
            node = graph.find_root(self.root)
        else:
            chain = graph.chain(self.root)
            node = chain[self.index] if self.index < len(chain) else None
        if node is None:
            raise StepNotFoundError(f"No step found at location {self}")
        return node


@dataclass(frozen=True)
class RootScope:
    """Nodes are added to the main graph."""


@dataclass(frozen=True)
class AfterScope:
    """Nodes are added to the subscriber graph of ``compound_key``."""

    compound_key: str


BuilderScope = Union[RootScope, AfterScope]
ROOT_SCOPE = RootScope()


@dataclass
class _IfFrame:
    condition: Any
    else_step_id: str
    cond_step: Step


def _branch_marker(ctx: StepExecutionContext) -> Dict[str, Any]:
    return {"executed": True}


def _loop_finished(ctx: StepExecutionContext) -> Dict[str, Any]:
    return {"success": True}


async def _wait_for_event(ctx: StepExecutionContext) -> Dict[str, Any]:
    resumed = ctx.context.input_data.get("resumed_event")
    if resumed is not None:
        return {"executed": True, "resumed_event": resumed}
    await ctx.suspend()
    return {"executed": False}


class StepGraphBuilder:
    """Accumulates the declarative structure of a workflow.

    The builder tracks an explicit stack of scopes. ``after`` pushes an
    :class:`AfterScope`; while one is active, ``step`` adds roots to that
    scope's subscriber graph and ``then`` extends chains inside it.
    """

    def __init__(self) -> None:
        self.steps: Dict[str, Step] = {}
        self.graph = StepGraph()
        self.subscriber_graphs: Dict[str, StepGraph] = {}
        self._scopes: List[BuilderScope] = []
        self._last_steps: List[str] = []
        self._if_stack: List[_IfFrame] = []
        self._event_steps: Dict[str, Step] = {}

    @property
    def scope(self) -> BuilderScope:
        return self._scopes[-1] if self._scopes else ROOT_SCOPE

    # ------------------------------------------------------------------
    # Helpers
    def _register(self, step: Step) -> None:
        if not isinstance(step, Step):
            raise WorkflowDefinitionError(f"Expected a Step, got {type(step).__name__}")
        existing = self.steps.get(step.id)
        if existing is not None and existing is not step:
            raise WorkflowDefinitionError(
                f"Step id {step.id!r} is already used by another step"
            )
        self.steps[step.id] = step

    def _make_node(
        self,
        step: Step,
        when: Any = None,
        variables: Optional[Mapping[str, Any]] = None,
        loop_label: Optional[str] = None,
        loop_type: Optional[str] = None,
        display_when: Any = None,
    ) -> StepNode:
        if when is not None and not callable(when):
            try:
                when = normalize_condition(when)
            except (TypeError, ValueError) as exc:
                raise WorkflowDefinitionError(f"Invalid condition for step {step.id}: {exc}") from exc
        parsed = {name: VariableReference.parse(ref) for name, ref in (variables or {}).items()}
        return StepNode(
            step=step,
            when=when,
            variables=parsed,
            loop_label=loop_label,
            loop_type=loop_type,
            serialized_when=describe_condition(display_when if display_when is not None else when),
        )

    def _last_step(self) -> Step:
        if not self._last_steps:
            raise WorkflowDefinitionError("Condition requires a step to be executed after")
        return self.steps[self._last_steps[-1]]

    # ------------------------------------------------------------------
    # Builder operations
    def add_step(self, step: Step, **config: Any) -> None:
        node = self._make_node(step, **config)
        self._register(step)

        scope = self.scope
        if isinstance(scope, AfterScope):
            graph = self.subscriber_graphs[scope.compound_key]
            if graph.find_root(step.id) is None:
                graph.initial.append(node)
            graph.successors.setdefault(step.id, [])
        else:
            self.graph.successors.setdefault(step.id, [])
            self.graph.initial.append(node)
        self._last_steps.append(step.id)

    def add_then(self, step: Step, **config: Any) -> None:
        if not self._last_steps:
            raise WorkflowDefinitionError(f"then({step.id}) requires a preceding step")
        last_step_id = self._last_steps[-1]
        node = self._make_node(step, **config)
        self._register(step)

        scope = self.scope
        if isinstance(scope, AfterScope):
            graph = self.subscriber_graphs[scope.compound_key]
            if last_step_id in graph.successors:
                graph.successors[last_step_id].append(node)
                return
        self.graph.successors.setdefault(last_step_id, []).append(node)

    def add_after(self, steps: Union[Step, str, Sequence[Union[Step, str]]]) -> str:
        items = list(steps) if isinstance(steps, (list, tuple)) else [steps]
        if not items:
            raise WorkflowDefinitionError("after() requires at least one step")
        step_ids = []
        for item in items:
            step_id = step_ref_id(item)
            if step_id not in self.steps:
                raise StepNotFoundError(f"Step {step_id} is not part of this workflow")
            step_ids.append(step_id)

        key = compound_key(step_ids)
        self._scopes.append(AfterScope(key))
        self.subscriber_graphs.setdefault(key, StepGraph())
        return key

    def add_if(self, condition: Any) -> None:
        if condition is None:
            raise WorkflowDefinitionError("if_() requires a condition")
        cond_step = self._last_step()
        self.add_after(cond_step)
        self.add_step(Step(f"__{cond_step.id}_if", _branch_marker), when=condition)
        self._if_stack.append(
            _IfFrame(condition=condition, else_step_id=f"__{cond_step.id}_else", cond_step=cond_step)
        )

    def add_else(self) -> None:
        if not self._if_stack:
            raise WorkflowDefinitionError("No active condition found")
        frame = self._if_stack.pop()
        self.add_after(frame.cond_step)
        self.add_step(
            Step(frame.else_step_id, _branch_marker),
            when=negate_condition(frame.condition),
        )

    def add_loop(self, condition: Any, fallback_step: Step, loop_type: str) -> None:
        if condition is None:
            raise WorkflowDefinitionError(f"{loop_type}() requires a condition")
        self._last_step()
        if not callable(condition):
            try:
                condition = normalize_condition(condition)
            except (TypeError, ValueError) as exc:
                raise WorkflowDefinitionError(f"Invalid loop condition: {exc}") from exc
        self._register(fallback_step)

        check_id = f"__{fallback_step.id}_{loop_type}_loop_check"
        finished_id = f"__{fallback_step.id}_{loop_type}_loop_finished"

        async def check_loop(ctx: StepExecutionContext) -> Dict[str, str]:
            return await evaluate_loop_condition(condition, ctx.context, loop_type)

        def repeat_loop(context: WorkflowContext) -> WhenConditionReturnValue:
            result = context.steps.get(check_id)
            if not isinstance(result, StepSuccess):
                return WhenConditionReturnValue.ABORT
            if result.output.get("status") == LOOP_CONTINUE:
                return WhenConditionReturnValue.CONTINUE
            return WhenConditionReturnValue.CONTINUE_FAILED

        def finish_loop(context: WorkflowContext) -> WhenConditionReturnValue:
            result = context.steps.get(check_id)
            if isinstance(result, StepSuccess) and result.output.get("status") == LOOP_COMPLETE:
                return WhenConditionReturnValue.CONTINUE
            return WhenConditionReturnValue.CONTINUE_FAILED

        check_step = self.steps.get(check_id) or Step(check_id, check_loop)
        finished_step = Step(finished_id, _loop_finished)
        check_label = f"{fallback_step.id} {loop_type} loop check"

        self.add_then(check_step, loop_label=check_label)
        self.add_after(check_step)
        self.add_step(
            fallback_step,
            when=repeat_loop,
            display_when=condition,
            loop_type=loop_type,
        )
        self.add_then(check_step, loop_label=check_label)
        self.add_step(
            finished_step,
            when=finish_loop,
            loop_label=f"{fallback_step.id} {loop_type} loop finished",
            loop_type=loop_type,
        )

    def add_after_event(self, event_name: str, events: Mapping[str, Any]) -> None:
        if event_name not in events:
            raise EventNotFoundError(f"Event {event_name} not found")
        last_step = self._last_step()
        event_step = self._event_steps.setdefault(
            event_name, Step(f"__{event_name}_event", _wait_for_event)
        )
        self.add_after(last_step)
        self.add_step(event_step)
        self.add_after(event_step)

    def validate(self) -> None:
        """Check that every node and compound key refers to a registered step."""
        graphs = {"": self.graph, **self.subscriber_graphs}
        for key, graph in graphs.items():
            for node in graph.nodes():
                if self.steps.get(node.id) is not node.step:
                    raise WorkflowDefinitionError(
                        f"Step {node.id} in graph {key or 'main'} is not registered"
                    )
            if key:
                for step_id in split_compound_key(key):
                    if step_id not in self.steps:
                        raise WorkflowDefinitionError(
                            f"Subscriber key {key} references unknown step {step_id}"
                        )
