"""Workflow definitions: the fluent builder surface and the run registry."""

from __future__ import annotations

import logging
import time
import uuid
import warnings
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Set, Union

from pydantic import BaseModel

from .graph import StepGraph, StepGraphBuilder
from .instance import Watcher, WorkflowInstance
from .machine import TERMINAL_STATES, StepState
from .models import ActivePath, WorkflowResumeResult, WorkflowRunState
from .settings import WorkflowSettings
from .step import RetryConfig, Step

logger = logging.getLogger(__name__)

StepRef = Union[Step, str]


def _active_paths(snapshot: WorkflowRunState) -> List[ActivePath]:
    """Recompute the open paths of a stored run from its step states."""
    scopes = [((), snapshot.value)]
    scopes += [((key,), child.value) for key, child in (snapshot.child_states or {}).items()]
    return [
        ActivePath(step_path=[*prefix, step_id], step_id=step_id, status=state)
        for prefix, values in scopes
        for step_id, state in values.items()
        if StepState(state) not in TERMINAL_STATES
    ]


class Workflow:
    """A named graph of steps that can be run any number of times.

    Example::

        workflow = Workflow("greet", trigger_schema=GreetInput)
        workflow.step(fetch).then(format_message).commit()
        run = workflow.create_run()
        result = await run.start({"name": "Ada"})
    """

    def __init__(
        self,
        name: str,
        trigger_schema: Optional[type[BaseModel]] = None,
        events: Optional[Mapping[str, Optional[type[BaseModel]]]] = None,
        retry_config: Optional[RetryConfig] = None,
        mastra: Any = None,
        settings: Optional[WorkflowSettings] = None,
    ) -> None:
        if not name:
            raise ValueError("Workflow name must be a non-empty string")
        self.name = name
        self.trigger_schema = trigger_schema
        self.events: Dict[str, Optional[type[BaseModel]]] = dict(events or {})
        self.retry_config = retry_config
        self.settings = settings or WorkflowSettings()
        self._explicit_settings = settings is not None
        self._mastra = mastra
        self._builder = StepGraphBuilder()
        self._runs: Dict[str, WorkflowInstance] = {}
        self._watchers: Set[Watcher] = set()

    def __repr__(self) -> str:
        return f"Workflow(name={self.name!r}, steps={len(self._builder.steps)})"

    # ------------------------------------------------------------------
    # Builder
    def step(
        self,
        step: Step,
        *,
        when: Any = None,
        variables: Optional[Mapping[str, Any]] = None,
    ) -> "Workflow":
        """Add ``step`` as a root of the current scope."""
        self._builder.add_step(step, when=when, variables=variables)
        return self

    def then(
        self,
        step: Step,
        *,
        when: Any = None,
        variables: Optional[Mapping[str, Any]] = None,
    ) -> "Workflow":
        """Run ``step`` after the chain of the last added step succeeds."""
        self._builder.add_then(step, when=when, variables=variables)
        return self

    def after(self, steps: Union[StepRef, Sequence[StepRef]]) -> "Workflow":
        """Open a scope whose steps run once all of ``steps`` have finished."""
        self._builder.add_after(steps)
        return self

    def if_(self, condition: Any) -> "Workflow":
        self._builder.add_if(condition)
        return self

    def else_(self) -> "Workflow":
        self._builder.add_else()
        return self

    def while_(self, condition: Any, step: Step) -> "Workflow":
        """Re-run ``step`` as long as ``condition`` holds."""
        self._builder.add_loop(condition, step, "while")
        return self

    def until(self, condition: Any, step: Step) -> "Workflow":
        """Re-run ``step`` until ``condition`` holds."""
        self._builder.add_loop(condition, step, "until")
        return self

    def after_event(self, event_name: str) -> "Workflow":
        """Suspend the run after the last step until ``event_name`` arrives."""
        self._builder.add_after_event(event_name, self.events)
        return self

    def commit(self) -> "Workflow":
        self._builder.validate()
        logger.debug(
            f"Committed workflow {self.name} with {len(self._builder.steps)} steps"
        )
        return self

    # ------------------------------------------------------------------
    # Runs
    def create_run(
        self,
        run_id: Optional[str] = None,
        events: Optional[Mapping[str, Optional[type[BaseModel]]]] = None,
    ) -> WorkflowInstance:
        """Return a run handle, re-using the live run when ``run_id`` is known."""
        run_id = run_id or str(uuid.uuid4())
        existing = self._runs.get(run_id)
        if existing is not None:
            return existing

        run = WorkflowInstance(
            name=self.name,
            steps=self._builder.steps,
            step_graph=self._builder.graph,
            step_subscriber_graph=self._builder.subscriber_graphs,
            run_id=run_id,
            trigger_schema=self.trigger_schema,
            retry_config=self.retry_config,
            events={**self.events, **(events or {})},
            watchers=self._watchers,
            mastra=self._mastra,
            settings=self.settings,
            on_finish=self._forget_run,
        )
        self._runs[run_id] = run
        return run

    def get_run(self, run_id: str) -> Optional[WorkflowInstance]:
        return self._runs.get(run_id)

    async def get_state(self, run_id: str) -> Optional[WorkflowRunState]:
        """Return the live state of a run, falling back to the stored snapshot."""
        run = self._runs.get(run_id)
        if run is not None:
            return run.get_state()
        if self._mastra is None:
            return None
        storage = self._mastra.get_storage()
        if storage is None:
            return None
        snapshot = await storage.load_workflow_snapshot(self.name, run_id)
        if snapshot is None:
            return None
        return snapshot.model_copy(
            update={
                "active_paths": _active_paths(snapshot),
                "timestamp": int(time.time() * 1000),
            }
        )

    def _forget_run(self, run_id: str) -> None:
        self._runs.pop(run_id, None)

    # ------------------------------------------------------------------
    # Introspection
    @property
    def steps(self) -> Dict[str, Step]:
        return self._builder.steps

    @property
    def step_graph(self) -> StepGraph:
        return self._builder.graph

    @property
    def step_subscriber_graph(self) -> Dict[str, StepGraph]:
        return self._builder.subscriber_graphs

    @property
    def serialized_step_graph(self) -> Dict[str, Any]:
        return self._builder.graph.describe()

    @property
    def serialized_step_subscriber_graph(self) -> Dict[str, Any]:
        return {
            key: graph.describe()
            for key, graph in self._builder.subscriber_graphs.items()
        }

    @property
    def mastra(self) -> Any:
        return self._mastra

    def register_mastra(self, mastra: Any) -> None:
        """Attach the owning container, its storage, telemetry and settings."""
        self._mastra = mastra
        config = getattr(mastra, "config", None)
        if config is not None and not self._explicit_settings:
            self.settings = config.workflows

    # ------------------------------------------------------------------
    # Deprecated run-level shortcuts
    async def resume(
        self, run_id: str, step_id: str, context: Optional[Mapping[str, Any]] = None
    ) -> WorkflowResumeResult:
        warnings.warn(
            "Workflow.resume() is deprecated, use create_run(run_id).resume() instead",
            DeprecationWarning,
            stacklevel=2,
        )
        return await self.create_run(run_id).resume(step_id, context)

    async def resume_with_event(
        self, run_id: str, event_name: str, data: Any = None
    ) -> WorkflowResumeResult:
        warnings.warn(
            "Workflow.resume_with_event() is deprecated, "
            "use create_run(run_id).resume_with_event() instead",
            DeprecationWarning,
            stacklevel=2,
        )
        return await self.create_run(run_id).resume_with_event(event_name, data)

    def watch(self, callback: Watcher) -> Callable[[], None]:
        """Call ``callback`` with the state of every run after each transition."""
        warnings.warn(
            "Workflow.watch() is deprecated, use create_run().watch() instead",
            DeprecationWarning,
            stacklevel=2,
        )
        self._watchers.add(callback)

        def unsubscribe() -> None:
            self._watchers.discard(callback)

        return unsubscribe
