"""Execution of a single workflow run."""

from __future__ import annotations

import asyncio
import copy
import inspect
import logging
import uuid
from typing import Any, Awaitable, Callable, Dict, List, Mapping, Optional, Set, Tuple

from pydantic import BaseModel, ValidationError

from ..utils.retry import schedule_retry
from .conditions import (
    MISSING,
    call_condition,
    evaluate_condition,
    referenced_steps,
    resolve_path,
)
from .errors import (
    EventNotFoundError,
    SchemaValidationError,
    SnapshotNotFoundError,
    StepNotFoundError,
    StepNotSuspendedError,
    WorkflowError,
)
from .graph import StepGraph, StepLocation, StepNode, split_compound_key
from .machine import (
    ACTIVE_STATES,
    TERMINAL_STATES,
    DependencyCheck,
    DependencyCheckOutput,
    StepOutcome,
    StepState,
    validate_transition,
)
from .models import (
    TERMINAL_RESULT_STATUSES,
    ActivePath,
    SnapshotContext,
    StepFailure,
    StepSkipped,
    StepSuccess,
    StepSuspended,
    StepWaiting,
    WhenConditionReturnValue,
    WorkflowContext,
    WorkflowResumeResult,
    WorkflowRunResult,
    WorkflowRunState,
)
from .settings import WorkflowSettings
from .step import RetryConfig, Step, StepExecutionContext

logger = logging.getLogger(__name__)

Watcher = Callable[[WorkflowRunState], Any]

_CONTROL_CHECKS = {
    WhenConditionReturnValue.CONTINUE: DependencyCheck.CONDITIONS_MET,
    WhenConditionReturnValue.CONTINUE_FAILED: DependencyCheck.CONDITIONS_SKIP_TO_COMPLETED,
    WhenConditionReturnValue.ABORT: DependencyCheck.CONDITIONS_SKIPPED,
    WhenConditionReturnValue.LIMBO: DependencyCheck.CONDITIONS_LIMBO,
}


class _Suspension:
    """Collects a ``suspend()`` request made by a running step."""

    def __init__(self) -> None:
        self.requested = False
        self.payload: Any = None

    async def suspend(self, payload: Any = None) -> None:
        self.requested = True
        self.payload = payload


class WorkflowInstance:
    """One run of a workflow: step states, context and the asyncio driver.

    Every root node and every spawned subscriber graph runs in its own task.
    ``start`` and ``resume`` return once no task is left, i.e. when every
    reachable step has settled, suspended or parked.
    """

    def __init__(
        self,
        *,
        name: str,
        steps: Mapping[str, Step],
        step_graph: StepGraph,
        step_subscriber_graph: Mapping[str, StepGraph],
        run_id: Optional[str] = None,
        trigger_schema: Optional[type[BaseModel]] = None,
        retry_config: Optional[RetryConfig] = None,
        events: Optional[Mapping[str, Optional[type[BaseModel]]]] = None,
        watchers: Optional[Set[Watcher]] = None,
        mastra: Any = None,
        settings: Optional[WorkflowSettings] = None,
        on_finish: Optional[Callable[[str], None]] = None,
    ) -> None:
        self.name = name
        self.run_id = run_id or str(uuid.uuid4())
        self._steps = steps
        self._graph = step_graph
        self._subscriber_graphs = step_subscriber_graph
        self._trigger_schema = trigger_schema
        self._retry_config = retry_config
        self._events = dict(events or {})
        self._workflow_watchers: Set[Watcher] = watchers if watchers is not None else set()
        self._watchers: Set[Watcher] = set()
        self._mastra = mastra
        self._settings = settings or WorkflowSettings()
        self._on_finish = on_finish

        self._context = WorkflowContext(mastra=mastra)
        self._value: Dict[str, StepState] = {}
        self._child_values: Dict[str, Dict[str, StepState]] = {}
        # Latest state of each step id, whichever graph it ran in.
        self._states: Dict[str, StepState] = {}
        self._suspended: Dict[str, str] = {}
        # Step suspended by the engine -> guarded steps parked behind it.
        self._blocked: Dict[str, Set[str]] = {}
        self._tasks: Set[asyncio.Task] = set()
        self._persist_lock = asyncio.Lock()
        self._started = False

    def __repr__(self) -> str:
        return f"WorkflowInstance(name={self.name!r}, run_id={self.run_id!r})"

    # ------------------------------------------------------------------
    # Public API
    async def start(self, trigger_data: Optional[Mapping[str, Any]] = None) -> WorkflowRunResult:
        """Run the workflow until nothing can make progress."""
        if self._started:
            raise WorkflowError(f"Run {self.run_id} of workflow {self.name} was already started")
        data = self._validate_trigger(dict(trigger_data or {}))
        self._started = True
        self._context.trigger_data = data
        self._context.attempts = {
            step_id: self._retry_for(step).attempts for step_id, step in self._steps.items()
        }

        logger.info(f"Starting workflow {self.name} run {self.run_id}", extra=self._extra())
        for node in self._graph.initial:
            self._spawn(self._run_from(StepLocation(scope="", root=node.id)))
        await self._drain()
        self._finish()

        state = self.get_state()
        return WorkflowRunResult(
            trigger_data=copy.deepcopy(self._context.trigger_data),
            results=dict(self._context.steps),
            run_id=self.run_id,
            active_paths=state.active_paths,
        )

    async def resume(
        self, step_id: str, context: Optional[Mapping[str, Any]] = None
    ) -> WorkflowResumeResult:
        """Re-drive a suspended step and everything downstream of it.

        A run that is not in memory is restored from the snapshot store
        first. ``context`` is merged over the step's input for this drive.
        """
        if step_id not in self._steps:
            raise StepNotFoundError(f"Step {step_id} not found in workflow {self.name}")
        if not self._started:
            await self._restore_from_storage()

        location = self._suspended.get(step_id)
        if location is None:
            raise StepNotSuspendedError(f"Step {step_id} of run {self.run_id} is not suspended")

        logger.info(f"Resuming step {step_id} of run {self.run_id}", extra=self._extra(step_id))
        self._spawn(self._run_from(StepLocation.parse(location), dict(context or {})))
        await self._drain()
        self._finish()

        state = self.get_state()
        return WorkflowResumeResult(
            trigger_data=copy.deepcopy(self._context.trigger_data),
            results=dict(self._context.steps),
            run_id=self.run_id,
            active_paths=state.active_paths,
        )

    async def resume_with_event(self, event_name: str, data: Any = None) -> WorkflowResumeResult:
        """Deliver ``data`` to the step waiting on ``event_name``."""
        if event_name not in self._events:
            raise EventNotFoundError(f"Event {event_name} not found")
        schema = self._events[event_name]
        if schema is not None:
            try:
                data = schema.model_validate(data).model_dump(mode="json")
            except ValidationError as exc:
                raise SchemaValidationError(
                    f"Invalid data for event {event_name}", exc.errors()
                ) from exc
        return await self.resume(f"__{event_name}_event", context={"resumed_event": data})

    def watch(self, callback: Watcher) -> Callable[[], None]:
        """Call ``callback`` with the run state after every transition."""
        self._watchers.add(callback)

        def unsubscribe() -> None:
            self._watchers.discard(callback)

        return unsubscribe

    def get_state(self) -> WorkflowRunState:
        active_paths = [
            ActivePath(step_path=[step_id], step_id=step_id, status=state.value)
            for step_id, state in self._value.items()
            if state not in TERMINAL_STATES
        ]

        child_states: Dict[str, WorkflowRunState] = {}
        for key, values in self._child_values.items():
            child_paths = [
                ActivePath(step_path=[key, step_id], step_id=step_id, status=state.value)
                for step_id, state in values.items()
                if state not in TERMINAL_STATES
            ]
            child_states[key] = WorkflowRunState(
                value={step_id: state.value for step_id, state in values.items()},
                context=self._snapshot_context(values),
                active_paths=child_paths,
                run_id=self.run_id,
            )
            active_paths.extend(child_paths)

        return WorkflowRunState(
            value={step_id: state.value for step_id, state in self._value.items()},
            context=self._snapshot_context(),
            active_paths=active_paths,
            run_id=self.run_id,
            child_states=child_states or None,
            suspended_steps=dict(self._suspended) or None,
        )

    async def persist_workflow_snapshot(self) -> None:
        storage = self._storage()
        if storage is None:
            return
        async with self._persist_lock:
            # Built inside the lock so the last write always carries the latest state.
            await storage.save_workflow_snapshot(self.name, self.run_id, self.get_state())

    # ------------------------------------------------------------------
    # Driver
    async def _run_from(
        self,
        location: StepLocation,
        resume_context: Optional[Dict[str, Any]] = None,
        view: Optional[WorkflowContext] = None,
    ) -> None:
        """Drive the node at ``location`` and then the rest of its chain.

        ``view`` is the context captured when a subscriber graph was spawned;
        the first dependency check of the root node is made against it.
        """
        graph = self._graph_for(location.scope)
        chain = graph.chain(location.root)
        index = location.index

        outcome = await self._drive(location.resolve(graph), location, resume_context, view)
        while outcome is StepOutcome.SUCCESS and index + 1 < len(chain):
            index += 1
            outcome = await self._drive(
                chain[index], StepLocation(location.scope, location.root, index)
            )

        if outcome in (StepOutcome.FAILED, StepOutcome.SKIPPED):
            for skipped in range(index + 1, len(chain)):
                node = chain[skipped]
                node_location = StepLocation(location.scope, location.root, skipped)
                await self._transition(location.scope, node.id, StepState.PENDING)
                await self._settle(node_location, node.id, StepSkipped(), StepState.SKIPPED)

    async def _drive(
        self,
        node: StepNode,
        location: StepLocation,
        resume_context: Optional[Dict[str, Any]] = None,
        view: Optional[WorkflowContext] = None,
    ) -> StepOutcome:
        step_id = node.id
        scope = location.scope
        self._suspended.pop(step_id, None)
        await self._transition(scope, step_id, StepState.PENDING)

        check = await self._wait_for_dependencies(node, location, view)
        if check.type is DependencyCheck.CONDITIONS_MET:
            return await self._execute(node, location, resume_context)

        if check.type is DependencyCheck.CONDITIONS_SKIPPED:
            logger.debug(f"Skipping step {step_id}", extra=self._extra(step_id))
            await self._settle(location, step_id, StepSkipped(), StepState.SKIPPED)
            return StepOutcome.SKIPPED

        if check.type is DependencyCheck.CONDITIONS_SKIP_TO_COMPLETED:
            await self._transition(scope, step_id, StepState.COMPLETED)
            return StepOutcome.SKIP_TO_COMPLETED

        if check.type is DependencyCheck.CONDITION_FAILED:
            logger.warning(
                f"Condition of step {step_id} failed: {check.error}", extra=self._extra(step_id)
            )
            await self._settle(
                location, step_id, StepFailure(error=check.error or "condition failed"), StepState.FAILED
            )
            return StepOutcome.FAILED

        if check.type is DependencyCheck.SUSPENDED:
            logger.info(
                f"Step {step_id} suspended while {check.blocked_on} is suspended",
                extra=self._extra(step_id),
            )
            self._suspended[step_id] = str(location)
            if check.blocked_on:
                self._blocked.setdefault(check.blocked_on, set()).add(step_id)
            await self._settle(location, step_id, StepSuspended(), StepState.SUSPENDED)
            return StepOutcome.SUSPENDED

        # Limbo: the step stays pending until something re-drives it.
        logger.debug(f"Step {step_id} parked in limbo", extra=self._extra(step_id))
        return StepOutcome.LIMBO

    async def _wait_for_dependencies(
        self, node: StepNode, location: StepLocation, view: Optional[WorkflowContext] = None
    ) -> DependencyCheckOutput:
        waited = 0
        while True:
            check = await self._check_dependencies(node, location, view)
            view = None
            if check.type is not DependencyCheck.WAITING:
                break
            if waited >= self._settings.max_wait_checks:
                check = DependencyCheckOutput(
                    DependencyCheck.CONDITION_FAILED, error="condition check timed out"
                )
                break
            if waited == 0:
                self._context.steps[node.id] = StepWaiting()
                await self._transition(location.scope, node.id, StepState.WAITING)
            waited += 1
            await asyncio.sleep(self._settings.check_interval)

        if waited:
            await self._transition(location.scope, node.id, StepState.PENDING)
        return check

    async def _check_dependencies(
        self, node: StepNode, location: StepLocation, view: Optional[WorkflowContext] = None
    ) -> DependencyCheckOutput:
        context = view if view is not None else self._read_view()
        if location.scope and location.index < 0:
            for member in split_compound_key(location.scope):
                if not isinstance(context.steps.get(member), StepSuccess):
                    return DependencyCheckOutput(DependencyCheck.CONDITIONS_SKIPPED)

        if node.when is None:
            return DependencyCheckOutput(DependencyCheck.CONDITIONS_MET)

        if callable(node.when):
            try:
                result = await call_condition(node.when, context)
            except Exception as exc:
                return DependencyCheckOutput(DependencyCheck.CONDITION_FAILED, error=str(exc))
            return self._interpret(result)

        for dependency in sorted(referenced_steps(node.when)):
            if dependency == node.id:
                continue
            state = self._states.get(dependency)
            if state is StepState.SUSPENDED:
                return DependencyCheckOutput(DependencyCheck.SUSPENDED, blocked_on=dependency)
            if state in ACTIVE_STATES:
                return DependencyCheckOutput(DependencyCheck.WAITING)

        try:
            holds = evaluate_condition(node.when, context)
        except Exception as exc:
            return DependencyCheckOutput(DependencyCheck.CONDITION_FAILED, error=str(exc))
        if holds:
            return DependencyCheckOutput(DependencyCheck.CONDITIONS_MET)
        return DependencyCheckOutput(DependencyCheck.CONDITIONS_SKIPPED)

    @staticmethod
    def _interpret(result: Any) -> DependencyCheckOutput:
        if isinstance(result, str):
            try:
                control = WhenConditionReturnValue(result)
            except ValueError:
                return DependencyCheckOutput(
                    DependencyCheck.CONDITION_FAILED,
                    error=f"Unknown condition result {result!r}",
                )
            return DependencyCheckOutput(_CONTROL_CHECKS[control])
        if result:
            return DependencyCheckOutput(DependencyCheck.CONDITIONS_MET)
        return DependencyCheckOutput(DependencyCheck.CONDITIONS_SKIPPED)

    async def _execute(
        self,
        node: StepNode,
        location: StepLocation,
        resume_context: Optional[Dict[str, Any]] = None,
    ) -> StepOutcome:
        step = node.step
        scope = location.scope
        retry = self._retry_for(step)
        input_data = {**step.payload, **self._resolve_variables(node), **(resume_context or {})}
        self._context.attempts.setdefault(step.id, retry.attempts)

        while True:
            await self._transition(scope, step.id, StepState.EXECUTING)
            suspension = _Suspension()
            ctx = StepExecutionContext(
                context=self._read_view(copy.deepcopy(input_data)),
                run_id=self.run_id,
                suspend=suspension.suspend,
                mastra=self._mastra,
            )
            try:
                output = await self._invoke(step, ctx)
            except Exception as exc:
                remaining = self._context.attempts.get(step.id, 0)
                if remaining > 0:
                    self._context.attempts[step.id] = remaining - 1
                    attempt = retry.attempts - remaining + 1
                    logger.warning(
                        f"Step {step.id} failed: {exc}. Retrying ({attempt}/{retry.attempts})",
                        extra=self._extra(step.id),
                    )
                    await self._transition(scope, step.id, StepState.PENDING)
                    await schedule_retry(attempt, retry.delay, retry.backoff)
                    continue
                logger.error(f"Step {step.id} failed: {exc}", extra=self._extra(step.id))
                self._context.attempts[step.id] = retry.attempts
                await self._settle(location, step.id, StepFailure(error=str(exc)), StepState.FAILED)
                return StepOutcome.FAILED

            if suspension.requested:
                logger.info(f"Step {step.id} suspended", extra=self._extra(step.id))
                self._suspended[step.id] = str(location)
                await self._settle(
                    location,
                    step.id,
                    StepSuspended(suspend_payload=suspension.payload),
                    StepState.SUSPENDED,
                )
                return StepOutcome.SUSPENDED

            self._context.attempts[step.id] = retry.attempts
            await self._settle(location, step.id, StepSuccess(output=output), StepState.COMPLETED)
            return StepOutcome.SUCCESS

    async def _invoke(self, step: Step, ctx: StepExecutionContext) -> Any:
        run: Callable[[StepExecutionContext], Awaitable[Any]] = step.run
        telemetry = self._telemetry()
        if telemetry is not None:
            run = telemetry.trace_method(
                run,
                span_name=f"workflow.{self.name}.action.{step.id}",
                attributes={
                    "workflow.name": self.name,
                    "workflow.run_id": self.run_id,
                    "step.id": step.id,
                },
            )
        result = run(ctx)
        if inspect.isawaitable(result):
            result = await result
        return result

    # ------------------------------------------------------------------
    # State bookkeeping
    async def _settle(
        self, location: StepLocation, step_id: str, result: Any, state: StepState
    ) -> None:
        """Record ``result``, move to ``state`` and wake up subscribers."""
        previous = self._context.steps.get(step_id)
        changed = previous is None or previous.status != result.status
        self._context.steps[step_id] = result
        # Decided together with the write so concurrent settles spawn a graph once.
        ready = []
        if isinstance(result, StepSuccess) or changed:
            ready = self._ready_subscribers(step_id)
        await self._transition(location.scope, step_id, state)
        for subscriber_location, view in ready:
            self._spawn(self._run_from(subscriber_location, view=view))

    async def _transition(self, scope: str, step_id: str, target: StepState) -> None:
        values = self._scope_values(scope)
        current = values.get(step_id)
        if current is StepState.PENDING and target is StepState.PENDING:
            return
        validate_transition(step_id, current, target)
        values[step_id] = target
        self._states[step_id] = target

        self._notify_watchers()
        await self.persist_workflow_snapshot()
        if target in TERMINAL_STATES:
            self._release_blocked(step_id)

    def _ready_subscribers(self, step_id: str) -> List[Tuple[StepLocation, WorkflowContext]]:
        """Return the subscriber roots to start now that ``step_id`` settled.

        Each root gets a copy of the context as it is at this moment.
        """
        ready: List[Tuple[StepLocation, WorkflowContext]] = []
        for key, graph in self._subscriber_graphs.items():
            members = split_compound_key(key)
            if step_id not in members:
                continue
            settled = all(
                member in self._context.steps
                and self._context.steps[member].status in TERMINAL_RESULT_STATUSES
                for member in members
            )
            if not settled:
                continue
            for node in graph.initial:
                ready.append((StepLocation(scope=key, root=node.id), self._read_view()))
        return ready

    def _release_blocked(self, step_id: str) -> None:
        for guarded in sorted(self._blocked.pop(step_id, ())):
            location = self._suspended.pop(guarded, None)
            if location is None:
                continue
            logger.debug(f"Re-driving step {guarded} after {step_id}", extra=self._extra(guarded))
            self._spawn(self._run_from(StepLocation.parse(location)))

    def _notify_watchers(self) -> None:
        callbacks = list(self._workflow_watchers) + list(self._watchers)
        if not callbacks:
            return
        state = self.get_state()
        for callback in callbacks:
            try:
                result = callback(state)
            except Exception:
                logger.exception(f"Watcher failed for run {self.run_id}", extra=self._extra())
                continue
            if inspect.isawaitable(result):
                self._spawn(self._await_watcher(result))

    async def _await_watcher(self, pending: Awaitable[Any]) -> None:
        try:
            await pending
        except Exception:
            logger.exception(f"Watcher failed for run {self.run_id}", extra=self._extra())

    def _spawn(self, coro: Awaitable[Any]) -> asyncio.Task:
        task = asyncio.ensure_future(coro)
        self._tasks.add(task)
        return task

    async def _drain(self) -> None:
        errors: List[BaseException] = []
        while self._tasks:
            tasks = list(self._tasks)
            results = await asyncio.gather(*tasks, return_exceptions=True)
            self._tasks.difference_update(tasks)
            errors.extend(result for result in results if isinstance(result, BaseException))
        if errors:
            raise errors[0]

    def _finish(self) -> None:
        if self._suspended:
            logger.info(
                f"Workflow {self.name} run {self.run_id} paused with suspended steps "
                f"{sorted(self._suspended)}",
                extra=self._extra(),
            )
            return
        logger.info(f"Workflow {self.name} run {self.run_id} finished", extra=self._extra())
        if self._on_finish is not None:
            self._on_finish(self.run_id)

    # ------------------------------------------------------------------
    # Helpers
    def _scope_values(self, scope: str) -> Dict[str, StepState]:
        if not scope:
            return self._value
        return self._child_values.setdefault(scope, {})

    def _graph_for(self, scope: str) -> StepGraph:
        if not scope:
            return self._graph
        graph = self._subscriber_graphs.get(scope)
        if graph is None:
            raise StepNotFoundError(f"No subscriber graph registered for {scope}")
        return graph

    def _retry_for(self, step: Step) -> RetryConfig:
        return step.retry_config or self._retry_config or self._settings.retry

    def _resolve_variables(self, node: StepNode) -> Dict[str, Any]:
        resolved: Dict[str, Any] = {}
        for field, ref in node.variables.items():
            if ref.is_trigger:
                source = self._context.trigger_data
            else:
                result = self._context.steps.get(ref.step_id)
                if not isinstance(result, StepSuccess):
                    continue
                source = result.output
            value = resolve_path(source, ref.path)
            if value is not MISSING:
                resolved[field] = copy.deepcopy(value)
        return resolved

    def _read_view(self, input_data: Optional[Dict[str, Any]] = None) -> WorkflowContext:
        """Return a copy of the run context that user code may freely mutate."""
        return WorkflowContext(
            steps={step_id: result.model_copy(deep=True) for step_id, result in self._context.steps.items()},
            trigger_data=copy.deepcopy(self._context.trigger_data),
            input_data=input_data or {},
            attempts=dict(self._context.attempts),
            mastra=self._mastra,
        )

    def _snapshot_context(self, step_ids: Optional[Mapping[str, Any]] = None) -> SnapshotContext:
        steps = self._context.steps
        if step_ids is not None:
            steps = {step_id: steps[step_id] for step_id in step_ids if step_id in steps}
        return SnapshotContext(
            steps={step_id: result.model_copy(deep=True) for step_id, result in steps.items()},
            trigger_data=copy.deepcopy(self._context.trigger_data),
            attempts=dict(self._context.attempts),
        )

    def _validate_trigger(self, data: Dict[str, Any]) -> Dict[str, Any]:
        if self._trigger_schema is None:
            return data
        try:
            return self._trigger_schema.model_validate(data).model_dump(mode="json")
        except ValidationError as exc:
            raise SchemaValidationError(
                f"Invalid trigger data for workflow {self.name}", exc.errors()
            ) from exc

    def _storage(self) -> Any:
        if self._mastra is None:
            return None
        return self._mastra.get_storage()

    def _telemetry(self) -> Any:
        if self._mastra is None:
            return None
        return self._mastra.get_telemetry()

    async def _restore_from_storage(self) -> None:
        storage = self._storage()
        snapshot = None
        if storage is not None:
            snapshot = await storage.load_workflow_snapshot(self.name, self.run_id)
        if snapshot is None:
            raise SnapshotNotFoundError(
                f"No snapshot found for workflow {self.name} run {self.run_id}"
            )
        self._restore(snapshot)

    def _restore(self, snapshot: WorkflowRunState) -> None:
        logger.debug(f"Restoring run {self.run_id} from snapshot", extra=self._extra())
        self._context.steps = dict(snapshot.context.steps)
        self._context.trigger_data = copy.deepcopy(snapshot.context.trigger_data)
        self._context.attempts = dict(snapshot.context.attempts)
        self._value = {step_id: StepState(state) for step_id, state in snapshot.value.items()}
        self._child_values = {
            key: {step_id: StepState(state) for step_id, state in child.value.items()}
            for key, child in (snapshot.child_states or {}).items()
        }
        self._states = {}
        for values in (*self._child_values.values(), self._value):
            self._states.update(values)
        self._suspended = dict(snapshot.suspended_steps or {})
        self._blocked = self._rebuild_blocked()
        self._started = True

    def _rebuild_blocked(self) -> Dict[str, Set[str]]:
        """Re-link guarded steps to the suspended steps their condition reads."""
        blocked: Dict[str, Set[str]] = {}
        for step_id, location in self._suspended.items():
            parsed = StepLocation.parse(location)
            node = parsed.resolve(self._graph_for(parsed.scope))
            if node.when is None or callable(node.when):
                continue
            for dependency in referenced_steps(node.when):
                if dependency != step_id and dependency in self._suspended:
                    blocked.setdefault(dependency, set()).add(step_id)
        return blocked

    def _extra(self, step_id: Optional[str] = None) -> Dict[str, Any]:
        extra = {"workflow": self.name, "run_id": self.run_id}
        if step_id is not None:
            extra["step_id"] = step_id
        return extra
