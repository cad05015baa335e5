"""Evaluation of ``when`` conditions against a workflow context.

Conditions come in two flavours:

* callables, invoked with the :class:`WorkflowContext` read view and allowed
  to return a bool or a :class:`WhenConditionReturnValue`;
* declarative dicts: ``{"ref": {"step": ..., "path": ...}, "query": {...}}``,
  the composites ``{"and": [...]}``, ``{"or": [...]}``, ``{"not": ...}`` and
  the simple form ``{"<step_id>.<path>": literal_or_query}``.

Declarative evaluation never raises for missing data: an unknown step, a
step without output or an unresolved path makes the condition false.
"""

from __future__ import annotations

import copy
import inspect
import operator
import re
from typing import Any, Callable, Dict, Set

from .models import TRIGGER, StepSuccess, WorkflowContext

LOOP_CONTINUE = "continue"
LOOP_COMPLETE = "complete"


class _Missing:
    def __repr__(self) -> str:
        return "MISSING"

    def __bool__(self) -> bool:
        return False


MISSING: Any = _Missing()


def resolve_path(source: Any, path: str) -> Any:
    """Follow a dot separated ``path`` into ``source``.

    Returns :data:`MISSING` when any segment cannot be resolved. An empty
    path or ``"."`` returns ``source`` itself.
    """
    if path in ("", "."):
        return source
    current = source
    for part in path.split("."):
        if isinstance(current, dict):
            if part not in current:
                return MISSING
            current = current[part]
        elif isinstance(current, (list, tuple)) and part.isdigit():
            index = int(part)
            if index >= len(current):
                return MISSING
            current = current[index]
        elif current is not None and current is not MISSING and hasattr(current, part):
            current = getattr(current, part)
        else:
            return MISSING
    return current


def _equals(value: Any, target: Any) -> bool:
    if value is MISSING:
        return False
    if isinstance(value, (list, tuple)) and not isinstance(target, (list, tuple)):
        return target in value
    return value == target


def _ordered(compare: Callable[[Any, Any], bool]) -> Callable[[Any, Any], bool]:
    def apply(value: Any, target: Any) -> bool:
        if value is MISSING or value is None or target is None:
            return False
        try:
            return bool(compare(value, target))
        except TypeError:
            return False

    return apply


def _regex(value: Any, target: Any) -> bool:
    return isinstance(value, str) and re.search(target, value) is not None


QUERY_OPERATORS: Dict[str, Callable[[Any, Any], bool]] = {
    "$eq": _equals,
    "$ne": lambda value, target: not _equals(value, target),
    "$gt": _ordered(operator.gt),
    "$gte": _ordered(operator.ge),
    "$lt": _ordered(operator.lt),
    "$lte": _ordered(operator.le),
    "$in": lambda value, target: any(_equals(value, item) for item in target),
    "$nin": lambda value, target: not any(_equals(value, item) for item in target),
    "$exists": lambda value, target: (value is not MISSING) == bool(target),
    "$regex": _regex,
    "$not": lambda value, target: not matches(target, value),
}


def is_operator_query(query: Any) -> bool:
    return isinstance(query, dict) and bool(query) and all(
        isinstance(key, str) and key.startswith("$") for key in query
    )


def matches(query: Any, value: Any) -> bool:
    """Return whether ``value`` satisfies a mongo style ``query``.

    A literal query means equality. A dict of ``$`` operators applies every
    operator. Any other dict matches field by field against a dict value.
    """
    if is_operator_query(query):
        for op, target in query.items():
            apply = QUERY_OPERATORS.get(op)
            if apply is None:
                raise ValueError(f"Unsupported query operator: {op}")
            if not apply(value, target):
                return False
        return True
    if isinstance(query, dict):
        if not isinstance(value, dict):
            return False
        return all(matches(sub, resolve_path(value, key)) for key, sub in query.items())
    return _equals(value, query)


def step_ref_id(step: Any) -> str:
    """Return the step id for a reference given as id, step object or dict."""
    if isinstance(step, str):
        return step
    if isinstance(step, dict) and "id" in step:
        return step["id"]
    step_id = getattr(step, "id", None)
    if isinstance(step_id, str):
        return step_id
    raise ValueError(f"Cannot determine step id from reference {step!r}")


def _resolve_reference(step: Any, path: str, context: WorkflowContext) -> Any:
    step_id = step_ref_id(step)
    if step_id == TRIGGER:
        return resolve_path(context.trigger_data, path)

    result = context.steps.get(step_id)
    if result is None:
        return MISSING
    if not isinstance(result, StepSuccess):
        return result.status if path == "status" else MISSING

    value = resolve_path(result.output, path)
    if value is MISSING and path == "status":
        return result.status
    return value


def evaluate_condition(condition: Dict[str, Any], context: WorkflowContext) -> bool:
    """Evaluate a declarative condition."""
    if not isinstance(condition, dict):
        raise TypeError(f"Declarative condition must be a dict, got {type(condition).__name__}")

    if "ref" in condition:
        ref = condition["ref"]
        value = _resolve_reference(ref["step"], ref.get("path", ""), context)
        if value is MISSING:
            return False
        return matches(condition.get("query", {}), value)
    if "and" in condition:
        return all(evaluate_condition(sub, context) for sub in condition["and"])
    if "or" in condition:
        return any(evaluate_condition(sub, context) for sub in condition["or"])
    if "not" in condition:
        return not evaluate_condition(condition["not"], context)

    for key, query in condition.items():
        step_id, _, path = key.partition(".")
        value = _resolve_reference(step_id, path, context)
        if value is MISSING or not matches(query, value):
            return False
    return True


def normalize_condition(condition: Any) -> Any:
    """Copy a declarative condition, replacing step objects by their ids."""
    if not isinstance(condition, dict):
        raise TypeError(f"Declarative condition must be a dict, got {type(condition).__name__}")
    if "ref" in condition:
        ref = condition["ref"]
        if not isinstance(ref, dict) or "step" not in ref:
            raise ValueError("Condition 'ref' must contain a 'step'")
        return {
            "ref": {"step": step_ref_id(ref["step"]), "path": ref.get("path", "")},
            "query": copy.deepcopy(condition.get("query", {})),
        }
    if "and" in condition:
        return {"and": [normalize_condition(sub) for sub in condition["and"]]}
    if "or" in condition:
        return {"or": [normalize_condition(sub) for sub in condition["or"]]}
    if "not" in condition:
        return {"not": normalize_condition(condition["not"])}
    for key in condition:
        if not isinstance(key, str) or "." not in key:
            raise ValueError(f"Simple condition keys must look like '<step>.<path>', got {key!r}")
    return copy.deepcopy(condition)


def referenced_steps(condition: Any) -> Set[str]:
    """Return the ids of all steps (not the trigger) a declarative condition reads."""
    if not isinstance(condition, dict):
        return set()
    if "ref" in condition:
        step_id = step_ref_id(condition["ref"]["step"])
        return set() if step_id == TRIGGER else {step_id}
    if "and" in condition or "or" in condition:
        found: Set[str] = set()
        for sub in condition.get("and", condition.get("or", [])):
            found |= referenced_steps(sub)
        return found
    if "not" in condition:
        return referenced_steps(condition["not"])
    return {key.partition(".")[0] for key in condition} - {TRIGGER}


async def call_condition(condition: Callable[..., Any], context: WorkflowContext) -> Any:
    result = condition(context)
    if inspect.isawaitable(result):
        result = await result
    return result


def negate_condition(condition: Any) -> Any:
    """Return the logical negation of a condition.

    Control values returned by function conditions count as truthy, so the
    negation of ``continue`` is ``False``.
    """
    if callable(condition):

        async def negated(context: WorkflowContext) -> bool:
            return not await call_condition(condition, context)

        negated.__qualname__ = f"not_{getattr(condition, '__qualname__', 'condition')}"
        negated.__module__ = getattr(condition, "__module__", __name__)
        return negated
    return {"not": condition}


def describe_condition(condition: Any) -> Any:
    """Return a JSON friendly descriptor identifying a condition.

    Functions are identified by their qualified name, declarative
    conditions by their normalized structure.
    """
    if condition is None:
        return None
    if callable(condition):
        name = getattr(condition, "__qualname__", type(condition).__name__)
        module = getattr(condition, "__module__", None)
        return {"type": "function", "name": f"{module}.{name}" if module else name}
    return {"type": "query", "query": normalize_condition(condition)}


async def evaluate_loop_condition(
    condition: Any, context: WorkflowContext, loop_type: str
) -> Dict[str, str]:
    """Decide whether a ``while``/``until`` loop runs another iteration.

    ``while`` loops continue as long as the condition holds, ``until`` loops
    continue until it holds. A reference to output that does not exist yet
    keeps the loop going.
    """
    if callable(condition):
        holds = bool(await call_condition(condition, context))
    elif isinstance(condition, dict) and "ref" in condition:
        ref = condition["ref"]
        value = _resolve_reference(ref["step"], ref.get("path", ""), context)
        if value is MISSING:
            return {"status": LOOP_CONTINUE}
        holds = matches(condition.get("query", {}), value)
    elif isinstance(condition, dict):
        holds = evaluate_condition(condition, context)
    else:
        return {"status": LOOP_CONTINUE}

    if loop_type == "while":
        return {"status": LOOP_CONTINUE if holds else LOOP_COMPLETE}
    return {"status": LOOP_COMPLETE if holds else LOOP_CONTINUE}
