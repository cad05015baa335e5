"""Utility functions to interact with workflow modules and stored runs."""

from __future__ import annotations

import sys
from importlib import import_module
from importlib.util import module_from_spec, spec_from_file_location
from pathlib import Path
from types import ModuleType

from mastra.workflows.models import WorkflowRunState
from mastra.workflows.workflow import Workflow


def _import_target_module(module_ref: str) -> ModuleType:
    if module_ref.endswith(".py"):
        path = Path(module_ref).expanduser().resolve()
        if not path.exists():
            raise FileNotFoundError(f"Workflow file {path} does not exist")
        spec = spec_from_file_location(path.stem, path)
        if spec is None or spec.loader is None:
            raise ImportError(f"Cannot load workflow file {path}")
        module_obj = module_from_spec(spec)
        sys.modules[path.stem] = module_obj
        spec.loader.exec_module(module_obj)
        return module_obj
    return import_module(module_ref)


def load_workflow(target: str) -> Workflow:
    """Return the workflow referenced as ``module:attribute``.

    ``module`` is either a dotted module path or a path to a ``.py`` file.
    """
    module_ref, sep, attr = target.rpartition(":")
    if not sep or not module_ref or not attr:
        raise ValueError(f"Expected MODULE:ATTRIBUTE, got {target!r}")
    module_obj = _import_target_module(module_ref)
    workflow = getattr(module_obj, attr, None)
    if not isinstance(workflow, Workflow):
        raise ValueError(f"{target} is not a Workflow")
    return workflow


def run_status(snapshot: WorkflowRunState) -> str:
    """Summarize a run as suspended, running, failed or completed."""
    if snapshot.suspended_steps:
        return "suspended"
    if snapshot.active_paths:
        return "running"
    if any(result.status == "failed" for result in snapshot.context.steps.values()):
        return "failed"
    return "completed"


def format_step_lines(snapshot: WorkflowRunState) -> list[str]:
    """Render one line per step state, subscriber graphs included."""
    lines = [f"- {step_id}: {state}" for step_id, state in snapshot.value.items()]
    for key, child in (snapshot.child_states or {}).items():
        for step_id, state in child.value.items():
            lines.append(f"- {step_id}: {state} (after {key})")
    return lines
