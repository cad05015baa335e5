"""Wrap a pydantic-ai agent as a workflow step."""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional, Type

from pydantic import BaseModel
from pydantic_ai import Agent

from .step import RetryConfig, Step, StepExecutionContext

logger = logging.getLogger(__name__)


def agent_step(
    agent: Agent,
    *,
    id: Optional[str] = None,
    prompt: Optional[str] = None,
    input_schema: Optional[Type[BaseModel]] = None,
    retry_config: Optional[RetryConfig] = None,
) -> Step:
    """Return a step that runs ``agent`` on a prompt built from the step input.

    ``prompt`` is a ``str.format`` template filled with the input data; without
    it the ``prompt`` input field is sent as is. An optional ``deps`` input
    field is passed through as the agent dependencies.
    """
    step_id = id or getattr(agent, "name", None)
    if not step_id:
        raise ValueError("agent_step() needs an id when the agent has no name")

    async def run_agent(ctx: StepExecutionContext) -> Dict[str, Any]:
        input_data = ctx.context.input_data
        if prompt is not None:
            text = prompt.format(**input_data)
        elif "prompt" in input_data:
            text = input_data["prompt"]
        else:
            raise ValueError(f"Step {step_id} received no prompt")

        logger.debug(f"Running agent {step_id} for run {ctx.run_id}")
        result = await agent.run(text, deps=input_data.get("deps"))
        output = getattr(result, "output", result)
        if isinstance(output, BaseModel):
            output = output.model_dump(mode="json")
        return {"output": output}

    return Step(
        step_id,
        run_agent,
        input_schema=input_schema,
        retry_config=retry_config,
        description=f"Runs agent {step_id}",
    )
