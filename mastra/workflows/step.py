"""Step definitions: the unit of work placed into a workflow graph."""

from __future__ import annotations

import inspect
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Optional, Type

from pydantic import BaseModel

from .models import WorkflowContext


class RetryConfig(BaseModel):
    """How often a failing step is re-run and how long to wait in between."""

    attempts: int = 0
    delay: float = 0.0
    backoff: float = 1.0


@dataclass
class StepExecutionContext:
    """Argument passed to every step handler."""

    context: WorkflowContext
    run_id: str
    suspend: Callable[..., Awaitable[None]]
    mastra: Any = None


StepHandler = Callable[[StepExecutionContext], Any]


class Step:
    """A named unit of work with an optional input/output contract.

    ``execute`` may be a plain function or a coroutine function. It receives a
    :class:`StepExecutionContext` and its return value becomes the step
    output. Pydantic models returned by the handler are stored as dicts.
    """

    def __init__(
        self,
        id: str,
        execute: Optional[StepHandler] = None,
        *,
        input_schema: Optional[Type[BaseModel]] = None,
        output_schema: Optional[Type[BaseModel]] = None,
        payload: Optional[Dict[str, Any]] = None,
        retry_config: Optional[RetryConfig] = None,
        description: Optional[str] = None,
    ) -> None:
        if not id:
            raise ValueError("Step id must be a non-empty string")
        self.id = id
        self.execute = execute
        self.input_schema = input_schema
        self.output_schema = output_schema
        self.payload = dict(payload or {})
        self.retry_config = retry_config
        self.description = description

    def __repr__(self) -> str:
        return f"Step(id={self.id!r})"

    async def run(self, ctx: StepExecutionContext) -> Any:
        """Validate input, invoke the handler and normalize its output."""
        if self.input_schema is not None:
            validated = self.input_schema.model_validate(ctx.context.input_data)
            ctx.context.input_data = validated.model_dump()

        if self.execute is None:
            return {}

        output = self.execute(ctx)
        if inspect.isawaitable(output):
            output = await output
        return self._normalize_output(output)

    def _normalize_output(self, output: Any) -> Any:
        if self.output_schema is not None:
            if isinstance(output, BaseModel):
                output = output.model_dump()
            output = self.output_schema.model_validate(output)
        if isinstance(output, BaseModel):
            return output.model_dump(mode="json")
        return output
