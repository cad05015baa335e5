import pytest
from pydantic import BaseModel, ValidationError

from mastra.workflows.models import WorkflowContext
from mastra.workflows.step import Step, StepExecutionContext


class Order(BaseModel):
    order_id: int
    quantity: int = 1


class Receipt(BaseModel):
    total: float


def _ctx(input_data=None) -> StepExecutionContext:
    async def suspend(payload=None):
        return None

    return StepExecutionContext(
        context=WorkflowContext(input_data=input_data or {}),
        run_id="run-1",
        suspend=suspend,
    )


@pytest.mark.asyncio
async def test_step_without_handler_returns_empty_output():
    assert await Step("noop").run(_ctx()) == {}


@pytest.mark.asyncio
async def test_sync_and_async_handlers():
    def sync_handler(ctx):
        return {"seen": ctx.context.input_data["value"]}

    async def async_handler(ctx):
        return {"run": ctx.run_id}

    assert await Step("sync", sync_handler).run(_ctx({"value": 3})) == {"seen": 3}
    assert await Step("async", async_handler).run(_ctx()) == {"run": "run-1"}


@pytest.mark.asyncio
async def test_input_schema_validates_and_fills_defaults():
    def handler(ctx):
        return ctx.context.input_data

    step = Step("order", handler, input_schema=Order)
    assert await step.run(_ctx({"order_id": "7"})) == {"order_id": 7, "quantity": 1}

    with pytest.raises(ValidationError):
        await step.run(_ctx({"quantity": 2}))


@pytest.mark.asyncio
async def test_model_outputs_are_stored_as_dicts():
    step = Step("receipt", lambda ctx: Receipt(total=9.5))
    assert await step.run(_ctx()) == {"total": 9.5}

    validated = Step("checked", lambda ctx: {"total": "3"}, output_schema=Receipt)
    assert await validated.run(_ctx()) == {"total": 3.0}


def test_step_requires_an_id():
    with pytest.raises(ValueError):
        Step("")
