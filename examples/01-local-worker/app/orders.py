"""Functions loaded by the local worker example."""

import asyncio
from dataclasses import dataclass
from typing import Annotated

from pydantic import BaseModel

from funcworker import CancellationToken, FunctionContext, TriggerBinding
from funcworker.definition import binding_kind


@binding_kind(converter="funcworker.converters.builtin.JsonPocoConverter")
@dataclass(frozen=True, slots=True)
class QueueTrigger(TriggerBinding):
    queue_name: str = ""


class Order(BaseModel):
    id: int
    item: str
    quantity: int = 1


class Inventory:
    def __init__(self):
        self.reserved: dict[str, int] = {}

    def reserve(self, item: str, quantity: int) -> None:
        self.reserved[item] = self.reserved.get(item, 0) + quantity


class OrderFunctions:
    def __init__(self, inventory: Inventory):
        self.inventory = inventory

    async def place(
        self,
        order: Annotated[Order, QueueTrigger("orders")],
        token: CancellationToken,
    ) -> str:
        await asyncio.sleep(0)
        token.raise_if_cancelled()
        self.inventory.reserve(order.item, order.quantity)
        return f"receipt-{order.id}"


def greet(name: str, context: FunctionContext) -> str:
    return f"Hello {name} ({context.invocation_id[:8]})"
