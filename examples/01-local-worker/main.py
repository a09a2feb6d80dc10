"""
Local Worker Example

This example runs the worker without a host:
1. Load functions from app/functions.metadata
2. Invoke them with raw binding payloads
3. Print status, return value and timing

Run: python -m examples.01-local-worker.main
"""

import asyncio
import json
from pathlib import Path

from funcworker import FunctionsWorker, InvocationRequest, ServiceScope, WorkerSettings, configure_logging
from funcworker.runtime import FileMetadataLoader

APP_DIR = Path(__file__).parent / "app"


async def main():
    settings = WorkerSettings(deployment_root=str(APP_DIR), log_level="INFO")
    configure_logging(settings)
    worker = FunctionsWorker(settings)

    responses = await worker.load_functions(FileMetadataLoader(APP_DIR))
    for response in responses:
        print(f"Loaded {response.function_id}: {response.result.status}")
    print(f"Dispatch table: {worker.executor.function_names}")
    print()

    # Dependencies of OrderFunctions come from the service scope
    module = worker.locator.load_module(worker.definitions["place-order"].load_unit_path)
    inventory = module.Inventory()
    services = ServiceScope({module.Inventory: inventory})

    receipt = await worker.invoke(
        InvocationRequest(
            function_id="place-order",
            input_data={"order": json.dumps({"id": 42, "item": "book", "quantity": 2})},
        ),
        services=services,
    )
    print(f"PlaceOrder: {receipt.result.status} -> {receipt.return_value}")
    print(f"Reserved: {inventory.reserved}")
    print(f"Duration: {receipt.duration_ms:.2f}ms")
    print()

    greeting = await worker.invoke(InvocationRequest(function_id="greet", input_data={"name": "Ada"}))
    print(f"Greet: {greeting.return_value}")

    # Bad payloads become failure statuses
    broken = await worker.invoke(
        InvocationRequest(function_id="place-order", input_data={"order": "{"}),
        services=services,
    )
    print(f"Broken order: {broken.result.status} ({broken.result.error.message})")


if __name__ == "__main__":
    asyncio.run(main())
