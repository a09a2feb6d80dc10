"""
Invocation Schemas.

Messages exchanged for one function invocation.

Runtime-only collaborators (the cancellation token and the service scope)
are not part of the message; they are passed to FunctionsWorker.invoke()
alongside it.
"""

from __future__ import annotations

import uuid
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from .status import StatusResult


class InvocationRequest(BaseModel):
    """
    Orchestrator request to run a loaded function.

    Attributes:
        invocation_id: Unique id for this invocation
        function_id: Id the function was loaded under
        input_data: Raw binding payloads keyed by binding name
        trigger_metadata: Extra trigger data (headers, queue properties, ...)
        deadline_seconds: Overall deadline for the invocation
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    invocation_id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    function_id: str
    input_data: dict[str, Any] = Field(default_factory=dict)
    trigger_metadata: dict[str, Any] = Field(default_factory=dict)
    deadline_seconds: float | None = Field(None, gt=0)


class InvocationResponse(BaseModel):
    """Worker reply to an invocation request."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    invocation_id: str
    result: StatusResult
    return_value: Any = None
    duration_ms: float = 0.0
