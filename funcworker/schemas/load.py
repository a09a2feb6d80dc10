"""
Function Load Schemas.

JSON-serializable messages the orchestrator sends to load a function,
and the worker's response.

Usage:
    request = FunctionLoadRequest.model_validate({
        "function_id": "7f1c...",
        "metadata": {
            "name": "ProcessOrder",
            "entry_point": "OrderFunctions.process",
            "script_file": "orders.py",
            "bindings": {
                "order": {"direction": "in", "type": "queueTrigger"},
                "$return": {"direction": "out", "type": "queue"},
            },
        },
    })
"""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

from .status import StatusResult


class BindingInfo(BaseModel):
    """
    Wire-level binding description.

    Kind-specific fields (path, connection, queue name, ...) are kept as
    extra fields and exposed through `properties`.
    """

    model_config = ConfigDict(extra="allow")

    direction: Literal["in", "out", "inout"] = Field(..., description="Binding direction")
    type: str = Field("", description="Binding kind (e.g. 'httpTrigger', 'blob')")
    data_type: str | None = Field(None, description="Optional data type hint")

    @property
    def properties(self) -> dict[str, Any]:
        """Kind-specific fields."""
        return dict(self.model_extra or {})


class FunctionMetadata(BaseModel):
    """Metadata describing one deployable function."""

    model_config = ConfigDict(populate_by_name=True)

    name: str = Field(..., description="Function name used for dispatch")
    function_id: str | None = Field(None, description="Stable function identifier")
    entry_point: str = Field(..., description="Qualified callable inside the load unit")
    script_file: str | None = Field(
        None, description="Load unit path, relative to the deployment root"
    )
    bindings: dict[str, BindingInfo] = Field(default_factory=dict)


class FunctionLoadRequest(BaseModel):
    """Orchestrator request to load one function."""

    function_id: str
    metadata: FunctionMetadata


class FunctionLoadResponse(BaseModel):
    """Worker reply to a load request."""

    function_id: str
    result: StatusResult
