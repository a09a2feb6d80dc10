"""
Protocol Schemas.

JSON-serializable messages exchanged with the orchestrator.
The transport that carries them is outside the worker core.
"""

from .invocation import InvocationRequest, InvocationResponse
from .load import BindingInfo, FunctionLoadRequest, FunctionLoadResponse, FunctionMetadata
from .status import ErrorDetails, Status, StatusResult

__all__ = [
    "BindingInfo",
    "ErrorDetails",
    "FunctionLoadRequest",
    "FunctionLoadResponse",
    "FunctionMetadata",
    "InvocationRequest",
    "InvocationResponse",
    "Status",
    "StatusResult",
]
