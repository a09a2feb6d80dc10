"""
Invocation Layer.

Per-invocation state and the hot path:
    - FunctionContext / InvocationResult: invocation state
    - CancellationToken: cooperative cancellation
    - ServiceProvider / ServiceScope: owner dependencies
    - ModelBindingFeature: parameters -> bound argument tuple
    - DirectExecutorGenerator / DirectFunctionExecutor: dispatch table
"""

from .binding import ModelBindingFeature
from .cancellation import CancellationToken
from .context import UNSET, FunctionContext, InvocationResult
from .executor import DirectExecutorGenerator, DirectFunctionExecutor
from .services import ServiceProvider, ServiceScope

__all__ = [
    "UNSET",
    "CancellationToken",
    "DirectExecutorGenerator",
    "DirectFunctionExecutor",
    "FunctionContext",
    "InvocationResult",
    "ModelBindingFeature",
    "ServiceProvider",
    "ServiceScope",
]
