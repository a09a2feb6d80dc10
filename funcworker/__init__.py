"""
funcworker - Out-of-process worker runtime for serverless functions.

The worker receives load and invocation requests from a host orchestrator,
resolves the target callable and its arguments, runs it and reports the
result:

- **Definition Builder**: load metadata -> immutable FunctionDefinition
- **Input Conversion Pipeline**: raw binding payloads -> typed arguments
- **Direct Executor**: load-time dispatch table, no reflection per call
- **Extensions**: pluggable binding converters (blob storage included)

Quick Start:
    >>> from funcworker import FunctionsWorker, InvocationRequest
    >>> from funcworker.runtime import FileMetadataLoader
    >>>
    >>> worker = FunctionsWorker()
    >>> await worker.load_functions(FileMetadataLoader(worker.settings.deployment_root))
    >>> response = await worker.invoke(
    ...     InvocationRequest(function_id="HttpEcho", input_data={"body": "hi"})
    ... )
"""

__version__ = "0.1.0"
__license__ = "MIT"

# Core exports for convenient imports
from funcworker.config import WorkerSettings, configure_logging, get_settings
from funcworker.converters import (
    ConversionResult,
    ConverterContext,
    InputConverter,
    input_converter,
)
from funcworker.definition import FunctionDefinition, InputBinding, TriggerBinding, UseConverter
from funcworker.errors import (
    ConfigurationError,
    FunctionInputConversionError,
    InvocationCancelledError,
    ResolutionError,
    WorkerError,
)
from funcworker.invocation import CancellationToken, FunctionContext, ServiceScope
from funcworker.runtime import FunctionsWorker
from funcworker.schemas import FunctionLoadRequest, InvocationRequest, InvocationResponse

__all__ = [
    # Version info
    "__version__",
    "__license__",
    # Worker
    "FunctionsWorker",
    "WorkerSettings",
    "configure_logging",
    "get_settings",
    # Messages
    "FunctionLoadRequest",
    "InvocationRequest",
    "InvocationResponse",
    # Functions
    "CancellationToken",
    "FunctionContext",
    "FunctionDefinition",
    "InputBinding",
    "ServiceScope",
    "TriggerBinding",
    "UseConverter",
    # Converters
    "ConversionResult",
    "ConverterContext",
    "InputConverter",
    "input_converter",
    # Errors
    "ConfigurationError",
    "FunctionInputConversionError",
    "InvocationCancelledError",
    "ResolutionError",
    "WorkerError",
]
