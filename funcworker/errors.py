"""
Worker Error Taxonomy.

Errors raised by the worker core. They are plain exceptions until they
reach the worker boundary, where they become load/invocation statuses.

Hierarchy:
    WorkerError
    ├── ConfigurationError          (function cannot be loaded)
    │   └── DispatchGenerationError (definition and callable disagree)
    ├── ResolutionError             (converter/dependency cannot be located)
    │   └── FunctionNotFoundError
    ├── FunctionInputConversionError
    └── InvocationCancelledError

Note:
    "Unhandled" is a conversion outcome, not an error. See
    funcworker.converters.base.ConversionResult.
"""

from __future__ import annotations


class WorkerError(Exception):
    """Base class for all worker errors."""

    pass


class ConfigurationError(WorkerError):
    """A function cannot be loaded (missing root, script file, entry point)."""

    pass


class DispatchGenerationError(ConfigurationError):
    """The dispatch table could not be generated for a definition."""

    pass


class ResolutionError(WorkerError):
    """A named converter or dependency cannot be located or instantiated."""

    pass


class FunctionNotFoundError(ResolutionError):
    """No dispatch entry matches the invoked function name."""

    pass


class FunctionInputConversionError(WorkerError):
    """
    One or more parameters could not be bound for an invocation.

    Attributes:
        function_name: Function being invoked
        errors: Mapping of parameter name to failure reason
    """

    def __init__(self, function_name: str, errors: dict[str, str]):
        self.function_name = function_name
        self.errors = dict(errors)
        details = "; ".join(f"'{name}': {reason}" for name, reason in self.errors.items())
        super().__init__(
            f"Error converting {len(self.errors)} input parameter(s) "
            f"for function '{function_name}': {details}"
        )


class InvocationCancelledError(WorkerError):
    """The invocation's cancellation token fired before completion."""

    pass
