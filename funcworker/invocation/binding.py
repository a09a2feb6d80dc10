"""
Model Binding.

Produces the bound-argument tuple for an invocation. Element i of the
tuple belongs to definition.parameters[i].

Per parameter:
    FunctionContext typed     the invocation's context
    CancellationToken typed   the invocation's token
    otherwise                 the conversion pipeline's result for
                              binding_data[parameter.name]

When no converter handles a payload the parameter's default is used, or
None when there is no payload and the type admits None. Anything else is
reported, together with every FAILED conversion, in one
FunctionInputConversionError.
"""

from __future__ import annotations

import logging
import types
import typing
from typing import Any

from funcworker.converters.base import ConverterContext
from funcworker.converters.pipeline import InputConversionPipeline
from funcworker.definition.models import FunctionParameter
from funcworker.errors import FunctionInputConversionError

from .cancellation import CancellationToken
from .context import FunctionContext

logger = logging.getLogger(__name__)

_NONE_TYPES = (None, type(None), Any, object)


class ModelBindingFeature:
    """Binds function inputs through the conversion pipeline."""

    def __init__(self, pipeline: InputConversionPipeline):
        self._pipeline = pipeline

    @property
    def pipeline(self) -> InputConversionPipeline:
        return self._pipeline

    async def bind_function_input(self, context: FunctionContext) -> tuple[Any, ...]:
        """
        Bind every declared parameter of context.definition.

        The result is cached on the context; binding twice returns the
        same tuple.

        Raises:
            FunctionInputConversionError: If any parameter failed or stayed unbound
            InvocationCancelledError: If the invocation is cancelled
            ResolutionError: If a named converter cannot be located
        """
        if context.bound_arguments is not None:
            return context.bound_arguments

        values: list[Any] = []
        errors: dict[str, str] = {}

        for parameter in context.definition.parameters:
            injected = _injected_value(parameter, context)
            if injected is not None:
                values.append(injected)
                continue

            source = context.binding_data.get(parameter.name)
            result = await context.cancellation.run(
                self._pipeline.convert(
                    ConverterContext(
                        target_type=parameter.type,
                        source=source,
                        properties=parameter.properties,
                        function_context=context,
                    )
                )
            )

            if result.succeeded:
                values.append(result.value)
            elif not result.is_unhandled:
                errors[parameter.name] = f"{type(result.error).__name__}: {result.error}"
                values.append(None)
            elif parameter.has_default:
                values.append(parameter.default)
            elif source is None and _admits_none(parameter.type):
                values.append(None)
            else:
                errors[parameter.name] = (
                    f"No converter could bind a {type(source).__name__} payload "
                    f"to {_type_name(parameter.type)}"
                )
                values.append(None)

        if errors:
            logger.warning(
                f"[model_binding] Binding failed | function={context.function_name} | "
                f"parameters={list(errors)}"
            )
            raise FunctionInputConversionError(context.function_name, errors)

        context.bound_arguments = tuple(values)
        return context.bound_arguments


def _injected_value(parameter: FunctionParameter, context: FunctionContext) -> Any:
    if parameter.type is FunctionContext:
        return context
    if parameter.type is CancellationToken:
        return context.cancellation
    return None


def _admits_none(target_type: Any) -> bool:
    if target_type in _NONE_TYPES:
        return True
    origin = typing.get_origin(target_type)
    if origin is typing.Union or origin is types.UnionType:
        return type(None) in typing.get_args(target_type)
    return False


def _type_name(target_type: Any) -> str:
    if isinstance(target_type, type):
        return target_type.__qualname__
    return repr(target_type)
