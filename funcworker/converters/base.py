"""
Converter Base Classes.

This module defines the core abstractions for input conversion:
- InputConverter: Base class for all converters
- ConversionResult: Tagged outcome of one conversion attempt
- ConverterContext: Per-parameter input handed to converters
- ConverterProperties: What a converter advertises it can produce
- PropertyBagKeys: Keys used in parameter/context property bags

Contract:
    A converter inspects context.source and context.target_type and
    returns exactly one of:
    - ConversionResult.unhandled(): not my payload shape, try the next one
    - ConversionResult.success(value): definitive value
    - ConversionResult.failed(error): recognized but could not convert

    Converters may be called speculatively, so they must return
    unhandled() rather than raise when the shape does not match.

Usage:
    class UpperCaseConverter(InputConverter):
        supported_types = (str,)

        async def convert(self, context: ConverterContext) -> ConversionResult:
            if not isinstance(context.source, str):
                return ConversionResult.unhandled()
            return ConversionResult.success(context.source.upper())
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import TYPE_CHECKING, Any, ClassVar

if TYPE_CHECKING:
    from funcworker.invocation.context import FunctionContext


class PropertyBagKeys:
    """Keys shared by parameter descriptors and converter contexts."""

    CONVERTER_TYPE = "converter_type"
    BINDING_ATTRIBUTE_SUPPORTED_CONVERTERS = "binding_attribute_supported_converters"
    ALLOW_CONVERTER_FALLBACK = "allow_converter_fallback"
    ENABLE_FALLBACK_CONVERTERS = "enable_fallback_converters"


class ConversionStatus(Enum):
    """Outcome of a conversion attempt."""

    UNHANDLED = "unhandled"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


@dataclass(frozen=True, slots=True)
class ConversionResult:
    """
    Result from one converter (or the whole pipeline).

    Example:
        ConversionResult.success(42)
        ConversionResult.failed(ValueError("bad payload"))
        ConversionResult.unhandled()
    """

    status: ConversionStatus
    value: Any = None
    error: BaseException | None = None

    @classmethod
    def unhandled(cls) -> ConversionResult:
        return _UNHANDLED

    @classmethod
    def success(cls, value: Any) -> ConversionResult:
        return cls(status=ConversionStatus.SUCCEEDED, value=value)

    @classmethod
    def failed(cls, error: BaseException) -> ConversionResult:
        return cls(status=ConversionStatus.FAILED, error=error)

    @property
    def is_unhandled(self) -> bool:
        return self.status is ConversionStatus.UNHANDLED

    @property
    def succeeded(self) -> bool:
        return self.status is ConversionStatus.SUCCEEDED

    def __repr__(self) -> str:
        if self.status is ConversionStatus.SUCCEEDED:
            return f"ConversionResult.success({self.value!r})"
        if self.status is ConversionStatus.FAILED:
            return f"ConversionResult.failed({self.error!r})"
        return "ConversionResult.unhandled()"


_UNHANDLED = ConversionResult(status=ConversionStatus.UNHANDLED)


@dataclass(frozen=True, slots=True)
class ConverterProperties:
    """
    Capabilities a converter advertises through a binding kind.

    Attributes:
        supported_types: Target types the converter explicitly produces
        supports_json_deserialization: Whether the converter can build
            structural types (models, dataclasses, lists of them) from JSON
    """

    supported_types: tuple[Any, ...] = ()
    supports_json_deserialization: bool = False

    @classmethod
    def from_converter(cls, converter_type: type) -> ConverterProperties:
        """Read the advertised capabilities from a converter class."""
        return cls(
            supported_types=tuple(getattr(converter_type, "supported_types", ())),
            supports_json_deserialization=bool(
                getattr(converter_type, "supports_json_deserialization", False)
            ),
        )


@dataclass(frozen=True, slots=True)
class ConverterContext:
    """
    Per-parameter input to a conversion.

    Attributes:
        target_type: Declared type of the parameter
        source: Raw binding payload delivered by the host (may be None)
        properties: Converter hints copied from the parameter descriptor,
            optionally extended by the caller
        function_context: Invocation the conversion belongs to
    """

    target_type: Any
    source: Any
    properties: Mapping[str, Any] = field(default_factory=lambda: MappingProxyType({}))
    function_context: FunctionContext | None = None


class InputConverter(ABC):
    """
    Base class for all input converters.

    Class attributes describe what the converter advertises when a binding
    kind names it (see funcworker.definition.bindings):
    - supported_types: Target types produced verbatim
    - supports_json_deserialization: Structural JSON support

    Instances are created once per registry and shared by concurrent
    invocations, so implementations must be stateless or synchronized.
    """

    supported_types: ClassVar[tuple[Any, ...]] = ()
    supports_json_deserialization: ClassVar[bool] = False

    @abstractmethod
    async def convert(self, context: ConverterContext) -> ConversionResult:
        """
        Attempt to produce a value for context.target_type.

        Returns:
            ConversionResult (never raises for unknown payload shapes)
        """
        ...

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}()"


# =============================================================================
# Identities
# =============================================================================


def type_identity(target_type: Any) -> str:
    """
    Globally unique identity of a type.

    Classes use "module.qualname". Parameterized generics and typing
    constructs use their canonical repr (e.g. "list[app.models.Order]").
    """
    if isinstance(target_type, type) and not getattr(target_type, "__args__", None):
        return f"{target_type.__module__}.{target_type.__qualname__}"
    return repr(target_type)


def converter_identity(converter: type | str) -> str:
    """Normalize a converter class or dotted name to its identity string."""
    if isinstance(converter, str):
        return converter.replace(":", ".")
    return f"{converter.__module__}.{converter.__qualname__}"


def input_converter(converter: type | str):
    """
    Class decorator declaring the converter for a target type.

    The declaration is inherited by subclasses.

    Usage:
        @input_converter(OrderConverter)
        class Order:
            ...
    """

    def decorator(cls: type) -> type:
        cls.__input_converter__ = converter
        return cls

    return decorator


def declared_converter_identity(target_type: Any) -> type | str | None:
    """
    Converter a type declares via @input_converter, if any.

    Classes are returned as-is so converters that cannot be imported by
    name (e.g. defined inside a function) still resolve.
    """
    if not isinstance(target_type, type):
        return None
    converter = getattr(target_type, "__input_converter__", None)
    if converter is None:
        return None
    if isinstance(converter, str):
        return converter_identity(converter)
    return converter
