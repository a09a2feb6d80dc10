"""
Function Definition Models.

Immutable, resolved description of one invocable function. Built once at
load time by FunctionDefinitionBuilder and then shared read-only by every
concurrent invocation.

Parameter order contract:
    FunctionDefinition.parameters follows the callable's declared order.
    The bound-argument tuple produced for an invocation uses the same
    order, 0-based: bound[i] belongs to parameters[i].
"""

from __future__ import annotations

import inspect
from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any

_EMPTY: Mapping[str, Any] = MappingProxyType({})


class BindingDirection(str, Enum):
    """Direction of a binding. Anything not IN is treated as output."""

    IN = "in"
    OUT = "out"
    INOUT = "inout"


@dataclass(frozen=True, slots=True)
class BindingMetadata:
    """
    One declared binding of a function.

    Attributes:
        name: Binding name (matches the parameter name for inputs)
        type: Binding kind (e.g. "httpTrigger", "blob", "queue")
        direction: Binding direction
        properties: Kind-specific fields from the metadata
    """

    name: str
    type: str
    direction: BindingDirection
    properties: Mapping[str, Any] = field(default_factory=lambda: _EMPTY)


@dataclass(frozen=True, slots=True)
class FunctionParameter:
    """
    Descriptor of one bindable parameter.

    Attributes:
        name: Parameter name
        type: Declared type (Annotated metadata stripped)
        properties: Converter hints, see converters.base.PropertyBagKeys
        default: Declared default, or inspect.Parameter.empty
        keyword_only: Whether the parameter must be passed by name
    """

    name: str
    type: Any
    properties: Mapping[str, Any] = field(default_factory=lambda: _EMPTY)
    default: Any = inspect.Parameter.empty
    keyword_only: bool = False

    @property
    def has_default(self) -> bool:
        return self.default is not inspect.Parameter.empty


@dataclass(frozen=True, slots=True)
class FunctionDefinition:
    """
    Immutable description of a loaded function.

    Attributes:
        id: Function id assigned by the orchestrator
        name: Function name used for dispatch
        entry_point: Qualified callable inside the load unit
        load_unit_path: Absolute path of the load unit
        input_bindings: Binding name -> metadata, direction "in"
        output_bindings: Binding name -> metadata, every other direction
        parameters: Bindable parameters in declaration order
    """

    id: str
    name: str
    entry_point: str
    load_unit_path: str
    input_bindings: Mapping[str, BindingMetadata] = field(default_factory=lambda: _EMPTY)
    output_bindings: Mapping[str, BindingMetadata] = field(default_factory=lambda: _EMPTY)
    parameters: tuple[FunctionParameter, ...] = field(default=())

    def get_parameter(self, name: str) -> FunctionParameter | None:
        """Get a parameter descriptor by name."""
        for parameter in self.parameters:
            if parameter.name == name:
                return parameter
        return None

    def __repr__(self) -> str:
        return (
            f"FunctionDefinition(name='{self.name}', entry_point='{self.entry_point}', "
            f"parameters={[p.name for p in self.parameters]})"
        )
