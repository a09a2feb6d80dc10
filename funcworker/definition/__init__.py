"""
Function Definition Layer.

Load-time description of deployed functions:
    - FunctionDefinition / FunctionParameter / BindingMetadata: the model
    - Binding markers and the BindingKindTable
    - EntryPointLocator: load units and callables
    - FunctionDefinitionBuilder: load request -> FunctionDefinition
"""

from .bindings import (
    DEFAULT_BINDING_TABLE,
    BindingAttribute,
    BindingKind,
    BindingKindTable,
    InputBinding,
    OutputBinding,
    TriggerBinding,
    UseConverter,
    binding_kind,
)
from .builder import FunctionDefinitionBuilder
from .locator import EntryPointLocator, ResolvedEntryPoint
from .models import BindingDirection, BindingMetadata, FunctionDefinition, FunctionParameter

__all__ = [
    "DEFAULT_BINDING_TABLE",
    "BindingAttribute",
    "BindingDirection",
    "BindingKind",
    "BindingKindTable",
    "BindingMetadata",
    "EntryPointLocator",
    "FunctionDefinition",
    "FunctionDefinitionBuilder",
    "FunctionParameter",
    "InputBinding",
    "OutputBinding",
    "ResolvedEntryPoint",
    "TriggerBinding",
    "UseConverter",
    "binding_kind",
]
