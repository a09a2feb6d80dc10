"""
Type-support rules for advertised converters.

A converter advertised by a binding kind is only tried for a parameter
when its ConverterProperties support the parameter's target type:

    1. The target type is listed verbatim in supported_types, or
    2. The converter supports JSON deserialization and the target type is
       structurally JSON-deserializable:
       - a non-builtin class that is a pydantic model, a dataclass, or has
         a parameterless constructor
       - list[T] / tuple[T, ...] whose element type qualifies
         (raw binary types are never arrays here)
       - a generic with exactly one type argument that qualifies

Nullable targets (Optional[T], T | None) are checked as T.
"""

from __future__ import annotations

import dataclasses
import inspect
import types
import typing
from typing import Any

from pydantic import BaseModel

from .base import ConverterProperties, type_identity

_BINARY_TYPES = (bytes, bytearray, memoryview)
_ARRAY_ORIGINS = (list, tuple)


def is_target_type_supported(properties: ConverterProperties, target_type: Any) -> bool:
    """Whether a converter with these properties should be tried for target_type."""
    return is_type_listed(properties, target_type) or (
        properties.supports_json_deserialization and is_json_deserializable(target_type)
    )


def is_type_listed(properties: ConverterProperties, target_type: Any) -> bool:
    identity = type_identity(unwrap_optional(target_type))
    return any(type_identity(t) == identity for t in properties.supported_types)


def is_json_deserializable(target_type: Any) -> bool:
    """Structural check used for JSON-capable converters."""
    target_type = unwrap_optional(target_type)
    if target_type is None or target_type in _BINARY_TYPES:
        return False

    origin = typing.get_origin(target_type)
    if origin is None:
        return _is_json_object_type(target_type)

    args = typing.get_args(target_type)
    if origin in _ARRAY_ORIGINS:
        if origin is tuple and not (len(args) == 2 and args[1] is Ellipsis):
            return False
        return bool(args) and is_json_deserializable(args[0])

    if len(args) != 1:
        return False
    return is_json_deserializable(args[0])


def unwrap_optional(target_type: Any) -> Any:
    """T for Optional[T] / T | None; any other type unchanged."""
    origin = typing.get_origin(target_type)
    if origin is not typing.Union and origin is not types.UnionType:
        return target_type

    args = [arg for arg in typing.get_args(target_type) if arg is not type(None)]
    if len(args) == 1:
        return args[0]
    return target_type


def _is_json_object_type(target_type: Any) -> bool:
    if not inspect.isclass(target_type) or target_type.__module__ == "builtins":
        return False

    if issubclass(target_type, BaseModel) or dataclasses.is_dataclass(target_type):
        return True

    return has_only_parameterless_constructor(target_type)


def has_only_parameterless_constructor(target_type: type) -> bool:
    if target_type.__init__ is object.__init__:
        return True
    try:
        signature = inspect.signature(target_type.__init__)
    except (TypeError, ValueError):
        return False
    parameters = list(signature.parameters.values())[1:]  # drop self
    return not parameters
