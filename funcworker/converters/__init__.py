"""
Input Conversion Layer.

Turns raw binding payloads into typed parameter values.

Components:
    - InputConverter / ConversionResult / ConverterContext: the contract
    - ConverterRegistry: global converters + at-most-once instantiation
    - TypeConverterCache: type -> declared converter, computed once
    - InputConversionPipeline: override -> advertised -> fallback
    - default_converters(): the built-in fallback set

Usage:
    registry = ConverterRegistry(default_converters())
    pipeline = InputConversionPipeline(registry, TypeConverterCache())

    result = await pipeline.convert(
        ConverterContext(target_type=int, source="42")
    )
    assert result.value == 42
"""

from .base import (
    ConversionResult,
    ConversionStatus,
    ConverterContext,
    ConverterProperties,
    InputConverter,
    PropertyBagKeys,
    converter_identity,
    input_converter,
    type_identity,
)
from .binding_data import CollectionModelBindingData, ModelBindingData
from .builtin import (
    ArrayConverter,
    DateTimeConverter,
    JsonPocoConverter,
    MemoryConverter,
    StringToBytesConverter,
    TypeConverter,
    UUIDConverter,
    default_converters,
)
from .cache import TypeConverterCache
from .pipeline import InputConversionPipeline
from .registry import ConverterRegistry, resolve_converter_type
from .type_support import is_json_deserializable, is_target_type_supported

__all__ = [
    # Contract
    "ConversionResult",
    "ConversionStatus",
    "ConverterContext",
    "ConverterProperties",
    "InputConverter",
    "PropertyBagKeys",
    "converter_identity",
    "input_converter",
    "type_identity",
    # Binding data
    "CollectionModelBindingData",
    "ModelBindingData",
    # Built-in converters
    "ArrayConverter",
    "DateTimeConverter",
    "JsonPocoConverter",
    "MemoryConverter",
    "StringToBytesConverter",
    "TypeConverter",
    "UUIDConverter",
    "default_converters",
    # Resolution
    "ConverterRegistry",
    "InputConversionPipeline",
    "TypeConverterCache",
    "is_json_deserializable",
    "is_target_type_supported",
    "resolve_converter_type",
]
