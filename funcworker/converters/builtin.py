"""
Default Input Converters.

The global fallback converters every worker registers, in this order:

    TypeConverter           source already has the target type
    UUIDConverter           str -> uuid.UUID
    DateTimeConverter       ISO-8601 str -> datetime / date
    MemoryConverter         bytes-like -> str / bytes / bytearray
    StringToBytesConverter  str -> bytes
    JsonPocoConverter       JSON str/bytes -> models, dataclasses, primitives
    ArrayConverter          list/tuple -> list[T] / tuple[T, ...]

Type switches are replaced by handler maps keyed on the exact target type,
so each converter does one dict lookup per call.
"""

from __future__ import annotations

import json
import logging
import types
import typing
import uuid
from collections.abc import Callable
from datetime import date, datetime
from functools import lru_cache
from typing import Any

from pydantic import BaseModel, TypeAdapter, ValidationError
from pydantic.errors import PydanticSchemaGenerationError

from .base import ConversionResult, ConverterContext, InputConverter
from .type_support import has_only_parameterless_constructor, unwrap_optional

logger = logging.getLogger(__name__)

_TEXT_TYPES = (str, bytes, bytearray, memoryview)
_UNTYPED = (Any, object)


class TypeConverter(InputConverter):
    """Passes the source through when it already satisfies the target type."""

    async def convert(self, context: ConverterContext) -> ConversionResult:
        source = context.source
        if source is None:
            return ConversionResult.unhandled()

        if context.target_type in _UNTYPED or _is_instance(source, context.target_type):
            return ConversionResult.success(source)
        return ConversionResult.unhandled()


class UUIDConverter(InputConverter):
    """Parses a UUID from its string form."""

    supported_types = (uuid.UUID,)

    async def convert(self, context: ConverterContext) -> ConversionResult:
        if unwrap_optional(context.target_type) is not uuid.UUID or not isinstance(context.source, str):
            return ConversionResult.unhandled()
        try:
            return ConversionResult.success(uuid.UUID(context.source))
        except ValueError:
            return ConversionResult.unhandled()


class DateTimeConverter(InputConverter):
    """Parses ISO-8601 dates and timestamps."""

    supported_types = (datetime, date)

    _handlers: dict[type, Callable[[str], Any]] = {
        datetime: datetime.fromisoformat,
        date: date.fromisoformat,
    }

    async def convert(self, context: ConverterContext) -> ConversionResult:
        handler = self._handlers.get(unwrap_optional(context.target_type))
        if handler is None or not isinstance(context.source, str):
            return ConversionResult.unhandled()
        try:
            return ConversionResult.success(handler(context.source))
        except ValueError:
            return ConversionResult.unhandled()


class MemoryConverter(InputConverter):
    """Converts raw bytes payloads to text or to another bytes type."""

    supported_types = (str, bytes, bytearray)

    _handlers: dict[type, Callable[[Any], Any]] = {
        str: lambda data: bytes(data).decode("utf-8"),
        bytes: bytes,
        bytearray: bytearray,
    }

    async def convert(self, context: ConverterContext) -> ConversionResult:
        handler = self._handlers.get(unwrap_optional(context.target_type))
        if handler is None or not isinstance(context.source, (bytes, bytearray, memoryview)):
            return ConversionResult.unhandled()
        try:
            return ConversionResult.success(handler(context.source))
        except UnicodeDecodeError as e:
            return ConversionResult.failed(e)


class StringToBytesConverter(InputConverter):
    """Encodes text payloads as UTF-8 for bytes parameters."""

    supported_types = (bytes,)

    async def convert(self, context: ConverterContext) -> ConversionResult:
        if unwrap_optional(context.target_type) is not bytes or not isinstance(context.source, str):
            return ConversionResult.unhandled()
        return ConversionResult.success(context.source.encode("utf-8"))


class JsonPocoConverter(InputConverter):
    """
    Deserializes JSON text into the target type.

    Uses pydantic validation, so models, dataclasses, typed collections and
    primitives are all supported. Plain classes with a parameterless
    constructor are instantiated and populated attribute by attribute.

    Malformed or invalid content is a FAILED result, not UNHANDLED.
    """

    supports_json_deserialization = True

    async def convert(self, context: ConverterContext) -> ConversionResult:
        source = context.source
        target_type = context.target_type
        checked_type = unwrap_optional(target_type)

        if not isinstance(source, (str, bytes, bytearray)):
            return ConversionResult.unhandled()
        if checked_type in _TEXT_TYPES or checked_type in _UNTYPED:
            return ConversionResult.unhandled()

        try:
            return ConversionResult.success(deserialize_json(source, target_type))
        except PydanticSchemaGenerationError:
            logger.debug(f"[json_converter] No schema for {target_type!r}")
            return ConversionResult.unhandled()
        except (ValidationError, ValueError, TypeError) as e:
            return ConversionResult.failed(e)


class ArrayConverter(InputConverter):
    """Validates list/tuple payloads into typed list[T] / tuple[T, ...] targets."""

    async def convert(self, context: ConverterContext) -> ConversionResult:
        source = context.source
        target_type = context.target_type

        if not isinstance(source, (list, tuple)):
            return ConversionResult.unhandled()

        checked_type = unwrap_optional(target_type)
        origin = typing.get_origin(checked_type) or checked_type
        if origin not in (list, tuple):
            return ConversionResult.unhandled()

        try:
            return ConversionResult.success(_type_adapter(target_type).validate_python(source))
        except PydanticSchemaGenerationError:
            return ConversionResult.unhandled()
        except ValidationError as e:
            return ConversionResult.failed(e)


def default_converters() -> list[type[InputConverter]]:
    """Global fallback converters in registration order."""
    return [
        TypeConverter,
        UUIDConverter,
        DateTimeConverter,
        MemoryConverter,
        StringToBytesConverter,
        JsonPocoConverter,
        ArrayConverter,
    ]


# =============================================================================
# Helpers
# =============================================================================


def deserialize_json(payload: str | bytes | bytearray, target_type: Any) -> Any:
    """
    Deserialize JSON text into target_type.

    Raises:
        ValidationError / ValueError: If the payload is malformed or invalid
        PydanticSchemaGenerationError: If target_type cannot be validated
    """
    plain_type = unwrap_optional(target_type)
    if _is_plain_class(plain_type):
        data = json.loads(payload)
        if data is None and plain_type is not target_type:
            return None
        if not isinstance(data, dict):
            raise ValueError(f"Expected a JSON object for {plain_type.__name__}")
        instance = plain_type()
        for key, value in data.items():
            setattr(instance, key, value)
        return instance

    return _type_adapter(target_type).validate_json(payload)


@lru_cache(maxsize=512)
def _type_adapter(target_type: Any) -> TypeAdapter:
    return TypeAdapter(target_type)


def _is_plain_class(target_type: Any) -> bool:
    return (
        isinstance(target_type, type)
        and target_type.__module__ != "builtins"
        and not issubclass(target_type, BaseModel)
        and not hasattr(target_type, "__dataclass_fields__")
        and not hasattr(target_type, "__pydantic_core_schema__")
        and has_only_parameterless_constructor(target_type)
    )


def _is_instance(value: Any, target_type: Any) -> bool:
    origin = typing.get_origin(target_type)
    if origin is typing.Union or origin is types.UnionType:
        return any(_is_instance(value, arg) for arg in typing.get_args(target_type))
    if isinstance(target_type, type) and origin is None:
        return isinstance(value, target_type)
    return False
