"""
Input Conversion Pipeline.

Turns one parameter's raw binding payload into a typed value by trying
converters in a fixed order. The first result that is not UNHANDLED wins:

    1. Context override
       - properties[CONVERTER_TYPE], or
       - the converter the target type declares via @input_converter
         (looked up through the TypeConverterCache)
    2. Converters advertised by the parameter's binding kind, in
       declaration order, when their properties support the target type
    3. Global fallback converters from the registry, in registration
       order, unless fallback is disabled
    4. UNHANDLED

A FAILED result is definitive: it is returned as-is and no further
candidates are tried.

Fallback switch (first match wins):
    properties[ENABLE_FALLBACK_CONVERTERS]   (context-level override)
    properties[ALLOW_CONVERTER_FALLBACK]     (from the binding kind)
    enabled

Usage:
    pipeline = InputConversionPipeline(registry, TypeConverterCache())
    result = await pipeline.convert(
        ConverterContext(target_type=Order, source='{"id": 1}')
    )
"""

from __future__ import annotations

import logging
from collections.abc import Iterator, Mapping
from typing import Any

from .base import (
    ConversionResult,
    ConverterContext,
    ConverterProperties,
    InputConverter,
    PropertyBagKeys,
)
from .cache import TypeConverterCache
from .registry import ConverterRegistry
from .type_support import is_target_type_supported

logger = logging.getLogger(__name__)


class InputConversionPipeline:
    """
    Multi-strategy resolver for parameter values.

    The pipeline is stateless apart from the injected registry and cache,
    so one instance serves all concurrent invocations.
    """

    def __init__(
        self,
        registry: ConverterRegistry,
        type_cache: TypeConverterCache | None = None,
    ):
        """
        Initialize pipeline.

        Args:
            registry: Source of converter instances and fallback order
            type_cache: Cache of type-declared converters
        """
        self._registry = registry
        self._type_cache = type_cache if type_cache is not None else TypeConverterCache()

    @property
    def registry(self) -> ConverterRegistry:
        return self._registry

    @property
    def type_cache(self) -> TypeConverterCache:
        return self._type_cache

    async def convert(self, context: ConverterContext) -> ConversionResult:
        """
        Convert context.source to context.target_type.

        Returns:
            The first definitive ConversionResult, or UNHANDLED
        """
        override = self._get_converter_from_context(context)
        if override is not None:
            result = await self._convert_using(override, context)
            if not result.is_unhandled:
                return result

        for converter, properties in self._get_advertised_converters(context):
            if not is_target_type_supported(properties, context.target_type):
                continue
            result = await self._convert_using(converter, context)
            if not result.is_unhandled:
                return result

        if self._fallback_enabled(context):
            for converter in self._registry.registered_converters:
                result = await self._convert_using(converter, context)
                if not result.is_unhandled:
                    return result
        else:
            logger.debug(
                f"[conversion] Fallback converters disabled for {context.target_type!r}"
            )

        return ConversionResult.unhandled()

    async def _convert_using(
        self,
        converter: InputConverter,
        context: ConverterContext,
    ) -> ConversionResult:
        function_context = context.function_context
        if function_context is not None:
            result = await function_context.cancellation.run(converter.convert(context))
        else:
            result = await converter.convert(context)

        if not result.is_unhandled:
            logger.debug(
                f"[conversion] {converter!r} -> {result.status.value} "
                f"for {context.target_type!r}"
            )
        return result

    def _get_converter_from_context(self, context: ConverterContext) -> InputConverter | None:
        identity = context.properties.get(PropertyBagKeys.CONVERTER_TYPE)

        if not isinstance(identity, (str, type)):
            identity = self._type_cache.get_or_add(context.target_type)

        if identity is None:
            return None
        return self._registry.get_or_create(identity)

    def _get_advertised_converters(
        self,
        context: ConverterContext,
    ) -> Iterator[tuple[InputConverter, ConverterProperties]]:
        advertised = context.properties.get(PropertyBagKeys.BINDING_ATTRIBUTE_SUPPORTED_CONVERTERS)
        if not isinstance(advertised, Mapping):
            return

        for identity, properties in advertised.items():
            if isinstance(identity, type) and not issubclass(identity, InputConverter):
                logger.debug(f"[conversion] Skipping non-converter entry: {identity!r}")
                continue
            yield self._registry.get_or_create(identity), properties

    def _fallback_enabled(self, context: ConverterContext) -> bool:
        for key in (
            PropertyBagKeys.ENABLE_FALLBACK_CONVERTERS,
            PropertyBagKeys.ALLOW_CONVERTER_FALLBACK,
        ):
            value: Any = context.properties.get(key)
            if isinstance(value, bool):
                return value
        return True
