"""
Tests for the Input Conversion Pipeline.

Tests cover:
- Context override (explicit converter, type-declared converter)
- Advertised converters and the type-support rule
- Global fallback ordering and suppression
- FAILED results are definitive
- Type to converter cache idempotence
- Cancellation of conversions
"""

import threading
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Optional
from unittest.mock import MagicMock

import pytest
from pydantic import BaseModel

from funcworker.converters import (
    ConversionResult,
    ConverterContext,
    ConverterProperties,
    ConverterRegistry,
    InputConversionPipeline,
    InputConverter,
    JsonPocoConverter,
    PropertyBagKeys,
    TypeConverterCache,
    default_converters,
    input_converter,
    is_json_deserializable,
    is_target_type_supported,
)
from funcworker.definition import FunctionDefinition
from funcworker.errors import InvocationCancelledError
from funcworker.invocation import CancellationToken, FunctionContext

# =============================================================================
# Recording Converters for Testing
# =============================================================================


class RecordingConverter(InputConverter):
    """Counts calls and returns a fixed result."""

    def __init__(self):
        self.calls = 0

    def result(self) -> ConversionResult:
        return ConversionResult.unhandled()

    async def convert(self, context: ConverterContext) -> ConversionResult:
        self.calls += 1
        return self.result()


class UnhandledConverter(RecordingConverter):
    pass


class FirstValueConverter(RecordingConverter):
    def result(self) -> ConversionResult:
        return ConversionResult.success("first")


class SecondValueConverter(RecordingConverter):
    def result(self) -> ConversionResult:
        return ConversionResult.success("second")


class FailingConverter(RecordingConverter):
    def result(self) -> ConversionResult:
        return ConversionResult.failed(ValueError("bad payload"))


class OverrideConverter(RecordingConverter):
    def result(self) -> ConversionResult:
        return ConversionResult.success("override")


class AdvertisedConverter(RecordingConverter):
    supported_types = (str,)

    def result(self) -> ConversionResult:
        return ConversionResult.success("advertised")


# =============================================================================
# Target Types for Testing
# =============================================================================


class Settings:
    """Plain class with only a parameterless constructor."""

    pass


class Account:
    """Class whose constructor requires arguments."""

    def __init__(self, owner: str):
        self.owner = owner


class Invoice(BaseModel):
    number: int


@dataclass
class Address:
    street: str


@input_converter(OverrideConverter)
class DeclaredType:
    pass


def make_pipeline(*converters: InputConverter) -> InputConversionPipeline:
    return InputConversionPipeline(ConverterRegistry(converters), TypeConverterCache())


def advertised(*pairs) -> dict:
    return {PropertyBagKeys.BINDING_ATTRIBUTE_SUPPORTED_CONVERTERS: dict(pairs)}


# =============================================================================
# Context Override Tests
# =============================================================================


class TestContextOverride:
    """Tests for step 1: the explicit or type-declared converter."""

    @pytest.mark.asyncio
    async def test_explicit_converter_wins_over_advertised(self):
        """Only the explicit converter runs when it produces a result."""
        override = OverrideConverter()
        advertised_converter = AdvertisedConverter()
        fallback = FirstValueConverter()
        pipeline = make_pipeline(fallback, override, advertised_converter)

        properties = {
            PropertyBagKeys.CONVERTER_TYPE: OverrideConverter,
            PropertyBagKeys.BINDING_ATTRIBUTE_SUPPORTED_CONVERTERS: {
                AdvertisedConverter: ConverterProperties(supported_types=(str,)),
            },
        }
        result = await pipeline.convert(
            ConverterContext(target_type=str, source="x", properties=properties)
        )

        assert result.value == "override"
        assert override.calls == 1
        assert advertised_converter.calls == 0
        assert fallback.calls == 0

    @pytest.mark.asyncio
    async def test_explicit_converter_by_dotted_name(self):
        """Converter identities can be dotted names."""
        pipeline = make_pipeline()

        result = await pipeline.convert(
            ConverterContext(
                target_type=bytes,
                source="abc",
                properties={
                    PropertyBagKeys.CONVERTER_TYPE: "funcworker.converters.builtin:StringToBytesConverter"
                },
            )
        )

        assert result.value == b"abc"

    @pytest.mark.asyncio
    async def test_unhandled_override_continues_to_fallback(self):
        """An UNHANDLED override is not definitive."""
        override = UnhandledConverter()
        fallback = FirstValueConverter()
        pipeline = make_pipeline(override, fallback)

        result = await pipeline.convert(
            ConverterContext(
                target_type=str,
                source="x",
                properties={PropertyBagKeys.CONVERTER_TYPE: UnhandledConverter},
            )
        )

        assert result.value == "first"
        assert override.calls == 2  # as override, then as first fallback

    @pytest.mark.asyncio
    async def test_type_declared_converter(self):
        """@input_converter on the target type acts as an override."""
        override = OverrideConverter()
        fallback = FirstValueConverter()
        pipeline = make_pipeline(fallback, override)

        result = await pipeline.convert(ConverterContext(target_type=DeclaredType, source="x"))

        assert result.value == "override"
        assert fallback.calls == 0

    @pytest.mark.asyncio
    async def test_type_declaration_inherited(self):
        """Subclasses inherit the declared converter."""

        class Derived(DeclaredType):
            pass

        pipeline = make_pipeline(OverrideConverter())

        result = await pipeline.convert(ConverterContext(target_type=Derived, source="x"))

        assert result.value == "override"

    @pytest.mark.asyncio
    async def test_locally_defined_declared_converter(self):
        """Declared converters need not be importable by name."""

        class LocalConverter(RecordingConverter):
            def result(self) -> ConversionResult:
                return ConversionResult.success("local")

        @input_converter(LocalConverter)
        class LocalType:
            pass

        result = await make_pipeline().convert(ConverterContext(target_type=LocalType, source="x"))

        assert result.value == "local"


# =============================================================================
# Advertised Converter Tests
# =============================================================================


class TestAdvertisedConverters:
    """Tests for step 2: converters advertised by the binding kind."""

    @pytest.mark.asyncio
    async def test_advertised_converter_for_supported_type(self):
        """An advertised converter runs when its properties list the type."""
        advertised_converter = AdvertisedConverter()
        fallback = FirstValueConverter()
        pipeline = make_pipeline(fallback, advertised_converter)

        result = await pipeline.convert(
            ConverterContext(
                target_type=str,
                source="x",
                properties=advertised(
                    (AdvertisedConverter, ConverterProperties.from_converter(AdvertisedConverter))
                ),
            )
        )

        assert result.value == "advertised"
        assert fallback.calls == 0

    @pytest.mark.asyncio
    async def test_advertised_converter_skipped_for_unsupported_type(self):
        """An advertised converter is not tried for unsupported types."""
        advertised_converter = AdvertisedConverter()
        fallback = FirstValueConverter()
        pipeline = make_pipeline(fallback, advertised_converter)

        result = await pipeline.convert(
            ConverterContext(
                target_type=int,
                source="1",
                properties=advertised(
                    (AdvertisedConverter, ConverterProperties.from_converter(AdvertisedConverter))
                ),
            )
        )

        assert result.value == "first"
        assert advertised_converter.calls == 0

    @pytest.mark.asyncio
    @pytest.mark.parametrize("target_type", [str | None, Optional[str]])
    async def test_advertised_converter_for_nullable_target(self, target_type):
        """Nullable parameters still match the advertised converter."""
        advertised_converter = AdvertisedConverter()
        fallback = FirstValueConverter()
        pipeline = make_pipeline(fallback, advertised_converter)

        result = await pipeline.convert(
            ConverterContext(
                target_type=target_type,
                source="x",
                properties=advertised(
                    (AdvertisedConverter, ConverterProperties.from_converter(AdvertisedConverter))
                ),
            )
        )

        assert result.value == "advertised"
        assert fallback.calls == 0

    @pytest.mark.asyncio
    async def test_json_converter_for_nullable_model(self):
        """A JSON-capable advertised converter accepts Model | None."""
        json_converter = JsonPocoConverter()
        fallback = FirstValueConverter()
        pipeline = make_pipeline(fallback, json_converter)

        result = await pipeline.convert(
            ConverterContext(
                target_type=Invoice | None,
                source='{"number": 12}',
                properties=advertised(
                    (JsonPocoConverter, ConverterProperties.from_converter(JsonPocoConverter))
                ),
            )
        )

        assert result.value == Invoice(number=12)
        assert fallback.calls == 0

    @pytest.mark.asyncio
    async def test_non_converter_entries_are_skipped(self):
        """Entries that are not input converters are ignored."""
        fallback = FirstValueConverter()
        pipeline = make_pipeline(fallback)

        result = await pipeline.convert(
            ConverterContext(
                target_type=str,
                source="x",
                properties=advertised((str, ConverterProperties(supported_types=(str,)))),
            )
        )

        assert result.value == "first"


# =============================================================================
# Type-Support Rule Tests
# =============================================================================


class TestTypeSupport:
    """Tests for the advertised-converter type-support rule."""

    @pytest.mark.parametrize("json_support", [True, False])
    @pytest.mark.parametrize("target_type", [str, int, Invoice, Account, list[int]])
    def test_listed_type_supported_regardless_of_json_flag(self, target_type, json_support):
        """A verbatim listed type is always supported."""
        properties = ConverterProperties(
            supported_types=(target_type,),
            supports_json_deserialization=json_support,
        )

        assert is_target_type_supported(properties, target_type)

    def test_parameterless_class_supported_with_json(self):
        """Parameterless classes match structurally when JSON is supported."""
        properties = ConverterProperties(supports_json_deserialization=True)

        assert is_target_type_supported(properties, Settings)

    def test_parameterless_class_not_supported_without_json(self):
        """Without JSON support only listed types match."""
        assert not is_target_type_supported(ConverterProperties(), Settings)

    def test_structural_json_types(self):
        """Models, dataclasses and their arrays are JSON-deserializable."""
        assert is_json_deserializable(Invoice)
        assert is_json_deserializable(Address)
        assert is_json_deserializable(list[Invoice])
        assert is_json_deserializable(tuple[Address, ...])

    def test_non_json_types(self):
        """Builtins, constructor-argument classes and binary types are not."""
        assert not is_json_deserializable(str)
        assert not is_json_deserializable(int)
        assert not is_json_deserializable(Account)
        assert not is_json_deserializable(bytes)
        assert not is_json_deserializable(list[int])
        assert not is_json_deserializable(tuple[Invoice, Invoice])
        assert not is_json_deserializable(dict[str, Invoice])

    def test_single_argument_generic(self):
        """A one-argument generic qualifies when its argument does."""
        assert is_json_deserializable(frozenset[Invoice])
        assert not is_json_deserializable(frozenset[int])

    def test_nullable_targets_checked_as_inner_type(self):
        """Optional[T] and T | None follow the rule for T."""
        listed = ConverterProperties(supported_types=(str,))
        json_only = ConverterProperties(supports_json_deserialization=True)

        assert is_target_type_supported(listed, str | None)
        assert is_target_type_supported(listed, Optional[str])
        assert is_target_type_supported(json_only, Invoice | None)
        assert is_json_deserializable(list[Address] | None)
        assert not is_target_type_supported(json_only, str | None)
        assert not is_json_deserializable(Invoice | Address)


# =============================================================================
# Fallback Tests
# =============================================================================


class TestFallback:
    """Tests for step 3: global fallback converters."""

    @pytest.mark.asyncio
    async def test_first_definitive_fallback_wins(self):
        """C1 unhandled, C2 value, C3 value: C2 wins and C3 never runs."""
        c1, c2, c3 = UnhandledConverter(), FirstValueConverter(), SecondValueConverter()
        pipeline = make_pipeline(c1, c2, c3)

        result = await pipeline.convert(ConverterContext(target_type=str, source="x"))

        assert result.succeeded
        assert result.value == "first"
        assert (c1.calls, c2.calls, c3.calls) == (1, 1, 0)

    @pytest.mark.asyncio
    async def test_fallback_suppressed(self):
        """allow_converter_fallback=False skips global converters."""
        fallback = FirstValueConverter()
        pipeline = make_pipeline(fallback)

        result = await pipeline.convert(
            ConverterContext(
                target_type=str,
                source="x",
                properties={
                    PropertyBagKeys.BINDING_ATTRIBUTE_SUPPORTED_CONVERTERS: {},
                    PropertyBagKeys.ALLOW_CONVERTER_FALLBACK: False,
                },
            )
        )

        assert result.is_unhandled
        assert fallback.calls == 0

    @pytest.mark.asyncio
    async def test_context_flag_overrides_binding_flag(self):
        """enable_fallback_converters wins over allow_converter_fallback."""
        fallback = FirstValueConverter()
        pipeline = make_pipeline(fallback)

        result = await pipeline.convert(
            ConverterContext(
                target_type=str,
                source="x",
                properties={
                    PropertyBagKeys.ALLOW_CONVERTER_FALLBACK: False,
                    PropertyBagKeys.ENABLE_FALLBACK_CONVERTERS: True,
                },
            )
        )

        assert result.value == "first"

    @pytest.mark.asyncio
    async def test_failed_result_is_definitive(self):
        """A FAILED result stops resolution."""
        failing, fallback = FailingConverter(), FirstValueConverter()
        pipeline = make_pipeline(failing, fallback)

        result = await pipeline.convert(ConverterContext(target_type=str, source="x"))

        assert not result.succeeded
        assert not result.is_unhandled
        assert isinstance(result.error, ValueError)
        assert fallback.calls == 0

    @pytest.mark.asyncio
    async def test_plain_type_without_hints_uses_defaults(self, pipeline):
        """A plain parameter goes straight to the global converters."""
        result = await pipeline.convert(ConverterContext(target_type=int, source="42"))

        assert result.succeeded
        assert result.value == 42

    @pytest.mark.asyncio
    async def test_nothing_applies(self):
        """No candidates at all yields UNHANDLED, not an error."""
        result = await make_pipeline().convert(ConverterContext(target_type=int, source="1"))

        assert result.is_unhandled

    def test_default_registry_order(self):
        """Defaults register in their documented order."""
        registry = ConverterRegistry(default_converters())

        assert [type(c).__name__ for c in registry.registered_converters] == [
            "TypeConverter",
            "UUIDConverter",
            "DateTimeConverter",
            "MemoryConverter",
            "StringToBytesConverter",
            "JsonPocoConverter",
            "ArrayConverter",
        ]


# =============================================================================
# Type Converter Cache Tests
# =============================================================================


class TestTypeConverterCache:
    """Tests for TypeConverterCache."""

    def test_resolver_called_once_per_type(self):
        """Repeated lookups never recompute."""
        resolver = MagicMock(return_value="app.converters.OrderConverter")
        cache = TypeConverterCache(resolver=resolver)

        first = cache.get_or_add(Invoice)
        second = cache.get_or_add(Invoice)

        assert first == second == "app.converters.OrderConverter"
        assert resolver.call_count == 1
        assert Invoice in cache

    def test_missing_declaration_is_cached(self):
        """Types without a declaration cache None."""
        resolver = MagicMock(return_value=None)
        cache = TypeConverterCache(resolver=resolver)

        assert cache.get_or_add(Settings) is None
        assert cache.get_or_add(Settings) is None
        assert resolver.call_count == 1

    def test_declared_identity(self):
        """The default resolver reads @input_converter."""
        cache = TypeConverterCache()

        assert cache.get_or_add(DeclaredType) is OverrideConverter

    def test_concurrent_lookups_compute_once(self):
        """Threads racing on one missing key share a single computation."""
        calls = []

        def slow_resolver(target_type):
            calls.append(target_type)
            time.sleep(0.05)
            return "app.converters.InvoiceConverter"

        cache = TypeConverterCache(resolver=slow_resolver)
        start = threading.Barrier(8)

        def lookup(_):
            start.wait()
            return cache.get_or_add(Invoice)

        with ThreadPoolExecutor(max_workers=8) as pool:
            results = list(pool.map(lookup, range(8)))

        assert calls == [Invoice]
        assert results == ["app.converters.InvoiceConverter"] * 8

    def test_parameterized_generics_are_distinct(self):
        """list[int] and list[str] are separate keys."""
        cache = TypeConverterCache()
        cache.get_or_add(list[int])
        cache.get_or_add(list[str])

        assert len(cache) == 2

    def test_clear(self):
        """clear() empties the cache."""
        cache = TypeConverterCache()
        cache.get_or_add(Invoice)
        cache.clear()

        assert len(cache) == 0


# =============================================================================
# Cancellation Tests
# =============================================================================


class TestConversionCancellation:
    """Tests for conversions inside an invocation."""

    @pytest.mark.asyncio
    async def test_cancelled_invocation_stops_conversion(self):
        """Conversions run through the invocation's token."""
        token = CancellationToken()
        token.cancel()
        context = FunctionContext(
            invocation_id="inv-1",
            definition=FunctionDefinition(
                id="1", name="f", entry_point="f", load_unit_path="/tmp/f.py"
            ),
            cancellation=token,
        )
        pipeline = make_pipeline(FirstValueConverter())

        with pytest.raises(InvocationCancelledError):
            await pipeline.convert(
                ConverterContext(target_type=str, source="x", function_context=context)
            )
