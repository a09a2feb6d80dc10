"""
Binding Annotations and the Binding Kind Table.

Parameters describe where their value comes from with typing.Annotated
markers instead of attributes:

    async def run(
        order: Annotated[Order, QueueTrigger("orders")],
        raw: Annotated[bytes, UseConverter(MemoryConverter)],
        blob: Annotated[str, BlobInput("reports/{id}.txt")],
    ): ...

Markers:
    - UseConverter: explicit converter for this parameter. Overrides
      every other strategy.
    - InputBinding / TriggerBinding subclasses: the binding kind of the
      parameter. The builder consults the BindingKindTable to find which
      converter the kind advertises.
    - OutputBinding subclasses: ignored for input conversion.

Design Principle:
    A binding kind registers its converter once, at import time, in a
    table. The builder reads the table instead of reflecting over the
    marker. Lookup follows the marker's MRO, so subclasses of a
    registered kind inherit its converter.

Usage:
    @binding_kind(converter=QueueMessageConverter)
    @dataclass(frozen=True, slots=True)
    class QueueTrigger(TriggerBinding):
        queue_name: str = ""
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Any

from funcworker.converters.base import ConverterProperties, InputConverter
from funcworker.converters.registry import resolve_converter_type

logger = logging.getLogger(__name__)


# =============================================================================
# Markers
# =============================================================================


@dataclass(frozen=True, slots=True)
class UseConverter:
    """Explicit converter for one parameter (class or dotted identity)."""

    converter: type[InputConverter] | str


@dataclass(frozen=True, slots=True)
class BindingAttribute:
    """Base class for binding markers."""

    pass


@dataclass(frozen=True, slots=True)
class InputBinding(BindingAttribute):
    """Base class for input binding markers."""

    pass


@dataclass(frozen=True, slots=True)
class TriggerBinding(BindingAttribute):
    """Base class for trigger binding markers."""

    pass


@dataclass(frozen=True, slots=True)
class OutputBinding(BindingAttribute):
    """Base class for output binding markers."""

    pass


# =============================================================================
# Binding Kind Table
# =============================================================================


@dataclass(frozen=True, slots=True)
class BindingKind:
    """
    What a binding kind advertises for input conversion.

    Attributes:
        marker_type: Registered marker class
        converter: Advertised converter, or None
        allow_fallback: Whether global converters may be tried afterwards
    """

    marker_type: type
    converter: type[InputConverter] | str | None = None
    allow_fallback: bool = True

    def advertised_converters(self) -> dict[type[InputConverter], ConverterProperties]:
        """
        Advertised converter mapped to its properties.

        Raises:
            ResolutionError: If a dotted converter name cannot be resolved
        """
        if self.converter is None:
            return {}
        converter_type = resolve_converter_type(self.converter)
        return {converter_type: ConverterProperties.from_converter(converter_type)}


class BindingKindTable:
    """
    Registry of binding kinds.

    Example:
        table = BindingKindTable()
        table.register(BlobInput, converter=BlobStorageConverter)

        table.lookup(BlobInput("container/name"))
        # BindingKind(marker_type=BlobInput, converter=BlobStorageConverter, ...)
    """

    def __init__(self) -> None:
        self._kinds: dict[type, BindingKind] = {}
        self._lock = threading.Lock()

    def register(
        self,
        marker_type: type,
        converter: type[InputConverter] | str | None = None,
        *,
        allow_fallback: bool = True,
    ) -> BindingKind:
        """
        Register a binding kind.

        Args:
            marker_type: Binding marker class
            converter: Converter the kind advertises
            allow_fallback: Whether global converters may follow

        Returns:
            The registered kind

        Raises:
            TypeError: If marker_type is not a BindingAttribute subclass
        """
        if not (isinstance(marker_type, type) and issubclass(marker_type, BindingAttribute)):
            raise TypeError(f"{marker_type!r} is not a BindingAttribute subclass")

        kind = BindingKind(
            marker_type=marker_type,
            converter=converter,
            allow_fallback=allow_fallback,
        )
        with self._lock:
            if marker_type in self._kinds:
                logger.warning(f"[binding_kinds] Overwriting kind: {marker_type.__name__}")
            self._kinds[marker_type] = kind

        logger.debug(f"[binding_kinds] Registered kind: {marker_type.__name__}")
        return kind

    def lookup(self, marker: Any) -> BindingKind | None:
        """Find the kind for a marker instance or class, following its MRO."""
        marker_type = marker if isinstance(marker, type) else type(marker)
        for base in marker_type.__mro__:
            kind = self._kinds.get(base)
            if kind is not None:
                return kind
        return None

    def copy(self) -> BindingKindTable:
        """Independent copy of this table."""
        table = BindingKindTable()
        with self._lock:
            table._kinds = dict(self._kinds)
        return table

    def __contains__(self, marker_type: type) -> bool:
        return self.lookup(marker_type) is not None

    def __len__(self) -> int:
        return len(self._kinds)


DEFAULT_BINDING_TABLE = BindingKindTable()


def binding_kind(
    converter: type[InputConverter] | str | None = None,
    *,
    allow_fallback: bool = True,
    table: BindingKindTable | None = None,
):
    """
    Class decorator registering a binding marker in a kind table.

    Args:
        converter: Converter the kind advertises
        allow_fallback: Whether global converters may follow
        table: Target table (defaults to DEFAULT_BINDING_TABLE)
    """

    def decorator(cls: type) -> type:
        (table if table is not None else DEFAULT_BINDING_TABLE).register(
            cls, converter, allow_fallback=allow_fallback
        )
        return cls

    return decorator
