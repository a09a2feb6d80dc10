"""
Type to Converter Cache.

Caches which converter (if any) a target type declares through
@input_converter. The cache is owned by the worker: created at startup,
handed to the conversion pipeline, and kept for the process lifetime.

Each key is computed at most once. Concurrent callers asking for a key that
is being computed wait on the same lock and then read the published value.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from typing import Any

from .base import declared_converter_identity, type_identity

logger = logging.getLogger(__name__)


class TypeConverterCache:
    """
    Maps type identity -> declared converter class or dotted name (or None).

    Example:
        cache = TypeConverterCache()
        cache.get_or_add(Order)   # computes and stores
        cache.get_or_add(Order)   # served from cache
    """

    def __init__(
        self,
        resolver: Callable[[Any], type | str | None] = declared_converter_identity,
    ):
        """
        Initialize cache.

        Args:
            resolver: Computes the converter identity for a type on a miss
        """
        self._resolver = resolver
        self._entries: dict[str, type | str | None] = {}
        self._lock = threading.Lock()

    def get_or_add(self, target_type: Any) -> type | str | None:
        """Get the converter identity declared by target_type, computing it once."""
        key = type_identity(target_type)

        try:
            return self._entries[key]
        except KeyError:
            pass

        with self._lock:
            if key not in self._entries:
                self._entries[key] = self._resolver(target_type)
                logger.debug(
                    f"[type_converter_cache] Cached {key} -> {self._entries[key]}"
                )
            return self._entries[key]

    def clear(self) -> None:
        """Clear all cached entries."""
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, target_type: Any) -> bool:
        return type_identity(target_type) in self._entries
