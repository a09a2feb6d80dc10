"""
Service Scope.

The dispatch table resolves the constructor dependencies of function
owner classes from an invocation's service provider. Any object with a
resolve(type) method works; ServiceScope is a minimal mapping-backed
implementation for embedding and tests.

Usage:
    scope = ServiceScope({
        OrderRepository: repository,          # instance
        Clock: lambda: SystemClock(),         # factory, called per resolve
    })
    scope.resolve(OrderRepository)
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from typing import Any, Protocol, TypeVar, runtime_checkable

from funcworker.errors import ResolutionError

logger = logging.getLogger(__name__)

T = TypeVar("T")


@runtime_checkable
class ServiceProvider(Protocol):
    """Resolves service instances by type."""

    def resolve(self, service_type: type[T]) -> T:
        """
        Raises:
            ResolutionError: If the type is not registered
        """
        ...


class ServiceScope:
    """
    Mapping-backed ServiceProvider.

    Values are either instances or zero-argument factories. A value is
    treated as a factory when it is callable and not itself an instance
    of the registered type.
    """

    def __init__(self, services: Mapping[type, Any] | None = None):
        self._services: dict[type, Any] = dict(services or {})

    def add(self, service_type: type, service: Any) -> ServiceScope:
        """Register an instance or factory. Returns self for chaining."""
        self._services[service_type] = service
        return self

    def add_factory(self, service_type: type, factory: Callable[[], Any]) -> ServiceScope:
        """Register a factory explicitly, even for callable service types."""
        self._services[service_type] = _Factory(factory)
        return self

    def resolve(self, service_type: type[T]) -> T:
        try:
            service = self._services[service_type]
        except KeyError:
            raise ResolutionError(
                f"No service registered for type '{getattr(service_type, '__qualname__', service_type)}'"
            ) from None

        if isinstance(service, _Factory):
            return service.factory()
        if callable(service) and not _is_instance(service, service_type):
            return service()
        return service

    def __contains__(self, service_type: type) -> bool:
        return service_type in self._services

    def __len__(self) -> int:
        return len(self._services)


class _Factory:
    __slots__ = ("factory",)

    def __init__(self, factory: Callable[[], Any]):
        self.factory = factory


def _is_instance(value: Any, service_type: Any) -> bool:
    try:
        return isinstance(value, service_type)
    except TypeError:
        return False
