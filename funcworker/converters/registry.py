"""
Converter Registry.

The registry manages input converters for the worker:
- The ordered list of globally registered (fallback) converters
- At-most-once instantiation of converters by identity

Design Principle:
    Converters are registered once at startup. The same identity always
    yields the same instance for the registry's lifetime, so converters
    must be stateless or internally synchronized.

Identities:
    A converter identity is either the converter class itself or a dotted
    name: "package.module.ClassName" or "package.module:ClassName".

Usage:
    registry = ConverterRegistry(default_converters())
    registry.register(MyConverter)

    for converter in registry.registered_converters:
        ...

    converter = registry.get_or_create("app.converters:OrderConverter")
"""

from __future__ import annotations

import importlib
import logging
import threading
from collections.abc import Callable, Iterable

from funcworker.errors import ResolutionError

from .base import InputConverter, converter_identity

logger = logging.getLogger(__name__)


def resolve_converter_type(identity: type | str) -> type[InputConverter]:
    """
    Resolve a converter identity to its class.

    Raises:
        ResolutionError: If the identity cannot be imported or is not
            an InputConverter subclass
    """
    if isinstance(identity, str):
        converter_type = _import_by_name(identity)
    else:
        converter_type = identity

    if not isinstance(converter_type, type) or not issubclass(converter_type, InputConverter):
        raise ResolutionError(f"'{converter_identity(identity)}' is not an InputConverter")
    return converter_type


def _import_by_name(name: str) -> object:
    if ":" in name:
        module_name, _, attr_path = name.partition(":")
        candidates = [(module_name, attr_path)]
    else:
        parts = name.split(".")
        candidates = [
            (".".join(parts[:i]), ".".join(parts[i:])) for i in range(len(parts) - 1, 0, -1)
        ]

    for module_name, attr_path in candidates:
        try:
            obj: object = importlib.import_module(module_name)
        except ModuleNotFoundError as e:
            if _is_candidate_module(module_name, e.name):
                continue
            raise ResolutionError(
                f"Converter module '{module_name}' failed to import: {e}"
            ) from e
        except Exception as e:
            raise ResolutionError(
                f"Converter module '{module_name}' failed to import: {e}"
            ) from e
        try:
            for attr in attr_path.split("."):
                obj = getattr(obj, attr)
        except AttributeError:
            continue
        return obj

    raise ResolutionError(f"Converter '{name}' could not be located")


def _is_candidate_module(module_name: str, missing: str | None) -> bool:
    # The candidate itself (or one of its parent packages) does not exist
    if missing is None:
        return False
    return module_name == missing or module_name.startswith(f"{missing}.")


class ConverterRegistry:
    """
    Registry of input converters.

    Thread-safe: instance creation is guarded so each identity is
    instantiated at most once.

    Example:
        registry = ConverterRegistry([TypeConverter, JsonPocoConverter])

        # Fallback order
        [type(c).__name__ for c in registry.registered_converters]
        # ['TypeConverter', 'JsonPocoConverter']

        # Shared instance by identity
        registry.get_or_create(JsonPocoConverter) is registry.get_or_create(
            "funcworker.converters.builtin.JsonPocoConverter"
        )  # True
    """

    def __init__(
        self,
        converters: Iterable[type[InputConverter] | InputConverter] = (),
        *,
        factory: Callable[[type[InputConverter]], InputConverter] | None = None,
    ):
        """
        Initialize registry.

        Args:
            converters: Global converters in fallback order
            factory: Creates converter instances (defaults to calling the class)
        """
        self._factory = factory or (lambda converter_type: converter_type())
        self._instances: dict[str, InputConverter] = {}
        self._registered: list[InputConverter] = []
        self._lock = threading.RLock()

        for converter in converters:
            self.register(converter)

    def register(self, converter: type[InputConverter] | InputConverter | str) -> InputConverter:
        """
        Append a converter to the global fallback list.

        Args:
            converter: Converter class, dotted identity, or instance

        Returns:
            The registered instance

        Raises:
            ResolutionError: If the converter cannot be resolved
        """
        with self._lock:
            if isinstance(converter, InputConverter):
                instance = self._instances.setdefault(
                    converter_identity(type(converter)), converter
                )
            else:
                instance = self.get_or_create(converter)

            if any(existing is instance for existing in self._registered):
                logger.debug(f"[converter_registry] Already registered: {instance!r}")
                return instance

            self._registered.append(instance)
            logger.info(f"[converter_registry] Registered converter: {instance!r}")
            return instance

    @property
    def registered_converters(self) -> tuple[InputConverter, ...]:
        """Global converters in registration order."""
        return tuple(self._registered)

    def get_or_create(self, identity: type[InputConverter] | str) -> InputConverter:
        """
        Get the shared converter instance for an identity, creating it once.

        Raises:
            ResolutionError: If the identity cannot be located or instantiated
        """
        key = converter_identity(identity)

        instance = self._instances.get(key)
        if instance is not None:
            return instance

        with self._lock:
            instance = self._instances.get(key)
            if instance is not None:
                return instance

            converter_type = resolve_converter_type(identity)
            canonical = converter_identity(converter_type)
            instance = self._instances.get(canonical)

            if instance is None:
                try:
                    instance = self._factory(converter_type)
                except Exception as e:
                    raise ResolutionError(
                        f"Converter '{key}' could not be instantiated: {e}"
                    ) from e
                self._instances[canonical] = instance

            self._instances[key] = instance

            logger.debug(f"[converter_registry] Created converter instance: {key}")
            return instance

    def __len__(self) -> int:
        return len(self._registered)

    def __contains__(self, identity: type | str) -> bool:
        return converter_identity(identity) in self._instances

    def __repr__(self) -> str:
        return f"<ConverterRegistry converters={[repr(c) for c in self._registered]}>"
