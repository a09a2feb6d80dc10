"""
Entry Point Locator.

Loads a load unit (a Python source file) and resolves an entry point
inside it to a callable plus everything dispatch needs to know about it.

Entry points:
    "process_order"                  module-level function
    "OrderFunctions.process"         method of a class
    "orders.OrderFunctions.process"  same, with the module stem prefixed
    "orders:OrderFunctions.process"  same, explicit separator

Load units are executed once per absolute path and kept for the process
lifetime.
"""

from __future__ import annotations

import hashlib
import importlib.util
import inspect
import logging
import os
import sys
import threading
import typing
from collections.abc import Callable
from dataclasses import dataclass, field
from types import ModuleType
from typing import Any

from funcworker.errors import ConfigurationError

logger = logging.getLogger(__name__)

_VARIADIC = (inspect.Parameter.VAR_POSITIONAL, inspect.Parameter.VAR_KEYWORD)


@dataclass(frozen=True, slots=True)
class ResolvedEntryPoint:
    """
    A callable located inside a load unit.

    Attributes:
        function: The callable (unbound for instance methods)
        attribute: Attribute name on the owner class
        owner: Declaring class, or None for module-level functions
        is_static: Callable without an instance (function, static/class method)
        is_async: Whether the callable is a coroutine function
        returns_value: False only when annotated "-> None"
        dependencies: Owner constructor parameter types, in order
        parameters: Bindable parameters in declaration order
        type_hints: Resolved annotations (Annotated metadata kept)
    """

    function: Callable[..., Any]
    attribute: str
    owner: type | None
    is_static: bool
    is_async: bool
    returns_value: bool
    dependencies: tuple[type, ...] = ()
    parameters: tuple[inspect.Parameter, ...] = ()
    type_hints: dict[str, Any] = field(default_factory=dict)


class EntryPointLocator:
    """
    Resolves entry points inside load units.

    Example:
        locator = EntryPointLocator()
        target = locator.locate("/srv/app/orders.py", "OrderFunctions.process")
        target.owner        # <class 'OrderFunctions'>
        target.is_async     # True
    """

    def __init__(self) -> None:
        self._modules: dict[str, ModuleType] = {}
        self._lock = threading.RLock()

    def load_module(self, load_unit_path: str) -> ModuleType:
        """
        Load (once) the module at load_unit_path.

        Raises:
            ConfigurationError: If the file is missing or fails to import
        """
        path = os.path.abspath(load_unit_path)

        with self._lock:
            module = self._modules.get(path)
            if module is not None:
                return module

            if not os.path.isfile(path):
                raise ConfigurationError(f"Load unit '{path}' does not exist")

            module_name = _module_name_for(path)
            spec = importlib.util.spec_from_file_location(module_name, path)
            if spec is None or spec.loader is None:
                raise ConfigurationError(f"Load unit '{path}' is not a Python module")

            module = importlib.util.module_from_spec(spec)
            sys.modules[module_name] = module
            try:
                spec.loader.exec_module(module)
            except Exception as e:
                sys.modules.pop(module_name, None)
                raise ConfigurationError(f"Load unit '{path}' failed to import: {e}") from e

            self._modules[path] = module
            logger.info(f"[entry_point_locator] Loaded load unit: {path} as {module_name}")
            return module

    def locate(self, load_unit_path: str, entry_point: str) -> ResolvedEntryPoint:
        """
        Resolve entry_point inside the load unit.

        Raises:
            ConfigurationError: If the entry point is not a callable in the load unit
        """
        module = self.load_module(load_unit_path)
        parts = _split_entry_point(entry_point, load_unit_path)
        if not parts:
            raise ConfigurationError(f"Entry point '{entry_point}' is empty")

        owner: Any = module
        for part in parts[:-1]:
            owner = getattr(owner, part, None)
            if owner is None:
                raise ConfigurationError(
                    f"Entry point '{entry_point}' could not be found in '{load_unit_path}'"
                )

        attribute = parts[-1]
        function = getattr(owner, attribute, None)
        if function is None or not callable(function) or isinstance(function, type):
            raise ConfigurationError(
                f"Entry point '{entry_point}' is not a callable in '{load_unit_path}'"
            )

        owner_type = owner if isinstance(owner, type) else None
        is_static = True
        if owner_type is not None:
            raw = inspect.getattr_static(owner_type, attribute)
            is_static = isinstance(raw, (staticmethod, classmethod))

        try:
            type_hints = typing.get_type_hints(function, include_extras=True)
        except Exception as e:
            raise ConfigurationError(
                f"Entry point '{entry_point}' has unresolvable annotations: {e}"
            ) from e

        return ResolvedEntryPoint(
            function=function,
            attribute=attribute,
            owner=owner_type,
            is_static=is_static,
            is_async=inspect.iscoroutinefunction(function),
            returns_value=_returns_value(function, type_hints),
            dependencies=_constructor_dependencies(owner_type) if owner_type else (),
            parameters=_bindable_parameters(function, skip_receiver=not is_static),
            type_hints=type_hints,
        )


# =============================================================================
# Helpers
# =============================================================================


def _module_name_for(path: str) -> str:
    stem = os.path.splitext(os.path.basename(path))[0]
    digest = hashlib.sha1(path.encode("utf-8")).hexdigest()[:10]
    return f"funcworker_load_unit_{stem}_{digest}"


def _split_entry_point(entry_point: str, load_unit_path: str) -> list[str]:
    if ":" in entry_point:
        entry_point = entry_point.partition(":")[2]
        return [p for p in entry_point.split(".") if p]

    parts = [p for p in entry_point.split(".") if p]
    stem = os.path.splitext(os.path.basename(load_unit_path))[0]
    if len(parts) > 1 and parts[0] == stem:
        parts = parts[1:]
    return parts


def _returns_value(function: Callable[..., Any], type_hints: dict[str, Any]) -> bool:
    if "return" not in type_hints:
        return True
    return type_hints["return"] not in (None, type(None))


def _bindable_parameters(
    function: Callable[..., Any],
    *,
    skip_receiver: bool,
) -> tuple[inspect.Parameter, ...]:
    parameters = list(inspect.signature(function).parameters.values())
    if skip_receiver and parameters:
        parameters = parameters[1:]
    return tuple(p for p in parameters if p.kind not in _VARIADIC)


def _constructor_dependencies(owner: type) -> tuple[type, ...]:
    init = owner.__init__
    if init is object.__init__:
        return ()

    try:
        hints = typing.get_type_hints(init)
    except Exception as e:
        raise ConfigurationError(
            f"Constructor of '{owner.__qualname__}' has unresolvable annotations: {e}"
        ) from e

    dependencies: list[type] = []
    for parameter in list(inspect.signature(init).parameters.values())[1:]:
        if parameter.kind in _VARIADIC:
            continue
        dependency = hints.get(parameter.name)
        if dependency is None:
            raise ConfigurationError(
                f"Constructor parameter '{parameter.name}' of '{owner.__qualname__}' "
                f"has no type annotation"
            )
        dependencies.append(dependency)
    return tuple(dependencies)
