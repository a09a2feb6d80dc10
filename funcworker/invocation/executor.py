"""
Direct Executor Generator.

Builds, once at load time, a dispatch table from function name to a
closure that invokes the function with no per-call reflection:

    1. Resolve the owner's constructor dependencies from context.services
    2. Bind the inputs (ModelBindingFeature)
    3. Call the function: directly when static, else on a new owner
       instance built from the resolved dependencies
    4. Await coroutine functions; run sync functions in a worker thread
    5. Store the return value unless the function is annotated "-> None"

Names are matched case-insensitively. Everything that needs reflection
(locating the callable, checking that its parameters line up with the
definition) happens in generate().

Usage:
    generator = DirectExecutorGenerator(locator, ModelBindingFeature(pipeline))
    executor = generator.generate(definitions)

    await executor.execute(context)
    context.invocation_result.value
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Iterable
from typing import Any

from funcworker.definition.locator import EntryPointLocator, ResolvedEntryPoint
from funcworker.definition.models import FunctionDefinition
from funcworker.errors import DispatchGenerationError, FunctionNotFoundError, ResolutionError

from .binding import ModelBindingFeature
from .context import FunctionContext

logger = logging.getLogger(__name__)

DispatchEntry = Callable[[FunctionContext], Awaitable[None]]


class DirectFunctionExecutor:
    """
    Dispatch table produced by DirectExecutorGenerator.

    Read-only after construction; safe to share between concurrent
    invocations. Reloading functions produces a new executor.
    """

    def __init__(self, entries: dict[str, DispatchEntry]):
        self._entries = entries

    @property
    def function_names(self) -> list[str]:
        return list(self._entries)

    async def execute(self, context: FunctionContext) -> None:
        """
        Run the function named by context.definition.

        Raises:
            FunctionNotFoundError: If no entry matches the function name
        """
        entry = self._entries.get(context.definition.name.casefold())
        if entry is None:
            raise FunctionNotFoundError(
                f"Function '{context.definition.name}' is not loaded in this worker"
            )
        await entry(context)

    def __contains__(self, name: str) -> bool:
        return name.casefold() in self._entries

    def __len__(self) -> int:
        return len(self._entries)


class DirectExecutorGenerator:
    """
    Generates DirectFunctionExecutors from function definitions.

    Example:
        generator = DirectExecutorGenerator(builder.locator, binder)
        executor = generator.generate([definition_a, definition_b])
    """

    def __init__(self, locator: EntryPointLocator, binder: ModelBindingFeature):
        """
        Initialize generator.

        Args:
            locator: Locator shared with the definition builder
            binder: Model binding used by every generated entry
        """
        self._locator = locator
        self._binder = binder

    def generate(self, definitions: Iterable[FunctionDefinition]) -> DirectFunctionExecutor:
        """
        Build the dispatch table.

        Raises:
            DispatchGenerationError: If names collide or a definition does not
                line up with its callable
            ConfigurationError: If a callable can no longer be located
        """
        entries: dict[str, DispatchEntry] = {}

        for definition in definitions:
            key = definition.name.casefold()
            if key in entries:
                raise DispatchGenerationError(
                    f"Function name '{definition.name}' is defined more than once"
                )
            target = self._locator.locate(definition.load_unit_path, definition.entry_point)
            entries[key] = self._build_entry(definition, target)

        logger.info(f"[executor_generator] Generated dispatch table | functions={len(entries)}")
        return DirectFunctionExecutor(entries)

    def _build_entry(
        self,
        definition: FunctionDefinition,
        target: ResolvedEntryPoint,
    ) -> DispatchEntry:
        callable_names = tuple(p.name for p in target.parameters)
        declared_names = tuple(p.name for p in definition.parameters)
        if callable_names != declared_names:
            raise DispatchGenerationError(
                f"Parameters of '{definition.entry_point}' {list(callable_names)} do not "
                f"match the definition of '{definition.name}' {list(declared_names)}"
            )

        keyword_names = tuple(p.name for p in definition.parameters if p.keyword_only)
        positional_count = len(definition.parameters) - len(keyword_names)

        binder = self._binder
        function = target.function
        owner = target.owner
        attribute = target.attribute
        dependencies = target.dependencies
        is_static = target.is_static
        is_async = target.is_async
        returns_value = target.returns_value
        function_name = definition.name

        async def dispatch(context: FunctionContext) -> None:
            resolved = _resolve_dependencies(context, dependencies, function_name)
            arguments = await binder.bind_function_input(context)

            if is_static:
                invoke = function
            else:
                invoke = getattr(owner(*resolved), attribute)

            args = arguments[:positional_count]
            kwargs = dict(zip(keyword_names, arguments[positional_count:]))

            if is_async:
                result = await context.cancellation.run(invoke(*args, **kwargs))
            else:
                result = await context.cancellation.run(asyncio.to_thread(invoke, *args, **kwargs))

            if returns_value:
                context.invocation_result.value = result

        logger.debug(
            f"[executor_generator] Entry for {definition.name} | static={is_static} | "
            f"async={is_async} | returns_value={returns_value} | "
            f"dependencies={len(dependencies)}"
        )
        return dispatch


def _resolve_dependencies(
    context: FunctionContext,
    dependencies: tuple[type, ...],
    function_name: str,
) -> tuple[Any, ...]:
    if not dependencies:
        return ()
    if context.services is None:
        raise ResolutionError(
            f"Function '{function_name}' requires services but the invocation has no service scope"
        )
    return tuple(context.services.resolve(dependency) for dependency in dependencies)
