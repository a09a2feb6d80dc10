"""
Functions Worker.

Facade the transport layer talks to. Owns the settings, the converter
registry and type cache, the definition builder, the loaded definitions
and the current dispatch table.

Load:
    load_function(request) builds the definition, regenerates the dispatch
    table, and only then publishes both. Configuration errors become a
    failure status; the previously loaded functions stay available.

Invoke:
    invoke(request) creates a FunctionContext, applies the deadline, runs
    the dispatch table and maps the outcome to a status:
        success     the function returned
        cancelled   the cancellation token fired
        failure     anything else (never retried)

Usage:
    worker = FunctionsWorker(get_settings())
    await worker.load_functions(FileMetadataLoader(settings.deployment_root))

    response = await worker.invoke(
        InvocationRequest(function_id="7f1c...", input_data={"order": '{"id": 1}'}),
        services=ServiceScope({OrderRepository: repository}),
    )
"""

from __future__ import annotations

import logging
import time
from collections.abc import Mapping
from types import MappingProxyType

from funcworker.config.schemas import WorkerSettings
from funcworker.config.settings import get_settings
from funcworker.converters.builtin import default_converters
from funcworker.converters.cache import TypeConverterCache
from funcworker.converters.pipeline import InputConversionPipeline
from funcworker.converters.registry import ConverterRegistry
from funcworker.definition.bindings import BindingKindTable
from funcworker.definition.builder import FunctionDefinitionBuilder
from funcworker.definition.locator import EntryPointLocator
from funcworker.definition.models import FunctionDefinition
from funcworker.errors import ConfigurationError, FunctionNotFoundError, InvocationCancelledError
from funcworker.invocation.binding import ModelBindingFeature
from funcworker.invocation.cancellation import CancellationToken
from funcworker.invocation.context import FunctionContext
from funcworker.invocation.executor import DirectExecutorGenerator, DirectFunctionExecutor
from funcworker.invocation.services import ServiceProvider
from funcworker.schemas.invocation import InvocationRequest, InvocationResponse
from funcworker.schemas.load import FunctionLoadRequest, FunctionLoadResponse
from funcworker.schemas.status import StatusResult

from .loaders import MetadataLoader

logger = logging.getLogger(__name__)


class FunctionsWorker:
    """
    Loads and invokes functions.

    Invocations run concurrently; the only shared mutable state is the
    converter registry and type cache, both internally synchronized.
    """

    def __init__(
        self,
        settings: WorkerSettings | None = None,
        *,
        registry: ConverterRegistry | None = None,
        type_cache: TypeConverterCache | None = None,
        binding_table: BindingKindTable | None = None,
        locator: EntryPointLocator | None = None,
    ):
        """
        Initialize worker.

        Args:
            settings: Worker settings (defaults to get_settings())
            registry: Converter registry (defaults to the built-in converters)
            type_cache: Type to converter cache owned by this worker
            binding_table: Binding kinds (defaults to DEFAULT_BINDING_TABLE)
            locator: Entry point locator
        """
        self._settings = settings or get_settings()
        self._registry = registry if registry is not None else ConverterRegistry(default_converters())
        self._type_cache = type_cache if type_cache is not None else TypeConverterCache()

        self._locator = locator or EntryPointLocator()
        self._builder = FunctionDefinitionBuilder(
            self._settings.deployment_root,
            binding_table=binding_table,
            locator=self._locator,
        )
        pipeline = InputConversionPipeline(self._registry, self._type_cache)
        self._generator = DirectExecutorGenerator(self._locator, ModelBindingFeature(pipeline))

        self._definitions: dict[str, FunctionDefinition] = {}
        self._executor = DirectFunctionExecutor({})
        self._in_flight: dict[str, CancellationToken] = {}

    @property
    def settings(self) -> WorkerSettings:
        return self._settings

    @property
    def registry(self) -> ConverterRegistry:
        return self._registry

    @property
    def type_cache(self) -> TypeConverterCache:
        return self._type_cache

    @property
    def locator(self) -> EntryPointLocator:
        """Locator owning the imported load units."""
        return self._locator

    @property
    def definitions(self) -> Mapping[str, FunctionDefinition]:
        """Loaded definitions by function id."""
        return MappingProxyType(self._definitions)

    @property
    def executor(self) -> DirectFunctionExecutor:
        return self._executor

    @property
    def in_flight(self) -> int:
        return len(self._in_flight)

    # =========================================================================
    # Load
    # =========================================================================

    def load_function(self, request: FunctionLoadRequest) -> FunctionLoadResponse:
        """Load (or reload) one function."""
        try:
            definition = self._builder.build(request)
            definitions = {**self._definitions, request.function_id: definition}
            executor = self._generator.generate(definitions.values())
        except ConfigurationError as e:
            logger.error(
                f"[worker] Failed to load function '{request.metadata.name}' "
                f"({request.function_id}): {e}",
                exc_info=True,
            )
            return FunctionLoadResponse(
                function_id=request.function_id,
                result=StatusResult.failure(e),
            )

        self._definitions = definitions
        self._executor = executor

        logger.info(
            f"[worker] Loaded function '{definition.name}' ({request.function_id}) | "
            f"loaded={len(self._definitions)}"
        )
        return FunctionLoadResponse(function_id=request.function_id, result=StatusResult.success())

    async def load_functions(self, loader: MetadataLoader) -> list[FunctionLoadResponse]:
        """
        Load every function a metadata loader provides.

        Raises:
            ConfigurationError: If the loader itself cannot read the metadata
        """
        requests = await loader.get_load_requests()
        return [self.load_function(request) for request in requests]

    # =========================================================================
    # Invoke
    # =========================================================================

    async def invoke(
        self,
        request: InvocationRequest,
        *,
        services: ServiceProvider | None = None,
        cancellation: CancellationToken | None = None,
    ) -> InvocationResponse:
        """Run one invocation. Never raises for function or binding failures."""
        start_time = time.perf_counter()
        token = cancellation or CancellationToken()
        executor = self._executor

        definition = self._definitions.get(request.function_id)
        if definition is None:
            error = FunctionNotFoundError(
                f"Function id '{request.function_id}' is not loaded in this worker"
            )
            logger.error(f"[worker] {error}")
            return self._response(request, StatusResult.failure(error), start_time)

        deadline = request.deadline_seconds or self._settings.default_invocation_timeout_seconds
        if deadline:
            token.cancel_after(deadline)

        context = FunctionContext(
            invocation_id=request.invocation_id,
            definition=definition,
            binding_data=dict(request.input_data),
            trigger_metadata=dict(request.trigger_metadata),
            cancellation=token,
            services=services,
        )

        logger.info(
            f"[worker] Invocation starting: id={request.invocation_id[:8]}..., "
            f"function={definition.name}"
        )

        self._in_flight[request.invocation_id] = token
        try:
            await executor.execute(context)
            result = StatusResult.success()
        except InvocationCancelledError as e:
            logger.warning(f"[worker] Invocation cancelled: id={request.invocation_id}: {e}")
            result = StatusResult.cancelled(e)
        except Exception as e:
            logger.error(
                f"[worker] Invocation failed: id={request.invocation_id}, "
                f"function={definition.name}: {e}",
                exc_info=True,
            )
            result = StatusResult.failure(e)
        finally:
            self._in_flight.pop(request.invocation_id, None)
            token.dispose()

        return_value = (
            context.invocation_result.value if context.invocation_result.is_set else None
        )
        response = self._response(request, result, start_time, return_value)

        logger.info(
            f"[worker] Invocation complete: id={request.invocation_id[:8]}..., "
            f"status={result.status}, duration={response.duration_ms:.1f}ms"
        )
        return response

    def cancel_invocation(self, invocation_id: str) -> bool:
        """
        Cancel an in-flight invocation.

        Returns:
            True if the invocation was running
        """
        token = self._in_flight.get(invocation_id)
        if token is None:
            logger.debug(f"[worker] Cancel requested for unknown invocation: {invocation_id}")
            return False
        token.cancel("Invocation cancelled by the host")
        return True

    def _response(
        self,
        request: InvocationRequest,
        result: StatusResult,
        start_time: float,
        return_value: object = None,
    ) -> InvocationResponse:
        return InvocationResponse(
            invocation_id=request.invocation_id,
            result=result,
            return_value=return_value,
            duration_ms=(time.perf_counter() - start_time) * 1000,
        )
