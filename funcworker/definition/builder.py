"""
Function Definition Builder.

Turns a FunctionLoadRequest into an immutable FunctionDefinition:

    1. Resolve the load unit path against the deployment root
    2. Partition bindings into input ("in") and output (everything else)
    3. Locate the entry point and enumerate its bindable parameters
    4. Build each parameter's converter hints from its Annotated markers

Converter hints per parameter (first match wins):
    UseConverter(c)       {converter_type: c}
    input binding marker  {binding_attribute_supported_converters: {c: props},
                           allow_converter_fallback: bool}
    trigger binding       same as input binding
    no marker             {}

A binding kind that advertises no converter yields an empty supported
converters map and no fallback flag.

Usage:
    builder = FunctionDefinitionBuilder(deployment_root="/home/site/wwwroot")
    definition = builder.build(load_request)
"""

from __future__ import annotations

import inspect
import logging
import os
import typing
from collections.abc import Mapping
from types import MappingProxyType
from typing import Annotated, Any

from funcworker.converters.base import PropertyBagKeys, converter_identity
from funcworker.errors import ConfigurationError, ResolutionError
from funcworker.schemas.load import FunctionLoadRequest

from .bindings import (
    DEFAULT_BINDING_TABLE,
    BindingKindTable,
    InputBinding,
    TriggerBinding,
    UseConverter,
)
from .locator import EntryPointLocator, ResolvedEntryPoint
from .models import BindingDirection, BindingMetadata, FunctionDefinition, FunctionParameter

logger = logging.getLogger(__name__)


class FunctionDefinitionBuilder:
    """
    Builds FunctionDefinitions from load requests.

    Stateless apart from the injected locator, whose module cache makes
    repeated builds of functions in the same load unit cheap.
    """

    def __init__(
        self,
        deployment_root: str | None,
        *,
        binding_table: BindingKindTable | None = None,
        locator: EntryPointLocator | None = None,
    ):
        """
        Initialize builder.

        Args:
            deployment_root: Directory containing the deployed load units
            binding_table: Binding kinds (defaults to DEFAULT_BINDING_TABLE)
            locator: Entry point locator (shared with the executor generator)
        """
        self._deployment_root = deployment_root
        self._binding_table = binding_table if binding_table is not None else DEFAULT_BINDING_TABLE
        self._locator = locator or EntryPointLocator()

    @property
    def locator(self) -> EntryPointLocator:
        return self._locator

    def build(self, request: FunctionLoadRequest) -> FunctionDefinition:
        """
        Build the definition for one function.

        Raises:
            ConfigurationError: If the deployment root or script file is
                missing, or the entry point cannot be resolved
        """
        metadata = request.metadata

        if not self._deployment_root:
            raise ConfigurationError(
                "The 'FUNCTIONS_WORKER_DIRECTORY' environment variable value is not defined. "
                "It is required to locate function load units."
            )
        if not metadata.script_file or not metadata.script_file.strip():
            raise ConfigurationError(
                f"Metadata for function '{metadata.name} ({request.function_id})' "
                f"does not specify a 'script_file'."
            )

        load_unit_path = os.path.abspath(os.path.join(self._deployment_root, metadata.script_file))

        input_bindings: dict[str, BindingMetadata] = {}
        output_bindings: dict[str, BindingMetadata] = {}
        for name, info in metadata.bindings.items():
            binding = BindingMetadata(
                name=name,
                type=info.type,
                direction=BindingDirection(info.direction),
                properties=MappingProxyType(info.properties),
            )
            if binding.direction is BindingDirection.IN:
                input_bindings[name] = binding
            else:
                output_bindings[name] = binding

        target = self._locator.locate(load_unit_path, metadata.entry_point)
        parameters = tuple(self._build_parameter(p, target) for p in target.parameters)

        definition = FunctionDefinition(
            id=request.function_id,
            name=metadata.name,
            entry_point=metadata.entry_point,
            load_unit_path=load_unit_path,
            input_bindings=MappingProxyType(input_bindings),
            output_bindings=MappingProxyType(output_bindings),
            parameters=parameters,
        )

        logger.info(
            f"[definition_builder] Built definition | name={definition.name} | "
            f"entry_point={definition.entry_point} | parameters={len(parameters)}"
        )
        return definition

    def _build_parameter(
        self,
        parameter: inspect.Parameter,
        target: ResolvedEntryPoint,
    ) -> FunctionParameter:
        annotation = target.type_hints.get(parameter.name, Any)

        markers: tuple[Any, ...] = ()
        if typing.get_origin(annotation) is Annotated:
            annotation, *extras = typing.get_args(annotation)
            markers = tuple(extras)

        try:
            properties = self._build_properties(markers)
        except ResolutionError as e:
            raise ConfigurationError(
                f"Parameter '{parameter.name}' of '{target.attribute}' "
                f"names a converter that cannot be resolved: {e}"
            ) from e

        logger.debug(
            f"[definition_builder] Parameter {parameter.name}: {describe_properties(properties)}"
        )
        return FunctionParameter(
            name=parameter.name,
            type=annotation,
            properties=MappingProxyType(properties),
            default=parameter.default,
            keyword_only=parameter.kind is inspect.Parameter.KEYWORD_ONLY,
        )

    def _build_properties(self, markers: tuple[Any, ...]) -> dict[str, Any]:
        for marker in markers:
            if isinstance(marker, UseConverter):
                return {PropertyBagKeys.CONVERTER_TYPE: marker.converter}

        binding = _first_marker(markers, InputBinding) or _first_marker(markers, TriggerBinding)
        if binding is None:
            return {}

        kind = self._binding_table.lookup(binding)
        if kind is None or kind.converter is None:
            return {PropertyBagKeys.BINDING_ATTRIBUTE_SUPPORTED_CONVERTERS: MappingProxyType({})}

        return {
            PropertyBagKeys.BINDING_ATTRIBUTE_SUPPORTED_CONVERTERS: MappingProxyType(
                kind.advertised_converters()
            ),
            PropertyBagKeys.ALLOW_CONVERTER_FALLBACK: kind.allow_fallback,
        }


def _first_marker(markers: tuple[Any, ...], marker_type: type) -> Any:
    for marker in markers:
        if isinstance(marker, marker_type):
            return marker
    return None


def describe_properties(properties: Mapping[str, Any]) -> str:
    """Readable summary of a parameter's converter hints, for logs."""
    if PropertyBagKeys.CONVERTER_TYPE in properties:
        return f"converter={converter_identity(properties[PropertyBagKeys.CONVERTER_TYPE])}"
    advertised = properties.get(PropertyBagKeys.BINDING_ATTRIBUTE_SUPPORTED_CONVERTERS)
    if advertised is None:
        return "fallback"
    names = [converter_identity(c) for c in advertised]
    fallback = properties.get(PropertyBagKeys.ALLOW_CONVERTER_FALLBACK, True)
    return f"advertised={names} fallback={fallback}"
