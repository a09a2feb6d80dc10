"""
Blob Storage Extension.

Binds blob inputs delivered as model binding data:

    ModelBindingData(
        version="1.0",
        source="AzureStorageBlobs",
        content=b'{"Connection": "Storage", "ContainerName": "reports", "BlobName": "a.json"}',
        content_type="application/json",
    )

The Connection names an environment variable holding the blob endpoint
base URL (e.g. "https://account.blob.core.windows.net"). Blob content is
downloaded over HTTP with httpx.

Targets:
    str                 blob text (UTF-8)
    bytes               blob content
    BlobReference       reference only, nothing is downloaded
    models / classes    blob text deserialized as JSON
    list[T]             one element per item of a CollectionModelBindingData

Usage:
    async def summarize(
        report: Annotated[Report, BlobInput("reports/{name}", connection="Storage")],
    ) -> str:
        ...
"""

from __future__ import annotations

import logging
import os
import typing
from dataclasses import dataclass
from typing import Any
from urllib.parse import quote

import httpx
from pydantic.errors import PydanticSchemaGenerationError

from funcworker.converters.base import ConversionResult, ConverterContext, InputConverter
from funcworker.converters.binding_data import CollectionModelBindingData, ModelBindingData
from funcworker.converters.builtin import deserialize_json
from funcworker.converters.type_support import is_json_deserializable, unwrap_optional
from funcworker.definition.bindings import InputBinding, TriggerBinding, binding_kind

logger = logging.getLogger(__name__)

BLOB_EXTENSION_NAME = "AzureStorageBlobs"

CONNECTION = "connection"
CONTAINER_NAME = "containername"
BLOB_NAME = "blobname"


@dataclass(frozen=True, slots=True)
class BlobReference:
    """
    Location of one blob.

    Attributes:
        endpoint: Blob service base URL
        container_name: Container holding the blob
        blob_name: Blob name inside the container
    """

    endpoint: str
    container_name: str
    blob_name: str

    @property
    def url(self) -> str:
        return (
            f"{self.endpoint.rstrip('/')}/{quote(self.container_name)}/"
            f"{quote(self.blob_name, safe='/')}"
        )


class BlobStorageConverter(InputConverter):
    """
    Converts blob model binding data into blob content or references.

    Uses a shared httpx.AsyncClient when one is given (caller manages its
    lifecycle); otherwise a client is created per download and closed.
    """

    supported_types = (str, bytes, BlobReference)
    supports_json_deserialization = True

    def __init__(
        self,
        *,
        http_client: httpx.AsyncClient | None = None,
        timeout: float = 30.0,
    ):
        """
        Initialize converter.

        Args:
            http_client: Optional shared HTTP client
            timeout: Download timeout in seconds for self-managed clients
        """
        self._shared_client = http_client
        self._timeout = timeout

    async def convert(self, context: ConverterContext) -> ConversionResult:
        source = context.source

        if isinstance(source, CollectionModelBindingData):
            return await self._convert_collection(source, unwrap_optional(context.target_type))
        if isinstance(source, ModelBindingData):
            return await self._convert_item(source, unwrap_optional(context.target_type))
        return ConversionResult.unhandled()

    async def _convert_collection(
        self,
        collection: CollectionModelBindingData,
        target_type: Any,
    ) -> ConversionResult:
        args = typing.get_args(target_type)
        if typing.get_origin(target_type) is not list or len(args) != 1:
            return ConversionResult.unhandled()

        elements: list[Any] = []
        for item in collection.items:
            result = await self._convert_item(item, unwrap_optional(args[0]))
            if result.succeeded:
                elements.append(result.value)
            elif not result.is_unhandled:
                return result

        if not elements:
            return ConversionResult.unhandled()
        return ConversionResult.success(elements)

    async def _convert_item(self, data: ModelBindingData, target_type: Any) -> ConversionResult:
        if data.source != BLOB_EXTENSION_NAME:
            return ConversionResult.unhandled()

        content = _binding_content(data)
        if content is None:
            return ConversionResult.unhandled()

        connection = content.get(CONNECTION)
        container_name = content.get(CONTAINER_NAME)
        if not connection or not container_name:
            return ConversionResult.unhandled()

        endpoint = os.getenv(connection)
        if not endpoint:
            return ConversionResult.failed(
                LookupError(f"Blob connection setting '{connection}' is not defined")
            )

        blob_name = content.get(BLOB_NAME)
        if not blob_name:
            return ConversionResult.failed(
                ValueError(f"Blob binding data for container '{container_name}' has no blob name")
            )

        reference = BlobReference(endpoint, container_name, blob_name)
        if target_type is BlobReference:
            return ConversionResult.success(reference)

        if target_type is not str and target_type is not bytes:
            if not is_json_deserializable(target_type):
                return ConversionResult.unhandled()

        try:
            payload = await self._download(reference)
        except httpx.HTTPError as e:
            logger.warning(f"[blob_converter] Download failed for {reference.url}: {e}")
            return ConversionResult.failed(e)

        if target_type is bytes:
            return ConversionResult.success(payload)

        try:
            if target_type is str:
                return ConversionResult.success(payload.decode("utf-8"))
            return ConversionResult.success(deserialize_json(payload, target_type))
        except PydanticSchemaGenerationError:
            logger.debug(f"[blob_converter] No schema for {target_type!r}")
            return ConversionResult.unhandled()
        except ValueError as e:
            return ConversionResult.failed(e)

    async def _download(self, reference: BlobReference) -> bytes:
        if self._shared_client is not None:
            return await self._get(self._shared_client, reference)

        async with httpx.AsyncClient(timeout=self._timeout) as client:
            return await self._get(client, reference)

    async def _get(self, client: httpx.AsyncClient, reference: BlobReference) -> bytes:
        logger.info(f"[blob_converter] GET {reference.url}")
        response = await client.get(reference.url)
        response.raise_for_status()
        return response.content


def _binding_content(data: ModelBindingData) -> dict[str, str] | None:
    try:
        content = data.content_as_json()
    except ValueError:
        return None
    if not isinstance(content, dict):
        return None
    return {str(key).casefold(): value for key, value in content.items()}


# =============================================================================
# Binding kinds
# =============================================================================


@binding_kind(converter=BlobStorageConverter)
@dataclass(frozen=True, slots=True)
class BlobInput(InputBinding):
    """Blob input binding."""

    blob_path: str = ""
    connection: str | None = None


@binding_kind(converter=BlobStorageConverter)
@dataclass(frozen=True, slots=True)
class BlobTrigger(TriggerBinding):
    """Blob trigger binding."""

    blob_path: str = ""
    connection: str | None = None
