"""
Tests for the blob storage extension.

Tests cover:
- BlobStorageConverter targets (str, bytes, BlobReference, models)
- Collections of model binding data
- Shapes it does not own (UNHANDLED)
- Download and configuration failures (FAILED)
- BlobInput binding kind through the worker

HTTP is served by httpx.MockTransport; nothing leaves the process.
"""

import json
from typing import Generic, Optional, TypeVar

import httpx
import pytest
from pydantic import BaseModel

from funcworker.converters import (
    CollectionModelBindingData,
    ConverterContext,
    ConverterRegistry,
    ModelBindingData,
    default_converters,
)
from funcworker.definition import DEFAULT_BINDING_TABLE
from funcworker.extensions.blobs import (
    BLOB_EXTENSION_NAME,
    BlobInput,
    BlobReference,
    BlobStorageConverter,
    BlobTrigger,
)
from funcworker.runtime import FunctionsWorker
from funcworker.schemas import InvocationRequest, Status

ENDPOINT = "https://blobs.test"

BLOBS = {
    "/reports/q1.json": b'{"title": "Q1", "pages": 12}',
    "/reports/q2.json": b'{"title": "Q2", "pages": 3}',
    "/notes/hello.txt": "héllo".encode(),
}


class Report(BaseModel):
    title: str
    pages: int = 0


T = TypeVar("T")


class Box(Generic[T]):
    def __init__(self):
        self.items: list[T] = []


def blob_data(container: str, name: str | None, *, connection: str = "BlobConnection") -> ModelBindingData:
    content = {"Connection": connection, "ContainerName": container}
    if name is not None:
        content["BlobName"] = name
    return ModelBindingData(
        version="1.0",
        source=BLOB_EXTENSION_NAME,
        content=json.dumps(content).encode(),
    )


@pytest.fixture
def requests_seen():
    return []


@pytest.fixture
def http_client(requests_seen):
    def handler(request: httpx.Request) -> httpx.Response:
        requests_seen.append(request.url.path)
        body = BLOBS.get(request.url.path)
        if body is None:
            return httpx.Response(404, text="BlobNotFound")
        return httpx.Response(200, content=body)

    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


@pytest.fixture
def converter(http_client, monkeypatch):
    monkeypatch.setenv("BlobConnection", ENDPOINT)
    return BlobStorageConverter(http_client=http_client)


async def convert(converter, target_type, source):
    return await converter.convert(ConverterContext(target_type=target_type, source=source))


# =============================================================================
# Single Blob Tests
# =============================================================================


class TestBlobStorageConverter:
    """Tests for BlobStorageConverter with single blobs."""

    @pytest.mark.asyncio
    async def test_string_content(self, converter):
        result = await convert(converter, str, blob_data("notes", "hello.txt"))

        assert result.value == "héllo"

    @pytest.mark.asyncio
    async def test_bytes_content(self, converter):
        result = await convert(converter, bytes, blob_data("notes", "hello.txt"))

        assert result.value == "héllo".encode()

    @pytest.mark.asyncio
    async def test_reference_without_download(self, converter, requests_seen):
        result = await convert(converter, BlobReference, blob_data("reports", "q1.json"))

        assert result.value == BlobReference(ENDPOINT, "reports", "q1.json")
        assert result.value.url == "https://blobs.test/reports/q1.json"
        assert requests_seen == []

    @pytest.mark.asyncio
    async def test_model_deserialized(self, converter):
        result = await convert(converter, Report, blob_data("reports", "q1.json"))

        assert result.value == Report(title="Q1", pages=12)

    @pytest.mark.asyncio
    async def test_nullable_targets(self, converter):
        model = await convert(converter, Report | None, blob_data("reports", "q1.json"))
        text = await convert(converter, Optional[str], blob_data("notes", "hello.txt"))

        assert model.value == Report(title="Q1", pages=12)
        assert text.value == "héllo"

    @pytest.mark.asyncio
    async def test_keys_are_case_insensitive(self, converter):
        source = ModelBindingData(
            version="1.0",
            source=BLOB_EXTENSION_NAME,
            content=b'{"connection": "BlobConnection", "CONTAINERNAME": "notes", "blobName": "hello.txt"}',
        )

        result = await convert(converter, str, source)

        assert result.value == "héllo"


# =============================================================================
# Collection Tests
# =============================================================================


class TestBlobCollections:
    """Tests for CollectionModelBindingData sources."""

    @pytest.mark.asyncio
    async def test_list_of_models(self, converter):
        source = CollectionModelBindingData(
            items=(blob_data("reports", "q1.json"), blob_data("reports", "q2.json"))
        )

        result = await convert(converter, list[Report], source)

        assert [r.title for r in result.value] == ["Q1", "Q2"]

    @pytest.mark.asyncio
    async def test_list_of_references(self, converter):
        source = CollectionModelBindingData(items=(blob_data("reports", "q1.json"),))

        result = await convert(converter, list[BlobReference], source)

        assert result.value == [BlobReference(ENDPOINT, "reports", "q1.json")]

    @pytest.mark.asyncio
    async def test_non_list_target_unhandled(self, converter):
        source = CollectionModelBindingData(items=(blob_data("reports", "q1.json"),))

        assert (await convert(converter, Report, source)).is_unhandled

    @pytest.mark.asyncio
    async def test_empty_collection_unhandled(self, converter):
        result = await convert(converter, list[Report], CollectionModelBindingData())

        assert result.is_unhandled


# =============================================================================
# Unhandled and Failure Tests
# =============================================================================


class TestBlobConverterOutcomes:
    """Tests for shapes the converter declines or cannot convert."""

    @pytest.mark.asyncio
    async def test_plain_payload_unhandled(self, converter):
        assert (await convert(converter, str, "just text")).is_unhandled

    @pytest.mark.asyncio
    async def test_other_extension_unhandled(self, converter):
        source = ModelBindingData(version="1.0", source="AzureServiceBus", content=b"{}")

        assert (await convert(converter, str, source)).is_unhandled

    @pytest.mark.asyncio
    async def test_non_json_content_unhandled(self, converter):
        source = ModelBindingData(
            version="1.0",
            source=BLOB_EXTENSION_NAME,
            content=b"raw",
            content_type="application/octet-stream",
        )

        assert (await convert(converter, str, source)).is_unhandled

    @pytest.mark.asyncio
    async def test_missing_container_unhandled(self, converter):
        source = ModelBindingData(
            version="1.0",
            source=BLOB_EXTENSION_NAME,
            content=b'{"Connection": "BlobConnection"}',
        )

        assert (await convert(converter, str, source)).is_unhandled

    @pytest.mark.asyncio
    async def test_unsupported_target_unhandled(self, converter, requests_seen):
        assert (await convert(converter, int, blob_data("reports", "q1.json"))).is_unhandled
        assert requests_seen == []

    @pytest.mark.asyncio
    async def test_undefined_connection_fails(self, converter):
        result = await convert(converter, str, blob_data("notes", "hello.txt", connection="Nope"))

        assert isinstance(result.error, LookupError)

    @pytest.mark.asyncio
    async def test_missing_blob_name_fails(self, converter):
        result = await convert(converter, str, blob_data("notes", None))

        assert isinstance(result.error, ValueError)

    @pytest.mark.asyncio
    async def test_http_error_fails(self, converter):
        result = await convert(converter, str, blob_data("notes", "missing.txt"))

        assert isinstance(result.error, httpx.HTTPStatusError)

    @pytest.mark.asyncio
    async def test_target_without_schema_unhandled(self, converter):
        """Types pydantic cannot validate are declined rather than raised."""
        result = await convert(converter, Box[Report], blob_data("reports", "q1.json"))

        assert result.is_unhandled

    @pytest.mark.asyncio
    async def test_invalid_json_fails(self, converter):
        result = await convert(converter, Report, blob_data("notes", "hello.txt"))

        assert result.error is not None


# =============================================================================
# Binding Kind Tests
# =============================================================================


class TestBlobBindingKinds:
    """Tests for BlobInput / BlobTrigger registration and use."""

    def test_kinds_registered(self):
        for marker in (BlobInput("reports/a.json"), BlobTrigger("reports/{name}")):
            kind = DEFAULT_BINDING_TABLE.lookup(marker)
            assert kind.converter is BlobStorageConverter
            assert kind.allow_fallback

    @pytest.mark.asyncio
    async def test_worker_binds_blob_input(self, settings, converter, load_request):
        registry = ConverterRegistry(default_converters())
        registry.register(converter)
        worker = FunctionsWorker(settings, registry=registry)
        worker.load_function(load_request("summarize", script_file="reports.py", function_id="fn-sum"))
        worker.load_function(load_request("titles", script_file="reports.py", function_id="fn-titles"))

        single = await worker.invoke(
            InvocationRequest(function_id="fn-sum", input_data={"report": blob_data("reports", "q1.json")})
        )
        many = await worker.invoke(
            InvocationRequest(
                function_id="fn-titles",
                input_data={
                    "reports": CollectionModelBindingData(
                        items=(blob_data("reports", "q1.json"), blob_data("reports", "q2.json"))
                    )
                },
            )
        )

        assert single.result.status == Status.SUCCESS
        assert single.return_value == "Q1 (12 pages)"
        assert many.return_value == ["Q1", "Q2"]

    @pytest.mark.asyncio
    async def test_worker_binds_nullable_blob_input(self, settings, converter, load_request):
        """Report | None binds through the blob converter, or to None without a payload."""
        registry = ConverterRegistry(default_converters())
        registry.register(converter)
        worker = FunctionsWorker(settings, registry=registry)
        worker.load_function(
            load_request("maybe_summarize", script_file="reports.py", function_id="fn-maybe")
        )

        bound = await worker.invoke(
            InvocationRequest(function_id="fn-maybe", input_data={"report": blob_data("reports", "q2.json")})
        )
        missing = await worker.invoke(InvocationRequest(function_id="fn-maybe"))

        assert bound.result.status == Status.SUCCESS
        assert bound.return_value == "Q2"
        assert missing.return_value == "no report"
