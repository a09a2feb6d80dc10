"""
Metadata Loaders.

Sources of function load requests for FunctionsWorker.load_functions().

Design Principle:
    The orchestrator normally sends one load request per function. When
    the worker runs standalone (local runs, tests) the same requests are
    read from the deployment directory or kept in memory.
    - Deployment: FileMetadataLoader (functions.metadata JSON file)
    - Testing: MemoryMetadataLoader (in-memory)

Usage:
    loader = FileMetadataLoader("/home/site/wwwroot")
    responses = await worker.load_functions(loader)
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Protocol

from pydantic import ValidationError

from funcworker.errors import ConfigurationError
from funcworker.schemas.load import FunctionLoadRequest, FunctionMetadata

logger = logging.getLogger(__name__)


class MetadataLoader(Protocol):
    """Yields the load requests of a deployment."""

    async def get_load_requests(self) -> list[FunctionLoadRequest]: ...


class FileMetadataLoader:
    """
    Loads function metadata from a JSON file in the deployment root.

    File Format (functions.metadata):
        [
            {
                "name": "ProcessOrder",
                "function_id": "7f1c...",
                "entry_point": "OrderFunctions.process",
                "script_file": "orders.py",
                "bindings": {
                    "order": {"direction": "in", "type": "queueTrigger"}
                }
            }
        ]

    The function id defaults to the metadata's function_id, else its name.
    """

    def __init__(
        self,
        deployment_root: str | Path,
        *,
        file_name: str = "functions.metadata",
    ):
        """
        Initialize loader.

        Args:
            deployment_root: Directory containing the metadata file
            file_name: Metadata file name
        """
        self._path = Path(deployment_root) / file_name

    @property
    def path(self) -> Path:
        return self._path

    async def get_load_requests(self) -> list[FunctionLoadRequest]:
        """
        Read every function in the metadata file.

        Returns:
            Load requests in file order (empty if the file does not exist)

        Raises:
            ConfigurationError: If the file is malformed
        """
        if not self._path.exists():
            logger.warning(f"[metadata_loader] Metadata file not found: {self._path}")
            return []

        entries = self._load_json(self._path)
        if not isinstance(entries, list):
            raise ConfigurationError(
                f"Metadata file {self._path} must contain a JSON array of functions"
            )

        requests: list[FunctionLoadRequest] = []
        for index, entry in enumerate(entries):
            try:
                metadata = FunctionMetadata.model_validate(entry)
            except ValidationError as e:
                raise ConfigurationError(
                    f"Invalid metadata for function #{index} in {self._path}: {e}"
                ) from e
            requests.append(
                FunctionLoadRequest(
                    function_id=metadata.function_id or metadata.name,
                    metadata=metadata,
                )
            )

        logger.info(f"[metadata_loader] Loaded {len(requests)} function(s) from {self._path}")
        return requests

    def _load_json(self, path: Path) -> Any:
        """Load JSON file."""
        try:
            with path.open(encoding="utf-8") as f:
                return json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.error(f"[metadata_loader] Failed to load {path}: {e}")
            raise ConfigurationError(f"Metadata file {path} could not be read: {e}") from e


class MemoryMetadataLoader:
    """
    In-memory metadata loader for testing.

    Usage:
        loader = MemoryMetadataLoader()
        loader.add(FunctionMetadata(name="Echo", entry_point="echo", script_file="app.py"))

        await worker.load_functions(loader)
    """

    def __init__(self, requests: list[FunctionLoadRequest] | None = None):
        self._requests: list[FunctionLoadRequest] = list(requests or [])

    def add(
        self,
        metadata: FunctionMetadata | dict[str, Any],
        *,
        function_id: str | None = None,
    ) -> FunctionLoadRequest:
        """Add a function; returns the stored load request."""
        if not isinstance(metadata, FunctionMetadata):
            metadata = FunctionMetadata.model_validate(metadata)
        request = FunctionLoadRequest(
            function_id=function_id or metadata.function_id or metadata.name,
            metadata=metadata,
        )
        self._requests.append(request)
        return request

    async def get_load_requests(self) -> list[FunctionLoadRequest]:
        return list(self._requests)

    def clear(self) -> None:
        self._requests.clear()
