"""
Model binding data delivered by the host.

Some bindings do not deliver the payload itself but a reference to it
(for example a blob's container and name). The host sends these as model
binding data: a small envelope naming the extension that understands it.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any

JSON_CONTENT_TYPE = "application/json"
BINARY_CONTENT_TYPE = "application/octet-stream"


@dataclass(frozen=True, slots=True)
class ModelBindingData:
    """
    Reference-style binding payload.

    Attributes:
        version: Envelope version
        source: Extension that produced it (e.g. "AzureStorageBlobs")
        content: Raw envelope content
        content_type: MIME type of content
    """

    version: str
    source: str
    content: bytes
    content_type: str = JSON_CONTENT_TYPE

    def content_as_json(self) -> Any:
        """Decode content as JSON, or None if it is not JSON."""
        if self.content_type != JSON_CONTENT_TYPE:
            return None
        return json.loads(self.content)


@dataclass(frozen=True, slots=True)
class CollectionModelBindingData:
    """Ordered collection of model binding data (e.g. several blobs)."""

    items: tuple[ModelBindingData, ...] = ()
