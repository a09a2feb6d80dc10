"""
funcworker Runtime

The worker facade and the metadata loaders that feed it.
"""

from .loaders import FileMetadataLoader, MemoryMetadataLoader, MetadataLoader
from .worker import FunctionsWorker

__all__ = [
    "FileMetadataLoader",
    "FunctionsWorker",
    "MemoryMetadataLoader",
    "MetadataLoader",
]
