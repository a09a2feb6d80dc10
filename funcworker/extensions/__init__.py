"""
Binding extensions.

Importing an extension module registers its binding kinds in
DEFAULT_BINDING_TABLE.
"""

from .blobs import BlobInput, BlobReference, BlobStorageConverter, BlobTrigger

__all__ = [
    "BlobInput",
    "BlobReference",
    "BlobStorageConverter",
    "BlobTrigger",
]
