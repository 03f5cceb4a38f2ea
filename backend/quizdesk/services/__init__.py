"""
Clients for external services.
"""
from .blob_storage import BlobStorageClient

__all__ = ["BlobStorageClient"]
