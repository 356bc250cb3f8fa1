"""
Object storage integration for uploaded files.

Talks to Supabase Storage over its REST API.
Includes mock mode for local development without credentials.
"""

from .client import (
    MockStorageClient,
    StorageApiError,
    StorageClient,
    StorageError,
    SupabaseStorageClient,
    SupabaseStorageConfig,
    create_storage_client,
)

__all__ = [
    "MockStorageClient",
    "StorageApiError",
    "StorageClient",
    "StorageError",
    "SupabaseStorageClient",
    "SupabaseStorageConfig",
    "create_storage_client",
]
