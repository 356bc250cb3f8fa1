"""
File keys, sizes and value objects.
"""

from .keys import (
    bearer_token,
    human_readable_bytes,
    kilobytes_to_bytes,
    object_key,
    storage_endpoint,
)
from .models import ByteSource, FileRecord, ProviderConfig, SignedUrl, UploadResult

__all__ = [
    "ByteSource",
    "FileRecord",
    "ProviderConfig",
    "SignedUrl",
    "UploadResult",
    "bearer_token",
    "human_readable_bytes",
    "kilobytes_to_bytes",
    "object_key",
    "storage_endpoint",
]
