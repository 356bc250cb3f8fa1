"""
Supabase Storage upload provider for a host media pipeline.

This package contains:
- core: Key derivation, size formatting, value objects and errors
- infrastructure: The Supabase Storage HTTP client (and its in-memory mock)
- provider: The upload provider the host talks to
- config: Environment-driven configuration
"""

from supabase_upload.core.errors import (
    ConfigInvalid,
    DeleteFailed,
    ProviderError,
    SignedUrlFailed,
    SizeLimitExceeded,
    UploadFailed,
)
from supabase_upload.core.files.models import (
    ByteSource,
    FileRecord,
    ProviderConfig,
    SignedUrl,
    UploadResult,
)
from supabase_upload.provider import SupabaseUploadProvider, UploadProvider, init_provider

__version__ = "0.1.0"

__all__ = [
    "ByteSource",
    "ConfigInvalid",
    "DeleteFailed",
    "FileRecord",
    "ProviderConfig",
    "ProviderError",
    "SignedUrl",
    "SignedUrlFailed",
    "SizeLimitExceeded",
    "SupabaseUploadProvider",
    "UploadFailed",
    "UploadProvider",
    "UploadResult",
    "init_provider",
]
