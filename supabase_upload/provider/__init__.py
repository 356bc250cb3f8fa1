"""
The upload provider the host media pipeline calls.
"""

from supabase_upload.core.errors import (
    ConfigInvalid,
    DeleteFailed,
    ProviderError,
    SignedUrlFailed,
    SizeLimitExceeded,
    UploadFailed,
)

from .upload_provider import SupabaseUploadProvider, UploadProvider, init_provider

__all__ = [
    "ConfigInvalid",
    "DeleteFailed",
    "ProviderError",
    "SignedUrlFailed",
    "SizeLimitExceeded",
    "SupabaseUploadProvider",
    "UploadFailed",
    "UploadProvider",
    "init_provider",
]
