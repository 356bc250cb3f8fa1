"""
Errors raised by the upload provider.

Every backend failure surfaces to the caller as one of these, with the
backend's own message embedded unmodified. Nothing is retried here.
"""

PROVIDER_NAME = "Supabase"


class ProviderError(Exception):
    """Base class for upload provider errors."""
    pass


class ConfigInvalid(ProviderError):
    """Raised at construction when required configuration is missing."""
    pass


class UploadFailed(ProviderError):
    """Raised when the backend rejects an upload."""

    def __init__(self, backend_message: str) -> None:
        self.backend_message = backend_message
        super().__init__(
            f"Failed to upload file to {PROVIDER_NAME}: {backend_message}"
        )


class DeleteFailed(ProviderError):
    """Raised when the backend rejects a removal."""

    def __init__(self, backend_message: str) -> None:
        self.backend_message = backend_message
        super().__init__(
            f"Failed to delete file from {PROVIDER_NAME}: {backend_message}"
        )


class SignedUrlFailed(ProviderError):
    """Raised when the backend cannot issue a signed URL."""

    def __init__(self, backend_message: str) -> None:
        self.backend_message = backend_message
        super().__init__(f"Failed to generate signed URL: {backend_message}")


class SizeLimitExceeded(ProviderError):
    """Raised before any network call when a file is over the size limit."""

    def __init__(self, file_name: str, limit_text: str) -> None:
        self.file_name = file_name
        self.limit_text = limit_text
        super().__init__(f"{file_name} exceeds size limit of {limit_text}")
