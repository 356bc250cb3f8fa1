"""
Provider configuration using Pydantic settings.

The provider itself takes a ``ProviderConfig`` and never reads the
environment. This module is for hosts that prefer configuring it from
environment variables (``SUPABASE_API_URL``, ``SUPABASE_BUCKET``, ...)
or a ``.env`` file.

Mock mode enables local development without a Supabase project.
"""

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from supabase_upload.core.files.models import ProviderConfig
from supabase_upload.infrastructure.storage.client import DEFAULT_TIMEOUT_SECONDS


class Settings(BaseSettings):
    """
    Provider settings loaded from ``SUPABASE_*`` environment variables.

    Everything has a default so that loading never fails; call
    ``validate_required_fields`` to find out what is missing.
    """

    api_url: str = Field(
        default="",
        description="Supabase project URL, e.g. https://xyz.supabase.co"
    )
    api_key: str = Field(
        default="",
        repr=False,
        description="Service-role key. Bypasses storage policies, keep it secret."
    )
    bucket: str = Field(
        default="",
        description="Bucket that receives uploads"
    )
    directory: str = Field(
        default="",
        description="Key prefix inside the bucket"
    )
    public_files: bool = Field(
        default=True,
        description="True for a public bucket; False stores keys and signs URLs on read"
    )
    signed_url_expires: int = Field(
        default=3600,
        gt=0,
        description="Lifetime of signed URLs in seconds (private buckets only)"
    )
    storage_mock_mode: bool = Field(
        default=False,
        description="Use in-memory storage instead of Supabase. Enables local dev without a project."
    )
    http_timeout_seconds: float = Field(
        default=DEFAULT_TIMEOUT_SECONDS,
        gt=0,
        description="Per-request timeout for storage calls"
    )

    model_config = SettingsConfigDict(
        env_prefix="SUPABASE_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    def validate_required_fields(self) -> list[str]:
        """
        Return the environment variables that still need a value.

        In mock mode only the bucket is required, since nothing talks to
        a real project.
        """
        missing = []

        if not self.storage_mock_mode:
            if not self.api_url:
                missing.append("SUPABASE_API_URL")
            if not self.api_key:
                missing.append("SUPABASE_API_KEY")

        if not self.bucket:
            missing.append("SUPABASE_BUCKET")

        return missing

    def to_provider_config(self) -> ProviderConfig:
        """
        Build the provider config.

        Mock mode fills in placeholder credentials so validation passes.
        """
        api_url = self.api_url
        api_key = self.api_key
        if self.storage_mock_mode:
            api_url = api_url or "http://localhost:54321"
            api_key = api_key or "mock-service-role-key"

        return ProviderConfig(
            api_url=api_url,
            api_key=api_key,
            bucket=self.bucket,
            directory=self.directory,
            public_files=self.public_files,
            signed_url_expires=self.signed_url_expires,
        )


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Settings are loaded once per process. Tests call
    ``get_settings.cache_clear()`` after changing the environment.
    """
    return Settings()

