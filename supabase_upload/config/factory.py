"""Build a provider from environment settings."""

import logging
from typing import Optional

from supabase_upload.config.settings import Settings, get_settings
from supabase_upload.core.errors import ConfigInvalid
from supabase_upload.provider.upload_provider import SupabaseUploadProvider

logger = logging.getLogger(__name__)


def create_provider_from_settings(
    settings: Optional[Settings] = None,
) -> SupabaseUploadProvider:
    """
    Create the upload provider described by ``settings``.

    Fails fast with ``ConfigInvalid`` naming every missing variable, so a
    misconfigured host stops at startup instead of on the first upload.
    """
    settings = settings or get_settings()

    missing_fields = settings.validate_required_fields()
    if missing_fields:
        logger.error(
            "Missing required configuration",
            extra={"missing_fields": missing_fields},
        )
        raise ConfigInvalid(
            f"Missing required configuration: {', '.join(missing_fields)}"
        )

    return SupabaseUploadProvider(
        settings.to_provider_config(),
        mock_mode=settings.storage_mock_mode,
        timeout_seconds=settings.http_timeout_seconds,
    )
