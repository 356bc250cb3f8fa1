"""
Provider configuration using Pydantic settings.

Configuration comes from environment variables with sensible defaults.
Supports a mock mode for local development.
"""

from .settings import Settings, get_settings
from .factory import create_provider_from_settings

__all__ = [
    "Settings",
    "create_provider_from_settings",
    "get_settings",
]
