"""
Object storage client for the Supabase Storage REST API.

Talks to ``<project>/storage/v1`` over HTTP with httpx. The API is small:
upload an object, remove objects, and sign a time-limited download link.
Public URLs are pure string composition and need no round trip.

Mock mode keeps objects in memory, so the provider can be exercised
without a Supabase project.
"""

import logging
import secrets
from dataclasses import dataclass, field
from typing import Optional, Protocol
from urllib.parse import quote

import httpx

from supabase_upload.core.files.keys import bearer_token
from supabase_upload.core.files.models import ByteSource

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 30.0


class StorageError(Exception):
    """Raised when a storage request fails before the backend answers."""

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        self.message = message
        self.status_code = status_code
        super().__init__(message)


class StorageApiError(StorageError):
    """Raised when the backend answers with an error response."""
    pass


def clean_key(key: str) -> str:
    """Strip outer slashes and collapse repeated ones, as the backend expects."""
    return "/".join(part for part in key.split("/") if part)


def _quote_key(key: str) -> str:
    return quote(key, safe="/")


def _error_message(response: httpx.Response) -> str:
    """Pull the backend's own error text out of a failed response."""
    try:
        body = response.json()
    except ValueError:
        body = None

    if isinstance(body, dict):
        for field_name in ("message", "error"):
            value = body.get(field_name)
            if value:
                return str(value)

    return response.text or f"HTTP {response.status_code}"


class StorageClient(Protocol):
    """
    Protocol for the object storage operations the provider needs.

    Tests hand the provider a mock; production uses the HTTP client.
    """

    async def upload(
        self,
        bucket: str,
        key: str,
        source: ByteSource,
        *,
        content_type: str,
        upsert: bool = True,
        cache_control: str = "3600",
    ) -> str:
        """Store an object and return its key."""
        ...

    def get_public_url(self, bucket: str, key: str) -> str:
        """Compose the public URL for an object."""
        ...

    async def remove(self, bucket: str, keys: list[str]) -> list[str]:
        """Remove objects; returns the keys the backend reports as removed."""
        ...

    async def create_signed_url(
        self,
        bucket: str,
        key: str,
        expires_in: int,
    ) -> str:
        """Issue a time-limited download URL."""
        ...

    async def aclose(self) -> None:
        """Release any held connections."""
        ...


@dataclass
class SupabaseStorageConfig:
    """Connection details for the storage endpoint."""
    endpoint: str
    api_key: str = field(repr=False)
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS

    def __post_init__(self) -> None:
        if not self.endpoint:
            raise ValueError("Storage endpoint is required")
        if not self.api_key:
            raise ValueError("API key is required")


class SupabaseStorageClient:
    """
    Supabase Storage client over one shared ``httpx.AsyncClient``.

    The async client pools connections and is safe for concurrent use,
    so one instance serves every request for a configured bucket.
    Creating the client opens no connection.
    """

    def __init__(
        self,
        config: SupabaseStorageConfig,
        http_client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self._config = config
        self._endpoint = config.endpoint
        # Sent per request so an injected client never holds the key
        self._auth_headers = {
            "apikey": config.api_key,
            "Authorization": bearer_token(config.api_key),
        }

        if http_client is None:
            http_client = httpx.AsyncClient(timeout=config.timeout_seconds)
        self._http = http_client

        logger.info(
            "Initialized Supabase storage client",
            extra={"endpoint": config.endpoint},
        )

    async def _request(self, method: str, url: str, **kwargs) -> httpx.Response:
        """Send one request; map transport and HTTP failures to storage errors."""
        headers = {**self._auth_headers, **kwargs.pop("headers", {})}
        try:
            response = await self._http.request(method, url, headers=headers, **kwargs)
        except (httpx.HTTPError, httpx.InvalidURL, httpx.StreamError) as e:
            raise StorageError(str(e) or e.__class__.__name__) from e

        if response.is_error:
            raise StorageApiError(_error_message(response), response.status_code)

        return response

    async def upload(
        self,
        bucket: str,
        key: str,
        source: ByteSource,
        *,
        content_type: str,
        upsert: bool = True,
        cache_control: str = "3600",
    ) -> str:
        """
        Upload an object with POST ``/object/<bucket>/<key>``.

        With ``upsert`` the backend overwrites an existing object instead
        of answering 409. Buffers go out as-is; streams are sent chunked.
        """
        path = clean_key(key)
        headers = {
            "content-type": content_type,
            "cache-control": f"max-age={cache_control}",
            "x-upsert": "true" if upsert else "false",
        }
        content = source.buffer if source.buffer is not None else source.iter_chunks()

        await self._request(
            "POST",
            f"{self._endpoint}/object/{bucket}/{_quote_key(path)}",
            content=content,
            headers=headers,
        )
        return path

    def get_public_url(self, bucket: str, key: str) -> str:
        """Compose ``/object/public/<bucket>/<key>``; no request is made."""
        path = clean_key(key)
        return f"{self._endpoint}/object/public/{bucket}/{_quote_key(path)}"

    async def remove(self, bucket: str, keys: list[str]) -> list[str]:
        """Batch-remove objects with DELETE ``/object/<bucket>``."""
        response = await self._request(
            "DELETE",
            f"{self._endpoint}/object/{bucket}",
            json={"prefixes": [clean_key(k) for k in keys]},
        )

        try:
            removed = response.json()
        except ValueError:
            return []
        if not isinstance(removed, list):
            return []
        return [item.get("name", "") for item in removed if isinstance(item, dict)]

    async def create_signed_url(
        self,
        bucket: str,
        key: str,
        expires_in: int,
    ) -> str:
        """
        Sign a download link with POST ``/object/sign/<bucket>/<key>``.

        The backend answers with a path relative to the storage endpoint
        (``/object/sign/...?token=...``); it is joined onto the endpoint.
        """
        path = clean_key(key)
        response = await self._request(
            "POST",
            f"{self._endpoint}/object/sign/{bucket}/{_quote_key(path)}",
            json={"expiresIn": expires_in},
        )

        try:
            signed_path = response.json().get("signedURL")
        except (ValueError, AttributeError):
            signed_path = None
        if not signed_path:
            raise StorageApiError("Signed URL missing from response", response.status_code)

        path_part, sep, query = signed_path.partition("?")
        return f"{self._endpoint}{_quote_key(path_part)}{sep}{query}"

    async def aclose(self) -> None:
        await self._http.aclose()


# ---------------------------------------------------------------------------
# Mock Storage for Local Development
# ---------------------------------------------------------------------------

class MockStorageClient:
    """
    In-memory storage for local development and tests.

    Objects live in a dict keyed by ``(bucket, key)``. Upsert, removal of
    missing keys, and signed-URL tokens behave like the real backend.
    ``fail_next`` makes the next call of one kind fail with a given
    message.
    """

    def __init__(self, endpoint: str = "mock://storage") -> None:
        self._endpoint = endpoint
        self.objects: dict[tuple[str, str], bytes] = {}
        self.content_types: dict[tuple[str, str], str] = {}
        self.calls: list[tuple] = []
        self._failures: dict[str, str] = {}
        logger.info("Initialized mock storage client (in-memory)")

    def fail_next(self, operation: str, message: str) -> None:
        """Make the next ``upload``/``remove``/``create_signed_url`` call fail."""
        self._failures[operation] = message

    def _maybe_fail(self, operation: str) -> None:
        message = self._failures.pop(operation, None)
        if message is not None:
            raise StorageApiError(message, 400)

    async def upload(
        self,
        bucket: str,
        key: str,
        source: ByteSource,
        *,
        content_type: str,
        upsert: bool = True,
        cache_control: str = "3600",
    ) -> str:
        path = clean_key(key)
        self.calls.append(("upload", bucket, path, content_type, upsert, cache_control))
        self._maybe_fail("upload")

        if not upsert and (bucket, path) in self.objects:
            raise StorageApiError("The resource already exists", 409)

        data = b"".join([chunk async for chunk in source.iter_chunks()])
        self.objects[(bucket, path)] = data
        self.content_types[(bucket, path)] = content_type

        logger.debug(
            "Stored object in mock storage",
            extra={"bucket": bucket, "key": path, "size_bytes": len(data)},
        )
        return path

    def get_public_url(self, bucket: str, key: str) -> str:
        return f"{self._endpoint}/object/public/{bucket}/{_quote_key(clean_key(key))}"

    async def remove(self, bucket: str, keys: list[str]) -> list[str]:
        paths = [clean_key(k) for k in keys]
        self.calls.append(("remove", bucket, paths))
        self._maybe_fail("remove")

        removed = []
        for path in paths:
            if self.objects.pop((bucket, path), None) is not None:
                self.content_types.pop((bucket, path), None)
                removed.append(path)
        return removed

    async def create_signed_url(
        self,
        bucket: str,
        key: str,
        expires_in: int,
    ) -> str:
        path = clean_key(key)
        self.calls.append(("create_signed_url", bucket, path, expires_in))
        self._maybe_fail("create_signed_url")

        if (bucket, path) not in self.objects:
            raise StorageApiError("Object not found", 404)

        token = secrets.token_urlsafe(16)
        return f"{self._endpoint}/object/sign/{bucket}/{_quote_key(path)}?token={token}"

    async def aclose(self) -> None:
        pass


# ---------------------------------------------------------------------------
# Factory Function
# ---------------------------------------------------------------------------

def create_storage_client(
    endpoint: str,
    api_key: str,
    *,
    mock_mode: bool = False,
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
    http_client: Optional[httpx.AsyncClient] = None,
) -> StorageClient:
    """
    Create a storage client for ``endpoint``.

    Args:
        endpoint: Storage REST endpoint (``<project>/storage/v1``)
        api_key: Service-role key used for both auth headers
        mock_mode: If True, return the in-memory client
        timeout_seconds: Per-request timeout for the HTTP client
        http_client: Pre-built httpx client (tests inject a mock transport)

    Returns:
        StorageClient implementation (Supabase or Mock)
    """
    if mock_mode:
        return MockStorageClient(endpoint)

    config = SupabaseStorageConfig(
        endpoint=endpoint,
        api_key=api_key,
        timeout_seconds=timeout_seconds,
    )
    return SupabaseStorageClient(config, http_client=http_client)
