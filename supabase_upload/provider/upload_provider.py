"""
Supabase Storage upload provider.

The provider is what the host media pipeline talks to. It hides whether
the bucket is public or private: uploads come back with a URL the host
can store, and ``get_signed_url`` turns that stored value into something
a browser can fetch either way.

Public bucket: the stored URL is the permanent public URL and signing is
a no-op. Private bucket: the stored URL is the bare object key, and each
read goes through a short-lived signed link.
"""

import logging
from typing import Any, Mapping, Optional, Protocol, Union

from supabase_upload.core.errors import (
    DeleteFailed,
    SignedUrlFailed,
    SizeLimitExceeded,
    UploadFailed,
)
from supabase_upload.core.files.keys import (
    human_readable_bytes,
    kilobytes_to_bytes,
    object_key,
    storage_endpoint,
)
from supabase_upload.core.files.models import (
    FileRecord,
    ProviderConfig,
    SignedUrl,
    UploadResult,
)
from supabase_upload.infrastructure.storage.client import (
    StorageClient,
    StorageError,
    create_storage_client,
)

logger = logging.getLogger(__name__)

# Cache-control max-age (seconds) sent with every upload
UPLOAD_CACHE_CONTROL = "3600"


class UploadProvider(Protocol):
    """The six operations a host media pipeline calls on a storage provider."""

    async def upload(self, file: FileRecord) -> UploadResult:
        ...

    async def upload_stream(self, file: FileRecord) -> UploadResult:
        ...

    async def delete(self, file: FileRecord) -> None:
        ...

    async def check_file_size(self, file: FileRecord, *, size_limit: float) -> None:
        ...

    def is_private(self) -> bool:
        ...

    async def get_signed_url(self, file: FileRecord) -> SignedUrl:
        ...


class SupabaseUploadProvider:
    """
    Upload provider backed by one Supabase Storage bucket.

    Holds a validated config and one storage client. Both are only read
    after construction, so concurrent calls are safe.
    """

    def __init__(
        self,
        config: ProviderConfig,
        storage_client: Optional[StorageClient] = None,
        *,
        mock_mode: bool = False,
        timeout_seconds: Optional[float] = None,
    ) -> None:
        self._config = config
        self._directory = config.directory
        self._public_files = config.public_files
        self._signed_url_expires = config.signed_url_expires

        if storage_client is None:
            client_options = {"mock_mode": mock_mode}
            if timeout_seconds is not None:
                client_options["timeout_seconds"] = timeout_seconds
            storage_client = create_storage_client(
                storage_endpoint(config.api_url),
                config.api_key,
                **client_options,
            )
        self._storage = storage_client

        logger.info(
            "Initialized Supabase upload provider",
            extra={
                "bucket": config.bucket,
                "directory": self._directory,
                "public_files": self._public_files,
                "signed_url_expires": self._signed_url_expires,
            },
        )

    @property
    def config(self) -> ProviderConfig:
        return self._config

    async def __aenter__(self) -> "SupabaseUploadProvider":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Close the underlying storage client."""
        await self._storage.aclose()

    def _key_for(self, file: FileRecord) -> str:
        return object_key(file.hash, file.ext, self._directory)

    # ------------------------------------------------------------------
    # Upload
    # ------------------------------------------------------------------

    async def upload(self, file: FileRecord) -> UploadResult:
        """
        Upload a file and return the URL the host should store.

        The object is written with upsert enabled, so uploading the same
        hash twice replaces the object rather than failing. The result's
        ``url`` is the public URL for public buckets and the bare key for
        private ones. ``file`` itself is left untouched; apply the result
        with :meth:`UploadResult.apply`.
        """
        key = self._key_for(file)
        if file.source is None:
            raise UploadFailed(f"no payload provided for {file.name}")

        try:
            await self._storage.upload(
                self._config.bucket,
                key,
                file.source,
                content_type=file.mime,
                upsert=True,
                cache_control=UPLOAD_CACHE_CONTROL,
            )
        except StorageError as e:
            logger.error(
                "Failed to upload file",
                extra={"bucket": self._config.bucket, "key": key, "error": e.message},
            )
            raise UploadFailed(e.message) from e

        if self._public_files:
            url = self._storage.get_public_url(self._config.bucket, key)
        else:
            url = key

        logger.info(
            "Uploaded file",
            extra={
                "bucket": self._config.bucket,
                "key": key,
                "size_kb": file.size,
                "streamed": file.source.is_stream,
                "public": self._public_files,
            },
        )

        return UploadResult(key=key, url=url, mime=file.mime)

    async def upload_stream(self, file: FileRecord) -> UploadResult:
        """Same as :meth:`upload`; the storage call accepts either payload."""
        return await self.upload(file)

    # ------------------------------------------------------------------
    # Delete
    # ------------------------------------------------------------------

    async def delete(self, file: FileRecord) -> None:
        """
        Remove a file's object from the bucket.

        The key is recomputed from hash and extension: for public buckets
        ``file.url`` holds a full URL, not a key. ``file.url`` is not
        cleared; the host owns the record.
        """
        key = self._key_for(file)

        try:
            await self._storage.remove(self._config.bucket, [key])
        except StorageError as e:
            logger.error(
                "Failed to delete file",
                extra={"bucket": self._config.bucket, "key": key, "error": e.message},
            )
            raise DeleteFailed(e.message) from e

        logger.info(
            "Deleted file",
            extra={"bucket": self._config.bucket, "key": key},
        )

    # ------------------------------------------------------------------
    # Size check
    # ------------------------------------------------------------------

    async def check_file_size(self, file: FileRecord, *, size_limit: float) -> None:
        """
        Reject a file larger than ``size_limit`` bytes.

        ``file.size`` is in kilobytes; no I/O happens here.
        """
        size_bytes = kilobytes_to_bytes(file.size)

        logger.debug(
            "Checking file size",
            extra={"file_name": file.name, "size_bytes": size_bytes, "size_limit": size_limit},
        )

        if size_bytes > size_limit:
            raise SizeLimitExceeded(file.name, human_readable_bytes(size_limit))

    # ------------------------------------------------------------------
    # URL resolution
    # ------------------------------------------------------------------

    def is_private(self) -> bool:
        return not self._public_files

    async def get_signed_url(self, file: FileRecord) -> SignedUrl:
        """
        Resolve a readable URL for an uploaded file.

        Public bucket: ``file.url`` is already the public URL and is
        returned without a request. Private bucket: ``file.url`` is the
        object key, and a link valid for ``signed_url_expires`` seconds
        is requested. Failures raise ``SignedUrlFailed``; no placeholder
        URL is ever returned.
        """
        if self._public_files:
            return SignedUrl(url=file.url)

        try:
            url = await self._storage.create_signed_url(
                self._config.bucket,
                file.url,
                self._signed_url_expires,
            )
        except StorageError as e:
            logger.error(
                "Failed to generate signed URL",
                extra={"bucket": self._config.bucket, "key": file.url, "error": e.message},
            )
            raise SignedUrlFailed(e.message) from e

        logger.debug(
            "Generated signed URL",
            extra={
                "bucket": self._config.bucket,
                "key": file.url,
                "expires_in": self._signed_url_expires,
            },
        )

        return SignedUrl(url=url)


# ---------------------------------------------------------------------------
# Factory Function
# ---------------------------------------------------------------------------

def init_provider(
    options: Union[ProviderConfig, Mapping[str, Any]],
    storage_client: Optional[StorageClient] = None,
    *,
    mock_mode: bool = False,
) -> SupabaseUploadProvider:
    """
    Host entry point: build a provider from provider options.

    Args:
        options: A ``ProviderConfig`` or the host's raw options mapping
            (camelCase or snake_case keys)
        storage_client: Pre-built storage client, mostly for tests
        mock_mode: If True and no client is given, store in memory

    Raises:
        ConfigInvalid: if apiUrl, apiKey or bucket is missing. Raised
            before any storage client is created.
    """
    if isinstance(options, ProviderConfig):
        config = options
    else:
        config = ProviderConfig.from_mapping(dict(options or {}))

    return SupabaseUploadProvider(config, storage_client, mock_mode=mock_mode)
