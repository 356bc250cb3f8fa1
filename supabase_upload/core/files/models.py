"""
Value objects for the upload provider.

These describe configuration, files handed over by the host, and the
results the provider hands back. None of them know about HTTP or the
storage backend.
"""

import asyncio
import dataclasses
from dataclasses import dataclass, field
from typing import Any, AsyncIterable, AsyncIterator, BinaryIO, Optional, Union

from supabase_upload.core.errors import ConfigInvalid


DEFAULT_DIRECTORY = ""
DEFAULT_PUBLIC_FILES = True
DEFAULT_SIGNED_URL_EXPIRES = 3600

STREAM_CHUNK_SIZE = 64 * 1024

StreamPayload = Union[AsyncIterable[bytes], BinaryIO]


@dataclass
class ProviderConfig:
    """
    Options for one configured bucket.

    Constructed once and treated as read-only afterwards. Validation runs
    in ``__post_init__`` so an adapter can never hold a half-valid config.
    ``None`` for an optional field means "use the default".
    """
    api_url: str
    api_key: str = field(repr=False)
    bucket: str
    directory: Optional[str] = DEFAULT_DIRECTORY
    public_files: Optional[bool] = DEFAULT_PUBLIC_FILES
    signed_url_expires: Optional[int] = DEFAULT_SIGNED_URL_EXPIRES

    def __post_init__(self) -> None:
        missing = [
            name for name in ("api_url", "api_key", "bucket")
            if not getattr(self, name)
        ]
        if missing:
            raise ConfigInvalid(
                "Supabase provider requires apiUrl, apiKey, and bucket configuration "
                f"(missing: {', '.join(missing)}). Please check your plugin configuration."
            )

        if self.directory is None:
            self.directory = DEFAULT_DIRECTORY
        if self.public_files is None:
            self.public_files = DEFAULT_PUBLIC_FILES
        if self.signed_url_expires is None:
            self.signed_url_expires = DEFAULT_SIGNED_URL_EXPIRES
        if isinstance(self.signed_url_expires, float) and self.signed_url_expires.is_integer():
            self.signed_url_expires = int(self.signed_url_expires)

        if (
            isinstance(self.signed_url_expires, bool)
            or not isinstance(self.signed_url_expires, int)
            or self.signed_url_expires <= 0
        ):
            raise ConfigInvalid(
                f"signedUrlExpires must be a positive number of seconds, "
                f"got {self.signed_url_expires!r}"
            )

    @classmethod
    def from_mapping(cls, options: dict[str, Any]) -> "ProviderConfig":
        """
        Build a config from host-supplied options.

        Accepts the camelCase keys hosts usually pass (``apiUrl``,
        ``publicFiles``) as well as snake_case. Unknown keys are ignored.
        """
        aliases = {
            "apiUrl": "api_url",
            "apiKey": "api_key",
            "publicFiles": "public_files",
            "signedUrlExpires": "signed_url_expires",
        }
        known = {f.name for f in dataclasses.fields(cls)}
        values: dict[str, Any] = {}
        for key, value in (options or {}).items():
            name = aliases.get(key, key)
            if name in known:
                values[name] = value

        for required in ("api_url", "api_key", "bucket"):
            values.setdefault(required, "")

        return cls(**values)


@dataclass(frozen=True)
class ByteSource:
    """
    A file payload: either an in-memory buffer or a readable stream.

    Exactly one of the two is set. The provider never copies or closes
    the payload; a stream is forwarded chunk by chunk.
    """
    buffer: Optional[bytes] = None
    stream: Optional[StreamPayload] = None

    def __post_init__(self) -> None:
        if (self.buffer is None) == (self.stream is None):
            raise ValueError("ByteSource needs exactly one of buffer or stream")

    @classmethod
    def from_buffer(cls, data: bytes) -> "ByteSource":
        return cls(buffer=data)

    @classmethod
    def from_stream(cls, stream: StreamPayload) -> "ByteSource":
        return cls(stream=stream)

    @property
    def is_stream(self) -> bool:
        return self.stream is not None

    async def iter_chunks(self) -> AsyncIterator[bytes]:
        """Yield the payload in chunks without reading a stream into memory."""
        if self.buffer is not None:
            yield self.buffer
            return

        stream = self.stream
        if hasattr(stream, "__aiter__"):
            async for chunk in stream:
                yield chunk
            return

        # Plain binary file object; read off the event loop
        while True:
            chunk = await asyncio.to_thread(stream.read, STREAM_CHUNK_SIZE)
            if not chunk:
                break
            yield chunk


@dataclass
class FileRecord:
    """
    A file as the host hands it to the provider.

    ``size`` is in kilobytes (decimal). ``url`` is empty before upload and
    afterwards holds whatever :class:`UploadResult` produced. The provider
    reads records but never mutates them.
    """
    name: str
    hash: str
    ext: str
    mime: str
    size: float
    url: str = ""
    path: Optional[str] = None
    source: Optional[ByteSource] = None


@dataclass(frozen=True)
class UploadResult:
    """
    Outcome of a successful upload.

    ``url`` is the full public URL for public buckets and the bare object
    key for private ones.
    """
    key: str
    url: str
    mime: str

    def apply(self, file: FileRecord) -> FileRecord:
        """Return a copy of ``file`` carrying the uploaded URL and MIME type."""
        return dataclasses.replace(file, url=self.url, mime=self.mime)


@dataclass(frozen=True)
class SignedUrl:
    """A URL the host can hand to a client for reading a file."""
    url: str
