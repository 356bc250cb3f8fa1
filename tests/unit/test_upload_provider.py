"""
Unit tests for the upload provider.

Most tests run against the in-memory storage client; a few go through
``httpx.MockTransport`` to check the full request path end to end.
"""

import asyncio
import json

import httpx
import pytest

from supabase_upload.core.errors import (
    ConfigInvalid,
    DeleteFailed,
    SignedUrlFailed,
    SizeLimitExceeded,
    UploadFailed,
)
from supabase_upload.core.files.models import ByteSource, FileRecord, ProviderConfig
from supabase_upload.infrastructure.storage.client import (
    MockStorageClient,
    SupabaseStorageClient,
    SupabaseStorageConfig,
)
from supabase_upload.provider import upload_provider
from supabase_upload.provider.upload_provider import SupabaseUploadProvider, init_provider

API_URL = "https://test.supabase.co"
ENDPOINT = f"{API_URL}/storage/v1"


def make_file(**overrides) -> FileRecord:
    values = dict(
        name="test.jpg",
        hash="abc123",
        ext=".jpg",
        mime="image/jpeg",
        size=100,
        url="",
        source=ByteSource.from_buffer(b"test"),
    )
    values.update(overrides)
    return FileRecord(**values)


def make_provider(**options) -> tuple[SupabaseUploadProvider, MockStorageClient]:
    config = ProviderConfig(
        api_url=API_URL,
        api_key="test-key",
        bucket=options.pop("bucket", "test-bucket"),
        **options,
    )
    storage = MockStorageClient(ENDPOINT)
    return SupabaseUploadProvider(config, storage), storage


# ---------------------------------------------------------------------------
# Initialization
# ---------------------------------------------------------------------------

class TestInitialization:
    """Tests for building the provider from host options."""

    def test_initializes_with_valid_configuration(self):
        provider = init_provider(
            {"apiUrl": API_URL, "apiKey": "test-key", "bucket": "test-bucket"},
            mock_mode=True,
        )

        assert provider.config.bucket == "test-bucket"
        assert not provider.is_private()

    def test_uses_provided_optional_configuration(self):
        provider = init_provider(
            {
                "apiUrl": API_URL,
                "apiKey": "test-key",
                "bucket": "test-bucket",
                "publicFiles": False,
                "signedUrlExpires": 7200,
            },
            mock_mode=True,
        )

        assert provider.is_private()
        assert provider.config.signed_url_expires == 7200

    def test_missing_bucket_fails_before_client_is_created(self, monkeypatch):
        def fail_if_called(*args, **kwargs):
            raise AssertionError("storage client must not be created")

        monkeypatch.setattr(upload_provider, "create_storage_client", fail_if_called)

        with pytest.raises(ConfigInvalid, match="requires apiUrl, apiKey, and bucket"):
            init_provider({"apiUrl": API_URL, "apiKey": "test-key"})

    def test_builds_http_client_against_storage_endpoint(self, monkeypatch):
        captured = {}

        def fake_factory(endpoint, api_key, **kwargs):
            captured.update(endpoint=endpoint, api_key=api_key, **kwargs)
            return MockStorageClient(endpoint)

        monkeypatch.setattr(upload_provider, "create_storage_client", fake_factory)

        init_provider(ProviderConfig(api_url=API_URL, api_key="test-key", bucket="b"))

        assert captured["endpoint"] == ENDPOINT
        assert captured["api_key"] == "test-key"
        assert captured["mock_mode"] is False

    @pytest.mark.asyncio
    async def test_async_context_manager_closes_client(self):
        closed = []

        class ClosingStorage(MockStorageClient):
            async def aclose(self) -> None:
                closed.append(True)

        config = ProviderConfig(api_url=API_URL, api_key="test-key", bucket="b")
        async with SupabaseUploadProvider(config, ClosingStorage()):
            pass

        assert closed == [True]


# ---------------------------------------------------------------------------
# Upload
# ---------------------------------------------------------------------------

class TestUpload:
    """Tests for uploads to public and private buckets."""

    @pytest.mark.asyncio
    async def test_public_upload_returns_public_url(self):
        provider, storage = make_provider(bucket="public-bucket", public_files=True)
        file = make_file()

        result = await provider.upload(file)

        assert result.key == "abc123.jpg"
        assert result.url == f"{ENDPOINT}/object/public/public-bucket/abc123.jpg"
        assert "/object/public/public-bucket/abc123.jpg" in result.apply(file).url
        assert storage.calls[0] == (
            "upload", "public-bucket", "abc123.jpg", "image/jpeg", True, "3600",
        )

    @pytest.mark.asyncio
    async def test_private_upload_returns_bare_key(self):
        provider, _ = make_provider(bucket="private-bucket", public_files=False)

        result = await provider.upload(make_file())

        assert result.url == "abc123.jpg"

    @pytest.mark.asyncio
    async def test_upload_uses_directory_prefix(self):
        provider, storage = make_provider(directory="/uploads/", public_files=False)

        result = await provider.upload(make_file())

        assert result.url == "uploads/abc123.jpg"
        assert ("test-bucket", "uploads/abc123.jpg") in storage.objects

    @pytest.mark.asyncio
    async def test_upload_does_not_mutate_file(self):
        provider, _ = make_provider()
        file = make_file(url="")

        await provider.upload(file)

        assert file.url == ""

    @pytest.mark.asyncio
    async def test_repeated_upload_keeps_one_object(self):
        provider, storage = make_provider()

        await provider.upload(make_file(source=ByteSource.from_buffer(b"v1")))
        await provider.upload(make_file(source=ByteSource.from_buffer(b"v2")))

        assert list(storage.objects) == [("test-bucket", "abc123.jpg")]
        assert storage.objects[("test-bucket", "abc123.jpg")] == b"v2"

    @pytest.mark.asyncio
    async def test_upload_stream_is_an_alias(self):
        provider, storage = make_provider(public_files=False)

        async def chunks():
            yield b"streamed-"
            yield b"bytes"

        result = await provider.upload_stream(
            make_file(source=ByteSource.from_stream(chunks()))
        )

        assert result.url == "abc123.jpg"
        assert storage.objects[("test-bucket", "abc123.jpg")] == b"streamed-bytes"

    @pytest.mark.asyncio
    async def test_backend_error_raises_upload_failed(self):
        provider, storage = make_provider()
        storage.fail_next("upload", "Bucket not found")
        file = make_file()

        with pytest.raises(UploadFailed) as exc_info:
            await provider.upload(file)

        assert str(exc_info.value) == "Failed to upload file to Supabase: Bucket not found"
        assert file.url == ""

    @pytest.mark.asyncio
    async def test_missing_payload_fails_without_request(self):
        provider, storage = make_provider()

        with pytest.raises(UploadFailed, match="no payload"):
            await provider.upload(make_file(source=None))

        assert storage.calls == []

    @pytest.mark.asyncio
    async def test_concurrent_uploads(self):
        provider, storage = make_provider(public_files=False)
        files = [make_file(hash=f"h{i}") for i in range(5)]

        results = await asyncio.gather(*(provider.upload(f) for f in files))

        assert [r.url for r in results] == [f"h{i}.jpg" for i in range(5)]
        assert len(storage.objects) == 5


# ---------------------------------------------------------------------------
# Delete
# ---------------------------------------------------------------------------

class TestDelete:
    """Tests for removing uploaded files."""

    @pytest.mark.asyncio
    async def test_delete_recomputes_key_from_hash(self):
        provider, storage = make_provider(directory="uploads")
        file = make_file()
        file = (await provider.upload(file)).apply(file)

        await provider.delete(file)

        assert storage.objects == {}
        assert storage.calls[-1] == ("remove", "test-bucket", ["uploads/abc123.jpg"])

    @pytest.mark.asyncio
    async def test_delete_leaves_url_in_place(self):
        provider, _ = make_provider(public_files=False)
        file = make_file(url="abc123.jpg")

        await provider.delete(file)

        assert file.url == "abc123.jpg"

    @pytest.mark.asyncio
    async def test_backend_error_raises_delete_failed(self):
        provider, storage = make_provider()
        storage.fail_next("remove", "Permission denied")

        with pytest.raises(DeleteFailed) as exc_info:
            await provider.delete(make_file())

        assert str(exc_info.value) == "Failed to delete file from Supabase: Permission denied"


# ---------------------------------------------------------------------------
# Size check
# ---------------------------------------------------------------------------

class TestCheckFileSize:
    """Tests for the size limit check."""

    @pytest.mark.asyncio
    async def test_rejects_file_over_limit(self):
        provider, storage = make_provider()

        with pytest.raises(SizeLimitExceeded) as exc_info:
            await provider.check_file_size(make_file(size=100), size_limit=50000)

        assert str(exc_info.value) == "test.jpg exceeds size limit of 50.00 KB"
        assert storage.calls == []

    @pytest.mark.asyncio
    async def test_accepts_file_at_limit(self):
        provider, _ = make_provider()
        await provider.check_file_size(make_file(size=50), size_limit=50000)

    @pytest.mark.asyncio
    async def test_accepts_file_under_limit(self):
        provider, _ = make_provider()
        await provider.check_file_size(make_file(size=1.5), size_limit=1000000)


# ---------------------------------------------------------------------------
# URL resolution
# ---------------------------------------------------------------------------

class TestSignedUrl:
    """Tests for is_private and get_signed_url."""

    def test_is_private_negates_public_files(self):
        public, _ = make_provider(public_files=True)
        private, _ = make_provider(public_files=False)

        assert public.is_private() is False
        assert private.is_private() is True

    @pytest.mark.asyncio
    async def test_public_bucket_returns_stored_url(self):
        provider, storage = make_provider(public_files=True)
        url = f"{ENDPOINT}/object/public/test-bucket/abc123.jpg"

        signed = await provider.get_signed_url(make_file(url=url))

        assert signed.url == url
        assert storage.calls == []

    @pytest.mark.asyncio
    async def test_private_bucket_signs_stored_key(self):
        provider, storage = make_provider(public_files=False, signed_url_expires=3600)
        file = make_file()
        file = (await provider.upload(file)).apply(file)

        signed = await provider.get_signed_url(file)

        assert storage.calls[-1] == ("create_signed_url", "test-bucket", "abc123.jpg", 3600)
        assert "token=" in signed.url
        assert file.url == "abc123.jpg"

    @pytest.mark.asyncio
    async def test_backend_error_raises_signed_url_failed(self):
        provider, storage = make_provider(public_files=False)
        storage.fail_next("create_signed_url", "Object not found")

        with pytest.raises(SignedUrlFailed) as exc_info:
            await provider.get_signed_url(make_file(url="abc123.jpg"))

        assert str(exc_info.value) == "Failed to generate signed URL: Object not found"


# ---------------------------------------------------------------------------
# End to end over HTTP
# ---------------------------------------------------------------------------

class TestOverHttp:
    """Provider wired to the HTTP client with a mock transport."""

    @pytest.mark.asyncio
    async def test_private_upload_and_sign(self):
        requests: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            if request.url.path.startswith("/storage/v1/object/sign/"):
                return httpx.Response(
                    200,
                    json={"signedURL": "/object/sign/private-bucket/media/abc123.jpg?token=tok"},
                )
            return httpx.Response(200, json={"Key": "private-bucket/media/abc123.jpg"})

        storage = SupabaseStorageClient(
            SupabaseStorageConfig(endpoint=ENDPOINT, api_key="test-key"),
            http_client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
        )
        config = ProviderConfig(
            api_url=API_URL,
            api_key="test-key",
            bucket="private-bucket",
            directory="media",
            public_files=False,
            signed_url_expires=600,
        )

        async with SupabaseUploadProvider(config, storage) as provider:
            file = make_file()
            file = (await provider.upload(file)).apply(file)
            signed = await provider.get_signed_url(file)

        upload_request, sign_request = requests
        assert str(upload_request.url) == f"{ENDPOINT}/object/private-bucket/media/abc123.jpg"
        assert upload_request.headers["authorization"] == "Bearer test-key"
        assert file.url == "media/abc123.jpg"
        assert json.loads(sign_request.content) == {"expiresIn": 600}
        assert signed.url == f"{ENDPOINT}/object/sign/private-bucket/media/abc123.jpg?token=tok"

    @pytest.mark.asyncio
    async def test_http_error_becomes_upload_failed(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(413, json={"error": "Payload too large", "message": "The object exceeded the maximum allowed size"})

        storage = SupabaseStorageClient(
            SupabaseStorageConfig(endpoint=ENDPOINT, api_key="test-key"),
            http_client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
        )
        config = ProviderConfig(api_url=API_URL, api_key="test-key", bucket="b")

        async with SupabaseUploadProvider(config, storage) as provider:
            with pytest.raises(UploadFailed, match="exceeded the maximum allowed size"):
                await provider.upload(make_file())
