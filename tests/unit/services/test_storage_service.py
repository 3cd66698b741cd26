import pytest
from unittest.mock import MagicMock, patch

from grindflow.core.cache import TTLCache
from grindflow.core.exceptions import StorageError
from grindflow.services.storage_service import StorageService


@pytest.fixture
def bucket_cache():
    return TTLCache(ttl=300)


@pytest.fixture
def storage_service(bucket_cache):
    return StorageService(bucket_cache, bucket="documents")


@pytest.mark.asyncio
async def test_upload_bytes_success(storage_service):
    with patch("httpx.AsyncClient.post") as mock_post:
        mock_post.return_value = MagicMock(status_code=200, json=lambda: {"Key": "documents/1-notes.pdf"})

        result = await storage_service.upload_bytes(b"%PDF-1.4", "1-notes.pdf", "application/pdf")

        assert result == {"Key": "documents/1-notes.pdf"}
        assert mock_post.call_args.args[0].endswith("/storage/v1/object/documents/1-notes.pdf")


@pytest.mark.asyncio
async def test_upload_bytes_failure(storage_service):
    with patch("httpx.AsyncClient.post") as mock_post:
        mock_post.return_value = MagicMock(status_code=400, text="Bad Request")

        with pytest.raises(StorageError, match="Upload failed: Bad Request"):
            await storage_service.upload_bytes(b"%PDF-1.4", "1-notes.pdf")


@pytest.mark.asyncio
async def test_download_success(storage_service):
    with patch("httpx.AsyncClient.get") as mock_get:
        mock_get.return_value = MagicMock(status_code=200, content=b"%PDF-1.4 bytes")

        assert await storage_service.download("1-notes.pdf") == b"%PDF-1.4 bytes"


@pytest.mark.asyncio
async def test_download_failure(storage_service):
    with patch("httpx.AsyncClient.get") as mock_get:
        mock_get.return_value = MagicMock(status_code=404, text="Object not found")

        with pytest.raises(StorageError, match="Download failed"):
            await storage_service.download("missing.pdf")


@pytest.mark.asyncio
async def test_get_signed_url_success(storage_service):
    with patch("httpx.AsyncClient.post") as mock_post:
        mock_post.return_value = MagicMock(
            status_code=200,
            json=lambda: {"signedURL": "/object/sign/documents/test.pdf?token=123"}
        )

        result = await storage_service.get_signed_url("test.pdf")

        assert result["signed_url"] == "https://test.supabase.co/storage/v1/object/sign/documents/test.pdf?token=123"
        assert result["storage_path"] == "test.pdf"


@pytest.mark.asyncio
async def test_get_signed_url_failure(storage_service):
    with patch("httpx.AsyncClient.post") as mock_post:
        mock_post.return_value = MagicMock(status_code=500, text="Server Error")

        with pytest.raises(StorageError, match="Signed URL generation failed: Server Error"):
            await storage_service.get_signed_url("test.pdf")


def test_get_public_url_quotes_path(storage_service):
    url = storage_service.get_public_url("1-my notes.pdf")

    assert url == "https://test.supabase.co/storage/v1/object/public/documents/1-my%20notes.pdf"


@pytest.mark.asyncio
async def test_is_bucket_public_is_cached(storage_service):
    with patch("httpx.AsyncClient.get") as mock_get:
        mock_get.return_value = MagicMock(status_code=200, json=lambda: {"id": "documents", "public": True})

        assert await storage_service.is_bucket_public() is True
        assert await storage_service.is_bucket_public() is True

        mock_get.assert_called_once()


@pytest.mark.asyncio
async def test_ensure_public_bucket_creates_missing_bucket(storage_service, bucket_cache):
    with patch("httpx.AsyncClient.get") as mock_get, patch("httpx.AsyncClient.request") as mock_request:
        mock_get.return_value = MagicMock(status_code=404, text="Bucket not found")
        mock_request.return_value = MagicMock(status_code=200)

        await storage_service.ensure_public_bucket()

        method, url = mock_request.call_args.args[:2]
        assert method == "POST"
        assert url.endswith("/storage/v1/bucket")
        assert mock_request.call_args.kwargs["json"]["public"] is True
        assert bucket_cache.get("documents") is True


@pytest.mark.asyncio
async def test_ensure_public_bucket_skips_when_cached(storage_service, bucket_cache):
    bucket_cache.set("documents", True)

    with patch("httpx.AsyncClient.get") as mock_get:
        await storage_service.ensure_public_bucket()

        mock_get.assert_not_called()


@pytest.mark.asyncio
async def test_resolve_file_url_signs_for_private_bucket(storage_service, bucket_cache):
    bucket_cache.set("documents", False)

    with patch("httpx.AsyncClient.post") as mock_post:
        mock_post.return_value = MagicMock(
            status_code=200,
            json=lambda: {"signedURL": "/object/sign/documents/a.pdf?token=abc"}
        )

        url = await storage_service.resolve_file_url("a.pdf")

    assert "token=abc" in url


@pytest.mark.asyncio
async def test_remove_failure(storage_service):
    with patch("httpx.AsyncClient.request") as mock_request:
        mock_request.return_value = MagicMock(status_code=400, text="nope")

        with pytest.raises(StorageError, match="Remove failed"):
            await storage_service.remove(["a.pdf"])
