"""Storage service for handling Supabase storage operations."""

from typing import Any, Dict, List, Optional
from urllib.parse import quote

import httpx

from grindflow.core.cache import TTLCache
from grindflow.core.config import settings
from grindflow.core.exceptions import StorageError
from grindflow.utils.logging import get_logger

LOGGER = get_logger(__name__)


class StorageService:
    """Service for managing files in Supabase storage.

    Bucket visibility is looked up through the injected ``bucket_cache``
    so listing pages do not hit the bucket API on every request.
    """

    def __init__(self, bucket_cache: TTLCache, bucket: Optional[str] = None):
        """Initialize the storage service.

        Args:
            bucket_cache: Process-wide cache of "is this bucket public"
            bucket: Default bucket, falls back to SUPABASE_STORAGE_BUCKET
        """
        self.url = settings.supabase_url.rstrip("/")
        self.service_role_key = settings.supabase_service_role_key
        self.base_api_url = f"{self.url}/storage/v1"
        self.bucket = bucket or settings.storage_bucket
        self.bucket_cache = bucket_cache
        self.headers = {
            "Authorization": f"Bearer {self.service_role_key}",
            "apikey": self.service_role_key,
        }

    async def upload_bytes(
        self,
        content: bytes,
        path: str,
        content_type: str = "application/octet-stream",
        bucket: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Upload raw bytes to Supabase storage.

        Args:
            content: File content
            path: Target path within the bucket
            content_type: MIME type stored with the object
            bucket: Target bucket, defaults to the configured bucket

        Returns:
            Dict containing the upload result

        Raises:
            StorageError: If the upload fails
        """
        bucket = bucket or self.bucket
        upload_url = f"{self.base_api_url}/object/{bucket}/{path}"

        try:
            async with httpx.AsyncClient() as client:
                response = await client.post(
                    upload_url,
                    headers={**self.headers, "Content-Type": content_type, "x-upsert": "false"},
                    content=content,
                    timeout=settings.http_timeout
                )
        except httpx.HTTPError as e:
            LOGGER.error(f"Error uploading file to Supabase: {str(e)}", exc_info=True)
            raise StorageError(f"Storage upload error: {str(e)}", original_error=e) from e

        if response.status_code != 200:
            LOGGER.error(
                f"Failed to upload file to Supabase: {response.text}",
                extra={"bucket": bucket, "path": path, "status_code": response.status_code}
            )
            raise StorageError(f"Upload failed: {response.text}")

        return response.json()

    async def download(self, path: str, bucket: Optional[str] = None) -> bytes:
        """Download an object.

        Raises:
            StorageError: If the object cannot be downloaded
        """
        bucket = bucket or self.bucket
        url = f"{self.base_api_url}/object/{bucket}/{path}"

        try:
            async with httpx.AsyncClient() as client:
                response = await client.get(url, headers=self.headers, timeout=settings.http_timeout)
        except httpx.HTTPError as e:
            LOGGER.error(f"Error downloading {path}: {str(e)}", exc_info=True)
            raise StorageError("Download failed", original_error=e) from e

        if response.status_code != 200:
            LOGGER.error(
                f"Failed to download file from Supabase: {response.text}",
                extra={"bucket": bucket, "path": path, "status_code": response.status_code}
            )
            raise StorageError("Download failed")

        return response.content

    async def remove(self, paths: List[str], bucket: Optional[str] = None) -> None:
        """Delete objects.

        Raises:
            StorageError: If the delete request fails
        """
        bucket = bucket or self.bucket
        url = f"{self.base_api_url}/object/{bucket}"

        try:
            async with httpx.AsyncClient() as client:
                response = await client.request(
                    "DELETE",
                    url,
                    headers=self.headers,
                    json={"prefixes": paths},
                    timeout=settings.http_timeout,
                )
        except httpx.HTTPError as e:
            raise StorageError(f"Storage remove error: {str(e)}", original_error=e) from e

        if response.status_code != 200:
            LOGGER.warning(
                f"Failed to remove objects: {response.text}",
                extra={"bucket": bucket, "paths": paths, "status_code": response.status_code}
            )
            raise StorageError(f"Remove failed: {response.text}")

    async def get_signed_url(
        self,
        path: str,
        expires_in: int = 3600,
        bucket: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Generate a signed URL for an object.

        Args:
            path: Object path
            expires_in: Expiration time in seconds
            bucket: Bucket name, defaults to the configured bucket

        Returns:
            The signed URL and storage path

        Raises:
            StorageError: If URL generation fails
        """
        bucket = bucket or self.bucket
        url = f"{self.base_api_url}/object/sign/{bucket}/{path}"

        try:
            async with httpx.AsyncClient() as client:
                response = await client.post(
                    url,
                    headers=self.headers,
                    json={"expiresIn": expires_in},
                    timeout=settings.http_timeout
                )
        except httpx.HTTPError as e:
            LOGGER.error(f"Error generating signed URL: {str(e)}", exc_info=True)
            raise StorageError(f"Signed URL error: {str(e)}", original_error=e) from e

        if response.status_code != 200:
            LOGGER.error(
                f"Failed to generate signed URL: {response.text}",
                extra={"bucket": bucket, "path": path, "status_code": response.status_code}
            )
            raise StorageError(f"Signed URL generation failed: {response.text}")

        signed_path = response.json().get("signedURL")
        if not signed_path:
            raise StorageError("Supabase response did not contain signedURL")

        # Supabase returns a path relative to /storage/v1
        signed_url = signed_path
        if signed_path.startswith("/object"):
            signed_url = f"{self.base_api_url}{signed_path}"
        elif signed_path.startswith("/"):
            signed_url = f"{self.url}{signed_path}"

        return {
            "signed_url": signed_url,
            "storage_path": path
        }

    async def create_download_url(
        self,
        path: str,
        expires_in: int = 3600,
        bucket: Optional[str] = None,
    ) -> str:
        """Generate a signed download URL for an object."""
        result = await self.get_signed_url(path, expires_in, bucket)
        return result["signed_url"]

    def get_public_url(self, path: str, bucket: Optional[str] = None) -> str:
        bucket = bucket or self.bucket
        return f"{self.base_api_url}/object/public/{bucket}/{quote(path)}"

    async def get_bucket(self, bucket: str) -> Optional[Dict[str, Any]]:
        """Fetch bucket details, None when the bucket does not exist."""
        try:
            async with httpx.AsyncClient() as client:
                response = await client.get(
                    f"{self.base_api_url}/bucket/{bucket}",
                    headers=self.headers,
                    timeout=settings.http_timeout,
                )
        except httpx.HTTPError as e:
            raise StorageError(f"Bucket lookup error: {str(e)}", original_error=e) from e

        if response.status_code != 200:
            LOGGER.info(f"Bucket {bucket} not found", extra={"status_code": response.status_code})
            return None
        return response.json()

    async def _write_bucket(self, method: str, url: str, bucket: str, public: bool) -> None:
        payload = {
            "id": bucket,
            "name": bucket,
            "public": public,
            "file_size_limit": settings.supabase.upload_size_limit,
            "allowed_mime_types": ["application/pdf"],
        }
        try:
            async with httpx.AsyncClient() as client:
                response = await client.request(
                    method, url, headers=self.headers, json=payload, timeout=settings.http_timeout
                )
        except httpx.HTTPError as e:
            raise StorageError(f"Bucket update error: {str(e)}", original_error=e) from e

        if response.status_code != 200:
            raise StorageError(f"Bucket update failed: {response.text}")

    async def ensure_public_bucket(self, bucket: Optional[str] = None) -> None:
        """Create the bucket, or flip it to public, unless already known public.

        Raises:
            StorageError: If the bucket cannot be created or updated
        """
        bucket = bucket or self.bucket
        if self.bucket_cache.get(bucket):
            return

        details = await self.get_bucket(bucket)
        if details is None:
            LOGGER.info(f"Creating public bucket {bucket}")
            await self._write_bucket("POST", f"{self.base_api_url}/bucket", bucket, public=True)
        elif not details.get("public"):
            LOGGER.info(f"Making bucket {bucket} public")
            await self._write_bucket("PUT", f"{self.base_api_url}/bucket/{bucket}", bucket, public=True)

        self.bucket_cache.set(bucket, True)

    async def is_bucket_public(self, bucket: Optional[str] = None) -> bool:
        """Whether the bucket serves public URLs, cached for the cache TTL.

        Lookup failures count as private so callers fall back to signed URLs.
        """
        bucket = bucket or self.bucket
        cached = self.bucket_cache.get(bucket)
        if cached is not None:
            return cached

        try:
            details = await self.get_bucket(bucket)
        except StorageError as e:
            LOGGER.warning(f"Bucket visibility lookup failed: {e}")
            return False

        is_public = bool(details and details.get("public"))
        self.bucket_cache.set(bucket, is_public)
        return is_public

    async def resolve_file_url(self, path: str, bucket: Optional[str] = None) -> str:
        """Public URL when the bucket is public, otherwise a one-hour signed URL."""
        if await self.is_bucket_public(bucket):
            return self.get_public_url(path, bucket)

        try:
            return await self.create_download_url(path, settings.supabase.signed_url_ttl, bucket)
        except StorageError as e:
            LOGGER.warning(f"Signed URL failed for {path}, using public URL: {e}")
            return self.get_public_url(path, bucket)
