"""Supabase Storage backend for photo derivatives.

Talks to the Supabase Storage REST API with httpx:
- upload:     POST {url}/storage/v1/object/{bucket}/{key}   (x-upsert header)
- download:   GET  {url}/storage/v1/object/{bucket}/{key}
- public URL: {url}/storage/v1/object/public/{bucket}/{key}
"""

import logging
from typing import Optional
from urllib.parse import quote

import httpx

from photo_derivatives.storage.base import UploadResult

logger = logging.getLogger(__name__)


def _error_message(response: httpx.Response) -> str:
    """Extract Supabase's error message, falling back to the HTTP status."""
    try:
        payload = response.json()
    except ValueError:
        payload = None

    if isinstance(payload, dict):
        message = payload.get("message") or payload.get("error")
        if message:
            return str(message)

    text = response.text.strip()
    return text or f"HTTP {response.status_code}"


class SupabaseStorageClient:
    """Async Supabase Storage client.

    Args:
        url: Project URL, e.g. https://<project>.supabase.co
        service_key: Service role key (bypasses storage RLS)
        timeout: Per-request timeout in seconds
        transport: Optional httpx transport (tests use httpx.MockTransport)
    """

    def __init__(
        self,
        url: str,
        service_key: str,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        cache_control: str = "3600",
    ):
        self.url = url.rstrip("/")
        self.service_key = service_key
        self.timeout = timeout
        self.cache_control = cache_control
        self._transport = transport

    @property
    def storage_url(self) -> str:
        return f"{self.url}/storage/v1"

    def _headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self.service_key}",
            "apikey": self.service_key,
        }

    def _http_client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=self.timeout,
            headers=self._headers(),
            transport=self._transport,
        )

    @staticmethod
    def _object_path(bucket: str, key: str) -> str:
        return quote(f"{bucket}/{key.lstrip('/')}")

    async def upload(
        self,
        bucket: str,
        key: str,
        data: bytes,
        *,
        content_type: str,
        upsert: bool = False,
    ) -> UploadResult:
        """Upload binary object to a Supabase bucket.

        Returns:
            UploadResult with Supabase's error message on failure
        """
        endpoint = f"{self.storage_url}/object/{self._object_path(bucket, key)}"
        headers = {
            "Content-Type": content_type,
            "cache-control": f"max-age={self.cache_control}",
            "x-upsert": "true" if upsert else "false",
        }

        try:
            async with self._http_client() as client:
                response = await client.post(endpoint, content=data, headers=headers)
        except httpx.HTTPError as e:
            logger.error(f"Supabase: Upload request failed for {bucket}/{key}: {e}")
            return UploadResult(error=str(e) or type(e).__name__)

        if response.status_code >= 400:
            message = _error_message(response)
            logger.error(
                f"Supabase: Failed to upload {bucket}/{key} "
                f"(HTTP {response.status_code}): {message}"
            )
            return UploadResult(error=message)

        logger.debug(f"Supabase: Uploaded {bucket}/{key} ({len(data)} bytes)")
        return UploadResult()

    async def download(self, bucket: str, key: str) -> Optional[bytes]:
        """Download an object.

        Returns:
            Binary content or None if not found/error
        """
        endpoint = f"{self.storage_url}/object/{self._object_path(bucket, key)}"
        try:
            async with self._http_client() as client:
                response = await client.get(endpoint)
        except httpx.HTTPError as e:
            logger.error(f"Supabase: Download request failed for {bucket}/{key}: {e}")
            return None

        if response.status_code == 404:
            logger.warning(f"Supabase: Object not found: {bucket}/{key}")
            return None
        if response.status_code >= 400:
            logger.error(
                f"Supabase: Failed to download {bucket}/{key} "
                f"(HTTP {response.status_code}): {_error_message(response)}"
            )
            return None

        return response.content

    def get_public_url(self, bucket: str, key: str) -> str:
        """Resolve the public URL of an object in a public bucket."""
        return f"{self.storage_url}/object/public/{self._object_path(bucket, key)}"
