"""Cloudflare R2 storage backend for photo derivatives.

Async S3-compatible writes via aioboto3. Public URLs are resolved from a
configured CDN/public base URL, since R2 has no per-object public URL API.

Usage:
    client = R2StorageClient(endpoint_url, key_id, secret, public_base_url)
    result = await client.upload("photos", "u1/g1/thumb/a.jpg", data,
                                 content_type="image/jpeg", upsert=True)
    url = client.get_public_url("photos", "u1/g1/thumb/a.jpg")
"""

import logging
from typing import Optional
from urllib.parse import quote

from photo_derivatives.storage.base import UploadResult

logger = logging.getLogger(__name__)


class R2StorageClient:
    """Async Cloudflare R2 client for derivative storage.

    Args:
        endpoint_url: https://<account_id>.r2.cloudflarestorage.com
        access_key_id: R2 access key
        secret_access_key: R2 secret
        public_base_url: Public/CDN origin. If it already points at a single
            bucket (bucket_scoped_url=True), keys are appended directly;
            otherwise the bucket name is inserted first.
    """

    def __init__(
        self,
        endpoint_url: str,
        access_key_id: str,
        secret_access_key: str,
        public_base_url: str,
        bucket_scoped_url: bool = False,
    ):
        self.endpoint_url = endpoint_url
        self.access_key_id = access_key_id
        self.secret_access_key = secret_access_key
        self.public_base_url = public_base_url.rstrip("/")
        self.bucket_scoped_url = bucket_scoped_url
        self._session = None

    async def _get_client(self):
        """Get or create aioboto3 S3 client."""
        if self._session is None:
            import aioboto3

            self._session = aioboto3.Session()
        return self._session.client(
            "s3",
            endpoint_url=self.endpoint_url,
            aws_access_key_id=self.access_key_id,
            aws_secret_access_key=self.secret_access_key,
        )

    async def upload(
        self,
        bucket: str,
        key: str,
        data: bytes,
        *,
        content_type: str,
        upsert: bool = False,
    ) -> UploadResult:
        """Upload binary object to R2.

        S3 PUT overwrites by default; upsert=False adds If-None-Match so an
        existing object makes the write fail instead.

        Returns:
            UploadResult with error text on failure
        """
        params = {
            "Bucket": bucket,
            "Key": key,
            "Body": data,
            "ContentType": content_type,
        }
        if not upsert:
            params["IfNoneMatch"] = "*"

        try:
            async with await self._get_client() as client:
                await client.put_object(**params)
                logger.debug(f"R2: Uploaded {bucket}/{key} ({len(data)} bytes)")
                return UploadResult()
        except Exception as e:
            logger.error(f"R2: Failed to upload {bucket}/{key}: {e}")
            return UploadResult(error=str(e))

    async def download(self, bucket: str, key: str) -> Optional[bytes]:
        """Download binary object from R2.

        Returns:
            Binary content or None if not found/error
        """
        try:
            async with await self._get_client() as client:
                response = await client.get_object(Bucket=bucket, Key=key)
                body = await response["Body"].read()
                logger.debug(f"R2: Downloaded {bucket}/{key} ({len(body)} bytes)")
                return body
        except Exception as e:
            error_str = str(e).lower()
            if "nosuchkey" in error_str or "not found" in error_str or "404" in error_str:
                logger.warning(f"R2: Object not found: {bucket}/{key}")
            else:
                logger.error(f"R2: Failed to download {bucket}/{key}: {e}")
            return None

    def get_public_url(self, bucket: str, key: str) -> str:
        """Resolve the public URL of an object."""
        path = quote(key)
        if self.bucket_scoped_url:
            return f"{self.public_base_url}/{path}"
        return f"{self.public_base_url}/{quote(bucket)}/{path}"
