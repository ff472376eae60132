"""Storage backends for photo derivatives.

Backends: Supabase Storage (default), Cloudflare R2, in-memory.
"""

import logging

from photo_derivatives.config import get_derivatives_settings
from photo_derivatives.storage.base import DownloadableStorage, StorageClient, UploadResult
from photo_derivatives.storage.memory import InMemoryStorageClient
from photo_derivatives.storage.r2_client import R2StorageClient
from photo_derivatives.storage.supabase_client import SupabaseStorageClient

logger = logging.getLogger(__name__)


class StorageBackendNotConfigured(RuntimeError):
    """Raised when the selected storage backend lacks configuration."""


def get_storage_client() -> DownloadableStorage:
    """Build the storage client selected by DERIVATIVES_STORAGE_BACKEND.

    Raises:
        StorageBackendNotConfigured: unknown backend or missing credentials
    """
    settings = get_derivatives_settings()
    backend = settings.DERIVATIVES_STORAGE_BACKEND.lower()

    if backend == "supabase":
        if not settings.SUPABASE_URL or not settings.SUPABASE_SERVICE_ROLE_KEY:
            raise StorageBackendNotConfigured(
                "SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY must be set for the supabase backend"
            )
        logger.info("Storage: using Supabase backend")
        return SupabaseStorageClient(
            url=settings.SUPABASE_URL,
            service_key=settings.SUPABASE_SERVICE_ROLE_KEY,
            timeout=settings.DERIVATIVES_HTTP_TIMEOUT_SECONDS,
        )

    if backend == "r2":
        if not settings.DERIVATIVES_R2_ENDPOINT_URL:
            raise StorageBackendNotConfigured("DERIVATIVES_R2_ENDPOINT_URL not set")
        if not settings.DERIVATIVES_PUBLIC_BASE_URL:
            raise StorageBackendNotConfigured(
                "DERIVATIVES_PUBLIC_BASE_URL is required to resolve R2 public URLs"
            )
        logger.info("Storage: using R2 backend")
        return R2StorageClient(
            endpoint_url=settings.DERIVATIVES_R2_ENDPOINT_URL,
            access_key_id=settings.DERIVATIVES_R2_ACCESS_KEY_ID,
            secret_access_key=settings.DERIVATIVES_R2_SECRET_ACCESS_KEY,
            public_base_url=settings.DERIVATIVES_PUBLIC_BASE_URL,
            bucket_scoped_url=settings.DERIVATIVES_PUBLIC_URL_BUCKET_SCOPED,
        )

    if backend == "memory":
        logger.warning("Storage: using in-memory backend, objects are not persisted")
        return InMemoryStorageClient()

    raise StorageBackendNotConfigured(f"Unknown storage backend: {backend}")


__all__ = [
    "DownloadableStorage",
    "InMemoryStorageClient",
    "R2StorageClient",
    "StorageBackendNotConfigured",
    "StorageClient",
    "SupabaseStorageClient",
    "UploadResult",
    "get_storage_client",
]
