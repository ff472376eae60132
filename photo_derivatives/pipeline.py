"""Combined entry point: generate derivatives from a source and store them.

Derivatives are an enhancement to the primary upload, never a requirement:
any failure here is logged and turned into None, and the caller keeps
using the original image URL as its thumbnail.
"""

import asyncio
import logging
import time
from typing import Optional

from photo_derivatives import telemetry
from photo_derivatives.config import get_derivatives_settings
from photo_derivatives.processor import DecodeError, generate_derivatives
from photo_derivatives.source import SourceInput
from photo_derivatives.storage.base import StorageClient
from photo_derivatives.store import StoredThumbnails, UploadError, store_thumbnails

logger = logging.getLogger(__name__)

# Default for `timeout`: read DERIVATIVES_TIMEOUT_SECONDS at call time.
_TIMEOUT_FROM_SETTINGS = object()


def _failure_stage(error: Exception) -> str:
    if isinstance(error, DecodeError):
        return "decode"
    if isinstance(error, UploadError):
        return "upload"
    if isinstance(error, asyncio.TimeoutError):
        return "timeout"
    return "other"


def _error_text(error: Exception) -> str:
    if isinstance(error, asyncio.TimeoutError):
        return "Derivative pipeline timed out"
    return str(error) or type(error).__name__


async def _generate_and_store(
    source: SourceInput,
    client: StorageClient,
    bucket: str,
    base_path: str,
    filename: str,
) -> StoredThumbnails:
    result = await generate_derivatives(source)
    return await store_thumbnails(
        client,
        bucket,
        base_path,
        filename,
        result.thumbnail_bytes,
        result.medium_bytes,
    )


async def process_and_store_thumbnails(
    source: SourceInput,
    client: StorageClient,
    bucket: str,
    base_path: str,
    filename: str,
    *,
    timeout=_TIMEOUT_FROM_SETTINGS,
) -> Optional[StoredThumbnails]:
    """Generate thumbnail + medium derivatives and upload them.

    Args:
        source: Original image bytes or a byte stream
        client: Storage backend
        bucket: Target bucket
        base_path: Directory of the original, e.g. "user123/gallery456"
        filename: Original filename, reused for both derivatives
        timeout: Overall bound in seconds. Omitted: DERIVATIVES_TIMEOUT_SECONDS
            (unset means no bound). None: no bound, whatever the settings say.

    Returns:
        StoredThumbnails on success, None on any failure (never raises)
    """
    started = time.monotonic()
    try:
        if timeout is _TIMEOUT_FROM_SETTINGS:
            timeout = get_derivatives_settings().DERIVATIVES_TIMEOUT_SECONDS
        stored = await asyncio.wait_for(
            _generate_and_store(source, client, bucket, base_path, filename),
            timeout=timeout,
        )
    except Exception as e:
        message = _error_text(e)
        logger.error(
            f"[Thumbnails] Failed to generate/store thumbnails "
            f"(bucket={bucket}, base_path={base_path}, filename={filename}): {message}",
            extra={
                "bucket": bucket,
                "base_path": base_path,
                "object_filename": filename,
                "error": message,
            },
        )
        telemetry.record_pipeline_failure(
            _failure_stage(e), (time.monotonic() - started) * 1000
        )
        return None

    telemetry.record_pipeline_success((time.monotonic() - started) * 1000)
    return stored
