"""Upload pre-generated derivatives and resolve their public URLs.

Derivatives sit beside the original photo in size subdirs:
    Original: {base_path}/original/{filename}  (or {base_path}/{filename})
    Thumb:    {base_path}/thumb/{filename}
    Medium:   {base_path}/medium/{filename}

Writes are upserts so re-running on already-processed photos safely
overwrites the derivatives.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Optional, Union

from photo_derivatives.config import (
    DERIVATIVE_CONTENT_TYPE,
    build_medium_key,
    build_thumbnail_key,
)
from photo_derivatives.storage.base import StorageClient, UploadResult

logger = logging.getLogger(__name__)


class UploadError(RuntimeError):
    """A derivative write failed; the message names which one."""


@dataclass(frozen=True)
class StoredThumbnails:
    thumbnail_url: str
    medium_url: str


def _upload_error_text(outcome: Union[UploadResult, BaseException]) -> Optional[str]:
    if isinstance(outcome, BaseException):
        return str(outcome) or type(outcome).__name__
    return outcome.error


async def store_thumbnails(
    client: StorageClient,
    bucket: str,
    base_path: str,
    filename: str,
    thumbnail_bytes: bytes,
    medium_bytes: bytes,
) -> StoredThumbnails:
    """Upload thumbnail + medium JPEGs concurrently and return their URLs.

    Both objects are stored as image/jpeg regardless of the filename's
    extension.

    Raises:
        UploadError: "Thumbnail upload failed: ..." or "Medium upload failed: ..."
    """
    thumb_key = build_thumbnail_key(base_path, filename)
    medium_key = build_medium_key(base_path, filename)

    thumb_outcome, medium_outcome = await asyncio.gather(
        client.upload(
            bucket,
            thumb_key,
            thumbnail_bytes,
            content_type=DERIVATIVE_CONTENT_TYPE,
            upsert=True,
        ),
        client.upload(
            bucket,
            medium_key,
            medium_bytes,
            content_type=DERIVATIVE_CONTENT_TYPE,
            upsert=True,
        ),
        return_exceptions=True,
    )

    for outcome in (thumb_outcome, medium_outcome):
        if isinstance(outcome, asyncio.CancelledError):
            raise outcome

    thumb_error = _upload_error_text(thumb_outcome)
    if thumb_error is not None:
        raise UploadError(f"Thumbnail upload failed: {thumb_error}")

    medium_error = _upload_error_text(medium_outcome)
    if medium_error is not None:
        raise UploadError(f"Medium upload failed: {medium_error}")

    logger.debug(f"[Thumbnails] Stored {bucket}/{thumb_key} and {bucket}/{medium_key}")

    return StoredThumbnails(
        thumbnail_url=client.get_public_url(bucket, thumb_key),
        medium_url=client.get_public_url(bucket, medium_key),
    )
