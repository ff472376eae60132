"""Backfill derivatives for photos uploaded before the pipeline existed.

Flow per photo: parse storage path from the original's public URL ->
download original -> process_and_store_thumbnails -> on_migrated callback
(the caller persists the new URLs; no database access happens here).

Photos are processed in small concurrent batches (default 3) to bound
Pillow memory. Per-photo failures are reported as skip events and never
stop the run.

Usage:
    async for event in migrate_photos(records, client, "photos", on_migrated=save):
        print(event.to_dict())
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import AsyncIterator, Awaitable, Callable, Iterable, Optional
from urllib.parse import unquote, urlparse

from photo_derivatives import telemetry
from photo_derivatives.config import get_derivatives_settings
from photo_derivatives.pipeline import process_and_store_thumbnails
from photo_derivatives.storage.base import DownloadableStorage
from photo_derivatives.store import StoredThumbnails

logger = logging.getLogger(__name__)

OnMigrated = Callable[["PhotoRecord", StoredThumbnails], Awaitable[None]]


@dataclass
class PhotoRecord:
    """A photo row as seen by the backfill (id + current URLs)."""

    id: str
    original_url: str
    thumbnail_url: Optional[str] = None
    medium_url: Optional[str] = None


@dataclass(frozen=True)
class StoragePath:
    base_path: str
    filename: str
    original_key: str


@dataclass
class MigrationEvent:
    """Progress event (summary | status | progress | skip | complete)."""

    type: str
    data: dict = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {"type": self.type, **self.data}


def needs_migration(record: PhotoRecord) -> bool:
    """True if the photo still uses its original as thumbnail and has no medium."""
    if record.medium_url:
        return False
    return not record.thumbnail_url or record.thumbnail_url == record.original_url


def parse_storage_path(public_url: str, bucket: str = "photos") -> Optional[StoragePath]:
    """Extract base path and filename from a public storage URL.

    Web uploads:     .../{bucket}/{user}/{gallery}/original/{filename}
        -> base_path "{user}/{gallery}", original key "{base_path}/original/{filename}"
    Desktop uploads: .../{bucket}/galleries/{gallery}/{filename}
        -> base_path "galleries/{gallery}", original key "{base_path}/{filename}"

    Returns:
        StoragePath or None if the URL does not contain the bucket path
    """
    try:
        path = urlparse(public_url).path
    except ValueError:
        return None

    marker = f"/{bucket}/"
    if marker not in path:
        return None

    after_bucket = path.split(marker, 1)[1]
    segments = [unquote(s) for s in after_bucket.split("/") if s]
    if len(segments) < 2:
        return None

    if "original" in segments:
        idx = segments.index("original")
        base_path = "/".join(segments[:idx])
        filename = "/".join(segments[idx + 1:])
        original_key = f"{base_path}/original/{filename}"
    else:
        base_path = "/".join(segments[:-1])
        filename = segments[-1]
        original_key = f"{base_path}/{filename}"

    if not base_path or not filename:
        return None

    return StoragePath(base_path=base_path, filename=filename, original_key=original_key)


async def _migrate_one(
    record: PhotoRecord,
    client: DownloadableStorage,
    bucket: str,
    on_migrated: Optional[OnMigrated],
) -> tuple[Optional[StoredThumbnails], Optional[str]]:
    """Returns (urls, None) on success or (None, skip reason)."""
    try:
        storage_path = parse_storage_path(record.original_url, bucket)
        if storage_path is None:
            return None, "Could not parse storage path"

        image_bytes = await client.download(bucket, storage_path.original_key)
        if not image_bytes:
            return None, "Failed to download original"

        urls = await process_and_store_thumbnails(
            image_bytes,
            client,
            bucket,
            storage_path.base_path,
            storage_path.filename,
        )
        if urls is None:
            return None, "Thumbnail generation failed"

        if on_migrated is not None:
            try:
                await on_migrated(record, urls)
            except Exception as e:
                return None, f"Update failed: {e}"

        return urls, None

    except Exception as e:
        logger.warning(f"[Backfill] Photo {record.id} failed: {e}")
        return None, str(e) or type(e).__name__


async def migrate_photos(
    records: Iterable[PhotoRecord],
    client: DownloadableStorage,
    bucket: str,
    *,
    batch_size: Optional[int] = None,
    dry_run: bool = False,
    on_migrated: Optional[OnMigrated] = None,
) -> AsyncIterator[MigrationEvent]:
    """Generate derivatives for every record that still needs them.

    Args:
        records: Candidate photos (already-migrated ones are filtered out)
        client: Storage backend holding the originals
        bucket: Bucket of originals and derivatives
        batch_size: Photos processed concurrently (default from settings)
        dry_run: Only report what would be migrated
        on_migrated: Async callback to persist the new URLs

    Yields:
        MigrationEvent objects, ending with a "complete" event
    """
    if batch_size is None:
        batch_size = get_derivatives_settings().DERIVATIVES_BACKFILL_BATCH_SIZE
    batch_size = max(1, batch_size)

    all_records = list(records)
    to_migrate = [r for r in all_records if needs_migration(r)]
    skipped = len(all_records) - len(to_migrate)
    for _ in range(skipped):
        telemetry.record_backfill_photo("skipped")

    yield MigrationEvent("summary", {
        "total": len(all_records),
        "to_migrate": len(to_migrate),
        "already_migrated": skipped,
        "dry_run": dry_run,
    })

    if dry_run or not to_migrate:
        message = "Dry run complete" if dry_run else "No photos need migration"
        yield MigrationEvent("complete", {"message": message, "processed": 0, "failed": 0})
        return

    yield MigrationEvent("status", {"message": f"Processing {len(to_migrate)} photos..."})

    processed = 0
    failed = 0
    for i in range(0, len(to_migrate), batch_size):
        batch = to_migrate[i:i + batch_size]
        outcomes = await asyncio.gather(
            *(_migrate_one(record, client, bucket, on_migrated) for record in batch)
        )

        for record, (urls, reason) in zip(batch, outcomes):
            if urls is None:
                failed += 1
                telemetry.record_backfill_photo("failed")
                yield MigrationEvent("skip", {"id": record.id, "reason": reason})
                continue

            processed += 1
            telemetry.record_backfill_photo("processed")
            yield MigrationEvent("progress", {
                "id": record.id,
                "processed": processed,
                "failed": failed,
                "total": len(to_migrate),
                "thumbnail_url": urls.thumbnail_url,
                "medium_url": urls.medium_url,
            })

    logger.info(f"[Backfill] Complete: {processed} processed, {failed} failed")
    yield MigrationEvent("complete", {
        "message": f"Migration complete. {processed} processed, {failed} failed.",
        "processed": processed,
        "failed": failed,
    })
