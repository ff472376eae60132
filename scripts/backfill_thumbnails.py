"""
Backfill Thumbnail/Medium Derivatives.

Generates derivatives for photos that predate the derivative pipeline.
Reads photo rows exported as JSON, downloads each original from storage,
generates + uploads thumb/medium, and writes the new URLs to an output
file for the DB update step.

Input JSON: [{"id": "...", "original_url": "...", "thumbnail_url": "...", "medium_url": null}, ...]

Usage:
  source .env && python3 scripts/backfill_thumbnails.py --input photos.json --dry-run
  source .env && python3 scripts/backfill_thumbnails.py --input photos.json --output updates.json
  source .env && python3 scripts/backfill_thumbnails.py --input photos.json --bucket photos --batch-size 5
"""
from __future__ import annotations

import argparse
import asyncio
import json
import logging
import os
import sys

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger("backfill_thumbnails")
logging.getLogger("httpx").setLevel(logging.WARNING)
logging.getLogger("botocore").setLevel(logging.WARNING)

# ---------------------------------------------------------------------------
# Imports (after sys.path)
# ---------------------------------------------------------------------------
from photo_derivatives.backfill import PhotoRecord, migrate_photos
from photo_derivatives.config import get_derivatives_settings
from photo_derivatives.storage import get_storage_client


def load_records(path: str) -> list[PhotoRecord]:
    with open(path, encoding="utf-8") as f:
        rows = json.load(f)
    return [
        PhotoRecord(
            id=str(row["id"]),
            original_url=row["original_url"],
            thumbnail_url=row.get("thumbnail_url"),
            medium_url=row.get("medium_url"),
        )
        for row in rows
    ]


async def run(args: argparse.Namespace) -> int:
    settings = get_derivatives_settings()
    bucket = args.bucket or settings.DERIVATIVES_BUCKET
    records = load_records(args.input)
    client = get_storage_client()

    updates: list[dict] = []

    async def collect(record: PhotoRecord, urls) -> None:
        updates.append({
            "id": record.id,
            "thumbnail_url": urls.thumbnail_url,
            "medium_url": urls.medium_url,
        })

    failed = 0
    async for event in migrate_photos(
        records,
        client,
        bucket,
        batch_size=args.batch_size,
        dry_run=args.dry_run,
        on_migrated=collect,
    ):
        print(json.dumps(event.to_dict()), flush=True)
        if event.type == "complete":
            failed = event.data.get("failed", 0)

    if args.output and not args.dry_run:
        with open(args.output, "w", encoding="utf-8") as f:
            json.dump(updates, f, indent=2)
        logger.info(f"Wrote {len(updates)} URL updates to {args.output}")

    return 1 if failed else 0


def main() -> None:
    parser = argparse.ArgumentParser(description="Backfill thumb/medium derivatives")
    parser.add_argument("--input", required=True, help="JSON file with photo records")
    parser.add_argument("--output", help="Where to write successful URL updates (JSON)")
    parser.add_argument("--bucket", help="Storage bucket (default: DERIVATIVES_BUCKET)")
    parser.add_argument("--batch-size", type=int, default=None, help="Photos processed concurrently")
    parser.add_argument("--dry-run", action="store_true", help="Only report what would be migrated")
    args = parser.parse_args()

    sys.exit(asyncio.run(run(args)))


if __name__ == "__main__":
    main()
