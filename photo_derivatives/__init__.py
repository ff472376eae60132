"""Photo Derivative Pipeline.

Generates display derivatives for uploaded gallery photos and stores them
next to the original:

- thumb:  400px wide, baseline JPEG q80   -> {base_path}/thumb/{filename}
- medium: 1200px wide, progressive JPEG q85 -> {base_path}/medium/{filename}

Storage: Supabase Storage (default) or Cloudflare R2
Processing: Pillow (EXIF auto-orient, LANCZOS resize)
"""

from photo_derivatives.config import THUMBNAIL_CONFIG, DerivativesSettings, get_derivatives_settings
from photo_derivatives.pipeline import process_and_store_thumbnails
from photo_derivatives.store import StoredThumbnails

__all__ = [
    "THUMBNAIL_CONFIG",
    "DerivativesSettings",
    "StoredThumbnails",
    "get_derivatives_settings",
    "process_and_store_thumbnails",
]
