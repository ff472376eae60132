"""Photo Derivatives Configuration.

Settings for storage backends and pipeline bounds, plus the fixed
thumbnail/medium encoding specs and the storage key builders.
"""

from dataclasses import dataclass
from functools import lru_cache
from typing import Optional

from pydantic_settings import BaseSettings


class DerivativesSettings(BaseSettings):
    """Derivative pipeline settings (env vars or .env)."""

    # ==========================================================================
    # Storage backend
    # ==========================================================================

    DERIVATIVES_STORAGE_BACKEND: str = "supabase"  # supabase | r2 | memory
    DERIVATIVES_BUCKET: str = "photos"

    # Supabase Storage
    SUPABASE_URL: str = ""  # https://<project>.supabase.co
    SUPABASE_SERVICE_ROLE_KEY: str = ""

    # Cloudflare R2 (S3-compatible)
    DERIVATIVES_R2_ENDPOINT_URL: str = ""  # https://<account_id>.r2.cloudflarestorage.com
    DERIVATIVES_R2_ACCESS_KEY_ID: str = ""
    DERIVATIVES_R2_SECRET_ACCESS_KEY: str = ""

    # Public URL base for backends without their own public URL scheme (R2 + CDN)
    DERIVATIVES_PUBLIC_BASE_URL: str = ""
    # True when the base already points at one bucket (e.g. an r2.dev domain)
    DERIVATIVES_PUBLIC_URL_BUCKET_SCOPED: bool = False

    # ==========================================================================
    # Bounds
    # ==========================================================================

    DERIVATIVES_HTTP_TIMEOUT_SECONDS: float = 30.0
    # Whole-pipeline bound. Unset = no bound (request lifecycle owns deadlines)
    DERIVATIVES_TIMEOUT_SECONDS: Optional[float] = None

    # Backfill: photos processed concurrently per batch (caps Pillow memory)
    DERIVATIVES_BACKFILL_BATCH_SIZE: int = 3

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"


@lru_cache
def get_derivatives_settings() -> DerivativesSettings:
    """Get cached derivatives settings instance."""
    return DerivativesSettings()


# ==========================================================================
# Derivative specs
# ==========================================================================


@dataclass(frozen=True)
class DerivativeSpec:
    """Encoding policy for one derivative."""

    width: int  # max output width; never upscaled
    quality: int
    progressive: bool


@dataclass(frozen=True)
class ThumbnailConfig:
    thumbnail: DerivativeSpec
    medium: DerivativeSpec


# Thumbnail output is ~30KB, progressive scans add nothing at that size.
# Medium output is ~200KB and benefits from incremental rendering.
THUMBNAIL_CONFIG = ThumbnailConfig(
    thumbnail=DerivativeSpec(width=400, quality=80, progressive=False),
    medium=DerivativeSpec(width=1200, quality=85, progressive=True),
)

DERIVATIVE_CONTENT_TYPE = "image/jpeg"


# ==========================================================================
# Storage Key Builders
# ==========================================================================


def build_thumbnail_key(base_path: str, filename: str) -> str:
    """Build storage key for the thumbnail derivative.

    Args:
        base_path: Directory of the original (e.g. "user123/gallery456")
        filename: Original filename, kept as-is (extension included)

    Returns:
        Key: {base_path}/thumb/{filename}
    """
    return f"{base_path}/thumb/{filename}"


def build_medium_key(base_path: str, filename: str) -> str:
    """Build storage key for the medium derivative.

    Returns:
        Key: {base_path}/medium/{filename}
    """
    return f"{base_path}/medium/{filename}"
