"""Image Processing for Photo Derivatives.

Turns an uploaded original into the two display derivatives:
- thumbnail: <=400px wide, baseline JPEG q80
- medium: <=1200px wide, progressive JPEG q85

Pipeline: input -> bytes -> decode + EXIF auto-orient -> copy x2 -> resize/encode
(both encodes run concurrently in worker threads).

Output format is always JPEG, whatever the input format was.
"""

import asyncio
import io
import logging
from dataclasses import dataclass

from PIL import Image, ImageOps

from photo_derivatives.config import THUMBNAIL_CONFIG, DerivativeSpec
from photo_derivatives.source import SourceInput, read_source

logger = logging.getLogger(__name__)

# Pillow reports camera multi-picture JPEGs as MPO; they are JPEG files.
_FORMAT_ALIASES = {"mpo": "jpeg"}

_JPEG_SAFE_MODES = ("RGB", "L")
_ALPHA_MODES = ("RGBA", "LA", "PA", "RGBa", "La")
_HIGH_BIT_GRAY_MODES = ("I", "I;16", "I;16B", "I;16L", "I;16N", "F")


class DecodeError(ValueError):
    """Input is empty or not a decodable raster image."""


@dataclass(frozen=True)
class SourceMetadata:
    """Oriented (post-rotation, pre-resize) source description."""

    width: int
    height: int
    format: str  # original encoding, e.g. "png", not the output "jpeg"


@dataclass
class DerivativeResult:
    """Encoded derivatives plus source metadata."""

    thumbnail_bytes: bytes
    medium_bytes: bytes
    metadata: SourceMetadata


def compute_target_size(width: int, height: int, target_width: int) -> tuple[int, int]:
    """Fit inside `target_width` without enlargement, preserving aspect ratio.

    Args:
        width: Oriented source width
        height: Oriented source height
        target_width: Maximum output width

    Returns:
        (out_width, out_height) with out_width = min(target_width, width)
        and out_height = round(out_width * height / width), at least 1px
    """
    if width <= 0 or height <= 0:
        raise DecodeError(f"Invalid source dimensions {width}x{height}")

    out_width = min(target_width, width)
    if out_width == width:
        return width, height

    out_height = int(out_width * height / width + 0.5)
    return out_width, max(1, out_height)


def _to_8bit_gray(image: Image.Image) -> Image.Image:
    """Scale 16/32-bit grayscale down to L; a plain convert would clip at 255."""
    if image.mode == "F":
        _, high = image.getextrema()
        if high <= 1.0:
            scale = 255.0
        elif high <= 255.0:
            scale = 1.0
        else:
            scale = 1 / 256
        return image.point(lambda v: v * scale).convert("L")

    return image.convert("I").point(lambda v: v * (1 / 256)).convert("L")


def _flatten_for_jpeg(image: Image.Image) -> Image.Image:
    """Convert to a JPEG-encodable mode, compositing alpha over white."""
    if image.mode in _JPEG_SAFE_MODES:
        return image

    if image.mode in _HIGH_BIT_GRAY_MODES:
        return _to_8bit_gray(image)
    if image.mode == "1":
        return image.convert("L")

    has_alpha = image.mode in _ALPHA_MODES or (
        image.mode == "P" and "transparency" in image.info
    )
    if has_alpha:
        rgba = image.convert("RGBA")
        background = Image.new("RGB", rgba.size, (255, 255, 255))
        background.paste(rgba, mask=rgba.getchannel("A"))
        return background

    return image.convert("RGB")


def render_derivative(image: Image.Image, spec: DerivativeSpec) -> bytes:
    """Encode an oriented image per `spec` as JPEG.

    The mode is normalized before resizing: Pillow falls back to NEAREST
    for palette and bilevel images, so they would not be antialiased.
    The caller hands over its own copy; nothing here is shared with the
    other derivative.
    """
    image = _flatten_for_jpeg(image)

    size = compute_target_size(image.width, image.height, spec.width)
    if size != image.size:
        image = image.resize(size, Image.Resampling.LANCZOS)

    output = io.BytesIO()
    image.save(
        output,
        format="JPEG",
        quality=spec.quality,
        progressive=spec.progressive,
        optimize=True,
    )
    return output.getvalue()


def decode_oriented(data: bytes) -> tuple[Image.Image, SourceMetadata]:
    """Decode `data` and apply EXIF orientation.

    Returns:
        (oriented image, metadata of the oriented image)

    Raises:
        DecodeError: empty buffer or bytes Pillow cannot decode
    """
    if not data:
        raise DecodeError("Cannot decode empty image buffer")

    try:
        with Image.open(io.BytesIO(data)) as raw:
            source_format = (raw.format or "unknown").lower()
            raw.load()
            oriented = ImageOps.exif_transpose(raw)
    except (OSError, SyntaxError, ValueError, Image.DecompressionBombError) as e:
        raise DecodeError(f"Cannot decode image ({len(data)} bytes): {e}") from e

    metadata = SourceMetadata(
        width=oriented.width,
        height=oriented.height,
        format=_FORMAT_ALIASES.get(source_format, source_format),
    )
    return oriented, metadata


async def generate_derivatives(source: SourceInput) -> DerivativeResult:
    """Generate thumbnail and medium JPEGs from an uploaded original.

    Accepts a buffer (preferred) or a byte stream; streams are drained
    first because the dual-output pipeline needs random access.

    Raises:
        DecodeError: input is empty or not an image
    """
    data = await read_source(source)
    base, metadata = await asyncio.to_thread(decode_oriented, data)

    thumbnail_bytes, medium_bytes = await asyncio.gather(
        asyncio.to_thread(render_derivative, base.copy(), THUMBNAIL_CONFIG.thumbnail),
        asyncio.to_thread(render_derivative, base.copy(), THUMBNAIL_CONFIG.medium),
    )

    logger.debug(
        f"Derivatives: {metadata.format} {metadata.width}x{metadata.height} -> "
        f"thumb {len(thumbnail_bytes)} bytes, medium {len(medium_bytes)} bytes"
    )

    return DerivativeResult(
        thumbnail_bytes=thumbnail_bytes,
        medium_bytes=medium_bytes,
        metadata=metadata,
    )
