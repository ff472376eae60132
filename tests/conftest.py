"""Shared fixtures: in-memory test images and storage."""

import io
from typing import Optional

import pytest
from PIL import Image, ImageDraw

from photo_derivatives.config import get_derivatives_settings
from photo_derivatives.storage.memory import InMemoryStorageClient

EXIF_ORIENTATION_TAG = 0x0112


def _encode_image(
    width: int,
    height: int,
    fmt: str = "JPEG",
    mode: str = "RGB",
    orientation: Optional[int] = None,
) -> bytes:
    img = Image.new("RGB", (width, height), (200, 80, 40))

    # Stripes so encoders produce non-trivial scans
    draw = ImageDraw.Draw(img)
    step = max(2, width // 20)
    for x in range(0, width, step):
        draw.line([(x, 0), (x, height - 1)], fill=(x % 256, 255 - x % 256, 90), width=1)

    if mode == "RGBA":
        img = img.convert("RGBA")
        img.putalpha(128)
    elif mode != "RGB":
        img = img.convert(mode)

    save_kwargs = {}
    if orientation is not None:
        exif = Image.Exif()
        exif[EXIF_ORIENTATION_TAG] = orientation
        save_kwargs["exif"] = exif.tobytes()

    buf = io.BytesIO()
    img.save(buf, format=fmt, **save_kwargs)
    return buf.getvalue()


@pytest.fixture
def make_image():
    """Factory: make_image(width, height, fmt="JPEG", mode="RGB", orientation=None) -> bytes."""
    return _encode_image


@pytest.fixture
def memory_storage():
    return InMemoryStorageClient(public_base_url="https://cdn.test")


@pytest.fixture(autouse=True)
def _fresh_settings():
    """Settings are lru_cached; keep env changes from leaking between tests."""
    get_derivatives_settings.cache_clear()
    yield
    get_derivatives_settings.cache_clear()
