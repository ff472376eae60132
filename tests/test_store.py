"""Tests for derivative uploads and URL resolution."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from photo_derivatives.config import build_medium_key, build_thumbnail_key
from photo_derivatives.storage.base import UploadResult
from photo_derivatives.storage.memory import InMemoryStorageClient
from photo_derivatives.store import StoredThumbnails, UploadError, store_thumbnails


def _mock_client(thumb_result=None, medium_result=None):
    """Mock storage client; results default to success."""
    results = {
        "thumb": thumb_result or UploadResult(),
        "medium": medium_result or UploadResult(),
    }

    async def upload(bucket, key, data, *, content_type, upsert=False):
        outcome = results["thumb" if "/thumb/" in key else "medium"]
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    client = MagicMock()
    client.upload = AsyncMock(side_effect=upload)
    client.get_public_url = MagicMock(
        side_effect=lambda bucket, key: f"https://cdn.test/{bucket}/{key}"
    )
    return client


class TestKeyBuilders:
    """Storage key layout."""

    def test_thumbnail_key(self):
        assert build_thumbnail_key("user123/gallery456", "photo.jpg") == "user123/gallery456/thumb/photo.jpg"

    def test_medium_key(self):
        assert build_medium_key("user123/gallery456", "photo.jpg") == "user123/gallery456/medium/photo.jpg"

    def test_filename_extension_kept(self):
        assert build_thumbnail_key("g/1", "scan.png") == "g/1/thumb/scan.png"


class TestStoreThumbnails:
    """store_thumbnails behaviour."""

    @pytest.mark.asyncio
    async def test_uploads_both_keys_with_upsert(self):
        client = _mock_client()

        result = await store_thumbnails(
            client, "photos", "user123/gallery456", "photo.jpg", b"thumb", b"medium"
        )

        assert client.upload.await_count == 2
        calls = {c.args[1]: c for c in client.upload.await_args_list}
        assert set(calls) == {
            "user123/gallery456/thumb/photo.jpg",
            "user123/gallery456/medium/photo.jpg",
        }
        for call in calls.values():
            assert call.args[0] == "photos"
            assert call.kwargs == {"content_type": "image/jpeg", "upsert": True}
        assert calls["user123/gallery456/thumb/photo.jpg"].args[2] == b"thumb"
        assert calls["user123/gallery456/medium/photo.jpg"].args[2] == b"medium"

        assert "user123/gallery456/thumb/photo.jpg" in result.thumbnail_url
        assert "user123/gallery456/medium/photo.jpg" in result.medium_url

    @pytest.mark.asyncio
    async def test_urls_come_from_backend(self):
        client = _mock_client()
        result = await store_thumbnails(client, "photos", "a/b", "c.jpg", b"t", b"m")

        assert result == StoredThumbnails(
            thumbnail_url="https://cdn.test/photos/a/b/thumb/c.jpg",
            medium_url="https://cdn.test/photos/a/b/medium/c.jpg",
        )
        assert client.get_public_url.call_count == 2

    @pytest.mark.asyncio
    async def test_content_type_is_jpeg_for_png_filename(self):
        client = _mock_client()
        await store_thumbnails(client, "photos", "a/b", "scan.png", b"t", b"m")
        for call in client.upload.await_args_list:
            assert call.kwargs["content_type"] == "image/jpeg"

    @pytest.mark.asyncio
    async def test_thumbnail_failure(self):
        client = _mock_client(thumb_result=UploadResult(error="Bucket not found"))

        with pytest.raises(UploadError, match="Thumbnail upload failed: Bucket not found"):
            await store_thumbnails(client, "photos", "a/b", "c.jpg", b"t", b"m")
        client.get_public_url.assert_not_called()

    @pytest.mark.asyncio
    async def test_medium_failure(self):
        client = _mock_client(medium_result=UploadResult(error="Payload too large"))

        with pytest.raises(UploadError, match="Medium upload failed: Payload too large"):
            await store_thumbnails(client, "photos", "a/b", "c.jpg", b"t", b"m")
        client.get_public_url.assert_not_called()

    @pytest.mark.asyncio
    async def test_both_attempted_when_thumbnail_fails(self):
        client = _mock_client(thumb_result=UploadResult(error="boom"))

        with pytest.raises(UploadError):
            await store_thumbnails(client, "photos", "a/b", "c.jpg", b"t", b"m")
        assert client.upload.await_count == 2

    @pytest.mark.asyncio
    async def test_client_exception_is_named(self):
        client = _mock_client(medium_result=ConnectionError("socket closed"))

        with pytest.raises(UploadError, match="Medium upload failed: socket closed"):
            await store_thumbnails(client, "photos", "a/b", "c.jpg", b"t", b"m")

    @pytest.mark.asyncio
    async def test_rerun_overwrites(self):
        """Second run on the same key succeeds (idempotent upsert)."""
        client = InMemoryStorageClient(public_base_url="https://cdn.test")

        first = await store_thumbnails(client, "photos", "a/b", "c.jpg", b"t1", b"m1")
        second = await store_thumbnails(client, "photos", "a/b", "c.jpg", b"t2", b"m2")

        assert first == second
        assert client.objects[("photos", "a/b/thumb/c.jpg")].data == b"t2"
        assert client.objects[("photos", "a/b/medium/c.jpg")].data == b"m2"
        assert all(call["upsert"] for call in client.upload_calls)
