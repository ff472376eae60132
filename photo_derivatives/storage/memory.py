"""In-memory storage backend (tests and local runs)."""

from dataclasses import dataclass
from typing import Optional
from urllib.parse import quote

from photo_derivatives.storage.base import UploadResult


@dataclass
class StoredObject:
    data: bytes
    content_type: str


class InMemoryStorageClient:
    """Dict-backed storage honouring upsert semantics.

    `failing_keys` maps object keys to an error message; uploads to those
    keys fail with that message.
    """

    def __init__(
        self,
        public_base_url: str = "memory://storage",
        failing_keys: Optional[dict[str, str]] = None,
    ):
        self.public_base_url = public_base_url.rstrip("/")
        self.failing_keys = dict(failing_keys or {})
        self.objects: dict[tuple[str, str], StoredObject] = {}
        self.upload_calls: list[dict] = []

    async def upload(
        self,
        bucket: str,
        key: str,
        data: bytes,
        *,
        content_type: str,
        upsert: bool = False,
    ) -> UploadResult:
        self.upload_calls.append(
            {"bucket": bucket, "key": key, "content_type": content_type, "upsert": upsert}
        )
        if key in self.failing_keys:
            return UploadResult(error=self.failing_keys[key])
        if not upsert and (bucket, key) in self.objects:
            return UploadResult(error="The resource already exists")

        self.objects[(bucket, key)] = StoredObject(data=bytes(data), content_type=content_type)
        return UploadResult()

    async def download(self, bucket: str, key: str) -> Optional[bytes]:
        stored = self.objects.get((bucket, key))
        return stored.data if stored else None

    def get_public_url(self, bucket: str, key: str) -> str:
        return f"{self.public_base_url}/{quote(bucket)}/{quote(key)}"
