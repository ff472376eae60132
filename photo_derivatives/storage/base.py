"""Storage client interfaces used by the derivative pipeline.

Kept small and SDK-agnostic so tests can supply simple fakes.
"""

from dataclasses import dataclass
from typing import Optional, Protocol, runtime_checkable


@dataclass(frozen=True)
class UploadResult:
    """Outcome of a single object write (error is None on success)."""

    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


@runtime_checkable
class StorageClient(Protocol):
    """Write objects to a bucket and resolve their public URLs."""

    async def upload(
        self,
        bucket: str,
        key: str,
        data: bytes,
        *,
        content_type: str,
        upsert: bool = False,
    ) -> UploadResult: ...

    def get_public_url(self, bucket: str, key: str) -> str: ...


@runtime_checkable
class DownloadableStorage(StorageClient, Protocol):
    """Storage client that can also read objects back (backfill only)."""

    async def download(self, bucket: str, key: str) -> Optional[bytes]: ...
