from __future__ import annotations

from typing import Protocol

from ..models import StoredBlob


class BlobStorage(Protocol):
    async def upload(
        self,
        bucket: str,
        owner_id: int,
        filename: str,
        data: bytes,
        content_type: str,
    ) -> StoredBlob: ...

    async def delete(self, path: str) -> bool: ...

    def public_url(self, path: str) -> str: ...


class RemoteFetcher(Protocol):
    async def fetch(self, url: str) -> bytes | None: ...

    async def close(self) -> None: ...
