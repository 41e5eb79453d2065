from __future__ import annotations

from typing import Any, Mapping, Optional, Protocol, Sequence

from .models import (
    Copyright,
    CopyrightExport,
    CopyrightPublisher,
    CopyrightRecording,
    CopyrightWriter,
)


class CopyrightsRepository(Protocol):
    async def next_sequence(self, user_id: int, year: int) -> int: ...

    async def create(self, user_id: int, internal_id: str, fields: Mapping[str, Any]) -> int: ...

    async def get(self, copyright_id: int) -> Optional[Copyright]: ...

    async def list_for_user(
        self,
        user_id: int,
        *,
        search: str | None = None,
        status: str | None = None,
        ids: Sequence[int] | None = None,
    ) -> list[Copyright]: ...

    async def update(self, copyright_id: int, fields: Mapping[str, Any]) -> None: ...

    async def delete(self, copyright_id: int) -> bool: ...

    async def add_writer(self, copyright_id: int, fields: Mapping[str, Any]) -> int: ...

    async def add_publisher(self, copyright_id: int, fields: Mapping[str, Any]) -> int: ...

    async def add_recording(self, copyright_id: int, fields: Mapping[str, Any]) -> int: ...

    async def list_writers(self, copyright_ids: Sequence[int]) -> list[CopyrightWriter]: ...

    async def list_publishers(self, copyright_ids: Sequence[int]) -> list[CopyrightPublisher]: ...

    async def list_recordings(self, copyright_ids: Sequence[int]) -> list[CopyrightRecording]: ...


class CopyrightExportsRepository(Protocol):
    async def add(
        self,
        *,
        user_id: int,
        filename: str,
        work_ids: Sequence[int],
        record_count: int,
        content: str,
    ) -> int: ...

    async def list_for_user(self, user_id: int, limit: int = 20) -> list[CopyrightExport]: ...
