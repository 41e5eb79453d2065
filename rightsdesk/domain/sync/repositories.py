from __future__ import annotations

from typing import Any, Mapping, Optional, Protocol, Sequence

from .models import SyncLicense


class SyncLicensesRepository(Protocol):
    async def next_sequence(self, user_id: int, year: int) -> int: ...

    async def create(self, user_id: int, synch_id: str, fields: Mapping[str, Any]) -> int: ...

    async def get(self, license_id: int) -> Optional[SyncLicense]: ...

    async def list_for_user(
        self,
        user_id: int,
        *,
        status: str | None = None,
        media_type: str | None = None,
        search: str | None = None,
        ids: Sequence[int] | None = None,
    ) -> list[SyncLicense]: ...

    async def update(self, license_id: int, fields: Mapping[str, Any]) -> None: ...

    async def delete(self, license_id: int) -> bool: ...
