from __future__ import annotations

from typing import Protocol

from .revenue import RevenueSource


class RevenueSourcesRepository(Protocol):
    async def add(self, user_id: int, source: RevenueSource) -> int: ...

    async def list_for_user(self, user_id: int) -> list[RevenueSource]: ...

    async def delete(self, user_id: int, source_id: int) -> bool: ...
