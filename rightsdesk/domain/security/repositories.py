from __future__ import annotations

from datetime import datetime
from typing import Any, Optional, Protocol, Sequence

from .models import RateLimitEntry, SecurityEvent, Severity


class RateLimitRepository(Protocol):
    async def get(self, identifier: str, action_type: str) -> Optional[RateLimitEntry]: ...

    async def save(self, entry: RateLimitEntry) -> None: ...

    async def purge_older_than(self, cutoff: datetime) -> int: ...


class SecurityEventsRepository(Protocol):
    async def add(
        self,
        *,
        event_type: str,
        severity: Severity,
        created_at: datetime,
        user_id: Optional[int],
        event_data: dict[str, Any],
        ip_address: Optional[str],
        user_agent: Optional[str],
    ) -> int: ...

    async def list_recent(self, limit: int, *, severity: Optional[Severity] = None) -> Sequence[SecurityEvent]: ...
