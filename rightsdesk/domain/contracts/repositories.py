from __future__ import annotations

from datetime import date
from typing import Any, Mapping, Optional, Protocol, Sequence

from .models import Contract, ContractStatus


class ContractsRepository(Protocol):
    async def create(self, user_id: int, fields: Mapping[str, Any]) -> int: ...

    async def get(self, contract_id: int) -> Optional[Contract]: ...

    async def list_for_user(
        self,
        user_id: int,
        *,
        status: ContractStatus | None = None,
        contract_type: str | None = None,
        search: str | None = None,
        ids: Sequence[int] | None = None,
    ) -> list[Contract]: ...

    async def update(self, contract_id: int, fields: Mapping[str, Any]) -> None: ...

    async def delete(self, contract_id: int) -> bool: ...

    async def expire_before(self, today: date) -> int: ...
