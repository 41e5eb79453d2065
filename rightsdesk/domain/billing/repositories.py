from __future__ import annotations

from datetime import datetime
from typing import Optional, Protocol, Sequence

from .models import CheckoutSession


class CheckoutSessionsRepository(Protocol):
    async def create(
        self,
        *,
        session_id: str,
        user_id: int,
        email: str,
        product_type: str,
        product_id: str,
        interval: str,
        product_name: str,
        amount_cents: int,
        currency: str,
        url: str,
        success_url: str,
        cancel_url: str,
        trial_days: int,
        trial_modules: Sequence[str],
        created_at: datetime,
    ) -> int: ...

    async def get(self, session_id: str) -> Optional[CheckoutSession]: ...

    async def list_for_user(self, user_id: int) -> list[CheckoutSession]: ...
