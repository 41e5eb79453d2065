from __future__ import annotations

from datetime import datetime
from typing import Optional, Protocol

from .models import Session, User, UserRole


class AccountsRepository(Protocol):
    async def create_user(
        self,
        *,
        email: str,
        password_hash: str,
        full_name: str,
        role: UserRole,
        is_demo: bool = False,
    ) -> int: ...

    async def get_user(self, user_id: int) -> Optional[User]: ...

    async def get_by_email(self, email: str) -> Optional[User]: ...

    async def get_by_telegram(self, tg_user_id: int) -> Optional[User]: ...

    async def update_password(self, user_id: int, password_hash: str) -> None: ...

    async def set_avatar(self, user_id: int, avatar_url: Optional[str]) -> None: ...

    async def link_telegram(self, user_id: int, tg_user_id: int) -> None: ...


class SessionsRepository(Protocol):
    async def create(self, session: Session) -> None: ...

    async def get(self, token: str) -> Optional[Session]: ...

    async def delete(self, token: str) -> None: ...

    async def delete_for_user(self, user_id: int) -> int: ...


class OneTimeTokensRepository(Protocol):
    """Password reset and chat link tokens, keyed by ``purpose``."""

    async def create(self, *, token: str, purpose: str, user_id: int, expires_at: datetime) -> None: ...

    async def consume(self, *, token: str, purpose: str, now: datetime) -> Optional[int]: ...
