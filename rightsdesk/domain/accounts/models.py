from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum


class UserRole(Enum):
    ADMIN = "admin"
    SUBSCRIBER = "subscriber"
    CLIENT = "client"


@dataclass(frozen=True)
class User:
    id: int
    email: str
    full_name: str
    role: UserRole
    password_hash: str
    is_demo: bool = False
    avatar_url: str | None = None
    tg_user_id: int | None = None
    created_at: datetime | None = None

    @property
    def display_name(self) -> str:
        return self.full_name or self.email.split("@", 1)[0]


@dataclass(frozen=True)
class Session:
    token: str
    user_id: int
    expires_at: datetime

    def is_expired(self, now: datetime) -> bool:
        return self.expires_at <= now
