from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Mapping, Optional

DATA_TYPES = ("copyright", "contract", "royalty_allocation", "sync_license")
SCOPE_TYPES = ("all", "artist", "label", "custom")


class InvitationStatus(Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    EXPIRED = "expired"
    REVOKED = "revoked"


class AccessStatus(Enum):
    ACTIVE = "active"
    REVOKED = "revoked"
    EXPIRED = "expired"


@dataclass(frozen=True)
class VisibilityScope:
    scope_type: str = "all"
    artists: tuple[str, ...] = ()
    labels: tuple[str, ...] = ()
    work_ids: tuple[int, ...] = ()
    contract_ids: tuple[int, ...] = ()
    sync_ids: tuple[int, ...] = ()
    royalty_ids: tuple[int, ...] = ()

    def __post_init__(self):
        if self.scope_type not in SCOPE_TYPES:
            raise ValueError(f"Unknown visibility scope: {self.scope_type}")

    def to_dict(self) -> dict[str, Any]:
        return {
            "scope_type": self.scope_type,
            "artists": list(self.artists),
            "labels": list(self.labels),
            "work_ids": list(self.work_ids),
            "contract_ids": list(self.contract_ids),
            "sync_ids": list(self.sync_ids),
            "royalty_ids": list(self.royalty_ids),
        }

    @classmethod
    def from_dict(cls, data: Optional[Mapping[str, Any]]) -> "VisibilityScope":
        if not data:
            return cls()
        return cls(
            scope_type=data.get("scope_type") or "all",
            artists=tuple(data.get("artists") or ()),
            labels=tuple(data.get("labels") or ()),
            work_ids=tuple(int(i) for i in data.get("work_ids") or ()),
            contract_ids=tuple(int(i) for i in data.get("contract_ids") or ()),
            sync_ids=tuple(int(i) for i in data.get("sync_ids") or ()),
            royalty_ids=tuple(int(i) for i in data.get("royalty_ids") or ()),
        )


@dataclass(frozen=True)
class Invitation:
    id: int
    subscriber_user_id: int
    email: str
    token: str
    expires_at: datetime
    role: str = "client"
    permissions: dict[str, Any] = field(default_factory=dict)
    status: InvitationStatus = InvitationStatus.PENDING
    reminder_count: int = 0
    reminder_sent_at: Optional[datetime] = None
    accepted_at: Optional[datetime] = None
    accepted_by: Optional[int] = None
    created_at: Optional[datetime] = None


@dataclass(frozen=True)
class PortalAccess:
    id: int
    subscriber_user_id: int
    client_user_id: int
    role: str = "client"
    status: AccessStatus = AccessStatus.ACTIVE
    permissions: dict[str, Any] = field(default_factory=dict)
    visibility_scope: VisibilityScope = field(default_factory=VisibilityScope)
    expires_at: Optional[datetime] = None
    created_at: Optional[datetime] = None

    def is_active(self, now: datetime) -> bool:
        if self.status is not AccessStatus.ACTIVE:
            return False
        return self.expires_at is None or self.expires_at > now


@dataclass(frozen=True)
class DataAssociation:
    id: int
    subscriber_user_id: int
    client_user_id: int
    data_type: str
    data_id: int
    created_at: Optional[datetime] = None


@dataclass(frozen=True)
class InvitationState:
    status: InvitationStatus
    days_until_expiry: int
    is_urgent: bool
