from __future__ import annotations

from datetime import datetime
from typing import Any, Mapping, Optional, Protocol

from .models import AccessStatus, DataAssociation, Invitation, InvitationStatus, PortalAccess, VisibilityScope


class InvitationsRepository(Protocol):
    async def create(
        self,
        *,
        subscriber_user_id: int,
        email: str,
        role: str,
        permissions: Mapping[str, Any],
        token: str,
        expires_at: datetime,
        created_at: datetime,
    ) -> int: ...

    async def get(self, invitation_id: int) -> Optional[Invitation]: ...

    async def get_by_token(self, token: str) -> Optional[Invitation]: ...

    async def list_for_subscriber(self, subscriber_user_id: int) -> list[Invitation]: ...

    async def set_status(
        self,
        invitation_id: int,
        status: InvitationStatus,
        *,
        accepted_by: int | None = None,
        accepted_at: datetime | None = None,
    ) -> None: ...

    async def expire_past_due(self, now: datetime) -> int: ...

    async def needing_reminders(self, now: datetime, *, within_days: int, quiet_hours: int) -> list[Invitation]: ...

    async def mark_reminder_sent(self, invitation_id: int, now: datetime) -> None: ...

    async def delete_expired_before(self, cutoff: datetime) -> int: ...

    async def force_cleanup(self, now: datetime) -> int:
        """Marks past-due invitations expired, then deletes every expired or past-due one."""
        ...


class PortalAccessRepository(Protocol):
    async def grant(
        self,
        *,
        subscriber_user_id: int,
        client_user_id: int,
        role: str,
        permissions: Mapping[str, Any],
        expires_at: Optional[datetime],
        created_at: datetime,
    ) -> int: ...

    async def get(self, access_id: int) -> Optional[PortalAccess]: ...

    async def find(self, subscriber_user_id: int, client_user_id: int) -> Optional[PortalAccess]: ...

    async def list_for_client(self, client_user_id: int) -> list[PortalAccess]: ...

    async def list_for_subscriber(self, subscriber_user_id: int) -> list[PortalAccess]: ...

    async def set_status(self, access_id: int, status: AccessStatus) -> None: ...

    async def reactivate(self, access_id: int, *, role: str, permissions: Mapping[str, Any]) -> None: ...

    async def set_scope(self, access_id: int, scope: VisibilityScope) -> None: ...

    async def expire_past_due(self, now: datetime) -> int: ...


class AssociationsRepository(Protocol):
    async def assign(
        self,
        *,
        subscriber_user_id: int,
        client_user_id: int,
        data_type: str,
        data_id: int,
        created_at: datetime,
    ) -> bool: ...

    async def unassign(
        self, *, subscriber_user_id: int, client_user_id: int, data_type: str, data_id: int
    ) -> bool: ...

    async def list_ids(self, subscriber_user_id: int, client_user_id: int, data_type: str) -> list[int]: ...

    async def list_for_client(self, client_user_id: int) -> list[DataAssociation]: ...


class InvitationNotifier(Protocol):
    async def send_reminder(self, invitation: Invitation, *, days_until_expiry: int, urgent: bool) -> None: ...
