from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from typing import Any, Mapping, Optional

from ...accounts import User
from ...security.sanitize import validate_email
from ...shared.repositories import Clock, TokenGenerator
from ..models import Invitation, InvitationState, InvitationStatus
from ..repositories import InvitationsRepository, PortalAccessRepository

logger = logging.getLogger(__name__)

INVITATION_ROLES = ("client", "admin")
URGENT_DAYS = 3


class InviteStatus(Enum):
    CREATED = "created"
    INVALID_EMAIL = "invalid_email"
    INVALID_ROLE = "invalid_role"


@dataclass(frozen=True)
class InviteResult:
    status: InviteStatus
    invitation: Optional[Invitation] = None


class AcceptStatus(Enum):
    OK = "ok"
    NOT_FOUND = "not_found"
    NOT_PENDING = "not_pending"
    EXPIRED = "expired"
    EMAIL_MISMATCH = "email_mismatch"


@dataclass(frozen=True)
class AcceptResult:
    status: AcceptStatus
    access_id: Optional[int] = None
    invitation: Optional[Invitation] = None


def days_until(expires_at: datetime, now: datetime) -> int:
    return math.ceil((expires_at - now).total_seconds() / 86400)


def invitation_state(invitation: Invitation, now: datetime) -> InvitationState:
    """Effective status of an invitation; a pending one past its deadline reads as expired."""
    days = days_until(invitation.expires_at, now)
    status = invitation.status
    if status is InvitationStatus.PENDING and invitation.expires_at <= now:
        status = InvitationStatus.EXPIRED
    urgent = status is InvitationStatus.PENDING and days <= URGENT_DAYS
    return InvitationState(status=status, days_until_expiry=max(days, 0), is_urgent=urgent)


class InvitationService:
    def __init__(
        self,
        *,
        invitations: InvitationsRepository,
        access: PortalAccessRepository,
        tokens: TokenGenerator,
        clock: Clock,
        ttl_days: int = 7,
    ):
        self._invitations = invitations
        self._access = access
        self._tokens = tokens
        self._clock = clock
        self._ttl = timedelta(days=ttl_days)

    async def create_invitation(
        self,
        subscriber_user_id: int,
        email: str,
        *,
        role: str = "client",
        permissions: Mapping[str, Any] | None = None,
    ) -> InviteResult:
        email = (email or "").strip().lower()
        if not validate_email(email):
            return InviteResult(InviteStatus.INVALID_EMAIL)
        if role not in INVITATION_ROLES:
            return InviteResult(InviteStatus.INVALID_ROLE)
        now = self._clock.now()
        invitation_id = await self._invitations.create(
            subscriber_user_id=subscriber_user_id,
            email=email,
            role=role,
            permissions=dict(permissions or {}),
            token=self._tokens.token(),
            expires_at=now + self._ttl,
            created_at=now,
        )
        logger.info("Invitation %s created by subscriber %s", invitation_id, subscriber_user_id)
        return InviteResult(InviteStatus.CREATED, invitation=await self._invitations.get(invitation_id))

    async def accept_invitation(self, token: str, user: User) -> AcceptResult:
        invitation = await self._invitations.get_by_token(token)
        if not invitation:
            return AcceptResult(AcceptStatus.NOT_FOUND)
        if invitation.status is not InvitationStatus.PENDING:
            return AcceptResult(AcceptStatus.NOT_PENDING, invitation=invitation)
        now = self._clock.now()
        if invitation.expires_at <= now:
            await self._invitations.set_status(invitation.id, InvitationStatus.EXPIRED)
            return AcceptResult(AcceptStatus.EXPIRED, invitation=invitation)
        if invitation.email.lower() != (user.email or "").lower():
            return AcceptResult(AcceptStatus.EMAIL_MISMATCH, invitation=invitation)

        existing = await self._access.find(invitation.subscriber_user_id, user.id)
        if existing:
            access_id = existing.id
            await self._access.reactivate(access_id, role=invitation.role, permissions=invitation.permissions)
        else:
            access_id = await self._access.grant(
                subscriber_user_id=invitation.subscriber_user_id,
                client_user_id=user.id,
                role=invitation.role,
                permissions=invitation.permissions,
                expires_at=None,
                created_at=now,
            )
        await self._invitations.set_status(
            invitation.id, InvitationStatus.ACCEPTED, accepted_by=user.id, accepted_at=now
        )
        logger.info("Invitation %s accepted by user %s", invitation.id, user.id)
        return AcceptResult(AcceptStatus.OK, access_id=access_id, invitation=invitation)

    async def revoke_invitation(self, invitation_id: int) -> bool:
        invitation = await self._invitations.get(invitation_id)
        if not invitation or invitation.status is not InvitationStatus.PENDING:
            return False
        await self._invitations.set_status(invitation_id, InvitationStatus.REVOKED)
        return True

    async def list_invitations(self, subscriber_user_id: int) -> list[Invitation]:
        return await self._invitations.list_for_subscriber(subscriber_user_id)

    def invitation_state(self, invitation: Invitation) -> InvitationState:
        return invitation_state(invitation, self._clock.now())
