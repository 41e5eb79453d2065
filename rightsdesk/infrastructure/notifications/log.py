from __future__ import annotations

import logging

from ...domain.portal.models import Invitation
from ...domain.portal.repositories import InvitationNotifier
from ..metrics import metrics

logger = logging.getLogger(__name__)


class LogInvitationNotifier(InvitationNotifier):
    """Records reminders in the log when no delivery channel is configured."""

    async def send_reminder(self, invitation: Invitation, *, days_until_expiry: int, urgent: bool) -> None:
        logger.info(
            "Reminder for invitation %s to %s: %s day(s) left%s",
            invitation.id,
            invitation.email,
            days_until_expiry,
            " (final)" if urgent else "",
        )
        metrics.event(
            "invitation_reminder",
            source="portal",
            data={"invitation_id": invitation.id, "email": invitation.email, "urgent": urgent},
        )
