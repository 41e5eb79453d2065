from __future__ import annotations

import logging
from datetime import timedelta
from typing import Any

from ...shared.repositories import Clock
from ..repositories import InvitationNotifier, InvitationsRepository, PortalAccessRepository
from .invitation_service import days_until

logger = logging.getLogger(__name__)

MAINTENANCE_ACTIONS = (
    "expire_invitations",
    "cleanup_expired",
    "send_reminders",
    "expire_access",
    "full_maintenance",
)
REMINDER_WINDOW_DAYS = 3
REMINDER_QUIET_HOURS = 24
CLEANUP_AFTER_DAYS = 30


class MaintenanceService:
    """Invitation and portal-access housekeeping.

    Each step records its own count, or an ``*_error`` entry when it fails, so
    one failing step does not stop the others.
    """

    def __init__(
        self,
        *,
        invitations: InvitationsRepository,
        access: PortalAccessRepository,
        notifier: InvitationNotifier,
        clock: Clock,
    ):
        self._invitations = invitations
        self._access = access
        self._notifier = notifier
        self._clock = clock

    async def run_maintenance(self, action: str = "full_maintenance", force_all: bool = False) -> dict[str, Any]:
        if action not in MAINTENANCE_ACTIONS:
            raise ValueError(f"Unknown maintenance action: {action}")
        full = action == "full_maintenance"
        results: dict[str, Any] = {}
        now = self._clock.now()

        if action == "expire_invitations" or full:
            try:
                results["expired_invitations"] = await self._invitations.expire_past_due(now)
            except Exception as exc:
                logger.exception("Expiring invitations failed")
                results["expire_error"] = str(exc)

        if action == "send_reminders" or full:
            try:
                sent, errors = await self._send_reminders()
                results["reminders_sent"] = sent
                results["reminder_errors"] = errors
            except Exception as exc:
                logger.exception("Loading invitations for reminders failed")
                results["reminder_error"] = str(exc)

        if action == "expire_access" or full:
            try:
                results["expired_access"] = await self._access.expire_past_due(now)
            except Exception as exc:
                logger.exception("Expiring portal access failed")
                results["access_expire_error"] = str(exc)

        if action == "cleanup_expired" or full:
            try:
                if action == "cleanup_expired" and force_all:
                    results["cleaned_invitations"] = await self._invitations.force_cleanup(now)
                else:
                    cutoff = now - timedelta(days=CLEANUP_AFTER_DAYS)
                    results["cleaned_invitations"] = await self._invitations.delete_expired_before(cutoff)
            except Exception as exc:
                logger.exception("Invitation cleanup failed")
                results["cleanup_error"] = str(exc)

        logger.info("Invitation maintenance %s finished: %s", action, results)
        return results

    async def _send_reminders(self) -> tuple[int, int]:
        now = self._clock.now()
        pending = await self._invitations.needing_reminders(
            now, within_days=REMINDER_WINDOW_DAYS, quiet_hours=REMINDER_QUIET_HOURS
        )
        sent = errors = 0
        for invitation in pending:
            days = max(days_until(invitation.expires_at, now), 0)
            try:
                await self._notifier.send_reminder(invitation, days_until_expiry=days, urgent=days <= 1)
                await self._invitations.mark_reminder_sent(invitation.id, now)
                sent += 1
            except Exception:
                logger.exception("Reminder for invitation %s failed", invitation.id)
                errors += 1
        return sent, errors
