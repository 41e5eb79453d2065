from __future__ import annotations

import logging
from datetime import timedelta
from typing import Any, Optional, Sequence

from ...shared.repositories import Clock
from ..models import RateLimitEntry, SecurityEvent, Severity
from ..repositories import RateLimitRepository, SecurityEventsRepository
from ..sanitize import sanitize_log_data

logger = logging.getLogger(__name__)


class SecurityService:
    """
    Rate limiting and the security audit trail.

    Every recorded event lands in the events table and, via ``audit``, in the
    security JSON-lines log.
    """

    def __init__(
        self,
        *,
        rate_limits: RateLimitRepository,
        events: SecurityEventsRepository,
        clock: Clock,
        audit=None,
    ):
        self._rate_limits = rate_limits
        self._events = events
        self._clock = clock
        self._audit = audit

    async def check_rate_limit(
        self,
        identifier: str,
        action_type: str,
        max_attempts: int = 5,
        window_minutes: int = 15,
        block_minutes: int = 30,
    ) -> bool:
        now = self._clock.now()
        entry = await self._rate_limits.get(identifier, action_type)
        if entry and entry.is_blocked(now):
            return False

        if entry is None or now - entry.first_attempt > timedelta(minutes=window_minutes):
            await self._rate_limits.save(
                RateLimitEntry(
                    identifier=identifier,
                    action_type=action_type,
                    attempt_count=1,
                    first_attempt=now,
                    last_attempt=now,
                )
            )
            return True

        attempts = entry.attempt_count + 1
        blocked_until = None
        if attempts > max_attempts:
            blocked_until = now + timedelta(minutes=block_minutes)
        await self._rate_limits.save(
            RateLimitEntry(
                identifier=identifier,
                action_type=action_type,
                attempt_count=attempts,
                first_attempt=entry.first_attempt,
                last_attempt=now,
                blocked_until=blocked_until,
            )
        )
        if blocked_until is not None:
            logger.warning("Rate limit exceeded for %s on %s", identifier, action_type)
            await self.log_security_event(
                "rate_limit_exceeded",
                Severity.MEDIUM,
                event_data={"identifier": identifier, "action_type": action_type, "attempts": attempts},
            )
            return False
        return True

    async def log_security_event(
        self,
        event_type: str,
        severity: Severity | str = Severity.LOW,
        *,
        user_id: Optional[int] = None,
        event_data: Optional[dict[str, Any]] = None,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> int:
        level = severity if isinstance(severity, Severity) else Severity(severity)
        data = sanitize_log_data(dict(event_data or {}))
        event_id = await self._events.add(
            event_type=event_type,
            severity=level,
            created_at=self._clock.now(),
            user_id=user_id,
            event_data=data,
            ip_address=ip_address,
            user_agent=user_agent,
        )
        if self._audit is not None:
            self._audit.event(
                event_type,
                source="security",
                data={"severity": level.value, "user_id": user_id, "ip_address": ip_address, **data},
            )
        return event_id

    async def recent_events(self, limit: int = 50, *, severity: Optional[Severity] = None) -> Sequence[SecurityEvent]:
        return await self._events.list_recent(limit, severity=severity)

    async def purge_rate_limits(self, older_than_hours: int = 24) -> int:
        cutoff = self._clock.now() - timedelta(hours=older_than_hours)
        return await self._rate_limits.purge_older_than(cutoff)
