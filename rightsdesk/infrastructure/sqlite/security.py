from __future__ import annotations

from datetime import datetime
from typing import Any, Optional, Sequence

from ...domain.security.models import RateLimitEntry, SecurityEvent, Severity
from ...domain.security.repositories import RateLimitRepository, SecurityEventsRepository
from ..mappers import dump_json, rate_limit_from_row, security_event_from_row, to_iso
from ..metrics import metrics
from .database import SQLiteDatabase


class SQLiteRateLimitRepository(RateLimitRepository):
    def __init__(self, db: SQLiteDatabase):
        self._db = db

    @metrics.wrap_async("db:rate_limits.get", source="database")
    async def get(self, identifier: str, action_type: str) -> Optional[RateLimitEntry]:
        async with self._db.connect() as conn:
            cur = await conn.execute(
                """
                SELECT identifier, action_type, attempt_count, first_attempt, last_attempt, blocked_until
                FROM rate_limits
                WHERE identifier=? AND action_type=?
                """,
                (identifier, action_type),
            )
            row = await cur.fetchone()
        return rate_limit_from_row(dict(row)) if row else None

    @metrics.wrap_async("db:rate_limits.save", source="database")
    async def save(self, entry: RateLimitEntry) -> None:
        async with self._db.connect() as conn:
            await conn.execute(
                """
                INSERT INTO rate_limits(identifier, action_type, attempt_count, first_attempt, last_attempt, blocked_until)
                VALUES(?, ?, ?, ?, ?, ?)
                ON CONFLICT(identifier, action_type) DO UPDATE SET
                  attempt_count=excluded.attempt_count,
                  first_attempt=excluded.first_attempt,
                  last_attempt=excluded.last_attempt,
                  blocked_until=excluded.blocked_until
                """,
                (
                    entry.identifier,
                    entry.action_type,
                    entry.attempt_count,
                    to_iso(entry.first_attempt),
                    to_iso(entry.last_attempt),
                    to_iso(entry.blocked_until),
                ),
            )
            await conn.commit()

    @metrics.wrap_async("db:rate_limits.purge", source="database")
    async def purge_older_than(self, cutoff: datetime) -> int:
        stamp = to_iso(cutoff)
        async with self._db.connect() as conn:
            cur = await conn.execute(
                """
                DELETE FROM rate_limits
                WHERE last_attempt < ? AND (blocked_until IS NULL OR blocked_until < ?)
                """,
                (stamp, stamp),
            )
            await conn.commit()
            return cur.rowcount


class SQLiteSecurityEventsRepository(SecurityEventsRepository):
    def __init__(self, db: SQLiteDatabase):
        self._db = db

    @metrics.wrap_async("db:security_events.add", source="database")
    async def add(
        self,
        *,
        event_type: str,
        severity: Severity,
        created_at: datetime,
        user_id: Optional[int],
        event_data: dict[str, Any],
        ip_address: Optional[str],
        user_agent: Optional[str],
    ) -> int:
        async with self._db.connect() as conn:
            cur = await conn.execute(
                """
                INSERT INTO security_events(event_type, severity, user_id, event_data, ip_address, user_agent, created_at)
                VALUES(?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    event_type,
                    severity.value,
                    user_id,
                    dump_json(event_data),
                    ip_address,
                    user_agent,
                    to_iso(created_at),
                ),
            )
            await conn.commit()
            return int(cur.lastrowid)

    @metrics.wrap_async("db:security_events.list_recent", source="database")
    async def list_recent(self, limit: int, *, severity: Optional[Severity] = None) -> Sequence[SecurityEvent]:
        query = "SELECT * FROM security_events"
        params: list[Any] = []
        if severity is not None:
            query += " WHERE severity=?"
            params.append(severity.value)
        query += " ORDER BY created_at DESC, id DESC LIMIT ?"
        params.append(limit)
        async with self._db.connect() as conn:
            cur = await conn.execute(query, params)
            rows = await cur.fetchall()
        return [security_event_from_row(dict(row)) for row in rows]
