from __future__ import annotations

from datetime import datetime, timedelta
from typing import Any, Mapping, Optional

from ...domain.portal.models import (
    AccessStatus,
    DataAssociation,
    Invitation,
    InvitationStatus,
    PortalAccess,
    VisibilityScope,
)
from ...domain.portal.repositories import (
    AssociationsRepository,
    InvitationsRepository,
    PortalAccessRepository,
)
from ..mappers import access_from_row, association_from_row, dump_json, invitation_from_row, to_iso
from ..metrics import metrics
from .database import SQLiteDatabase


class SQLiteInvitationsRepository(InvitationsRepository):
    def __init__(self, db: SQLiteDatabase):
        self._db = db

    @metrics.wrap_async("db:client_invitations.create", source="database")
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
    ) -> int:
        async with self._db.connect() as conn:
            cur = await conn.execute(
                """
                INSERT INTO client_invitations(subscriber_user_id, email, role, permissions, token, expires_at, created_at)
                VALUES(?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    subscriber_user_id,
                    email,
                    role,
                    dump_json(dict(permissions)),
                    token,
                    to_iso(expires_at),
                    to_iso(created_at),
                ),
            )
            await conn.commit()
            return int(cur.lastrowid)

    async def _one(self, where: str, params: tuple) -> Optional[Invitation]:
        async with self._db.connect() as conn:
            cur = await conn.execute(f"SELECT * FROM client_invitations WHERE {where}", params)
            row = await cur.fetchone()
        return invitation_from_row(dict(row)) if row else None

    @metrics.wrap_async("db:client_invitations.get", source="database")
    async def get(self, invitation_id: int) -> Optional[Invitation]:
        return await self._one("id=?", (invitation_id,))

    @metrics.wrap_async("db:client_invitations.get_by_token", source="database")
    async def get_by_token(self, token: str) -> Optional[Invitation]:
        return await self._one("token=?", (token,))

    @metrics.wrap_async("db:client_invitations.list", source="database")
    async def list_for_subscriber(self, subscriber_user_id: int) -> list[Invitation]:
        async with self._db.connect() as conn:
            cur = await conn.execute(
                "SELECT * FROM client_invitations WHERE subscriber_user_id=? ORDER BY created_at DESC, id DESC",
                (subscriber_user_id,),
            )
            rows = await cur.fetchall()
        return [invitation_from_row(dict(row)) for row in rows]

    @metrics.wrap_async("db:client_invitations.set_status", source="database")
    async def set_status(
        self,
        invitation_id: int,
        status: InvitationStatus,
        *,
        accepted_by: int | None = None,
        accepted_at: datetime | None = None,
    ) -> None:
        async with self._db.connect() as conn:
            await conn.execute(
                """
                UPDATE client_invitations
                SET status=?, accepted_by=COALESCE(?, accepted_by), accepted_at=COALESCE(?, accepted_at)
                WHERE id=?
                """,
                (status.value, accepted_by, to_iso(accepted_at), invitation_id),
            )
            await conn.commit()

    @metrics.wrap_async("db:client_invitations.expire", source="database")
    async def expire_past_due(self, now: datetime) -> int:
        async with self._db.connect() as conn:
            cur = await conn.execute(
                "UPDATE client_invitations SET status=? WHERE status=? AND expires_at <= ?",
                (InvitationStatus.EXPIRED.value, InvitationStatus.PENDING.value, to_iso(now)),
            )
            await conn.commit()
            return cur.rowcount

    @metrics.wrap_async("db:client_invitations.needing_reminders", source="database")
    async def needing_reminders(self, now: datetime, *, within_days: int, quiet_hours: int) -> list[Invitation]:
        async with self._db.connect() as conn:
            cur = await conn.execute(
                """
                SELECT * FROM client_invitations
                WHERE status=?
                  AND expires_at > ?
                  AND expires_at <= ?
                  AND (reminder_sent_at IS NULL OR reminder_sent_at < ?)
                ORDER BY expires_at
                """,
                (
                    InvitationStatus.PENDING.value,
                    to_iso(now),
                    to_iso(now + timedelta(days=within_days)),
                    to_iso(now - timedelta(hours=quiet_hours)),
                ),
            )
            rows = await cur.fetchall()
        return [invitation_from_row(dict(row)) for row in rows]

    @metrics.wrap_async("db:client_invitations.mark_reminder_sent", source="database")
    async def mark_reminder_sent(self, invitation_id: int, now: datetime) -> None:
        async with self._db.connect() as conn:
            await conn.execute(
                """
                UPDATE client_invitations
                SET reminder_count=reminder_count + 1, reminder_sent_at=?
                WHERE id=?
                """,
                (to_iso(now), invitation_id),
            )
            await conn.commit()

    @metrics.wrap_async("db:client_invitations.cleanup", source="database")
    async def delete_expired_before(self, cutoff: datetime) -> int:
        async with self._db.connect() as conn:
            cur = await conn.execute(
                "DELETE FROM client_invitations WHERE status=? AND expires_at < ?",
                (InvitationStatus.EXPIRED.value, to_iso(cutoff)),
            )
            await conn.commit()
            return cur.rowcount

    @metrics.wrap_async("db:client_invitations.force_cleanup", source="database")
    async def force_cleanup(self, now: datetime) -> int:
        async with self._db.connect() as conn:
            await conn.execute(
                "UPDATE client_invitations SET status=? WHERE status=? AND expires_at <= ?",
                (InvitationStatus.EXPIRED.value, InvitationStatus.PENDING.value, to_iso(now)),
            )
            cur = await conn.execute(
                "DELETE FROM client_invitations WHERE status=?",
                (InvitationStatus.EXPIRED.value,),
            )
            await conn.commit()
            return cur.rowcount


class SQLitePortalAccessRepository(PortalAccessRepository):
    def __init__(self, db: SQLiteDatabase):
        self._db = db

    @metrics.wrap_async("db:client_portal_access.grant", source="database")
    async def grant(
        self,
        *,
        subscriber_user_id: int,
        client_user_id: int,
        role: str,
        permissions: Mapping[str, Any],
        expires_at: Optional[datetime],
        created_at: datetime,
    ) -> int:
        async with self._db.connect() as conn:
            cur = await conn.execute(
                """
                INSERT INTO client_portal_access(
                  subscriber_user_id, client_user_id, role, status, permissions, expires_at, created_at
                )
                VALUES(?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    subscriber_user_id,
                    client_user_id,
                    role,
                    AccessStatus.ACTIVE.value,
                    dump_json(dict(permissions)),
                    to_iso(expires_at),
                    to_iso(created_at),
                ),
            )
            await conn.commit()
            return int(cur.lastrowid)

    async def _many(self, where: str, params: tuple) -> list[PortalAccess]:
        async with self._db.connect() as conn:
            cur = await conn.execute(f"SELECT * FROM client_portal_access WHERE {where} ORDER BY id", params)
            rows = await cur.fetchall()
        return [access_from_row(dict(row)) for row in rows]

    @metrics.wrap_async("db:client_portal_access.get", source="database")
    async def get(self, access_id: int) -> Optional[PortalAccess]:
        found = await self._many("id=?", (access_id,))
        return found[0] if found else None

    @metrics.wrap_async("db:client_portal_access.find", source="database")
    async def find(self, subscriber_user_id: int, client_user_id: int) -> Optional[PortalAccess]:
        found = await self._many("subscriber_user_id=? AND client_user_id=?", (subscriber_user_id, client_user_id))
        return found[0] if found else None

    @metrics.wrap_async("db:client_portal_access.list_for_client", source="database")
    async def list_for_client(self, client_user_id: int) -> list[PortalAccess]:
        return await self._many("client_user_id=?", (client_user_id,))

    @metrics.wrap_async("db:client_portal_access.list_for_subscriber", source="database")
    async def list_for_subscriber(self, subscriber_user_id: int) -> list[PortalAccess]:
        return await self._many("subscriber_user_id=?", (subscriber_user_id,))

    @metrics.wrap_async("db:client_portal_access.set_status", source="database")
    async def set_status(self, access_id: int, status: AccessStatus) -> None:
        async with self._db.connect() as conn:
            await conn.execute("UPDATE client_portal_access SET status=? WHERE id=?", (status.value, access_id))
            await conn.commit()

    @metrics.wrap_async("db:client_portal_access.reactivate", source="database")
    async def reactivate(self, access_id: int, *, role: str, permissions: Mapping[str, Any]) -> None:
        async with self._db.connect() as conn:
            await conn.execute(
                """
                UPDATE client_portal_access
                SET status=?, role=?, permissions=?, expires_at=NULL
                WHERE id=?
                """,
                (AccessStatus.ACTIVE.value, role, dump_json(dict(permissions)), access_id),
            )
            await conn.commit()

    @metrics.wrap_async("db:client_portal_access.set_scope", source="database")
    async def set_scope(self, access_id: int, scope: VisibilityScope) -> None:
        async with self._db.connect() as conn:
            await conn.execute(
                "UPDATE client_portal_access SET visibility_scope=? WHERE id=?",
                (dump_json(scope.to_dict()), access_id),
            )
            await conn.commit()

    @metrics.wrap_async("db:client_portal_access.expire", source="database")
    async def expire_past_due(self, now: datetime) -> int:
        async with self._db.connect() as conn:
            cur = await conn.execute(
                """
                UPDATE client_portal_access
                SET status=?
                WHERE status=? AND expires_at IS NOT NULL AND expires_at <= ?
                """,
                (AccessStatus.EXPIRED.value, AccessStatus.ACTIVE.value, to_iso(now)),
            )
            await conn.commit()
            return cur.rowcount


class SQLiteAssociationsRepository(AssociationsRepository):
    def __init__(self, db: SQLiteDatabase):
        self._db = db

    @metrics.wrap_async("db:client_data_associations.assign", source="database")
    async def assign(
        self,
        *,
        subscriber_user_id: int,
        client_user_id: int,
        data_type: str,
        data_id: int,
        created_at: datetime,
    ) -> bool:
        async with self._db.connect() as conn:
            cur = await conn.execute(
                """
                INSERT OR IGNORE INTO client_data_associations(
                  subscriber_user_id, client_user_id, data_type, data_id, created_at
                )
                VALUES(?, ?, ?, ?, ?)
                """,
                (subscriber_user_id, client_user_id, data_type, data_id, to_iso(created_at)),
            )
            await conn.commit()
            return cur.rowcount > 0

    @metrics.wrap_async("db:client_data_associations.unassign", source="database")
    async def unassign(self, *, subscriber_user_id: int, client_user_id: int, data_type: str, data_id: int) -> bool:
        async with self._db.connect() as conn:
            cur = await conn.execute(
                """
                DELETE FROM client_data_associations
                WHERE subscriber_user_id=? AND client_user_id=? AND data_type=? AND data_id=?
                """,
                (subscriber_user_id, client_user_id, data_type, data_id),
            )
            await conn.commit()
            return cur.rowcount > 0

    @metrics.wrap_async("db:client_data_associations.list_ids", source="database")
    async def list_ids(self, subscriber_user_id: int, client_user_id: int, data_type: str) -> list[int]:
        async with self._db.connect() as conn:
            cur = await conn.execute(
                """
                SELECT data_id FROM client_data_associations
                WHERE subscriber_user_id=? AND client_user_id=? AND data_type=?
                ORDER BY data_id
                """,
                (subscriber_user_id, client_user_id, data_type),
            )
            rows = await cur.fetchall()
        return [int(row["data_id"]) for row in rows]

    @metrics.wrap_async("db:client_data_associations.list_for_client", source="database")
    async def list_for_client(self, client_user_id: int) -> list[DataAssociation]:
        async with self._db.connect() as conn:
            cur = await conn.execute(
                "SELECT * FROM client_data_associations WHERE client_user_id=? ORDER BY id",
                (client_user_id,),
            )
            rows = await cur.fetchall()
        return [association_from_row(dict(row)) for row in rows]
