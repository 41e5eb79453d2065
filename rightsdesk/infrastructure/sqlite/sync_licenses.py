from __future__ import annotations

from typing import Any, Mapping, Optional, Sequence

from ...domain.sync.models import SyncLicense
from ...domain.sync.repositories import SyncLicensesRepository
from ..mappers import sync_license_from_row
from ..metrics import metrics
from .columns import in_clause, insert_sql, pick_columns, update_sql, utc_now_iso
from .database import SQLiteDatabase

LICENSE_COLUMNS = (
    "project_title",
    "media_type",
    "synch_status",
    "payment_status",
    "invoice_status",
    "sync_type",
    "synch_agent",
    "licensee_name",
    "pub_fee",
    "master_fee",
    "currency",
    "term_start",
    "term_end",
    "territories",
    "linked_copyright_ids",
    "pub_share_percentage",
    "master_share_percentage",
    "fee_allocations",
    "invoiced_amount",
    "payment_received",
    "notes",
)


class SQLiteSyncLicensesRepository(SyncLicensesRepository):
    def __init__(self, db: SQLiteDatabase):
        self._db = db

    @metrics.wrap_async("db:sync_licenses.next_sequence", source="database")
    async def next_sequence(self, user_id: int, year: int) -> int:
        prefix = f"SYNC-{year}-"
        async with self._db.connect() as conn:
            cur = await conn.execute(
                """
                SELECT MAX(CAST(substr(synch_id, ?) AS INTEGER)) AS seq
                FROM sync_licenses
                WHERE user_id=? AND synch_id LIKE ?
                """,
                (len(prefix) + 1, user_id, f"{prefix}%"),
            )
            row = await cur.fetchone()
        return int(row["seq"] or 0) + 1

    @metrics.wrap_async("db:sync_licenses.create", source="database")
    async def create(self, user_id: int, synch_id: str, fields: Mapping[str, Any]) -> int:
        values = pick_columns(fields, LICENSE_COLUMNS)
        values.update(user_id=user_id, synch_id=synch_id, created_at=utc_now_iso())
        sql, params = insert_sql("sync_licenses", values)
        async with self._db.connect() as conn:
            cur = await conn.execute(sql, params)
            await conn.commit()
            return int(cur.lastrowid)

    @metrics.wrap_async("db:sync_licenses.get", source="database")
    async def get(self, license_id: int) -> Optional[SyncLicense]:
        async with self._db.connect() as conn:
            cur = await conn.execute("SELECT * FROM sync_licenses WHERE id=?", (license_id,))
            row = await cur.fetchone()
        return sync_license_from_row(dict(row)) if row else None

    @metrics.wrap_async("db:sync_licenses.list", source="database")
    async def list_for_user(
        self,
        user_id: int,
        *,
        status: str | None = None,
        media_type: str | None = None,
        search: str | None = None,
        ids: Sequence[int] | None = None,
    ) -> list[SyncLicense]:
        query = "SELECT * FROM sync_licenses WHERE user_id=?"
        params: list[Any] = [user_id]
        if status:
            query += " AND synch_status=?"
            params.append(status)
        if media_type:
            query += " AND media_type=?"
            params.append(media_type)
        if search:
            query += " AND (project_title LIKE ? OR synch_id LIKE ? OR licensee_name LIKE ?)"
            params += [f"%{search}%"] * 3
        if ids is not None:
            clause, id_params = in_clause("id", ids)
            query += f" AND {clause}"
            params += id_params
        query += " ORDER BY created_at DESC, id DESC"
        async with self._db.connect() as conn:
            cur = await conn.execute(query, params)
            rows = await cur.fetchall()
        return [sync_license_from_row(dict(row)) for row in rows]

    @metrics.wrap_async("db:sync_licenses.update", source="database")
    async def update(self, license_id: int, fields: Mapping[str, Any]) -> None:
        values = pick_columns(fields, LICENSE_COLUMNS)
        if not values:
            return
        sql, params = update_sql("sync_licenses", values, "id", license_id)
        async with self._db.connect() as conn:
            await conn.execute(sql, params)
            await conn.commit()

    @metrics.wrap_async("db:sync_licenses.delete", source="database")
    async def delete(self, license_id: int) -> bool:
        async with self._db.connect() as conn:
            cur = await conn.execute("DELETE FROM sync_licenses WHERE id=?", (license_id,))
            await conn.commit()
            return cur.rowcount > 0
