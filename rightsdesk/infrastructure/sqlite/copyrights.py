from __future__ import annotations

from typing import Any, Mapping, Optional, Sequence

from ...domain.copyright.models import (
    Copyright,
    CopyrightExport,
    CopyrightPublisher,
    CopyrightRecording,
    CopyrightWriter,
)
from ...domain.copyright.repositories import CopyrightExportsRepository, CopyrightsRepository
from ..mappers import (
    copyright_export_from_row,
    copyright_from_row,
    dump_json,
    publisher_from_row,
    recording_from_row,
    writer_from_row,
)
from ..metrics import metrics
from .columns import in_clause, insert_sql, pick_columns, update_sql, utc_now_iso
from .database import SQLiteDatabase

WORK_COLUMNS = (
    "work_title",
    "work_type",
    "iswc",
    "language_code",
    "duration_seconds",
    "status",
    "akas",
    "validation_status",
)
SHARE_COLUMNS = (
    "ownership_percentage",
    "ipi_number",
    "performance_share",
    "mechanical_share",
    "synchronization_share",
    "print_share",
)
WRITER_COLUMNS = ("writer_name", "writer_role", "controlled_status") + SHARE_COLUMNS
PUBLISHER_COLUMNS = ("publisher_name", "publisher_role") + SHARE_COLUMNS
RECORDING_COLUMNS = ("isrc", "recording_title", "artist_name", "duration_seconds", "release_date")


class SQLiteCopyrightsRepository(CopyrightsRepository):
    def __init__(self, db: SQLiteDatabase):
        self._db = db

    @metrics.wrap_async("db:copyrights.next_sequence", source="database")
    async def next_sequence(self, user_id: int, year: int) -> int:
        prefix = f"CW-{year}-"
        async with self._db.connect() as conn:
            cur = await conn.execute(
                """
                SELECT MAX(CAST(substr(internal_id, ?) AS INTEGER)) AS seq
                FROM copyrights
                WHERE user_id=? AND internal_id LIKE ?
                """,
                (len(prefix) + 1, user_id, f"{prefix}%"),
            )
            row = await cur.fetchone()
        return int(row["seq"] or 0) + 1

    @metrics.wrap_async("db:copyrights.create", source="database")
    async def create(self, user_id: int, internal_id: str, fields: Mapping[str, Any]) -> int:
        values = pick_columns(fields, WORK_COLUMNS)
        values.update(user_id=user_id, internal_id=internal_id, created_at=utc_now_iso())
        sql, params = insert_sql("copyrights", values)
        async with self._db.connect() as conn:
            cur = await conn.execute(sql, params)
            await conn.commit()
            return int(cur.lastrowid)

    @metrics.wrap_async("db:copyrights.get", source="database")
    async def get(self, copyright_id: int) -> Optional[Copyright]:
        async with self._db.connect() as conn:
            cur = await conn.execute("SELECT * FROM copyrights WHERE id=?", (copyright_id,))
            row = await cur.fetchone()
        return copyright_from_row(dict(row)) if row else None

    @metrics.wrap_async("db:copyrights.list", source="database")
    async def list_for_user(
        self,
        user_id: int,
        *,
        search: str | None = None,
        status: str | None = None,
        ids: Sequence[int] | None = None,
    ) -> list[Copyright]:
        query = "SELECT * FROM copyrights WHERE user_id=?"
        params: list[Any] = [user_id]
        if search:
            query += " AND (work_title LIKE ? OR internal_id LIKE ? OR iswc LIKE ?)"
            needle = f"%{search}%"
            params += [needle, needle, needle]
        if status:
            query += " AND status=?"
            params.append(status)
        if ids is not None:
            clause, id_params = in_clause("id", ids)
            query += f" AND {clause}"
            params += id_params
        query += " ORDER BY created_at DESC, id DESC"
        async with self._db.connect() as conn:
            cur = await conn.execute(query, params)
            rows = await cur.fetchall()
        return [copyright_from_row(dict(row)) for row in rows]

    @metrics.wrap_async("db:copyrights.update", source="database")
    async def update(self, copyright_id: int, fields: Mapping[str, Any]) -> None:
        values = pick_columns(fields, WORK_COLUMNS)
        if not values:
            return
        sql, params = update_sql("copyrights", values, "id", copyright_id)
        async with self._db.connect() as conn:
            await conn.execute(sql, params)
            await conn.commit()

    @metrics.wrap_async("db:copyrights.delete", source="database")
    async def delete(self, copyright_id: int) -> bool:
        async with self._db.connect() as conn:
            for table in ("copyright_writers", "copyright_publishers", "copyright_recordings"):
                await conn.execute(f"DELETE FROM {table} WHERE copyright_id=?", (copyright_id,))
            cur = await conn.execute("DELETE FROM copyrights WHERE id=?", (copyright_id,))
            await conn.commit()
            return cur.rowcount > 0

    async def _add_child(self, table: str, allowed: Sequence[str], copyright_id: int, fields: Mapping[str, Any]) -> int:
        values = pick_columns(fields, allowed)
        values["copyright_id"] = copyright_id
        sql, params = insert_sql(table, values)
        async with self._db.connect() as conn:
            cur = await conn.execute(sql, params)
            await conn.commit()
            return int(cur.lastrowid)

    async def _list_children(self, table: str, copyright_ids: Sequence[int]) -> list[dict]:
        if not copyright_ids:
            return []
        clause, params = in_clause("copyright_id", copyright_ids)
        async with self._db.connect() as conn:
            cur = await conn.execute(f"SELECT * FROM {table} WHERE {clause} ORDER BY id", params)
            rows = await cur.fetchall()
        return [dict(row) for row in rows]

    @metrics.wrap_async("db:copyright_writers.add", source="database")
    async def add_writer(self, copyright_id: int, fields: Mapping[str, Any]) -> int:
        return await self._add_child("copyright_writers", WRITER_COLUMNS, copyright_id, fields)

    @metrics.wrap_async("db:copyright_publishers.add", source="database")
    async def add_publisher(self, copyright_id: int, fields: Mapping[str, Any]) -> int:
        return await self._add_child("copyright_publishers", PUBLISHER_COLUMNS, copyright_id, fields)

    @metrics.wrap_async("db:copyright_recordings.add", source="database")
    async def add_recording(self, copyright_id: int, fields: Mapping[str, Any]) -> int:
        return await self._add_child("copyright_recordings", RECORDING_COLUMNS, copyright_id, fields)

    @metrics.wrap_async("db:copyright_writers.list", source="database")
    async def list_writers(self, copyright_ids: Sequence[int]) -> list[CopyrightWriter]:
        return [writer_from_row(r) for r in await self._list_children("copyright_writers", copyright_ids)]

    @metrics.wrap_async("db:copyright_publishers.list", source="database")
    async def list_publishers(self, copyright_ids: Sequence[int]) -> list[CopyrightPublisher]:
        return [publisher_from_row(r) for r in await self._list_children("copyright_publishers", copyright_ids)]

    @metrics.wrap_async("db:copyright_recordings.list", source="database")
    async def list_recordings(self, copyright_ids: Sequence[int]) -> list[CopyrightRecording]:
        return [recording_from_row(r) for r in await self._list_children("copyright_recordings", copyright_ids)]


class SQLiteCopyrightExportsRepository(CopyrightExportsRepository):
    def __init__(self, db: SQLiteDatabase):
        self._db = db

    @metrics.wrap_async("db:copyright_exports.add", source="database")
    async def add(
        self,
        *,
        user_id: int,
        filename: str,
        work_ids: Sequence[int],
        record_count: int,
        content: str,
    ) -> int:
        async with self._db.connect() as conn:
            cur = await conn.execute(
                """
                INSERT INTO copyright_exports(user_id, filename, work_ids, record_count, content, created_at)
                VALUES(?, ?, ?, ?, ?, ?)
                """,
                (user_id, filename, dump_json(list(work_ids)), record_count, content, utc_now_iso()),
            )
            await conn.commit()
            return int(cur.lastrowid)

    @metrics.wrap_async("db:copyright_exports.list", source="database")
    async def list_for_user(self, user_id: int, limit: int = 20) -> list[CopyrightExport]:
        async with self._db.connect() as conn:
            cur = await conn.execute(
                "SELECT * FROM copyright_exports WHERE user_id=? ORDER BY id DESC LIMIT ?",
                (user_id, limit),
            )
            rows = await cur.fetchall()
        return [copyright_export_from_row(dict(row)) for row in rows]
