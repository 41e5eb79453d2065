from __future__ import annotations

from ...domain.valuation.repositories import RevenueSourcesRepository
from ...domain.valuation.revenue import RevenueSource
from ..mappers import revenue_source_from_db_row
from ..metrics import metrics
from .database import SQLiteDatabase


class SQLiteRevenueSourcesRepository(RevenueSourcesRepository):
    def __init__(self, db: SQLiteDatabase):
        self._db = db

    @metrics.wrap_async("db:revenue_sources.add", source="database")
    async def add(self, user_id: int, source: RevenueSource) -> int:
        async with self._db.connect() as conn:
            cur = await conn.execute(
                """
                INSERT INTO revenue_sources(
                  user_id, revenue_type, revenue_source, annual_revenue, currency, growth_rate,
                  confidence_level, is_recurring, start_date, end_date, notes
                )
                VALUES(?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    user_id,
                    source.revenue_type,
                    source.revenue_source,
                    source.annual_revenue,
                    source.currency,
                    source.growth_rate,
                    source.confidence_level,
                    int(source.is_recurring),
                    source.start_date,
                    source.end_date,
                    source.notes,
                ),
            )
            await conn.commit()
            return int(cur.lastrowid)

    @metrics.wrap_async("db:revenue_sources.list", source="database")
    async def list_for_user(self, user_id: int) -> list[RevenueSource]:
        async with self._db.connect() as conn:
            cur = await conn.execute(
                "SELECT * FROM revenue_sources WHERE user_id=? ORDER BY annual_revenue DESC, id",
                (user_id,),
            )
            rows = await cur.fetchall()
        return [revenue_source_from_db_row(dict(row)) for row in rows]

    @metrics.wrap_async("db:revenue_sources.delete", source="database")
    async def delete(self, user_id: int, source_id: int) -> bool:
        async with self._db.connect() as conn:
            cur = await conn.execute(
                "DELETE FROM revenue_sources WHERE id=? AND user_id=?",
                (source_id, user_id),
            )
            await conn.commit()
            return cur.rowcount > 0
