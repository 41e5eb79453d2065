from __future__ import annotations

from datetime import datetime
from typing import Optional, Sequence

from ...domain.billing.models import CheckoutSession
from ...domain.billing.repositories import CheckoutSessionsRepository
from ..mappers import checkout_session_from_row, dump_json, to_iso
from ..metrics import metrics
from .database import SQLiteDatabase


class SQLiteCheckoutSessionsRepository(CheckoutSessionsRepository):
    def __init__(self, db: SQLiteDatabase):
        self._db = db

    @metrics.wrap_async("db:checkout_sessions.create", source="database")
    async def create(
        self,
        *,
        session_id: str,
        user_id: int,
        email: str,
        product_type: str,
        product_id: str,
        interval: str,
        product_name: str,
        amount_cents: int,
        currency: str,
        url: str,
        success_url: str,
        cancel_url: str,
        trial_days: int,
        trial_modules: Sequence[str],
        created_at: datetime,
    ) -> int:
        async with self._db.connect() as conn:
            cur = await conn.execute(
                """
                INSERT INTO checkout_sessions(
                  session_id, user_id, email, product_type, product_id, billing_interval, product_name,
                  amount_cents, currency, url, success_url, cancel_url, trial_days, trial_modules, created_at
                )
                VALUES(?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    session_id,
                    user_id,
                    email,
                    product_type,
                    product_id,
                    interval,
                    product_name,
                    amount_cents,
                    currency,
                    url,
                    success_url,
                    cancel_url,
                    trial_days,
                    dump_json(list(trial_modules)),
                    to_iso(created_at),
                ),
            )
            await conn.commit()
            return int(cur.lastrowid)

    @metrics.wrap_async("db:checkout_sessions.get", source="database")
    async def get(self, session_id: str) -> Optional[CheckoutSession]:
        async with self._db.connect() as conn:
            cur = await conn.execute("SELECT * FROM checkout_sessions WHERE session_id=?", (session_id,))
            row = await cur.fetchone()
        return checkout_session_from_row(dict(row)) if row else None

    @metrics.wrap_async("db:checkout_sessions.list", source="database")
    async def list_for_user(self, user_id: int) -> list[CheckoutSession]:
        async with self._db.connect() as conn:
            cur = await conn.execute(
                "SELECT * FROM checkout_sessions WHERE user_id=? ORDER BY id DESC",
                (user_id,),
            )
            rows = await cur.fetchall()
        return [checkout_session_from_row(dict(row)) for row in rows]
