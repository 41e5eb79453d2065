from __future__ import annotations

from datetime import date
from typing import Any, Mapping, Optional, Sequence

from ...domain.contracts.models import Contract, ContractStatus
from ...domain.contracts.repositories import ContractsRepository
from ..mappers import contract_from_row
from ..metrics import metrics
from .columns import in_clause, insert_sql, pick_columns, update_sql, utc_now_iso
from .database import SQLiteDatabase

CONTRACT_COLUMNS = (
    "title",
    "counterparty_name",
    "contract_type",
    "contract_status",
    "start_date",
    "end_date",
    "advance_amount",
    "commission_percentage",
    "controlled_percentage",
    "territories",
    "royalty_splits",
    "recoupment_status",
    "advance_balance",
    "w9_url",
    "direct_deposit_auth_url",
)


class SQLiteContractsRepository(ContractsRepository):
    def __init__(self, db: SQLiteDatabase):
        self._db = db

    @metrics.wrap_async("db:contracts.create", source="database")
    async def create(self, user_id: int, fields: Mapping[str, Any]) -> int:
        values = pick_columns(fields, CONTRACT_COLUMNS)
        now = utc_now_iso()
        values.update(user_id=user_id, created_at=now, updated_at=now)
        sql, params = insert_sql("contracts", values)
        async with self._db.connect() as conn:
            cur = await conn.execute(sql, params)
            await conn.commit()
            return int(cur.lastrowid)

    @metrics.wrap_async("db:contracts.get", source="database")
    async def get(self, contract_id: int) -> Optional[Contract]:
        async with self._db.connect() as conn:
            cur = await conn.execute("SELECT * FROM contracts WHERE id=?", (contract_id,))
            row = await cur.fetchone()
        return contract_from_row(dict(row)) if row else None

    @metrics.wrap_async("db:contracts.list", source="database")
    async def list_for_user(
        self,
        user_id: int,
        *,
        status: ContractStatus | None = None,
        contract_type: str | None = None,
        search: str | None = None,
        ids: Sequence[int] | None = None,
    ) -> list[Contract]:
        query = "SELECT * FROM contracts WHERE user_id=?"
        params: list[Any] = [user_id]
        if status is not None:
            query += " AND contract_status=?"
            params.append(status.value)
        if contract_type:
            query += " AND contract_type=?"
            params.append(contract_type)
        if search:
            query += " AND (title LIKE ? OR counterparty_name LIKE ?)"
            params += [f"%{search}%", f"%{search}%"]
        if ids is not None:
            clause, id_params = in_clause("id", ids)
            query += f" AND {clause}"
            params += id_params
        query += " ORDER BY created_at DESC, id DESC"
        async with self._db.connect() as conn:
            cur = await conn.execute(query, params)
            rows = await cur.fetchall()
        return [contract_from_row(dict(row)) for row in rows]

    @metrics.wrap_async("db:contracts.update", source="database")
    async def update(self, contract_id: int, fields: Mapping[str, Any]) -> None:
        values = pick_columns(fields, CONTRACT_COLUMNS)
        if not values:
            return
        values["updated_at"] = utc_now_iso()
        sql, params = update_sql("contracts", values, "id", contract_id)
        async with self._db.connect() as conn:
            await conn.execute(sql, params)
            await conn.commit()

    @metrics.wrap_async("db:contracts.delete", source="database")
    async def delete(self, contract_id: int) -> bool:
        async with self._db.connect() as conn:
            cur = await conn.execute("DELETE FROM contracts WHERE id=?", (contract_id,))
            await conn.commit()
            return cur.rowcount > 0

    @metrics.wrap_async("db:contracts.expire_before", source="database")
    async def expire_before(self, today: date) -> int:
        async with self._db.connect() as conn:
            cur = await conn.execute(
                """
                UPDATE contracts
                SET contract_status=?, updated_at=?
                WHERE end_date IS NOT NULL AND end_date < ?
                  AND contract_status=?
                """,
                (
                    ContractStatus.EXPIRED.value,
                    utc_now_iso(),
                    today.isoformat(),
                    ContractStatus.ACTIVE.value,
                ),
            )
            await conn.commit()
            return cur.rowcount
