from __future__ import annotations

from datetime import datetime
from typing import Any, Mapping, Optional, Sequence

from ...domain.royalties.models import (
    BatchOperation,
    BatchStatus,
    ClientBalance,
    ImportStaging,
    Payout,
    PayoutExpense,
    PayoutStage,
    ProcessingStatus,
    ReconciliationBatch,
    RoyaltyAllocation,
    WorkflowHistoryEntry,
)
from ...domain.royalties.repositories import (
    AllocationsRepository,
    BalancesRepository,
    BatchesRepository,
    PayoutsRepository,
    StagingRepository,
)
from ..mappers import (
    allocation_from_row,
    balance_from_row,
    batch_from_row,
    batch_operation_from_row,
    dump_json,
    expense_from_row,
    history_from_row,
    payout_from_row,
    staging_from_row,
    to_iso,
)
from ..metrics import metrics
from .columns import in_clause, insert_sql, pick_columns, update_sql, utc_now_iso
from .database import SQLiteDatabase

ALLOCATION_COLUMNS = (
    "staging_id",
    "batch_id",
    "copyright_id",
    "client_id",
    "song_title",
    "artist",
    "iswc",
    "work_id",
    "source",
    "royalty_type",
    "country",
    "gross_amount",
    "share_percentage",
    "period_start",
    "period_end",
    "payment_date",
    "comments",
    "ownership_splits",
    "is_split",
    "parent_allocation_id",
)

PAYOUT_COLUMNS = (
    "user_id",
    "client_id",
    "period_start",
    "period_end",
    "gross_royalties",
    "total_expenses",
    "net_payable",
    "amount_due",
    "royalties_to_date",
    "payments_to_date",
    "payment_method",
    "payment_reference",
    "workflow_stage",
    "status",
    "notes",
    "failure_reason",
    "paid_at",
)


class SQLiteStagingRepository(StagingRepository):
    def __init__(self, db: SQLiteDatabase):
        self._db = db

    @metrics.wrap_async("db:royalties_import_staging.create", source="database")
    async def create(
        self,
        *,
        user_id: int,
        filename: str,
        detected_source: str,
        raw_data: Sequence[Mapping[str, Any]],
        mapped_data: Sequence[Mapping[str, Any]],
        unmapped_fields: Sequence[str],
        validation_errors: Sequence[str],
        validation_status: str,
        batch_id: Optional[int] = None,
    ) -> int:
        async with self._db.connect() as conn:
            cur = await conn.execute(
                """
                INSERT INTO royalties_import_staging(
                  user_id, filename, detected_source, raw_data, mapped_data,
                  unmapped_fields, validation_errors, validation_status, batch_id, created_at
                )
                VALUES(?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    user_id,
                    filename,
                    detected_source,
                    dump_json(list(raw_data)),
                    dump_json(list(mapped_data)),
                    dump_json(list(unmapped_fields)),
                    dump_json(list(validation_errors)),
                    validation_status,
                    batch_id,
                    utc_now_iso(),
                ),
            )
            await conn.commit()
            return int(cur.lastrowid)

    @metrics.wrap_async("db:royalties_import_staging.get", source="database")
    async def get(self, staging_id: int) -> Optional[ImportStaging]:
        async with self._db.connect() as conn:
            cur = await conn.execute("SELECT * FROM royalties_import_staging WHERE id=?", (staging_id,))
            row = await cur.fetchone()
        return staging_from_row(dict(row)) if row else None

    @metrics.wrap_async("db:royalties_import_staging.list", source="database")
    async def list_for_user(self, user_id: int, *, status: ProcessingStatus | None = None) -> list[ImportStaging]:
        query = "SELECT * FROM royalties_import_staging WHERE user_id=?"
        params: list[Any] = [user_id]
        if status is not None:
            query += " AND processing_status=?"
            params.append(status.value)
        query += " ORDER BY created_at DESC, id DESC"
        async with self._db.connect() as conn:
            cur = await conn.execute(query, params)
            rows = await cur.fetchall()
        return [staging_from_row(dict(row)) for row in rows]

    @metrics.wrap_async("db:royalties_import_staging.set_status", source="database")
    async def set_status(self, staging_id: int, status: ProcessingStatus) -> None:
        async with self._db.connect() as conn:
            await conn.execute(
                "UPDATE royalties_import_staging SET processing_status=? WHERE id=?",
                (status.value, staging_id),
            )
            await conn.commit()

    @metrics.wrap_async("db:royalties_import_staging.delete", source="database")
    async def delete(self, staging_id: int) -> bool:
        async with self._db.connect() as conn:
            await conn.execute(
                """
                DELETE FROM royalty_allocations
                WHERE parent_allocation_id IN (SELECT id FROM royalty_allocations WHERE staging_id=?)
                """,
                (staging_id,),
            )
            await conn.execute("DELETE FROM royalty_allocations WHERE staging_id=?", (staging_id,))
            cur = await conn.execute("DELETE FROM royalties_import_staging WHERE id=?", (staging_id,))
            await conn.commit()
            return cur.rowcount > 0


class SQLiteAllocationsRepository(AllocationsRepository):
    def __init__(self, db: SQLiteDatabase):
        self._db = db

    @metrics.wrap_async("db:royalty_allocations.create", source="database")
    async def create(self, user_id: int, fields: Mapping[str, Any]) -> int:
        values = pick_columns(fields, ALLOCATION_COLUMNS)
        values.update(user_id=user_id, created_at=utc_now_iso())
        sql, params = insert_sql("royalty_allocations", values)
        async with self._db.connect() as conn:
            cur = await conn.execute(sql, params)
            await conn.commit()
            return int(cur.lastrowid)

    @metrics.wrap_async("db:royalty_allocations.get", source="database")
    async def get(self, allocation_id: int) -> Optional[RoyaltyAllocation]:
        async with self._db.connect() as conn:
            cur = await conn.execute("SELECT * FROM royalty_allocations WHERE id=?", (allocation_id,))
            row = await cur.fetchone()
        return allocation_from_row(dict(row)) if row else None

    @metrics.wrap_async("db:royalty_allocations.list", source="database")
    async def list_for_user(
        self,
        user_id: int,
        *,
        copyright_id: int | None = None,
        staging_id: int | None = None,
        batch_id: int | None = None,
        ids: Sequence[int] | None = None,
        include_children: bool = True,
        limit: int | None = None,
    ) -> list[RoyaltyAllocation]:
        query = "SELECT * FROM royalty_allocations WHERE user_id=?"
        params: list[Any] = [user_id]
        for column, value in (("copyright_id", copyright_id), ("staging_id", staging_id), ("batch_id", batch_id)):
            if value is not None:
                query += f" AND {column}=?"
                params.append(value)
        if ids is not None:
            clause, id_params = in_clause("id", ids)
            query += f" AND {clause}"
            params += id_params
        if not include_children:
            query += " AND parent_allocation_id IS NULL"
        query += " ORDER BY created_at DESC, id DESC"
        if limit is not None:
            query += " LIMIT ?"
            params.append(limit)
        async with self._db.connect() as conn:
            cur = await conn.execute(query, params)
            rows = await cur.fetchall()
        return [allocation_from_row(dict(row)) for row in rows]

    @metrics.wrap_async("db:royalty_allocations.update", source="database")
    async def update(self, allocation_id: int, fields: Mapping[str, Any]) -> None:
        values = pick_columns(fields, ALLOCATION_COLUMNS)
        if not values:
            return
        sql, params = update_sql("royalty_allocations", values, "id", allocation_id)
        async with self._db.connect() as conn:
            await conn.execute(sql, params)
            await conn.commit()

    @metrics.wrap_async("db:royalty_allocations.link_to_batch", source="database")
    async def link_to_batch(self, batch_id: int, allocation_ids: Sequence[int]) -> int:
        if not allocation_ids:
            return 0
        clause, params = in_clause("id", allocation_ids)
        async with self._db.connect() as conn:
            cur = await conn.execute(
                f"UPDATE royalty_allocations SET batch_id=? WHERE {clause}",
                (batch_id, *params),
            )
            await conn.commit()
            return cur.rowcount

    @metrics.wrap_async("db:royalty_allocations.sum_for_client", source="database")
    async def sum_for_client(self, user_id: int, client_id: int, period_start: str, period_end: str) -> float:
        async with self._db.connect() as conn:
            cur = await conn.execute(
                """
                SELECT COALESCE(SUM(gross_amount), 0) AS total
                FROM royalty_allocations
                WHERE user_id=?
                  AND parent_allocation_id IS NULL
                  AND (
                    client_id=?
                    OR id IN (
                      SELECT data_id FROM client_data_associations
                      WHERE subscriber_user_id=? AND client_user_id=? AND data_type='royalty_allocation'
                    )
                  )
                  AND COALESCE(period_end, substr(created_at, 1, 10)) BETWEEN ? AND ?
                """,
                (user_id, client_id, user_id, client_id, period_start, period_end),
            )
            row = await cur.fetchone()
        return round(float(row["total"] or 0.0), 2)


class SQLiteBatchesRepository(BatchesRepository):
    def __init__(self, db: SQLiteDatabase):
        self._db = db

    @metrics.wrap_async("db:reconciliation_batches.next_sequence", source="database")
    async def next_sequence(self, user_id: int, year: int) -> int:
        prefix = f"BATCH-{year}-"
        async with self._db.connect() as conn:
            cur = await conn.execute(
                """
                SELECT MAX(CAST(substr(batch_id, ?) AS INTEGER)) AS seq
                FROM reconciliation_batches
                WHERE user_id=? AND batch_id LIKE ?
                """,
                (len(prefix) + 1, user_id, f"{prefix}%"),
            )
            row = await cur.fetchone()
        return int(row["seq"] or 0) + 1

    @metrics.wrap_async("db:reconciliation_batches.create", source="database")
    async def create(
        self,
        *,
        user_id: int,
        batch_id: str,
        source: str,
        period: Optional[str],
        statement_total: float,
        date_received: Optional[str],
    ) -> int:
        async with self._db.connect() as conn:
            cur = await conn.execute(
                """
                INSERT INTO reconciliation_batches(
                  user_id, batch_id, source, period, statement_total, status, date_received, created_at
                )
                VALUES(?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    user_id,
                    batch_id,
                    source,
                    period,
                    statement_total,
                    BatchStatus.PENDING.value,
                    date_received,
                    utc_now_iso(),
                ),
            )
            await conn.commit()
            return int(cur.lastrowid)

    @metrics.wrap_async("db:reconciliation_batches.get", source="database")
    async def get(self, batch_pk: int) -> Optional[ReconciliationBatch]:
        async with self._db.connect() as conn:
            cur = await conn.execute("SELECT * FROM reconciliation_batches WHERE id=?", (batch_pk,))
            row = await cur.fetchone()
        return batch_from_row(dict(row)) if row else None

    @metrics.wrap_async("db:reconciliation_batches.list", source="database")
    async def list_for_user(self, user_id: int) -> list[ReconciliationBatch]:
        async with self._db.connect() as conn:
            cur = await conn.execute(
                "SELECT * FROM reconciliation_batches WHERE user_id=? ORDER BY created_at DESC, id DESC",
                (user_id,),
            )
            rows = await cur.fetchall()
        return [batch_from_row(dict(row)) for row in rows]

    @metrics.wrap_async("db:reconciliation_batches.set_status", source="database")
    async def set_status(self, batch_pk: int, status: BatchStatus) -> None:
        async with self._db.connect() as conn:
            await conn.execute("UPDATE reconciliation_batches SET status=? WHERE id=?", (status.value, batch_pk))
            await conn.commit()


class SQLitePayoutsRepository(PayoutsRepository):
    def __init__(self, db: SQLiteDatabase):
        self._db = db

    @metrics.wrap_async("db:payouts.create", source="database")
    async def create(self, fields: Mapping[str, Any]) -> int:
        values = pick_columns(fields, PAYOUT_COLUMNS)
        values["created_at"] = utc_now_iso()
        sql, params = insert_sql("payouts", values)
        async with self._db.connect() as conn:
            cur = await conn.execute(sql, params)
            await conn.commit()
            return int(cur.lastrowid)

    @metrics.wrap_async("db:payouts.get", source="database")
    async def get(self, payout_id: int) -> Optional[Payout]:
        async with self._db.connect() as conn:
            cur = await conn.execute("SELECT * FROM payouts WHERE id=?", (payout_id,))
            row = await cur.fetchone()
        return payout_from_row(dict(row)) if row else None

    @metrics.wrap_async("db:payouts.list", source="database")
    async def list_for_user(
        self,
        user_id: int,
        *,
        client_id: int | None = None,
        stage: PayoutStage | None = None,
    ) -> list[Payout]:
        query = "SELECT * FROM payouts WHERE user_id=?"
        params: list[Any] = [user_id]
        if client_id is not None:
            query += " AND client_id=?"
            params.append(client_id)
        if stage is not None:
            query += " AND workflow_stage=?"
            params.append(stage.value)
        query += " ORDER BY created_at DESC, id DESC"
        async with self._db.connect() as conn:
            cur = await conn.execute(query, params)
            rows = await cur.fetchall()
        return [payout_from_row(dict(row)) for row in rows]

    @metrics.wrap_async("db:payouts.update", source="database")
    async def update(self, payout_id: int, fields: Mapping[str, Any]) -> None:
        values = pick_columns(fields, PAYOUT_COLUMNS)
        if not values:
            return
        sql, params = update_sql("payouts", values, "id", payout_id)
        async with self._db.connect() as conn:
            await conn.execute(sql, params)
            await conn.commit()

    @metrics.wrap_async("db:payouts.paid_totals", source="database")
    async def paid_totals(self, user_id: int, client_id: int) -> tuple[float, float]:
        async with self._db.connect() as conn:
            cur = await conn.execute(
                """
                SELECT COALESCE(SUM(amount_due), 0) AS payments, COALESCE(SUM(gross_royalties), 0) AS gross
                FROM payouts
                WHERE user_id=? AND client_id=? AND workflow_stage=?
                """,
                (user_id, client_id, PayoutStage.PAID.value),
            )
            row = await cur.fetchone()
        return round(float(row["payments"]), 2), round(float(row["gross"]), 2)

    @metrics.wrap_async("db:payout_expenses.add", source="database")
    async def add_expense(
        self,
        *,
        payout_id: int,
        description: str,
        expense_type: str,
        amount: float,
        is_percentage: bool,
        percentage_rate: float,
    ) -> int:
        async with self._db.connect() as conn:
            cur = await conn.execute(
                """
                INSERT INTO payout_expenses(payout_id, description, expense_type, amount, is_percentage, percentage_rate)
                VALUES(?, ?, ?, ?, ?, ?)
                """,
                (payout_id, description, expense_type, amount, int(is_percentage), percentage_rate),
            )
            await conn.commit()
            return int(cur.lastrowid)

    @metrics.wrap_async("db:payout_expenses.list", source="database")
    async def list_expenses(self, payout_id: int) -> list[PayoutExpense]:
        async with self._db.connect() as conn:
            cur = await conn.execute("SELECT * FROM payout_expenses WHERE payout_id=? ORDER BY id", (payout_id,))
            rows = await cur.fetchall()
        return [expense_from_row(dict(row)) for row in rows]

    @metrics.wrap_async("db:payout_workflow_history.add", source="database")
    async def add_history(
        self,
        *,
        payout_id: int,
        from_stage: Optional[str],
        to_stage: str,
        reason: Optional[str],
        changed_by: Optional[int],
        created_at: datetime,
    ) -> None:
        async with self._db.connect() as conn:
            await conn.execute(
                """
                INSERT INTO payout_workflow_history(payout_id, from_stage, to_stage, reason, changed_by, created_at)
                VALUES(?, ?, ?, ?, ?, ?)
                """,
                (payout_id, from_stage, to_stage, reason, changed_by, to_iso(created_at)),
            )
            await conn.commit()

    @metrics.wrap_async("db:payout_workflow_history.list", source="database")
    async def list_history(self, payout_id: int) -> list[WorkflowHistoryEntry]:
        async with self._db.connect() as conn:
            cur = await conn.execute(
                "SELECT * FROM payout_workflow_history WHERE payout_id=? ORDER BY id",
                (payout_id,),
            )
            rows = await cur.fetchall()
        return [history_from_row(dict(row)) for row in rows]

    @metrics.wrap_async("db:payout_batch_operations.record", source="database")
    async def record_batch_operation(self, *, user_id: int, operation_type: str, payout_ids: Sequence[int]) -> int:
        async with self._db.connect() as conn:
            cur = await conn.execute(
                """
                INSERT INTO payout_batch_operations(user_id, operation_type, payout_ids, total_count, status)
                VALUES(?, ?, ?, ?, 'processing')
                """,
                (user_id, operation_type, dump_json(list(payout_ids)), len(payout_ids)),
            )
            await conn.commit()
            return int(cur.lastrowid)

    @metrics.wrap_async("db:payout_batch_operations.finish", source="database")
    async def finish_batch_operation(self, operation_id: int, *, succeeded: int, failed: int) -> None:
        status = "completed" if failed == 0 else ("failed" if succeeded == 0 else "partial")
        async with self._db.connect() as conn:
            await conn.execute(
                "UPDATE payout_batch_operations SET succeeded=?, failed=?, status=? WHERE id=?",
                (succeeded, failed, status, operation_id),
            )
            await conn.commit()

    @metrics.wrap_async("db:payout_batch_operations.get", source="database")
    async def get_batch_operation(self, operation_id: int) -> Optional[BatchOperation]:
        async with self._db.connect() as conn:
            cur = await conn.execute("SELECT * FROM payout_batch_operations WHERE id=?", (operation_id,))
            row = await cur.fetchone()
        return batch_operation_from_row(dict(row)) if row else None


class SQLiteBalancesRepository(BalancesRepository):
    def __init__(self, db: SQLiteDatabase):
        self._db = db

    @metrics.wrap_async("db:client_account_balances.get", source="database")
    async def get(self, user_id: int, client_id: int) -> Optional[ClientBalance]:
        async with self._db.connect() as conn:
            cur = await conn.execute(
                "SELECT * FROM client_account_balances WHERE user_id=? AND client_id=?",
                (user_id, client_id),
            )
            row = await cur.fetchone()
        return balance_from_row(dict(row)) if row else None

    @metrics.wrap_async("db:client_account_balances.apply_payment", source="database")
    async def apply_payment(self, user_id: int, client_id: int, *, earned: float, paid: float) -> ClientBalance:
        async with self._db.connect() as conn:
            await conn.execute(
                """
                INSERT INTO client_account_balances(user_id, client_id, total_earned, total_paid, current_balance)
                VALUES(?, ?, ?, ?, ?)
                ON CONFLICT(user_id, client_id) DO UPDATE SET
                  total_earned=total_earned + excluded.total_earned,
                  total_paid=total_paid + excluded.total_paid,
                  current_balance=(total_earned + excluded.total_earned) - (total_paid + excluded.total_paid),
                  updated_at=datetime('now')
                """,
                (user_id, client_id, earned, paid, round(earned - paid, 2)),
            )
            cur = await conn.execute(
                "SELECT * FROM client_account_balances WHERE user_id=? AND client_id=?",
                (user_id, client_id),
            )
            row = await cur.fetchone()
            await conn.commit()
        return balance_from_row(dict(row))
