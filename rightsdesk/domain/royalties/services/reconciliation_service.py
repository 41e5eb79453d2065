from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from typing import Optional, Sequence

from ...shared.repositories import Clock
from ..models import BatchStatus, ReconciliationBatch, ReconciliationSummary
from ..repositories import AllocationsRepository, BatchesRepository

logger = logging.getLogger(__name__)

WORKFLOW_STEPS = ("import-batch", "review-batch", "link-allocations", "verify-reconciliation")

_STATUS_ORDER = {BatchStatus.PENDING: 0, BatchStatus.IMPORTED: 1, BatchStatus.PROCESSED: 2}


@dataclass(frozen=True)
class WorkflowStep:
    key: str
    completed: bool


class ReconciliationService:
    def __init__(self, *, batches: BatchesRepository, allocations: AllocationsRepository, clock: Clock):
        self._batches = batches
        self._allocations = allocations
        self._clock = clock

    async def create_batch(
        self,
        user_id: int,
        *,
        source: str,
        statement_total: float,
        period: str | None = None,
        date_received: date | None = None,
    ) -> ReconciliationBatch:
        year = self._clock.now().year
        seq = await self._batches.next_sequence(user_id, year)
        batch_pk = await self._batches.create(
            user_id=user_id,
            batch_id=f"BATCH-{year}-{seq:04d}",
            source=source,
            period=period,
            statement_total=round(float(statement_total), 2),
            date_received=(date_received or self._clock.now().date()).isoformat(),
        )
        batch = await self._batches.get(batch_pk)
        logger.info("Reconciliation batch %s created", batch.batch_id)
        return batch

    async def get_batch(self, batch_pk: int) -> Optional[ReconciliationBatch]:
        return await self._batches.get(batch_pk)

    async def list_batches(self, user_id: int) -> list[ReconciliationBatch]:
        return await self._batches.list_for_user(user_id)

    async def advance_status(self, batch_pk: int, target: BatchStatus) -> bool:
        """Pending -> Imported -> Processed; moving backwards is refused."""
        batch = await self._batches.get(batch_pk)
        if not batch or _STATUS_ORDER[target] != _STATUS_ORDER[batch.status] + 1:
            return False
        await self._batches.set_status(batch_pk, target)
        return True

    async def link_allocations(self, batch_pk: int, allocation_ids: Sequence[int]) -> int:
        batch = await self._batches.get(batch_pk)
        if not batch or not allocation_ids:
            return 0
        owned = await self._allocations.list_for_user(batch.user_id, ids=allocation_ids)
        linked = await self._allocations.link_to_batch(batch_pk, [a.id for a in owned])
        if linked and batch.status is BatchStatus.PENDING:
            await self._batches.set_status(batch_pk, BatchStatus.IMPORTED)
        return linked

    async def reconciliation_summary(self, batch_pk: int) -> Optional[ReconciliationSummary]:
        batch = await self._batches.get(batch_pk)
        if not batch:
            return None
        allocations = await self._allocations.list_for_user(
            batch.user_id, batch_id=batch_pk, include_children=False
        )
        linked_gross = round(sum(a.gross_amount for a in allocations), 2)
        return ReconciliationSummary(
            batch=batch,
            allocation_count=len(allocations),
            linked_gross=linked_gross,
            variance=round(batch.statement_total - linked_gross, 2),
        )

    async def verify(self, batch_pk: int) -> Optional[ReconciliationSummary]:
        summary = await self.reconciliation_summary(batch_pk)
        if summary and summary.is_reconciled and summary.batch.status is BatchStatus.IMPORTED:
            await self._batches.set_status(batch_pk, BatchStatus.PROCESSED)
            summary = await self.reconciliation_summary(batch_pk)
        return summary

    async def workflow_steps(self, batch_pk: int) -> list[WorkflowStep]:
        summary = await self.reconciliation_summary(batch_pk)
        if not summary:
            return [WorkflowStep(key, False) for key in WORKFLOW_STEPS]
        done = (
            True,
            summary.batch.statement_total > 0,
            summary.allocation_count > 0,
            summary.batch.status is BatchStatus.PROCESSED,
        )
        return [WorkflowStep(key, flag) for key, flag in zip(WORKFLOW_STEPS, done)]
